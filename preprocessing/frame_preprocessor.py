"""
Frame Preprocessing Module for the Live Composition Assistant

Handles image decoding, detection-sized resizing and the small luminance
grids used by the pixel-level symmetry analysis. Nothing here keeps a
reference to the frames it is given.
"""

import io
import logging
from typing import Optional, Tuple

import cv2
import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)


class FramePreprocessor:
    """
    Prepares camera frames for detection and pixel analysis.

    Features:
    - Byte / file decoding into BGR arrays
    - Bounded resizing ahead of the subject detectors
    - Luminance conversion and fixed-grid downsampling
    """

    def __init__(self, sample_size: int = 64, max_detection_dimension: int = 640):
        """
        Initialize the FramePreprocessor.

        Args:
            sample_size: Edge length of the square luminance grid
            max_detection_dimension: Longest image side handed to detectors
        """
        self.sample_size = sample_size
        self.max_detection_dimension = max_detection_dimension

        logger.debug(f"FramePreprocessor initialized with sample_size = {sample_size}")

    def load_image(self, image_path: str) -> np.ndarray:
        """
        Load image from file path.

        Args:
            image_path: Path to the image file

        Returns:
            Loaded image as numpy array in BGR format

        Raises:
            ValueError: If image cannot be loaded or is invalid
        """
        try:
            image = cv2.imread(image_path)
            if image is None:
                # Fallback to PIL for additional format support
                pil_image = Image.open(image_path).convert('RGB')
                image = cv2.cvtColor(np.array(pil_image), cv2.COLOR_RGB2BGR)

            if image is None or image.size == 0:
                raise ValueError(f"Could not load image from {image_path}")

            logger.debug(f"Loaded image: {image_path}, shape: {image.shape}")
            return image

        except Exception as e:
            logger.error(f"Error loading image {image_path}: {str(e)}")
            raise ValueError(f"Failed to load image: {str(e)}")

    def decode_image(self, image_data: bytes) -> np.ndarray:
        """
        Decode encoded image bytes (JPEG, PNG, ...) into a BGR array.

        Raises:
            ValueError: If the bytes are not a readable image
        """
        try:
            pil_image = Image.open(io.BytesIO(image_data))

            if pil_image.mode not in ('RGB', 'L'):
                pil_image = pil_image.convert('RGB')

            image_array = np.array(pil_image)

            if image_array.ndim == 3:
                image_array = cv2.cvtColor(image_array, cv2.COLOR_RGB2BGR)

            return image_array

        except Exception as e:
            logger.error(f"Image decoding failed: {str(e)}")
            raise ValueError(f"Failed to decode image: {str(e)}")

    def to_luminance(self, image: np.ndarray) -> np.ndarray:
        """
        Convert a BGR, BGRA or grayscale image to an 8-bit luminance plane.

        Args:
            image: Input image

        Returns:
            2-D uint8 array
        """
        if image.dtype != np.uint8:
            if np.issubdtype(image.dtype, np.floating) and image.max() <= 1.0:
                image = image * 255.0
            elif image.dtype == np.uint16:
                image = image / 257.0
            image = np.clip(image, 0, 255).astype(np.uint8)

        if image.ndim == 2:
            return image

        channels = image.shape[2]
        if channels == 1:
            return image[:, :, 0]
        if channels == 4:
            return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)

        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)

    def luminance_grid(self, image: np.ndarray, size: Optional[int] = None) -> np.ndarray:
        """
        Downsample an image to a square luminance grid.

        Area interpolation averages whole pixel blocks, so mirror-symmetric
        input stays mirror-symmetric.

        Args:
            image: Input image
            size: Grid edge length, defaults to sample_size

        Returns:
            (size, size) float32 array of luminance values in [0, 255]
        """
        size = size or self.sample_size
        gray = self.to_luminance(image)
        grid = cv2.resize(gray, (size, size), interpolation=cv2.INTER_AREA)

        return grid.astype(np.float32)

    def resize_for_detection(self, image: np.ndarray) -> Tuple[np.ndarray, float]:
        """
        Shrink an image so its longest side fits max_detection_dimension.

        Returns:
            Tuple of (resized_image, scale) where scale <= 1.0
        """
        h, w = image.shape[:2]
        longest = max(h, w)

        if longest <= self.max_detection_dimension:
            return image, 1.0

        scale = self.max_detection_dimension / longest
        new_w = max(1, int(w * scale))
        new_h = max(1, int(h * scale))

        resized = cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_AREA)
        return resized, scale


def create_preprocessing_pipeline(config: Optional[dict] = None) -> FramePreprocessor:
    """
    Factory function to create a configured frame preprocessor.

    Args:
        config: Full configuration dictionary (uses 'rules.symmetry' and 'detection')

    Returns:
        Configured FramePreprocessor instance
    """
    if config is None:
        config = {}

    symmetry_config = config.get('rules', {}).get('symmetry', {})
    detection_config = config.get('detection', {})

    return FramePreprocessor(
        sample_size=symmetry_config.get('sample_size', 64),
        max_detection_dimension=detection_config.get('max_image_dimension', 640)
    )

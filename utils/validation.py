"""
Validation utilities for the Live Composition Assistant

Provides validation for frame geometry, subject boxes, pixel buffers and
configuration dictionaries.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)

VALID_COMPOSITION_TYPES = {'rule_of_thirds', 'center_framing', 'symmetry'}
VALID_SIZE_CLASSES = {'small', 'medium', 'large'}

# Supported upload formats
SUPPORTED_IMAGE_FORMATS = {
    '.jpg', '.jpeg', '.png', '.bmp', '.webp', '.tiff', '.tif'
}

# Maximum upload size (in bytes) - 20MB
MAX_FILE_SIZE = 20 * 1024 * 1024


class ValidationError(Exception):
    """Custom exception for validation errors"""

    def __init__(self, message: str, errors: List[str] = None):
        super().__init__(message)
        self.errors = errors or []


class InvalidFrameError(ValidationError):
    """Raised when a frame has zero or negative dimensions."""


def validate_frame_dimensions(width: Any, height: Any) -> tuple[bool, List[str]]:
    """
    Validate frame dimensions.

    Args:
        width: Frame width in pixels
        height: Frame height in pixels

    Returns:
        tuple: (is_valid, list_of_errors)
    """
    errors = []

    for name, value in (('width', width), ('height', height)):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            errors.append(f"Frame {name} must be a number")
        elif value <= 0:
            errors.append(f"Frame {name} must be positive, got {value}")

    return len(errors) == 0, errors


def validate_frame(frame) -> None:
    """
    Reject degenerate frames at the boundary.

    Raises:
        InvalidFrameError: If the frame is missing or has non-positive dimensions
    """
    if frame is None:
        raise InvalidFrameError("Frame is required")

    is_valid, errors = validate_frame_dimensions(frame.width, frame.height)
    if not is_valid:
        raise InvalidFrameError(f"Invalid frame {frame.width}x{frame.height}", errors)


def validate_bounding_box(values: Sequence[float]) -> tuple[bool, List[str]]:
    """
    Validate a normalized (x, y, width, height) box.

    Returns:
        tuple: (is_valid, list_of_errors)
    """
    errors = []

    if len(values) != 4:
        return False, ["Bounding box must have exactly 4 values (x, y, width, height)"]

    x, y, w, h = values

    for name, value in (('x', x), ('y', y), ('width', w), ('height', h)):
        if not 0.0 <= value <= 1.0:
            errors.append(f"Bounding box {name} must be within [0, 1]")

    if x + w > 1.0 + 1e-6 or y + h > 1.0 + 1e-6:
        errors.append("Bounding box extends outside the frame")

    return len(errors) == 0, errors


def validate_pixel_data(pixel_data: Optional[np.ndarray]) -> bool:
    """
    Check that a pixel buffer is usable for luminance sampling.

    Args:
        pixel_data: Image as numpy array, (H, W) or (H, W, C)

    Returns:
        bool: True if the buffer can be analyzed
    """
    if pixel_data is None or not isinstance(pixel_data, np.ndarray):
        return False

    if pixel_data.size == 0:
        logger.warning("Pixel data is empty")
        return False

    if pixel_data.ndim not in (2, 3):
        logger.warning(f"Invalid pixel data shape: {pixel_data.shape}")
        return False

    if pixel_data.ndim == 3 and pixel_data.shape[2] not in (1, 3, 4):
        logger.warning(f"Invalid number of channels: {pixel_data.shape[2]}")
        return False

    if pixel_data.shape[0] < 2 or pixel_data.shape[1] < 2:
        logger.warning(f"Pixel data too small: {pixel_data.shape}")
        return False

    return True


def _check_fraction(errors: List[str], name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not (0 <= value <= 1):
        errors.append(f"{name} must be a number between 0 and 1")


def validate_composition_config(config: Dict[str, Any]) -> tuple[bool, List[str]]:
    """
    Validate composition engine configuration parameters.

    Args:
        config: Configuration dictionary

    Returns:
        tuple: (is_valid, list_of_errors)
    """
    errors = []

    if 'default_composition_type' in config:
        if config['default_composition_type'] not in VALID_COMPOSITION_TYPES:
            errors.append(f"Invalid default_composition_type. Must be one of: {VALID_COMPOSITION_TYPES}")

    if 'enabled' in config and not isinstance(config['enabled'], bool):
        errors.append("enabled must be a boolean value")

    context = config.get('context', {})
    for key, value in context.items():
        _check_fraction(errors, f"context.{key}", value)
    if context.get('small_subject_max', 0) > context.get('medium_subject_max', 1):
        errors.append("context.small_subject_max must not exceed context.medium_subject_max")
    if context.get('portrait_headroom_min', 0) > context.get('portrait_headroom_max', 1):
        errors.append("context.portrait_headroom_min must not exceed context.portrait_headroom_max")

    rules = config.get('rules', {})
    if not isinstance(rules, dict):
        errors.append("rules must be a dictionary")
        rules = {}

    for rule, params in rules.items():
        if rule not in VALID_COMPOSITION_TYPES:
            errors.append(f"Invalid rule '{rule}'. Valid rules: {VALID_COMPOSITION_TYPES}")
            continue

        for key, value in params.items():
            if key == 'tolerances':
                for size, tolerance in value.items():
                    if size not in VALID_SIZE_CLASSES:
                        errors.append(f"Invalid size class '{size}' in rules.{rule}.tolerances")
                    elif isinstance(tolerance, bool) or not isinstance(tolerance, (int, float)) or not (0 < tolerance <= 1):
                        errors.append(f"rules.{rule}.tolerances.{size} must be in (0, 1]")
            elif key == 'sample_size':
                if not isinstance(value, int) or not (8 <= value <= 512):
                    errors.append("rules.symmetry.sample_size must be an integer between 8 and 512")
            else:
                _check_fraction(errors, f"rules.{rule}.{key}", value)

        perfect = params.get('perfect_threshold')
        good = params.get('good_threshold')
        if isinstance(perfect, (int, float)) and isinstance(good, (int, float)) and good > perfect:
            errors.append(f"rules.{rule}.good_threshold must not exceed perfect_threshold")

    pipeline = config.get('pipeline', {})
    if 'every_n_frames' in pipeline:
        if not isinstance(pipeline['every_n_frames'], int) or pipeline['every_n_frames'] < 1:
            errors.append("pipeline.every_n_frames must be a positive integer")
    if 'max_workers' in pipeline:
        if not isinstance(pipeline['max_workers'], int) or not (1 <= pipeline['max_workers'] <= 16):
            errors.append("pipeline.max_workers must be an integer between 1 and 16")
    for key in ('warmup_seconds', 'latency_budget_ms'):
        if key in pipeline:
            value = pipeline[key]
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
                errors.append(f"pipeline.{key} must be a non-negative number")

    return len(errors) == 0, errors


def validate_image_format(filename: Optional[str]) -> bool:
    """
    Validate if the image format is supported.

    Args:
        filename: Name of the uploaded image file

    Returns:
        bool: True if format is supported, False otherwise
    """
    if not filename:
        return False

    return Path(filename).suffix.lower() in SUPPORTED_IMAGE_FORMATS


def validate_file_size(file_size: int) -> bool:
    """Validate if the file size is within acceptable limits."""
    return 0 < file_size <= MAX_FILE_SIZE

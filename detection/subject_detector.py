#!/usr/bin/env python3
"""
Subject Detection for Live Composition Feedback

Finds the single primary subject of a camera frame. Faces take priority
over whole human bodies; when neither is found the frame has no subject,
which is a valid outcome rather than an error.

The default backends are OpenCV's Haar frontal-face cascade and HOG people
detector. Any object exposing detect(gray) -> List[Candidate] can replace
them.

"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import cv2
import numpy as np

from analysis.composition_types import (
    BoundingBox,
    Frame,
    SubjectKind,
    SubjectObservation
)
from preprocessing.frame_preprocessor import FramePreprocessor
from utils.config import get_default_config, merge_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Candidate:
    """A raw detection in pixel coordinates of the image it was found in."""
    box: Tuple[int, int, int, int]
    confidence: float


def _squash(weight: float) -> float:
    """Map an unbounded detector weight into (0, 1)."""
    return 1.0 / (1.0 + math.exp(-float(weight)))


class HaarFaceDetector:
    """Frontal face detector backed by OpenCV's bundled Haar cascade."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = merge_config(get_default_config('detection')['face'], config or {})

        cascade_path = cv2.data.haarcascades + 'haarcascade_frontalface_default.xml'
        self._cascade = cv2.CascadeClassifier(cascade_path)

        if self._cascade.empty():
            raise RuntimeError(f"Could not load face cascade from {cascade_path}")

    def detect(self, gray: np.ndarray) -> List[Candidate]:
        min_size = self.config['min_size']

        rects, _, level_weights = self._cascade.detectMultiScale3(
            gray,
            scaleFactor=self.config['scale_factor'],
            minNeighbors=self.config['min_neighbors'],
            minSize=(min_size, min_size),
            outputRejectLevels=True
        )

        return [
            Candidate(box=tuple(int(v) for v in rect), confidence=_squash(weight))
            for rect, weight in zip(rects, np.ravel(level_weights))
        ]


class HogHumanDetector:
    """Upright full-body detector using the default HOG people SVM."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = merge_config(get_default_config('detection')['human'], config or {})

        self._hog = cv2.HOGDescriptor()
        self._hog.setSVMDetector(cv2.HOGDescriptor_getDefaultPeopleDetector())

    def detect(self, gray: np.ndarray) -> List[Candidate]:
        stride = self.config['win_stride']
        padding = self.config['padding']

        rects, weights = self._hog.detectMultiScale(
            gray,
            winStride=(stride, stride),
            padding=(padding, padding),
            scale=self.config['scale']
        )

        candidates = []
        for rect, weight in zip(rects, np.ravel(weights)):
            if float(weight) >= self.config['min_confidence']:
                candidates.append(Candidate(box=tuple(int(v) for v in rect), confidence=float(weight)))

        return candidates


class NullDetector:
    """Stand-in for a backend that could not be loaded; finds nothing."""

    def __init__(self, reason: str = ''):
        self.reason = reason

    def detect(self, gray: np.ndarray) -> List[Candidate]:
        return []


class SubjectDetector:
    """

    Primary subject detector.

    Tries the face detector first and keeps the most confident face. Only
    when no face is found does it fall back to the human detector.
    Detector failures are logged and treated as "nothing found", so detect
    never raises because a backend misbehaved.

    """

    def __init__(self,
                 config: Optional[Dict[str, Any]] = None,
                 face_detector: Optional[Any] = None,
                 human_detector: Optional[Any] = None,
                 preprocessor: Optional[FramePreprocessor] = None):
        """
        Initialize the subject detector.

        Args:
            config: 'detection' section of the configuration
            face_detector: Optional face backend, defaults to HaarFaceDetector
            human_detector: Optional human backend, defaults to HogHumanDetector
            preprocessor: Optional frame preprocessor for resizing
        """

        self.config = merge_config(self._get_default_config(), config or {})

        self.face_detector = face_detector or self._load_backend(HaarFaceDetector, self.config['face'], 'face')
        self.human_detector = human_detector or self._load_backend(HogHumanDetector, self.config['human'], 'human')
        self.preprocessor = preprocessor or FramePreprocessor(
            max_detection_dimension=self.config['max_image_dimension']
        )

        logger.info(f"SubjectDetector initialized with {type(self.face_detector).__name__} "
                    f"and {type(self.human_detector).__name__}")

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default detection configuration"""

        return get_default_config('detection')

    @staticmethod
    def _load_backend(backend_class: Any, config: Dict[str, Any], label: str) -> Any:
        # A missing model degrades to "no subject" instead of failing startup
        try:
            return backend_class(config)

        except Exception as e:
            logger.warning(f"{label} detector unavailable, continuing without it: {str(e)}")
            return NullDetector(str(e))

    def detect(self, image: Optional[np.ndarray]) -> SubjectObservation:
        """
        Detect the primary subject in an image.

        Args:
            image: BGR, BGRA or grayscale image

        Returns:
            SubjectObservation with a normalized bounding box, kind none if
            nothing was found or the image is unusable
        """

        if image is None or not isinstance(image, np.ndarray) or image.ndim not in (2, 3) or image.size == 0:
            logger.warning("Subject detection skipped: empty or invalid image")
            return SubjectObservation.none()

        resized, _ = self.preprocessor.resize_for_detection(image)
        gray = self.preprocessor.to_luminance(resized)
        frame = Frame(width=gray.shape[1], height=gray.shape[0])

        faces = self._run(self.face_detector, gray, 'face')
        if faces:
            return self._observation(faces, SubjectKind.FACE, frame)

        humans = self._run(self.human_detector, gray, 'human')
        if humans:
            return self._observation(humans, SubjectKind.HUMAN, frame)

        logger.debug("No subject detected")
        return SubjectObservation.none()

    def _run(self, detector: Any, gray: np.ndarray, label: str) -> List[Candidate]:
        try:
            candidates = list(detector.detect(gray))

        except Exception as e:
            logger.warning(f"{label} detector failed: {str(e)}")
            return []

        # Degenerate boxes never count as a subject
        return [c for c in candidates if c.box[2] > 0 and c.box[3] > 0]

    def _observation(self, candidates: List[Candidate], kind: SubjectKind, frame: Frame) -> SubjectObservation:
        best = max(candidates, key=lambda c: c.confidence)
        box = BoundingBox.from_pixels(best.box, frame)

        if box.is_empty:
            return SubjectObservation.none()

        logger.debug(f"Detected {kind.value} with confidence {best.confidence:.2f} "
                     f"among {len(candidates)} candidates")

        return SubjectObservation(bounding_box=box, kind=kind, confidence=min(1.0, max(0.0, best.confidence)))


def create_subject_detector(config: Optional[Dict[str, Any]] = None) -> SubjectDetector:
    """
    Factory function to create a subject detector from a full configuration.

    Args:
        config: Full configuration dictionary

    Returns:
        Configured SubjectDetector
    """

    return SubjectDetector((config or {}).get('detection'))

"""
Subject detection for the Live Composition Assistant
"""

from .subject_detector import (
    Candidate,
    HaarFaceDetector,
    HogHumanDetector,
    NullDetector,
    SubjectDetector,
    create_subject_detector
)

__all__ = [
    'Candidate',
    'HaarFaceDetector',
    'HogHumanDetector',
    'NullDetector',
    'SubjectDetector',
    'create_subject_detector'
]

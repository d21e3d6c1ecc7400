"""
Utilities Module for the Live Composition Assistant

Provides configuration loading and validation helpers shared by the
detection, analysis and API layers.
"""

from .validation import (
    validate_frame_dimensions,
    validate_frame,
    validate_bounding_box,
    validate_pixel_data,
    validate_composition_config,
    validate_image_format,
    validate_file_size,
    ValidationError,
    InvalidFrameError,
    VALID_COMPOSITION_TYPES
)
from .config import DEFAULT_CONFIG, get_default_config, merge_config, load_config

__all__ = [
    'validate_frame_dimensions',
    'validate_frame',
    'validate_bounding_box',
    'validate_pixel_data',
    'validate_composition_config',
    'validate_image_format',
    'validate_file_size',
    'ValidationError',
    'InvalidFrameError',
    'VALID_COMPOSITION_TYPES',

    'DEFAULT_CONFIG',
    'get_default_config',
    'merge_config',
    'load_config'
]

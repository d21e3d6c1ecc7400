"""
Preprocessing Module for the Live Composition Assistant

Frame decoding, resizing and luminance sampling helpers.
"""

from .frame_preprocessor import FramePreprocessor, create_preprocessing_pipeline

__all__ = ['FramePreprocessor', 'create_preprocessing_pipeline']

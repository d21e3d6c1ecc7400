"""
API Module for the Live Composition Assistant

This module provides REST API endpoints for live composition feedback.
"""

from .main import app, create_app

__version__ = "1.0.0"
__all__ = ["app", "create_app"]

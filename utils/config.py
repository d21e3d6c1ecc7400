"""
Configuration defaults and loading for the Live Composition Assistant

Every component accepts an optional, possibly partial, nested config
dictionary and merges it over its section of DEFAULT_CONFIG. JSON files are
deep-merged over the defaults and validated before use.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .validation import ValidationError, validate_composition_config

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    'default_composition_type': 'rule_of_thirds',
    'enabled': True,

    'detection': {
        'max_image_dimension': 640,
        'face': {
            'scale_factor': 1.1,
            'min_neighbors': 5,
            'min_size': 30
        },
        'human': {
            'win_stride': 8,
            'padding': 4,
            'scale': 1.05,
            'min_confidence': 0.3
        }
    },

    'context': {
        'small_subject_max': 0.15,
        'medium_subject_max': 0.35,
        'edge_margin': 0.03,
        'excessive_headroom': 0.40,
        'cutoff_margin': 0.02,
        'portrait_headroom_min': 0.10,
        'portrait_headroom_max': 0.25
    },

    'rules': {
        'rule_of_thirds': {
            'tolerances': {'small': 0.12, 'medium': 0.15, 'large': 0.18},
            'line_weight': 0.7,
            'perfect_threshold': 0.8,
            'good_threshold': 0.5
        },
        'center_framing': {
            'tolerance': 0.12,
            'direction_threshold': 0.05,
            'centered_base_score': 0.7,
            'symmetry_bonus': 0.2,
            'symmetry_bonus_threshold': 0.8
        },
        'symmetry': {
            'sample_size': 64,
            'balance_threshold': 0.05,
            'perfect_threshold': 0.85,
            'good_threshold': 0.6
        }
    },

    'pipeline': {
        'every_n_frames': 3,
        'warmup_seconds': 1.0,
        'latency_budget_ms': 50.0,
        'max_workers': 2
    }
}


def get_default_config(section: Optional[str] = None) -> Dict[str, Any]:
    """
    Get a private copy of the default configuration.

    Args:
        section: Optional top-level section name ('context', 'rules', ...)

    Returns:
        Deep copy of the requested configuration
    """
    if section is None:
        return copy.deepcopy(DEFAULT_CONFIG)
    return copy.deepcopy(DEFAULT_CONFIG[section])


def merge_config(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge overrides into a copy of base."""
    merged = copy.deepcopy(base)

    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)

    return merged


def load_config(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load a JSON configuration file merged over the defaults.

    Args:
        path: Path to a JSON file, or None for the defaults

    Returns:
        Complete configuration dictionary

    Raises:
        ValidationError: If the file cannot be read or fails validation
    """
    if path is None:
        return get_default_config()

    config_path = Path(path)

    try:
        with open(config_path, 'r') as f:
            overrides = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to read configuration {config_path}: {e}")
        raise ValidationError(f"Cannot load configuration from {config_path}", [str(e)])

    if not isinstance(overrides, dict):
        raise ValidationError("Configuration root must be a JSON object")

    config = merge_config(DEFAULT_CONFIG, overrides)

    is_valid, errors = validate_composition_config(config)
    if not is_valid:
        for error in errors:
            logger.error(f"Invalid configuration: {error}")
        raise ValidationError(f"Invalid configuration in {config_path}", errors)

    logger.info(f"Loaded configuration from {config_path}")
    return config

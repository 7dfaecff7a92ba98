"""Configuration management utilities."""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)


# Built-in defaults; mirrored by configs/thresholds.yaml
DEFAULT_CONFIG: Dict[str, Any] = {
    'pose': {
        'visibility_threshold': 0.5,
        'movement_window_size': 10,
        'movement_scale': 10.0,
        'hand_max_displacement': 0.05,
        'knee_max_displacement': 0.03,
    },
    'stress': {
        'fidgeting_weights': {
            'hand': 0.5,
            'leg': 0.5,
        },
        'calm': {
            'posture_min': 0.7,
            'movement_max': 0.3,
            'fidgeting_max': 0.2,
        },
        'vigilance': {
            'posture_min': 0.5,
            'movement_max': 0.6,
            'fidgeting_max': 0.5,
            'confidence': 0.7,
        },
    },
    'timeline': {
        'throttle_interval_ms': 1000,
    },
    'identity': {
        'match_threshold': 0.6,
    },
}


def load_config(config_path=None) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Values from the file are merged over DEFAULT_CONFIG, so a file only
    needs to list the keys it overrides.

    Args:
        config_path: Path to YAML configuration file (str or Path).
            None returns a copy of the defaults.

    Returns:
        Dictionary containing configuration

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is malformed
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    if config_path is None:
        return config

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    logger.info(f"Loading configuration from {config_path}")

    with open(config_path, 'r') as f:
        overrides = yaml.safe_load(f) or {}

    logger.debug(f"Loaded config keys: {list(overrides.keys())}")

    return merge_config(config, overrides)


def merge_config(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge overrides into a copy of base.

    Nested dictionaries are merged key by key; any other value replaces
    the base value.
    """
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def get_nested_config(config: Optional[Dict[str, Any]], key_path: str, default: Any = None) -> Any:
    """
    Get nested configuration value using dot notation.

    Example:
        get_nested_config(config, 'timeline.throttle_interval_ms', default=1000)

    Args:
        config: Configuration dictionary (None is treated as empty)
        key_path: Dot-separated path to value
        default: Default value if path not found

    Returns:
        Configuration value or default
    """
    keys = key_path.split('.')
    value = config or {}

    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value

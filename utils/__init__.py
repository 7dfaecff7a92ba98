"""Shared utilities for the stress observation core."""

from .config_loader import DEFAULT_CONFIG, get_nested_config, load_config, merge_config

__all__ = [
    'DEFAULT_CONFIG',
    'get_nested_config',
    'load_config',
    'merge_config',
]

"""Shared utilities for the reaction mapper."""

from .config_loader import get_nested_config, load_config
from .frame_io import iter_frame_payloads, write_json_lines

__all__ = [
    'get_nested_config',
    'load_config',
    'iter_frame_payloads',
    'write_json_lines',
]

"""
Helper modules for utilkit.

This package includes:
- String predicates and transforms (``strings``)
- Date and time arithmetic, formatting and time zones (``dates``)
- Collection helpers (``collection``)
- File, zip and hashing helpers, sync and async (``files``)
- JSON encoding and decoding (``serialization``)
- Configuration loading from the environment and files (``config``)

Function names overlap between modules (``reverse``, ``join``), so the
modules are exported rather than their contents.
"""

from . import collection, dates, files, serialization, strings
from .config import (
    load_config_from_env, get_config_value, parse_duration_string,
    merge_configs, load_config_file, save_config_file, get_bool_config,
    get_int_config, get_float_config, get_list_config, get_duration_config
)

__all__ = [
    # Helper modules
    'collection', 'dates', 'files', 'serialization', 'strings',

    # Configuration utilities
    'load_config_from_env', 'get_config_value', 'parse_duration_string',
    'merge_configs', 'load_config_file', 'save_config_file',
    'get_bool_config', 'get_int_config', 'get_float_config',
    'get_list_config', 'get_duration_config'
]

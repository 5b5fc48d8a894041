"""
Configuration utilities for utilkit.
Provides configuration loading and type coercion helpers.
"""

import json
import os
import re
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Optional, List

import yaml

from ..errors import ParseError, FileOperationError, ValidationError

ENV_PREFIX = "UTILKIT_"


def load_config_from_env(prefix: str = ENV_PREFIX) -> Dict[str, str]:
    """
    Load configuration from environment variables with given prefix.
    """
    config = {}

    for key, value in os.environ.items():
        if key.startswith(prefix):
            # Remove prefix and convert to lowercase
            config_key = key[len(prefix):].lower()
            config[config_key] = value

    return config


def get_config_value(key: str, default: Any = None,
                     cast_type: Optional[type] = None,
                     env_prefix: str = ENV_PREFIX) -> Any:
    """
    Get configuration value from environment or return default.
    Optionally cast to specified type.
    """
    env_key = f"{env_prefix}{key.upper()}"
    value = os.environ.get(env_key, default)

    if value is None or cast_type is None:
        return value

    try:
        if cast_type == bool:
            if isinstance(value, str):
                return value.lower() in ('true', '1', 'yes', 'on')
            return bool(value)
        elif cast_type == list:
            # Comma-separated
            if isinstance(value, str):
                return [item.strip() for item in value.split(',') if item.strip()]
            return list(value) if value else []
        elif cast_type == timedelta:
            if isinstance(value, timedelta):
                return value
            return parse_duration_string(str(value))
        else:
            return cast_type(value)
    except (ValueError, TypeError, ParseError):
        return default


def get_bool_config(key: str, default: bool = False,
                    env_prefix: str = ENV_PREFIX) -> bool:
    """Get boolean configuration value."""
    return get_config_value(key, default, bool, env_prefix)


def get_int_config(key: str, default: int = 0,
                   env_prefix: str = ENV_PREFIX) -> int:
    """Get integer configuration value."""
    return get_config_value(key, default, int, env_prefix)


def get_float_config(key: str, default: float = 0.0,
                     env_prefix: str = ENV_PREFIX) -> float:
    """Get float configuration value."""
    return get_config_value(key, default, float, env_prefix)


def get_list_config(key: str, default: Optional[List[str]] = None,
                    env_prefix: str = ENV_PREFIX) -> List[str]:
    """Get list configuration value (comma-separated)."""
    if default is None:
        default = []
    return get_config_value(key, default, list, env_prefix)


def get_duration_config(key: str, default: timedelta,
                        env_prefix: str = ENV_PREFIX) -> timedelta:
    """Get duration configuration value ('30s', '5m', '250ms')."""
    return get_config_value(key, default, timedelta, env_prefix)


def parse_duration_string(duration_str: str) -> timedelta:
    """
    Parse duration string like '250ms', '30s', '5m', '2h', '1d' into timedelta.
    """
    if not isinstance(duration_str, str):
        raise ValidationError("Duration must be a string", field="duration")

    duration_str = duration_str.strip().lower()

    pattern = r'^(\d+(?:\.\d+)?)\s*(ms|[smhd])$'
    match = re.match(pattern, duration_str)

    if not match:
        raise ParseError(f"Invalid duration format: {duration_str}")

    value, unit = match.groups()
    value = float(value)

    if unit == 'ms':
        return timedelta(milliseconds=value)
    elif unit == 's':
        return timedelta(seconds=value)
    elif unit == 'm':
        return timedelta(minutes=value)
    elif unit == 'h':
        return timedelta(hours=value)
    return timedelta(days=value)


def merge_configs(*configs: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge configuration dictionaries recursively.
    Later configs override earlier ones.
    """
    result: Dict[str, Any] = {}

    for config in configs:
        if not isinstance(config, dict):
            continue
        for key, value in config.items():
            if isinstance(value, dict) and isinstance(result.get(key), dict):
                result[key] = merge_configs(result[key], value)
            else:
                result[key] = value

    return result


def load_config_file(file_path: str) -> Dict[str, Any]:
    """Load configuration from a file (JSON or YAML)."""
    if not os.path.exists(file_path):
        raise FileOperationError(f"Configuration file not found: {file_path}", path=file_path)

    file_ext = Path(file_path).suffix.lower()

    with open(file_path, 'r', encoding='utf-8') as f:
        try:
            if file_ext == '.json':
                return json.load(f) or {}
            elif file_ext in ('.yaml', '.yml'):
                return yaml.safe_load(f) or {}
        except (ValueError, yaml.YAMLError) as e:
            raise ParseError(f"Invalid configuration file {file_path}: {e}", cause=e)

    raise ValidationError(f"Unsupported configuration file format: {file_ext}", field="file_path")


def save_config_file(config: Dict[str, Any], file_path: str,
                     format_type: Optional[str] = None) -> None:
    """Save configuration to a file."""
    if format_type is None:
        format_type = Path(file_path).suffix.lower().lstrip('.')

    if format_type not in ('json', 'yaml', 'yml'):
        raise ValidationError(f"Unsupported configuration format: {format_type}", field="format_type")

    directory = os.path.dirname(file_path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(file_path, 'w', encoding='utf-8') as f:
        if format_type == 'json':
            json.dump(config, f, indent=2, separators=(',', ': '))
        else:
            yaml.safe_dump(config, f, default_flow_style=False, indent=2)

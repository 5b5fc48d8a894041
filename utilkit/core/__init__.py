"""
Core module initialization
"""

from .config import Config, HttpConfig, NetworkConfig, TokenConfig, LogConfig, get_config, set_config

__all__ = ["Config", "HttpConfig", "NetworkConfig", "TokenConfig", "LogConfig", "get_config", "set_config"]

"""
Library configuration for utilkit.

Defaults for HTTP timeouts, network probes, token lifetimes and the log
router live here so callers can tune them from the environment
(``UTILKIT_*`` variables) or from a JSON/YAML file.
"""

import threading
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import timedelta
from typing import Any, Dict, List, Optional

from ..errors import ValidationError
from ..util.config import (
    ENV_PREFIX, get_config_value, get_duration_config, get_list_config,
    load_config_file, parse_duration_string,
)


@dataclass
class HttpConfig:
    """HTTP client settings"""
    timeout: timedelta = field(default_factory=lambda: timedelta(seconds=30))
    download_timeout: timedelta = field(default_factory=lambda: timedelta(minutes=2))
    follow_redirects: bool = True
    default_content_type: str = "application/json"
    download_chunk_size: int = 64 * 1024


@dataclass
class NetworkConfig:
    """Network diagnostic settings"""
    connect_timeout: timedelta = field(default_factory=lambda: timedelta(seconds=5))
    read_timeout: timedelta = field(default_factory=lambda: timedelta(seconds=10))
    public_ip_url: str = "https://api.ipify.org"
    connectivity_hosts: List[str] = field(
        default_factory=lambda: ["google.com", "cloudflare.com", "amazon.com"]
    )
    connectivity_timeout: timedelta = field(default_factory=lambda: timedelta(seconds=3))


@dataclass
class TokenConfig:
    """JWT settings"""
    algorithm: str = "HS256"
    access_token_lifetime: timedelta = field(default_factory=lambda: timedelta(hours=1))
    refresh_token_lifetime: timedelta = field(default_factory=lambda: timedelta(days=7))
    refresh_grace_period: timedelta = field(default_factory=lambda: timedelta(hours=24))
    clock_skew: timedelta = field(default_factory=lambda: timedelta(0))
    token_prefix: str = "Bearer "


@dataclass
class LogConfig:
    """Log router settings"""
    root_level: str = "INFO"
    console_threshold: str = "INFO"
    memory_max_entries: int = 1000


@dataclass
class Config:
    """Configuration for the utilkit helpers"""
    http: HttpConfig = field(default_factory=HttpConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    token: TokenConfig = field(default_factory=TokenConfig)
    log: LogConfig = field(default_factory=LogConfig)

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX) -> "Config":
        """Create configuration from environment variables"""
        http = HttpConfig()
        network = NetworkConfig()
        token = TokenConfig()
        log = LogConfig()

        return cls(
            http=HttpConfig(
                timeout=get_duration_config("HTTP_TIMEOUT", http.timeout, prefix),
                download_timeout=get_duration_config(
                    "HTTP_DOWNLOAD_TIMEOUT", http.download_timeout, prefix),
                follow_redirects=get_config_value(
                    "HTTP_FOLLOW_REDIRECTS", http.follow_redirects, bool, prefix),
                default_content_type=get_config_value(
                    "HTTP_CONTENT_TYPE", http.default_content_type, str, prefix),
                download_chunk_size=get_config_value(
                    "HTTP_DOWNLOAD_CHUNK_SIZE", http.download_chunk_size, int, prefix),
            ),
            network=NetworkConfig(
                connect_timeout=get_duration_config(
                    "NETWORK_CONNECT_TIMEOUT", network.connect_timeout, prefix),
                read_timeout=get_duration_config(
                    "NETWORK_READ_TIMEOUT", network.read_timeout, prefix),
                public_ip_url=get_config_value(
                    "NETWORK_PUBLIC_IP_URL", network.public_ip_url, str, prefix),
                connectivity_hosts=get_list_config(
                    "NETWORK_CONNECTIVITY_HOSTS", network.connectivity_hosts, prefix),
                connectivity_timeout=get_duration_config(
                    "NETWORK_CONNECTIVITY_TIMEOUT", network.connectivity_timeout, prefix),
            ),
            token=TokenConfig(
                algorithm=get_config_value("TOKEN_ALGORITHM", token.algorithm, str, prefix),
                access_token_lifetime=get_duration_config(
                    "TOKEN_ACCESS_LIFETIME", token.access_token_lifetime, prefix),
                refresh_token_lifetime=get_duration_config(
                    "TOKEN_REFRESH_LIFETIME", token.refresh_token_lifetime, prefix),
                refresh_grace_period=get_duration_config(
                    "TOKEN_REFRESH_GRACE_PERIOD", token.refresh_grace_period, prefix),
                clock_skew=get_duration_config("TOKEN_CLOCK_SKEW", token.clock_skew, prefix),
            ),
            log=LogConfig(
                root_level=get_config_value("LOG_ROOT_LEVEL", log.root_level, str, prefix).upper(),
                console_threshold=get_config_value(
                    "LOG_CONSOLE_THRESHOLD", log.console_threshold, str, prefix).upper(),
                memory_max_entries=get_config_value(
                    "LOG_MEMORY_MAX_ENTRIES", log.memory_max_entries, int, prefix),
            ),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create configuration from a nested dictionary (file contents)."""
        config = cls()
        for section in fields(cls):
            values = data.get(section.name) or {}
            if not isinstance(values, dict):
                raise ValidationError(f"Section '{section.name}' must be a mapping",
                                      field=section.name)
            _apply_section(getattr(config, section.name), values, section.name)
        return config

    @classmethod
    def from_file(cls, file_path: str) -> "Config":
        """Load configuration from a JSON or YAML file."""
        return cls.from_dict(load_config_file(file_path))

    def validate(self) -> bool:
        """Validate the configuration"""
        from ..log.levels import LogLevel

        for name in ("timeout", "download_timeout"):
            if getattr(self.http, name) <= timedelta(0):
                raise ValidationError(f"http.{name} must be positive", field=f"http.{name}")
        if self.http.download_chunk_size <= 0:
            raise ValidationError("http.download_chunk_size must be positive",
                                  field="http.download_chunk_size")
        for name in ("connect_timeout", "read_timeout", "connectivity_timeout"):
            if getattr(self.network, name) <= timedelta(0):
                raise ValidationError(f"network.{name} must be positive", field=f"network.{name}")
        if not self.network.public_ip_url:
            raise ValidationError("network.public_ip_url is required",
                                  field="network.public_ip_url")
        if not self.token.algorithm:
            raise ValidationError("token.algorithm is required", field="token.algorithm")
        for name in ("root_level", "console_threshold"):
            LogLevel.parse(getattr(self.log, name))
        if self.log.memory_max_entries <= 0:
            raise ValidationError("log.memory_max_entries must be positive",
                                  field="log.memory_max_entries")
        return True


def _apply_section(section: Any, values: Dict[str, Any], prefix: str) -> None:
    known = {f.name: f for f in fields(section)}
    for key, value in values.items():
        if key not in known:
            raise ValidationError(f"Unknown configuration key: {prefix}.{key}",
                                  field=f"{prefix}.{key}")
        current = getattr(section, key)
        if isinstance(current, timedelta) and not isinstance(value, timedelta):
            if isinstance(value, (int, float)):
                value = timedelta(seconds=value)
            else:
                value = parse_duration_string(str(value))
        setattr(section, key, value)


_config: Optional[Config] = None
_config_lock = threading.Lock()


def get_config() -> Config:
    """Return the process-wide configuration, loading it from the environment once."""
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:
                _config = Config.from_env()
    return _config


def set_config(config: Optional[Config]) -> None:
    """Replace the process-wide configuration (None reloads from the environment)."""
    global _config
    if config is not None and not is_dataclass(config):
        raise ValidationError("config must be a Config instance", field="config")
    with _config_lock:
        _config = config

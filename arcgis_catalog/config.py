"""
Catalog configuration.

A single YAML file (or dict) describing which ArcGIS services directory to
browse and how to reach it:

    url: https://sig.example.org/arcgis/rest/services
    secrets:                 # optional, sent as request headers
      X-Esri-Authorization: Bearer ...
    cache_ttl: 300           # seconds
    http:
      connect_timeout: 10
      read_timeout: 60
      follow_redirects: false
      user_agent: my-portal-sync/2.0
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .fetch_cache import DEFAULT_TTL_SECONDS
from .http_utils import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_FOLLOW_REDIRECTS,
    DEFAULT_READ_TIMEOUT,
    DEFAULT_USER_AGENT,
    MAX_RESPONSE_SIZE_MB,
)

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when the catalog configuration is missing or invalid."""
    pass


@dataclass
class HttpSettings:
    """Transport knobs handed to HttpClient."""
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    read_timeout: float = DEFAULT_READ_TIMEOUT
    follow_redirects: bool = DEFAULT_FOLLOW_REDIRECTS
    max_response_mb: int = MAX_RESPONSE_SIZE_MB
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        self.connect_timeout = float(self.connect_timeout)
        self.read_timeout = float(self.read_timeout)
        self.follow_redirects = bool(self.follow_redirects)
        self.max_response_mb = int(self.max_response_mb)
        self.user_agent = str(self.user_agent)
        if self.connect_timeout <= 0 or self.read_timeout <= 0:
            raise ValueError("http timeouts must be positive")

    def to_client_cfg(self) -> Dict[str, Any]:
        return {
            "http_connect_timeout": self.connect_timeout,
            "http_read_timeout": self.read_timeout,
            "http_follow_redirects": self.follow_redirects,
            "http_max_response_mb": self.max_response_mb,
            "http_user_agent": self.user_agent,
        }


@dataclass
class CatalogConfig:
    """Services directory URL plus opaque credentials."""
    url: str
    secrets: Dict[str, str] = field(default_factory=dict)
    cache_ttl: float = DEFAULT_TTL_SECONDS
    http: HttpSettings = field(default_factory=HttpSettings)

    def __post_init__(self) -> None:
        """
        Normalize and validate fields.

        Raises:
            ValueError: If ``url`` is not an http(s) URL, ``secrets`` is not a
                mapping, ``cache_ttl`` is negative or ``http`` is not a mapping.
        """
        self.url = str(self.url or "").strip()
        if not self.url.startswith(("http://", "https://")):
            raise ValueError(f"Invalid catalog URL: {self.url!r}")

        if self.secrets is None:
            self.secrets = {}
        if not isinstance(self.secrets, Mapping):
            raise ValueError("secrets must be a mapping of header names to values")
        self.secrets = {str(k): str(v) for k, v in self.secrets.items()}

        self.cache_ttl = float(self.cache_ttl)
        if self.cache_ttl < 0:
            raise ValueError("cache_ttl must not be negative")

        if self.http is None:
            self.http = HttpSettings()
        elif isinstance(self.http, Mapping):
            self.http = HttpSettings(**self.http)
        elif not isinstance(self.http, HttpSettings):
            raise ValueError("http must be a mapping of transport settings")

    def __repr__(self) -> str:
        # secrets never end up in logs
        return f"CatalogConfig(url={self.url!r}, secrets=<{len(self.secrets)} hidden>, cache_ttl={self.cache_ttl})"


def config_from_dict(raw: Optional[Mapping[str, Any]]) -> CatalogConfig:
    """Build a CatalogConfig from a plain mapping, wrapping failures in ConfigError."""
    if not raw:
        raise ConfigError("Configuration is empty")
    if "url" not in raw:
        raise ConfigError("Missing required configuration: 'url'")
    try:
        return CatalogConfig(**raw)
    except (TypeError, ValueError) as e:
        logger.error(f"Configuration validation failed: {e}")
        raise ConfigError(f"Invalid configuration: {e}") from e


def load_config(config_path: Path) -> CatalogConfig:
    """
    Load and validate a catalog configuration from a YAML file.

    Raises:
        ConfigError: If the file cannot be read, is not valid YAML, is empty
            or fails validation.
    """
    logger.info(f"Loading configuration from {config_path}")

    try:
        with Path(config_path).open("r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load configuration: {e}")
        raise ConfigError(f"Configuration load error: {e}") from e

    if raw_config is not None and not isinstance(raw_config, Mapping):
        raise ConfigError("Configuration must be a YAML mapping")

    config = config_from_dict(raw_config)
    logger.info(f"Configuration loaded for {config.url}")
    return config

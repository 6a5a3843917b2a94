"""
IndexPress Config — Client Settings
===================================

All settings can be overridden via environment variables or by passing
values directly to ``load_config``.

Resolution order (later wins):
    1. Dataclass defaults
    2. Environment variables (``INDEXPRESS_HOSTS``, etc.)
    3. Explicit keyword arguments
"""

import os
from dataclasses import dataclass, field, fields
from typing import Dict, List, Optional, Tuple

from .exceptions import ConfigurationError


def _parse_bool(value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "f", "no", "n", "off"}:
        return False
    raise ConfigurationError(f"Invalid boolean value: {value!r}")


def _parse_number(name: str, value: str, cast):
    try:
        return cast(value)
    except ValueError:
        raise ConfigurationError(f"Invalid value for {name}: {value!r}") from None


@dataclass
class ClientConfig:
    """Connection, authentication and behaviour settings for a SearchClient."""

    hosts: List[str] = field(default_factory=lambda: ["http://localhost:9200"])
    api_key: Optional[str] = None
    shield: Optional[str] = None
    index_prefix: str = ""
    network_url: Optional[str] = None
    network_alias: Optional[str] = None
    max_request_attempts: int = 1
    info_cache_ttl: int = 300
    default_timeout: float = 5.0
    debug: bool = False
    verify_certs: bool = True
    ca_certs: Optional[str] = None
    extra_headers: Dict[str, str] = field(default_factory=dict)

    @property
    def basic_auth(self) -> Optional[Tuple[str, str]]:
        """Return the shield credential as ``(user, password)``."""
        if not self.shield:
            return None
        user, sep, password = self.shield.partition(":")
        if not sep:
            raise ConfigurationError("Shield credential must be formatted as 'user:password'")
        return (user, password)

    def validate(self) -> None:
        """Raise ConfigurationError if the settings cannot produce a working client."""
        if not self.hosts:
            raise ConfigurationError("At least one host is required")
        if self.max_request_attempts < 1:
            raise ConfigurationError("max_request_attempts must be at least 1")
        if self.info_cache_ttl < 0:
            raise ConfigurationError("info_cache_ttl must not be negative")
        # Fails on a malformed credential
        self.basic_auth


_FIELD_NAMES = {f.name for f in fields(ClientConfig)}


def load_config(**overrides) -> ClientConfig:
    """Build a ClientConfig with env-var and keyword overrides.

    Supported env vars:
      - INDEXPRESS_HOSTS  (comma-separated URLs)
      - INDEXPRESS_API_KEY
      - INDEXPRESS_SHIELD  ("user:password")
      - INDEXPRESS_INDEX_PREFIX
      - INDEXPRESS_NETWORK_URL / INDEXPRESS_NETWORK_ALIAS
      - INDEXPRESS_MAX_REQUEST_ATTEMPTS
      - INDEXPRESS_INFO_CACHE_TTL  (seconds)
      - INDEXPRESS_TIMEOUT  (seconds)
      - INDEXPRESS_DEBUG  ("true"/"false")
      - INDEXPRESS_VERIFY_CERTS  ("true"/"false")
      - INDEXPRESS_CA_CERTS
    """
    cfg = ClientConfig()

    # Env-var layer
    hosts = os.getenv("INDEXPRESS_HOSTS")
    if hosts:
        cfg.hosts = [h.strip() for h in hosts.split(",") if h.strip()]

    api_key = os.getenv("INDEXPRESS_API_KEY")
    if api_key:
        cfg.api_key = api_key

    shield = os.getenv("INDEXPRESS_SHIELD")
    if shield:
        cfg.shield = shield

    prefix = os.getenv("INDEXPRESS_INDEX_PREFIX")
    if prefix:
        cfg.index_prefix = prefix

    network_url = os.getenv("INDEXPRESS_NETWORK_URL")
    if network_url:
        cfg.network_url = network_url

    network_alias = os.getenv("INDEXPRESS_NETWORK_ALIAS")
    if network_alias:
        cfg.network_alias = network_alias

    attempts = os.getenv("INDEXPRESS_MAX_REQUEST_ATTEMPTS")
    if attempts:
        cfg.max_request_attempts = _parse_number("INDEXPRESS_MAX_REQUEST_ATTEMPTS", attempts, int)

    ttl = os.getenv("INDEXPRESS_INFO_CACHE_TTL")
    if ttl:
        cfg.info_cache_ttl = _parse_number("INDEXPRESS_INFO_CACHE_TTL", ttl, int)

    timeout = os.getenv("INDEXPRESS_TIMEOUT")
    if timeout:
        cfg.default_timeout = _parse_number("INDEXPRESS_TIMEOUT", timeout, float)

    debug = os.getenv("INDEXPRESS_DEBUG")
    if debug is not None:
        cfg.debug = _parse_bool(debug)

    verify_env = os.getenv("INDEXPRESS_VERIFY_CERTS")
    if verify_env is not None:
        cfg.verify_certs = _parse_bool(verify_env)

    ca_certs = os.getenv("INDEXPRESS_CA_CERTS")
    if ca_certs:
        cfg.ca_certs = ca_certs

    # Explicit overrides layer
    for key, value in overrides.items():
        if key not in _FIELD_NAMES:
            raise TypeError(f"Unknown config key: {key!r}")
        setattr(cfg, key, value)

    cfg.validate()
    return cfg

from __future__ import annotations

import pytest

from indexpress import ClientConfig, load_config
from indexpress.exceptions import ConfigurationError

ENV_VARS = (
    "INDEXPRESS_HOSTS",
    "INDEXPRESS_API_KEY",
    "INDEXPRESS_SHIELD",
    "INDEXPRESS_INDEX_PREFIX",
    "INDEXPRESS_NETWORK_URL",
    "INDEXPRESS_NETWORK_ALIAS",
    "INDEXPRESS_MAX_REQUEST_ATTEMPTS",
    "INDEXPRESS_INFO_CACHE_TTL",
    "INDEXPRESS_TIMEOUT",
    "INDEXPRESS_DEBUG",
    "INDEXPRESS_VERIFY_CERTS",
    "INDEXPRESS_CA_CERTS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    cfg = load_config()

    assert cfg.hosts == ["http://localhost:9200"]
    assert cfg.max_request_attempts == 1
    assert cfg.info_cache_ttl == 300
    assert cfg.default_timeout == 5.0
    assert cfg.debug is False
    assert cfg.api_key is None
    assert cfg.basic_auth is None


def test_env_layer(monkeypatch):
    monkeypatch.setenv("INDEXPRESS_HOSTS", "http://es1:9200, http://es2:9200,")
    monkeypatch.setenv("INDEXPRESS_API_KEY", "secret")
    monkeypatch.setenv("INDEXPRESS_MAX_REQUEST_ATTEMPTS", "3")
    monkeypatch.setenv("INDEXPRESS_TIMEOUT", "2.5")
    monkeypatch.setenv("INDEXPRESS_DEBUG", "yes")
    monkeypatch.setenv("INDEXPRESS_VERIFY_CERTS", "off")

    cfg = load_config()

    assert cfg.hosts == ["http://es1:9200", "http://es2:9200"]
    assert cfg.api_key == "secret"
    assert cfg.max_request_attempts == 3
    assert cfg.default_timeout == 2.5
    assert cfg.debug is True
    assert cfg.verify_certs is False


def test_overrides_win_over_env(monkeypatch):
    monkeypatch.setenv("INDEXPRESS_INDEX_PREFIX", "env_")

    cfg = load_config(index_prefix="kw_", hosts=["http://es9:9200"])

    assert cfg.index_prefix == "kw_"
    assert cfg.hosts == ["http://es9:9200"]


def test_unknown_override_rejected():
    with pytest.raises(TypeError, match="Unknown config key"):
        load_config(hostz=["http://es1:9200"])


def test_invalid_bool(monkeypatch):
    monkeypatch.setenv("INDEXPRESS_DEBUG", "maybe")

    with pytest.raises(ConfigurationError, match="Invalid boolean"):
        load_config()


def test_invalid_number(monkeypatch):
    monkeypatch.setenv("INDEXPRESS_MAX_REQUEST_ATTEMPTS", "three")

    with pytest.raises(ConfigurationError, match="INDEXPRESS_MAX_REQUEST_ATTEMPTS"):
        load_config()


def test_shield_credential():
    assert ClientConfig(shield="elastic:pa:ss").basic_auth == ("elastic", "pa:ss")

    with pytest.raises(ConfigurationError):
        load_config(shield="no-separator")


@pytest.mark.parametrize("overrides", [
    {"hosts": []},
    {"max_request_attempts": 0},
    {"info_cache_ttl": -1},
])
def test_validate_rejects(overrides):
    with pytest.raises(ConfigurationError):
        load_config(**overrides)

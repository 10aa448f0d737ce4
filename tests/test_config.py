"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError
from vpngate_directory.config import DEFAULT_API_URL, DirectorySettings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep VPNGATE_* variables of the host out of the tests."""
    for name in DirectorySettings.model_fields:
        monkeypatch.delenv(f"VPNGATE_{name.upper()}", raising=False)


def test_defaults():
    settings = DirectorySettings()

    assert settings.api_url == DEFAULT_API_URL
    assert settings.cache_ttl_seconds == 3600
    assert settings.default_limit == 50
    assert settings.user_agent == "VPNGateClient/1.0"
    assert settings.prewarm is False


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("VPNGATE_API_URL", "https://mirror.test/api/iphone/")
    monkeypatch.setenv("VPNGATE_CACHE_TTL_SECONDS", "600")
    monkeypatch.setenv("VPNGATE_PREWARM", "true")
    monkeypatch.setenv("VPNGATE_PORT", "9000")
    monkeypatch.setenv("PORT", "1")

    settings = DirectorySettings()

    assert settings.api_url == "https://mirror.test/api/iphone/"
    assert settings.cache_ttl_seconds == 600
    assert settings.prewarm is True
    assert settings.port == 9000


def test_explicit_values_win_over_env(monkeypatch):
    monkeypatch.setenv("VPNGATE_DEFAULT_LIMIT", "10")

    assert DirectorySettings(default_limit=25).default_limit == 25


def test_settings_are_frozen():
    settings = DirectorySettings()

    with pytest.raises(ValidationError):
        settings.port = 1


@pytest.mark.parametrize(
    "name,value",
    [
        ("VPNGATE_CACHE_TTL_SECONDS", "soon"),
        ("VPNGATE_CACHE_TTL_SECONDS", "0"),
        ("VPNGATE_PORT", "70000"),
    ],
)
def test_invalid_values_rejected(monkeypatch, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(ValidationError):
        DirectorySettings()

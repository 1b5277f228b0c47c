from __future__ import annotations

import pytest

from app.config import DEFAULT_EMOJI_SOURCE_URL, DEFAULT_PLACEHOLDER_HOST, load_settings
from app.errors import ConfigError


ENV_NAMES = (
    "TRUST_API_URL",
    "TRUST_API_TOKEN",
    "ASSETS_HOST",
    "VERCEL_PROJECT_PRODUCTION_URL",
    "PLACEHOLDER_HOST",
    "LOGO_URL",
    "EMOJI_SOURCE_URL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_load_settings_from_env(monkeypatch):
    monkeypatch.setenv("TRUST_API_URL", "api.trust.example")
    monkeypatch.setenv("TRUST_API_TOKEN", "token")
    monkeypatch.setenv("ASSETS_HOST", "report.example")
    monkeypatch.setenv("LOGO_URL", "https://cdn.example/logo.png")

    settings = load_settings()
    assert settings.trust_api_url == "api.trust.example"
    assert settings.trust_api_token == "token"
    assert settings.stamp_url == "https://report.example/stamp.png"
    assert settings.logo_url == "https://cdn.example/logo.png"
    assert settings.placeholder_host == DEFAULT_PLACEHOLDER_HOST
    assert settings.emoji_source_url == DEFAULT_EMOJI_SOURCE_URL


def test_assets_host_falls_back_to_vercel_url(monkeypatch):
    monkeypatch.setenv("TRUST_API_URL", "api.trust.example")
    monkeypatch.setenv("TRUST_API_TOKEN", "token")
    monkeypatch.setenv("VERCEL_PROJECT_PRODUCTION_URL", "trust-report.vercel.app")
    assert load_settings().assets_host == "trust-report.vercel.app"


def test_missing_variables_are_listed(monkeypatch):
    monkeypatch.setenv("TRUST_API_URL", "api.trust.example")
    monkeypatch.setenv("TRUST_API_TOKEN", "   ")
    with pytest.raises(ConfigError) as excinfo:
        load_settings()
    assert "TRUST_API_TOKEN" in str(excinfo.value)
    assert "ASSETS_HOST" in str(excinfo.value)
    assert "TRUST_API_URL" not in str(excinfo.value)

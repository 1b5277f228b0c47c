from __future__ import annotations

import os
from dataclasses import dataclass

from .errors import ConfigError


DEFAULT_PLACEHOLDER_HOST = "fakeimg.pl"
DEFAULT_LOGO_URL = "https://trust-tg-app.0xf6.moe/logo-group.png"
DEFAULT_EMOJI_SOURCE_URL = "https://cdnjs.cloudflare.com/ajax/libs/emoji-datasource-apple/15.1.2/img/apple/64/"


@dataclass(frozen=True)
class Settings:
    trust_api_url: str
    trust_api_token: str
    assets_host: str
    placeholder_host: str = DEFAULT_PLACEHOLDER_HOST
    logo_url: str = DEFAULT_LOGO_URL
    emoji_source_url: str = DEFAULT_EMOJI_SOURCE_URL

    @property
    def stamp_url(self) -> str:
        return f"https://{self.assets_host}/stamp.png"


def _env(name: str) -> str:
    return (os.getenv(name) or "").strip()


def load_settings() -> Settings:
    """Read settings from the environment; required values must be present."""
    values = {
        "TRUST_API_URL": _env("TRUST_API_URL"),
        "TRUST_API_TOKEN": _env("TRUST_API_TOKEN"),
        # Vercel exposes the deployment host under its own name
        "ASSETS_HOST": _env("ASSETS_HOST") or _env("VERCEL_PROJECT_PRODUCTION_URL"),
    }
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise ConfigError(f"missing required environment variables: {', '.join(missing)}")
    return Settings(
        trust_api_url=values["TRUST_API_URL"],
        trust_api_token=values["TRUST_API_TOKEN"],
        assets_host=values["ASSETS_HOST"],
        placeholder_host=_env("PLACEHOLDER_HOST") or DEFAULT_PLACEHOLDER_HOST,
        logo_url=_env("LOGO_URL") or DEFAULT_LOGO_URL,
        emoji_source_url=_env("EMOJI_SOURCE_URL") or DEFAULT_EMOJI_SOURCE_URL,
    )

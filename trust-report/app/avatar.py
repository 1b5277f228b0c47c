from __future__ import annotations

import asyncio
import logging
from typing import Optional

import emoji
import httpx

from .config import Settings
from .errors import NoAvatarAvailable
from .metrics import avatar_source
from .schemas import User


logger = logging.getLogger("trustreport.avatar")

PLACEHOLDER_PATH = "/100x100/dddddd/909090"


def initials(user: User) -> str:
    parts = [
        emoji.replace_emoji(user.first_name, replace="").strip(),
        emoji.replace_emoji(user.last_name or "", replace="").strip(),
    ]
    return " ".join(p[0] for p in parts if p).upper()


async def _get_image(client: httpx.AsyncClient, url: str, **kwargs) -> Optional[bytes]:
    r = await client.get(url, **kwargs)
    if r.is_success:
        return r.content
    return None


async def fetch_avatar(client: httpx.AsyncClient, settings: Settings, user: User) -> Optional[bytes]:
    url = f"https://{settings.trust_api_url}/@/fs/avatar/{user.id}/fullsize.jpg"
    return await _get_image(client, url)


async def fetch_placeholder_avatar(client: httpx.AsyncClient, settings: Settings, user: User) -> Optional[bytes]:
    url = f"https://{settings.placeholder_host}{PLACEHOLDER_PATH}"
    return await _get_image(client, url, params={"text": initials(user)})


def select_avatar(photo: Optional[bytes], placeholder: Optional[bytes]) -> bytes:
    """Prefer the real photo over the placeholder."""
    for source, data in (("photo", photo), ("placeholder", placeholder)):
        if data is not None:
            avatar_source.labels(source=source).inc()
            return data
    avatar_source.labels(source="none").inc()
    raise NoAvatarAvailable()


async def resolve_avatar(client: httpx.AsyncClient, settings: Settings, user: User) -> bytes:
    photo, placeholder = await asyncio.gather(
        fetch_avatar(client, settings, user),
        fetch_placeholder_avatar(client, settings, user),
    )
    if photo is None:
        logger.info({"event": "avatar_missing", "user_id": str(user.id), "placeholder": placeholder is not None})
    return select_avatar(photo, placeholder)

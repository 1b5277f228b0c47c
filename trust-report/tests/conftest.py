"""
Pytest fixtures for the trust report service.

Every upstream (trust API, placeholder images, assets, emoji) is served by an
httpx.MockTransport; fonts map onto reportlab's built-in faces so no font
files are downloaded.
"""

from __future__ import annotations

from io import BytesIO
from typing import Any, Callable, Dict, List

import httpx
import pytest
import pytest_asyncio
from PIL import Image

from app.config import Settings
from app.fonts import FontSet
from app.pdf import ReportRenderer
from app.schemas import TrustAnalytics, User
from app.styles import FONT_PT_SANS, FONT_PT_SANS_NARROW, FONT_ROBOTO, FONT_TINOS


ANALYTICS = {
    "trust_score": 80,
    "mod_trust_score": 5,
    "verdict": "GoodStage",
    "report_creation_date": 1760781900,
    "issuer": {"id": "cert-7f3a", "report_id": "rep-0001"},
    "factors": [{"sampler": "text", "score": 10, "max_score": 20}],
}


def make_png(color: str = "#dddddd", size=(100, 100)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


class Upstream:
    """Canned responses for outbound requests, keyed by host + path."""

    def __init__(self) -> None:
        self.routes: Dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, host_path: str, status_code: int = 200, **kwargs: Any) -> None:
        self.routes[host_path] = lambda request: httpx.Response(status_code, **kwargs)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(request.url.host + request.url.path)
        if handler is None:
            return httpx.Response(404)
        return handler(request)

    def find(self, host_path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.host + r.url.path == host_path]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        trust_api_url="trust.test",
        trust_api_token="secret-token",
        assets_host="assets.test",
        placeholder_host="placeholder.test",
        logo_url="https://assets.test/logo-group.png",
        emoji_source_url="https://emoji.test/64/",
    )


@pytest.fixture
def builtin_fonts() -> FontSet:
    return FontSet({
        (FONT_TINOS, "bold"): "Times-Bold",
        (FONT_ROBOTO, "normal"): "Helvetica",
        (FONT_PT_SANS, "normal"): "Helvetica",
        (FONT_PT_SANS, "bold"): "Helvetica-Bold",
        (FONT_PT_SANS_NARROW, "normal"): "Helvetica",
    })


@pytest.fixture
def user() -> User:
    return User(id=42, first_name="Ivan", last_name="Petrov", username="ivanp")


@pytest.fixture
def analytics() -> TrustAnalytics:
    return TrustAnalytics.model_validate(ANALYTICS)


@pytest.fixture
def png() -> bytes:
    return make_png()


@pytest.fixture
def logo_png() -> bytes:
    return make_png("#4c40d2", (280, 80))


@pytest.fixture
def upstream() -> Upstream:
    """Trust API, avatar, placeholder and asset hosts all answering successfully."""
    up = Upstream()
    up.add("trust.test/@/trust/42", json=ANALYTICS)
    up.add("trust.test/@/fs/avatar/42/fullsize.jpg", content=make_png("#336699"))
    up.add("placeholder.test/100x100/dddddd/909090", content=make_png("#dddddd"))
    up.add("assets.test/logo-group.png", content=make_png("#4c40d2", (280, 80)))
    up.add("assets.test/stamp.png", content=make_png("#4c40d2", (80, 80)))
    return up


@pytest_asyncio.fixture
async def http_client(upstream):
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as client:
        yield client


@pytest.fixture
def api(settings, builtin_fonts, upstream):
    """FastAPI TestClient with settings, renderer and outbound HTTP overridden."""
    from fastapi.testclient import TestClient

    from app.main import app, get_http_client, get_renderer, get_settings

    async def _client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as client:
            yield client

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_renderer] = lambda: ReportRenderer(builtin_fonts, settings.emoji_source_url)
    app.dependency_overrides[get_http_client] = _client
    yield TestClient(app)
    app.dependency_overrides.clear()

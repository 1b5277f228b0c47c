from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .analytics import fetch_analytics
from .avatar import resolve_avatar
from .config import Settings, load_settings
from .document import DEFAULT_CONTEXT, compose_report
from .errors import NoAvatarAvailable, UpstreamAnalyticsError
from .fonts import register_fonts
from .metrics import registry, report_failures, reports_generated
from .pdf import ReportRenderer
from .schemas import ReportRequest


logger = logging.getLogger("trustreport.api")
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())

CORS_HEADERS = {
    "Access-Control-Allow-Credentials": "true",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,OPTIONS,PATCH,DELETE,POST,PUT",
    "Access-Control-Allow-Headers": (
        "X-CSRF-Token, X-Requested-With, Accept, Accept-Version, Content-Length, "
        "Content-MD5, Content-Type, Date, X-Api-Version"
    ),
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    # missing configuration or fonts stop the service before it accepts requests
    settings = load_settings()
    async with httpx.AsyncClient() as client:
        fonts = await register_fonts(client, settings.assets_host)
    app.state.settings = settings
    app.state.renderer = ReportRenderer(fonts, settings.emoji_source_url)
    logger.info({"event": "startup", "assets_host": settings.assets_host, "trust_api": settings.trust_api_url})
    yield


app = FastAPI(title="Trust Report", version="0.1.0", lifespan=lifespan)


@app.middleware("http")
async def cors(request: Request, call_next):
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)
    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_renderer(request: Request) -> ReportRenderer:
    return request.app.state.renderer


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    # upstream calls carry no timeout, the platform bounds the request
    async with httpx.AsyncClient(timeout=None) as client:
        yield client


@app.get("/healthz", response_class=PlainTextResponse)
def healthz() -> str:
    return "ok"


@app.post("/api/pdf")
async def report_pdf(
    request: Request,
    settings: Settings = Depends(get_settings),
    renderer: ReportRenderer = Depends(get_renderer),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    try:
        data = ReportRequest.model_validate(await request.json())
        analytics = await fetch_analytics(client, settings, data.user.id, data.messageId or "")
        avatar = await resolve_avatar(client, settings, data.user)
        tree = compose_report(
            analytics,
            data.user,
            avatar,
            data.chatUsername or DEFAULT_CONTEXT,
            logo_url=settings.logo_url,
            stamp_url=settings.stamp_url,
        )
        pdf_bytes = await renderer.render(tree, client)
    except NoAvatarAvailable as e:
        report_failures.labels(reason="avatar").inc()
        logger.warning({"event": "avatar_unavailable"})
        return PlainTextResponse(str(e), status_code=500)
    except UpstreamAnalyticsError as e:
        report_failures.labels(reason="analytics").inc()
        return JSONResponse(status_code=400, content=e.payload)
    except Exception as e:
        report_failures.labels(reason=type(e).__name__).inc()
        logger.exception({"event": "report_error", "error": str(e)})
        return PlainTextResponse(str(e), status_code=400)

    reports_generated.inc()
    return Response(content=pdf_bytes, media_type="application/pdf")


@app.get("/metrics")
def metrics():
    output = generate_latest(registry)
    return PlainTextResponse(output.decode("utf-8"), media_type=CONTENT_TYPE_LATEST)

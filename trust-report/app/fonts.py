from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Dict, Mapping, Optional, Tuple

import httpx
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFError, TTFont

from .errors import FontLoadError, RenderFailure
from .styles import FONT_PT_SANS, FONT_PT_SANS_NARROW, FONT_ROBOTO, FONT_TINOS


logger = logging.getLogger("trustreport.fonts")


@dataclass(frozen=True)
class FontAsset:
    family: str
    weight: str
    file_name: str

    @property
    def face_name(self) -> str:
        # reportlab face names must not contain spaces
        return self.file_name.rsplit(".", 1)[0]


FONT_ASSETS: Tuple[FontAsset, ...] = (
    FontAsset(FONT_TINOS, "bold", "Tinos-Bold.ttf"),
    FontAsset(FONT_ROBOTO, "normal", "Roboto-Regular.ttf"),
    FontAsset(FONT_PT_SANS, "normal", "PTSans-Regular.ttf"),
    FontAsset(FONT_PT_SANS, "bold", "PTSans-Bold.ttf"),
    FontAsset(FONT_PT_SANS_NARROW, "normal", "PTSansNarrow-Regular.ttf"),
)


class FontSet:
    """Maps (family, weight) from document styles to registered reportlab fonts."""

    def __init__(self, faces: Mapping[Tuple[str, str], str]) -> None:
        self._faces: Dict[Tuple[str, str], str] = dict(faces)

    def resolve(self, family: Optional[str], weight: Optional[str] = None) -> str:
        weight = weight or "normal"
        face = self._faces.get((family or "", weight))
        if face:
            return face
        # nearest registered weight of the same family
        for (fam, _w), name in self._faces.items():
            if fam == family:
                return name
        raise RenderFailure(f"font family not registered: {family!r}")


async def _fetch_font(client: httpx.AsyncClient, url: str) -> bytes:
    try:
        r = await client.get(url)
        r.raise_for_status()
    except httpx.HTTPError as e:
        raise FontLoadError(f"font download failed: {url}: {e}") from e
    return r.content


async def register_fonts(client: httpx.AsyncClient, assets_host: str) -> FontSet:
    """Download and register the report fonts with reportlab.

    Registration is process wide; faces already known to ``pdfmetrics``
    are not downloaded again, so repeated calls are cheap.
    """
    registered = set(pdfmetrics.getRegisteredFontNames())
    pending = [a for a in FONT_ASSETS if a.face_name not in registered]
    blobs = await asyncio.gather(*(_fetch_font(client, f"https://{assets_host}/{a.file_name}") for a in pending))
    for asset, data in zip(pending, blobs):
        try:
            pdfmetrics.registerFont(TTFont(asset.face_name, BytesIO(data)))
        except TTFError as e:
            raise FontLoadError(f"invalid font file {asset.file_name}: {e}") from e
        logger.info({"event": "font_registered", "family": asset.family, "weight": asset.weight, "face": asset.face_name})

    faces = {(a.family, a.weight): a.face_name for a in FONT_ASSETS}
    pdfmetrics.registerFontFamily(
        FONT_PT_SANS,
        normal=faces[(FONT_PT_SANS, "normal")],
        bold=faces[(FONT_PT_SANS, "bold")],
    )
    return FontSet(faces)

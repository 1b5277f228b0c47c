from __future__ import annotations

import asyncio
import logging
import os
import re
import tempfile
import time
from dataclasses import dataclass, field
from io import BytesIO
from typing import Any, Dict, List, Optional, Sequence
from xml.sax.saxutils import escape

import emoji
import httpx
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT, TA_RIGHT
from reportlab.lib.pagesizes import A4, A5
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import cm, mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.platypus import BaseDocTemplate, Flowable, Frame, PageTemplate, Paragraph, Table, TableStyle
from starlette.concurrency import run_in_threadpool

from .errors import RenderFailure
from .fonts import FontSet
from .metrics import pdf_time
from .nodes import Node, Style, walk


logger = logging.getLogger("trustreport.pdf")

PAGE_SIZES = {"A4": A4, "A5": A5}

_TEXT_ALIGN = {"left": TA_LEFT, "center": TA_CENTER, "right": TA_RIGHT}
_ITEMS_ALIGN = {"flex-start": "LEFT", "center": "CENTER", "flex-end": "RIGHT"}
_CELL_TO_TEXT_ALIGN = {"LEFT": TA_LEFT, "CENTER": TA_CENTER, "RIGHT": TA_RIGHT}
_SPREAD = ("space-evenly", "space-around", "space-between")
_LENGTH = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*(cm|mm|pt|%)?\s*$")


def length(value: Any, reference: float = 0.0) -> float:
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    m = _LENGTH.match(str(value))
    if not m:
        raise RenderFailure(f"unsupported length {value!r}")
    number, unit = float(m.group(1)), m.group(2)
    if unit == "cm":
        return number * cm
    if unit == "mm":
        return number * mm
    if unit == "%":
        return reference * number / 100.0
    return number


def _edge(style: Style, prop: str, side: str) -> float:
    """paddingLeft > paddingHorizontal > padding (same for margins)."""
    axis = "Horizontal" if side in ("Left", "Right") else "Vertical"
    return length(style.get(prop + side, style.get(prop + axis, style.get(prop))))


def emoji_file_name(glyph: str) -> str:
    # emoji-datasource naming: lower-case code points, no variation selector
    return "-".join(f"{ord(ch):x}" for ch in glyph if ch != "\ufe0f") + ".png"


@dataclass
class Assets:
    images: Dict[str, bytes] = field(default_factory=dict)
    emoji: Dict[str, bytes] = field(default_factory=dict)


async def _fetch_asset(client: httpx.AsyncClient, url: str) -> bytes:
    try:
        r = await client.get(url)
    except httpx.HTTPError as e:
        raise RenderFailure(f"asset download failed: {url}: {e}") from e
    if not r.is_success:
        raise RenderFailure(f"asset {url} returned {r.status_code}")
    return r.content


async def _fetch_emoji(client: httpx.AsyncClient, source: str, glyph: str) -> Optional[bytes]:
    r = await client.get(source + emoji_file_name(glyph))
    if r.is_success:
        return r.content
    logger.warning({"event": "emoji_missing", "emoji": glyph, "status": r.status_code})
    return None


async def fetch_assets(tree: Node, client: httpx.AsyncClient, emoji_source: Optional[str]) -> Assets:
    """Download every image referenced by URL and the emoji glyphs used in text."""
    urls = sorted({n.src for n in walk(tree) if n.kind == "image" and isinstance(n.src, str)})
    glyphs: List[str] = []
    if emoji_source:
        glyphs = sorted({m["emoji"] for n in walk(tree) if n.kind == "text" for m in emoji.emoji_list(n.text)})
    images, glyph_images = await asyncio.gather(
        asyncio.gather(*(_fetch_asset(client, u) for u in urls)),
        asyncio.gather(*(_fetch_emoji(client, emoji_source or "", g) for g in glyphs)),
    )
    return Assets(
        images=dict(zip(urls, images)),
        emoji={g: data for g, data in zip(glyphs, glyph_images) if data},
    )


class ImageBox(Flowable):
    """Fixed-size image, optionally clipped to a rounded rectangle."""

    def __init__(self, reader: ImageReader, width: float, height: float, radius: float = 0.0) -> None:
        Flowable.__init__(self)
        self._reader = reader
        self.width = width
        self.height = height
        self.radius = radius

    def wrap(self, availWidth, availHeight):
        return self.width, self.height

    def draw(self):
        c = self.canv
        c.saveState()
        if self.radius:
            path = c.beginPath()
            path.roundRect(0, 0, self.width, self.height, self.radius)
            c.clipPath(path, stroke=0, fill=0)
        c.drawImage(self._reader, 0, 0, self.width, self.height, mask="auto")
        c.restoreState()


class _Layout:
    """Translates document nodes into reportlab flowables for one render."""

    def __init__(self, fonts: FontSet, assets: Assets, emoji_files: Dict[str, str]) -> None:
        self.fonts = fonts
        self.assets = assets
        self.emoji_files = emoji_files

    def font(self, style: Style) -> str:
        return self.fonts.resolve(style.get("fontFamily"), style.get("fontWeight"))

    @staticmethod
    def _value(node: Node) -> str:
        if node.style.get("textTransform") == "uppercase":
            return node.text.upper()
        return node.text

    def markup(self, value: str, size: float) -> str:
        out, pos = [], 0
        for m in emoji.emoji_list(value):
            out.append(escape(value[pos:m["match_start"]]))
            path = self.emoji_files.get(m["emoji"])
            if path:
                out.append(f'<img src="{escape(path)}" width="{size}" height="{size}" valign="middle"/>')
            pos = m["match_end"]
        out.append(escape(value[pos:]))
        return "".join(out)

    def text_width(self, node: Node) -> float:
        st = node.style
        size = float(st.get("fontSize", 12))
        value = self._value(node)
        glyphs = len(emoji.emoji_list(value))
        return stringWidth(emoji.replace_emoji(value, replace=""), self.font(st), size) + glyphs * size

    def natural_width(self, node: Node) -> float:
        st = node.style
        margins = _edge(st, "margin", "Left") + _edge(st, "margin", "Right")
        if "width" in st:
            return length(st["width"]) + margins
        if node.kind == "text":
            # one point of slack keeps reportlab from wrapping an exact fit
            return self.text_width(node) + 1 + margins
        if node.kind == "image":
            return float(ImageReader(BytesIO(self._image_data(node))).getSize()[0]) + margins
        widths = [self.natural_width(c) for c in node.children] or [0.0]
        inner = sum(widths) if node.style.get("flexDirection") == "row" else max(widths)
        return inner + _edge(st, "padding", "Left") + _edge(st, "padding", "Right") + margins

    def flowables(self, node: Node, avail: float, align: str = "LEFT") -> List[Flowable]:
        if node.kind == "text":
            return [self.paragraph(node, align)]
        if node.kind == "image":
            return [self.image(node, avail)]
        if node.kind == "view":
            return [self.view(node, avail)]
        raise RenderFailure(f"unexpected {node.kind!r} node inside a page")

    def paragraph(self, node: Node, align: str = "LEFT") -> Paragraph:
        st = node.style
        size = float(st.get("fontSize", 12))
        if "textAlign" in st:
            alignment = _TEXT_ALIGN.get(st["textAlign"], TA_LEFT)
        elif "alignSelf" in st:
            alignment = _CELL_TO_TEXT_ALIGN[_ITEMS_ALIGN.get(st["alignSelf"], "LEFT")]
        else:
            alignment = _CELL_TO_TEXT_ALIGN[align]
        pstyle = ParagraphStyle(
            "text",
            fontName=self.font(st),
            fontSize=size,
            leading=size * float(st.get("lineHeight", 1.2)),
            textColor=colors.toColor(st.get("color", "black")),
            alignment=alignment,
            spaceBefore=_edge(st, "margin", "Top"),
            spaceAfter=_edge(st, "margin", "Bottom"),
        )
        return Paragraph(self.markup(self._value(node), size), pstyle)

    def _image_data(self, node: Node) -> bytes:
        if isinstance(node.src, bytes):
            return node.src
        try:
            return self.assets.images[node.src]
        except KeyError:
            raise RenderFailure(f"image was not fetched: {node.src!r}") from None

    def image(self, node: Node, avail: float) -> ImageBox:
        st = node.style
        reader = ImageReader(BytesIO(self._image_data(node)))
        iw, ih = reader.getSize()
        w = length(st["width"], avail) if "width" in st else float(iw)
        h = length(st["height"], avail) if "height" in st else w * ih / iw
        radius = length(st.get("borderRadius"), min(w, h))
        return ImageBox(reader, w, h, min(radius, min(w, h) / 2))

    def _decorate(self, table: Table, style: Style, commands: list) -> Table:
        bw = float(style.get("borderWidth", 0))
        if bw:
            commands.append(("BOX", (0, 0), (-1, -1), bw, colors.toColor(style.get("borderColor", "black"))))
        table.setStyle(TableStyle(commands))
        table.spaceBefore = _edge(style, "margin", "Top")
        table.spaceAfter = _edge(style, "margin", "Bottom")
        table.hAlign = "LEFT"
        return table

    def _table(self, data, col_widths, style: Style) -> Table:
        radius = length(style.get("borderRadius"))
        if radius:
            return Table(data, colWidths=col_widths, cornerRadii=[radius] * 4)
        return Table(data, colWidths=col_widths)

    def view(self, node: Node, avail: float) -> Table:
        st = node.style
        width = min(length(st["width"], avail), avail) if "width" in st else avail
        pads = {side: _edge(st, "padding", side) for side in ("Left", "Right", "Top", "Bottom")}
        inner = max(width - pads["Left"] - pads["Right"], 0.0)
        if st.get("flexDirection") == "row":
            return self._row(node, width, inner, pads)

        align = _ITEMS_ALIGN.get(st.get("alignItems"), "LEFT")
        cell: List[Flowable] = []
        for child in node.children:
            cell.extend(self.flowables(child, inner, align))
        table = self._table([[cell or ""]], [width], st)
        return self._decorate(table, st, [
            ("ALIGN", (0, 0), (-1, -1), align),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("LEFTPADDING", (0, 0), (-1, -1), pads["Left"]),
            ("RIGHTPADDING", (0, 0), (-1, -1), pads["Right"]),
            ("TOPPADDING", (0, 0), (-1, -1), pads["Top"]),
            ("BOTTOMPADDING", (0, 0), (-1, -1), pads["Bottom"]),
        ])

    def _basis(self, node: Node, avail: float) -> Optional[float]:
        st = node.style
        basis = st.get("flexBasis", st.get("width"))
        if basis is None:
            return None
        return length(basis, avail) + _edge(st, "margin", "Left") + _edge(st, "margin", "Right")

    def _column_widths(self, node: Node, inner: float) -> List[float]:
        children = node.children
        widths: List[Optional[float]] = [self._basis(c, inner) for c in children]
        if node.style.get("justifyContent") == "center":
            return [w if w is not None else self.natural_width(c) for c, w in zip(children, widths)]
        unsized = [i for i, w in enumerate(widths) if w is None]
        remaining = inner - sum(w for w in widths if w is not None)
        if unsized and remaining > 0:
            share = remaining / len(unsized)
            return [w if w is not None else share for w in widths]
        return [w if w is not None else self.natural_width(c) for c, w in zip(children, widths)]

    @staticmethod
    def _plain_column(node: Node) -> bool:
        return node.kind == "view" and node.style.get("flexDirection") != "row" and not node.style.get("borderWidth")

    def _grid(self, node: Node, inner: float, pads: Dict[str, float]) -> Table:
        """Row of equally long plain columns as one table row per entry, so it can split across pages."""
        st = node.style
        columns = node.children
        col_widths = self._column_widths(node, inner)
        col_widths[0] += pads["Left"]
        col_widths[-1] += pads["Right"]
        depth = len(columns[0].children)
        last_row, last_col = depth - 1, len(columns) - 1

        rows: List[List[Any]] = [[] for _ in range(depth)]
        commands: list = [("VALIGN", (0, 0), (-1, -1), "MIDDLE" if st.get("alignItems") == "center" else "TOP")]
        for i, (column, w) in enumerate(zip(columns, col_widths)):
            cs = column.style
            align = _ITEMS_ALIGN.get(cs.get("alignItems"), "LEFT")
            left = _edge(cs, "padding", "Left") + (pads["Left"] if i == 0 else 0.0)
            right = _edge(cs, "padding", "Right") + (pads["Right"] if i == last_col else 0.0)
            for r, entry in enumerate(column.children):
                rows[r].append(self.flowables(entry, max(w - left - right, 0.0), align))
            commands += [
                ("ALIGN", (i, 0), (i, -1), align),
                ("LEFTPADDING", (i, 0), (i, -1), left),
                ("RIGHTPADDING", (i, 0), (i, -1), right),
                ("TOPPADDING", (i, 0), (i, 0), _edge(cs, "padding", "Top") + pads["Top"]),
                ("BOTTOMPADDING", (i, last_row), (i, last_row), _edge(cs, "padding", "Bottom") + pads["Bottom"]),
            ]
        # a cell drops the margins of its outer flowables, so row gaps become padding
        for r in range(depth):
            gap_after = max(_edge(c.children[r].style, "margin", "Bottom") for c in columns)
            gap_before = max(_edge(c.children[r].style, "margin", "Top") for c in columns)
            if r < last_row:
                commands.append(("BOTTOMPADDING", (0, r), (-1, r), gap_after))
            if r > 0:
                commands.append(("TOPPADDING", (0, r), (-1, r), gap_before))

        table = Table(rows, colWidths=col_widths, repeatRows=1 if depth > 1 else 0)
        table = self._decorate(table, st, commands)
        if st.get("justifyContent") == "center":
            table.hAlign = "CENTER"
        return table

    def _row(self, node: Node, width: float, inner: float, pads: Dict[str, float]) -> Table:
        st = node.style
        children = node.children
        if not children:
            return self._decorate(self._table([[""]], [width], st), st, [])
        depths = {len(c.children) for c in children}
        if all(self._plain_column(c) for c in children) and len(depths) == 1 and 0 not in depths:
            return self._grid(node, inner, pads)

        col_widths = self._column_widths(node, inner)
        cells: List[Any] = []
        commands: list = [("VALIGN", (0, 0), (-1, -1), "MIDDLE" if st.get("alignItems") == "center" else "TOP")]
        last = len(children) - 1
        for i, (child, w) in enumerate(zip(children, col_widths)):
            cs = child.style
            valign = None
            if child.kind == "view" and cs.get("flexDirection") != "row" and not cs.get("borderWidth"):
                # plain column: its children stack inside this cell
                align = _ITEMS_ALIGN.get(cs.get("alignItems"), "LEFT")
                left, right = _edge(cs, "padding", "Left"), _edge(cs, "padding", "Right")
                top, bottom = _edge(cs, "padding", "Top"), _edge(cs, "padding", "Bottom")
                content: List[Flowable] = []
                for grandchild in child.children:
                    content.extend(self.flowables(grandchild, max(w - left - right, 0.0), align))
                if cs.get("justifyContent") in ("center",) + _SPREAD:
                    valign = "MIDDLE"
            else:
                align = "LEFT"
                left, right = _edge(cs, "margin", "Left"), _edge(cs, "margin", "Right")
                top = bottom = 0.0
                content = self.flowables(child, max(w - left - right, 0.0), align)
            if i == 0:
                left += pads["Left"]
                col_widths[i] = w + pads["Left"]
            if i == last:
                right += pads["Right"]
                col_widths[i] += pads["Right"]
            commands += [
                ("ALIGN", (i, 0), (i, 0), align),
                ("LEFTPADDING", (i, 0), (i, 0), left),
                ("RIGHTPADDING", (i, 0), (i, 0), right),
                ("TOPPADDING", (i, 0), (i, 0), top + pads["Top"]),
                ("BOTTOMPADDING", (i, 0), (i, 0), bottom + pads["Bottom"]),
            ]
            if valign:
                commands.append(("VALIGN", (i, 0), (i, 0), valign))
            cells.append(content or "")

        table = self._decorate(self._table([cells], col_widths, st), st, commands)
        if st.get("justifyContent") != "center":
            return table
        # centred rows keep their natural width inside a full-width box
        table.spaceBefore = table.spaceAfter = 0
        margins = {k: v for k, v in st.items() if k.startswith("margin")}
        return self._decorate(Table([[[table]]], colWidths=[width]), margins, [
            ("ALIGN", (0, 0), (-1, -1), "CENTER"),
            ("LEFTPADDING", (0, 0), (-1, -1), 0),
            ("RIGHTPADDING", (0, 0), (-1, -1), 0),
            ("TOPPADDING", (0, 0), (-1, -1), 0),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 0),
        ])

    def paint_overlay(self, canvas, node: Node, page_w: float, page_h: float) -> None:
        st = node.style
        labels = [c for c in node.children if c.kind == "text"]
        ts = labels[0].style if labels else {}
        value = " ".join(emoji.replace_emoji(self._value(c), replace="") for c in labels)
        size = float(ts.get("fontSize", 12))
        font = self.font(ts) if labels else "Helvetica"
        bw = float(st.get("borderWidth", 0))
        w = stringWidth(value, font, size) + _edge(st, "padding", "Left") + _edge(st, "padding", "Right") + 2 * bw
        h = size * float(ts.get("lineHeight", 1.0)) + _edge(st, "padding", "Top") + _edge(st, "padding", "Bottom") + 2 * bw
        if "left" in st:
            cx = length(st["left"], page_w) + w / 2
        else:
            cx = page_w - length(st.get("right"), page_w) - w / 2
        if "bottom" in st:
            cy = length(st["bottom"], page_h) + h / 2
        else:
            cy = page_h - length(st.get("top"), page_h) - h / 2

        canvas.saveState()
        canvas.translate(cx, cy)
        # style degrees turn clockwise, the canvas turns counter-clockwise
        canvas.rotate(-float(st.get("rotate", 0)))
        if bw:
            canvas.setLineWidth(bw)
            canvas.setStrokeColor(colors.toColor(st.get("borderColor", "black")))
            canvas.rect(-w / 2 + bw / 2, -h / 2 + bw / 2, w - bw, h - bw, stroke=1, fill=0)
        canvas.setFillColor(colors.toColor(ts.get("color", "black")))
        canvas.setFont(font, size)
        canvas.drawCentredString(0, -size * 0.35, value)
        canvas.restoreState()

    def paint_page(self, canvas, doc, page: Node, overlays: Sequence[Node]) -> None:
        page_w, page_h = doc.pagesize
        background = page.style.get("backgroundColor")
        if background:
            canvas.saveState()
            canvas.setFillColor(colors.toColor(background))
            canvas.rect(0, 0, page_w, page_h, stroke=0, fill=1)
            canvas.restoreState()
        if canvas.getPageNumber() == 1:
            for overlay in overlays:
                self.paint_overlay(canvas, overlay, page_w, page_h)


def _write_emoji(glyphs: Dict[str, bytes], directory: str) -> Dict[str, str]:
    paths = {}
    for glyph, data in glyphs.items():
        path = os.path.join(directory, emoji_file_name(glyph))
        with open(path, "wb") as f:
            f.write(data)
        paths[glyph] = path
    return paths


def build_pdf(tree: Node, fonts: FontSet, assets: Assets) -> bytes:
    pages = [n for n in tree.children if n.kind == "page"] if tree.kind == "document" else []
    if len(pages) != 1:
        raise RenderFailure(f"expected a document with one page, got {len(pages)}")
    page = pages[0]
    size = PAGE_SIZES.get(page.style.get("size", "A5"))
    if size is None:
        raise RenderFailure(f"unsupported page size {page.style.get('size')!r}")
    margin = length(page.style.get("margin"), size[0])

    buf = BytesIO()
    doc = BaseDocTemplate(
        buf,
        pagesize=size,
        leftMargin=margin,
        rightMargin=margin,
        topMargin=margin,
        bottomMargin=margin,
        title="Trust report",
    )
    frame = Frame(
        doc.leftMargin, doc.bottomMargin, doc.width, doc.height,
        leftPadding=0, rightPadding=0, topPadding=0, bottomPadding=0, id="content",
    )
    overlays = [c for c in page.children if c.style.get("position") == "absolute"]
    with tempfile.TemporaryDirectory(prefix="trustreport-") as tmp:
        layout = _Layout(fonts, assets, _write_emoji(assets.emoji, tmp))
        story: List[Flowable] = []
        for child in page.children:
            if child.style.get("position") != "absolute":
                story.extend(layout.flowables(child, doc.width))
        doc.addPageTemplates([
            PageTemplate(id="report", frames=[frame], onPage=lambda c, d: layout.paint_page(c, d, page, overlays)),
        ])
        doc.build(story)
    return buf.getvalue()


class ReportRenderer:
    """Render pipeline: remote assets first, then reportlab in a worker thread."""

    def __init__(self, fonts: FontSet, emoji_source: Optional[str] = None) -> None:
        self.fonts = fonts
        self.emoji_source = emoji_source

    async def render(self, tree: Node, client: httpx.AsyncClient) -> bytes:
        assets = await fetch_assets(tree, client, self.emoji_source)
        start = time.time()
        try:
            data = await run_in_threadpool(build_pdf, tree, self.fonts, assets)
        except RenderFailure:
            raise
        except Exception as e:
            raise RenderFailure(f"PDF rendering failed: {e}") from e
        pdf_time.observe(time.time() - start)
        return data

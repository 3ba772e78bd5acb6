from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from io import BytesIO

from PIL import Image
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from ..shared.layout import (
    CENTER_X_TRANSFORM,
    Background,
    Border,
    CertificateDocument,
    PageSize,
    TextNode,
)

logger = logging.getLogger("nibog.render")

_POINTS_PER_UNIT = {"mm": 72.0 / 25.4, "in": 72.0}
_PT_PER_PX = 0.75
_DEFAULT_LINE_HEIGHT = 1.2
_ASCENT_RATIO = 0.8

_FONT_FAMILIES = {
    "arial": "Helvetica",
    "helvetica": "Helvetica",
    "sans-serif": "Helvetica",
    "verdana": "Helvetica",
    "times": "Times",
    "times new roman": "Times",
    "georgia": "Times",
    "serif": "Times",
    "courier": "Courier",
    "courier new": "Courier",
    "monospace": "Courier",
}

_FONT_VARIANTS = {
    ("Helvetica", False): "Helvetica",
    ("Helvetica", True): "Helvetica-Bold",
    ("Times", False): "Times-Roman",
    ("Times", True): "Times-Bold",
    ("Courier", False): "Courier",
    ("Courier", True): "Courier-Bold",
}

_SHORT_HEX_RE = re.compile(r"^#([0-9a-fA-F])([0-9a-fA-F])([0-9a-fA-F])$")


@dataclass(frozen=True)
class PdfRenderResult:
    pdf_bytes: bytes
    warnings: tuple[str, ...]


def px_to_pt(px: float) -> float:
    return float(px) * _PT_PER_PX


def page_points(page: PageSize | None, warnings: list[str]) -> tuple[float, float]:
    if page is None:
        warnings.append("[pdf-page] unrecognized paper size; using A4 landscape.")
        return landscape(A4)
    factor = _POINTS_PER_UNIT[page.unit]
    return page.width * factor, page.height * factor


def resolve_pdf_font(family: str | None, bold: bool, warnings: list[str]) -> str:
    key = (family or "").strip().strip("'\"").lower()
    base = _FONT_FAMILIES.get(key)
    if base is None:
        warnings.append(f"[pdf-font] {family!r} unavailable; using Helvetica.")
        base = "Helvetica"
    return _FONT_VARIANTS[(base, bold)]


def parse_color(value: str | None, warnings: list[str]) -> colors.Color:
    raw = (value or "").strip()
    short = _SHORT_HEX_RE.match(raw)
    if short:
        raw = "#" + "".join(ch * 2 for ch in short.groups())
    try:
        return colors.toColor(raw)
    except ValueError:
        warnings.append(f"[pdf-color] {value!r} not understood; using black.")
        return colors.black


def _draw_background(
    c: canvas.Canvas,
    background: Background,
    width: float,
    height: float,
    image_bytes: bytes | None,
    warnings: list[str],
) -> None:
    if background.kind == "solid":
        c.setFillColor(parse_color(background.color, warnings))
        c.rect(0, 0, width, height, stroke=0, fill=1)
    elif background.kind == "gradient" and background.gradient:
        start, end = (parse_color(col, warnings) for col in background.gradient)
        # 135deg runs from the top-left corner to the bottom-right corner.
        c.linearGradient(0, height, width, 0, (start, end), extend=True)
    elif background.kind == "image":
        if not image_bytes:
            warnings.append(f"[pdf-bg] background image not embedded: {background.image_url}")
            return
        try:
            with Image.open(BytesIO(image_bytes)) as img:
                picture = img.convert("RGB")
        except (OSError, ValueError):
            logger.exception("[pdf-bg] unreadable background image %s", background.image_url)
            warnings.append(f"[pdf-bg] background image unreadable: {background.image_url}")
            return
        scale = max(width / picture.width, height / picture.height)
        draw_w, draw_h = picture.width * scale, picture.height * scale
        c.drawImage(
            ImageReader(picture),
            (width - draw_w) / 2,
            (height - draw_h) / 2,
            draw_w,
            draw_h,
        )


def _draw_border(c: canvas.Canvas, border: Border, width: float, height: float, warnings: list[str]) -> None:
    inset = px_to_pt(border.inset_px)
    line_width = px_to_pt(border.width)
    c.saveState()
    c.setStrokeColor(parse_color(border.color, warnings))
    c.setLineWidth(line_width)
    if border.style == "dashed":
        c.setDash(line_width * 3, line_width * 2)
    elif border.style == "dotted":
        c.setDash(line_width, line_width * 1.5)
    c.rect(inset, inset, width - 2 * inset, height - 2 * inset, stroke=1, fill=0)
    c.restoreState()


def _line_width(text: str, font: str, size: float, char_space: float) -> float:
    base = stringWidth(text, font, size)
    if char_space and len(text) > 1:
        base += char_space * (len(text) - 1)
    return base


def _draw_node(c: canvas.Canvas, node: TextNode, width: float, height: float, warnings: list[str]) -> None:
    font = resolve_pdf_font(node.font_family, node.bold, warnings)
    size = px_to_pt(node.font_size)
    char_space = px_to_pt(node.letter_spacing_px or 0)
    text = node.text.upper() if node.uppercase else node.text

    anchor_x = width * node.left / 100.0
    anchor_y = height - height * node.top / 100.0
    box_w = width * node.width_percent / 100.0 if node.width_percent else None

    lines: list[str] = []
    for raw_line in (text.split("\n") if node.multiline else [text]):
        if box_w and raw_line:
            lines.extend(simpleSplit(raw_line, font, size, box_w))
        else:
            lines.append(raw_line)

    step = size * (node.line_height or _DEFAULT_LINE_HEIGHT)
    block_h = step * len(lines)
    block_top = anchor_y if node.transform == CENTER_X_TRANSFORM else anchor_y + block_h / 2

    c.saveState()
    fill = parse_color(node.color, warnings)
    c.setFillColor(fill)
    c.setStrokeColor(fill)
    for index, line in enumerate(lines):
        line_w = _line_width(line, font, size, char_space)
        if box_w is not None and node.align == "left":
            x = anchor_x - box_w / 2
        elif box_w is not None and node.align == "right":
            x = anchor_x + box_w / 2 - line_w
        else:
            x = anchor_x - line_w / 2
        baseline = block_top - index * step - size * _ASCENT_RATIO
        text_obj = c.beginText(x, baseline)
        text_obj.setFont(font, size)
        text_obj.setCharSpace(char_space)
        text_obj.textOut(line)
        c.drawText(text_obj)
        if node.underline and line:
            c.setLineWidth(max(size / 15.0, 0.5))
            c.line(x, baseline - size * 0.12, x + line_w, baseline - size * 0.12)
    c.restoreState()


def render_certificate_pdf(
    document: CertificateDocument, *, background_image: bytes | None = None
) -> PdfRenderResult:
    """Draw a laid-out certificate onto a single PDF page."""
    warnings: list[str] = []
    width, height = page_points(document.page, warnings)

    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=(width, height))
    if document.background is not None:
        _draw_background(c, document.background, width, height, background_image, warnings)
    if document.border is not None:
        _draw_border(c, document.border, width, height, warnings)
    for node in document.nodes:
        _draw_node(c, node, width, height, warnings)
    c.showPage()
    c.save()

    for message in warnings:
        logger.warning(message)
    return PdfRenderResult(pdf_bytes=buffer.getvalue(), warnings=tuple(warnings))

from __future__ import annotations

import re
from dataclasses import dataclass

# (width, height, unit) in landscape; portrait swaps width and height.
PAPER_DIMENSIONS: dict[str, tuple[float, float, str]] = {
    "a4": (297.0, 210.0, "mm"),
    "a3": (420.0, 297.0, "mm"),
    "letter": (11.0, 8.5, "in"),
}

BORDER_INSET_PX = 20
DEFAULT_BORDER_WIDTH = 2
DEFAULT_BORDER_STYLE = "solid"
DEFAULT_BORDER_COLOR = "#000000"
GRADIENT_ANGLE_DEG = 135

DEFAULT_FONT_FAMILY = "Arial"
DEFAULT_TEXT_COLOR = "#333333"
DEFAULT_FIELD_COLOR = "#000000"
DEFAULT_FIELD_FONT_SIZE = 24
CENTER_TRANSFORM = "translate(-50%, -50%)"
CENTER_X_TRANSFORM = "translateX(-50%)"

# Characters that could end a declaration or the <style> element.
_CSS_UNSAFE_RE = re.compile(r"[<>{};\\]")


def css_value(value: object) -> str:
    """Strip characters that would let a value escape its CSS declaration."""
    return _CSS_UNSAFE_RE.sub("", str(value if value is not None else ""))


def _fmt_number(value: float) -> str:
    return f"{value:g}"


@dataclass(frozen=True)
class PageSize:
    width: float
    height: float
    unit: str

    @property
    def css_width(self) -> str:
        return f"{_fmt_number(self.width)}{self.unit}"

    @property
    def css_height(self) -> str:
        return f"{_fmt_number(self.height)}{self.unit}"


def page_size_for(paper_size: str | None, orientation: str | None) -> PageSize | None:
    """Map a paper size and orientation onto container dimensions."""
    dims = PAPER_DIMENSIONS.get((paper_size or "").lower())
    if dims is None:
        return None
    width, height, unit = dims
    # Dimensions are stored landscape; anything else renders portrait.
    if (orientation or "").lower() != "landscape":
        width, height = height, width
    return PageSize(width=width, height=height, unit=unit)


@dataclass(frozen=True)
class Background:
    kind: str
    image_url: str | None = None
    color: str | None = None
    gradient: tuple[str, str] | None = None

    @property
    def css(self) -> str:
        if self.kind == "image":
            return (
                f"background-image: url('{self.image_url}'); background-size: cover; "
                "background-position: center; background-repeat: no-repeat;"
            )
        if self.kind == "solid":
            return f"background-color: {css_value(self.color)};"
        if self.kind == "gradient" and self.gradient:
            first, second = (css_value(c) for c in self.gradient)
            return f"background: linear-gradient({GRADIENT_ANGLE_DEG}deg, {first}, {second});"
        return ""


@dataclass(frozen=True)
class Border:
    width: int = DEFAULT_BORDER_WIDTH
    style: str = DEFAULT_BORDER_STYLE
    color: str = DEFAULT_BORDER_COLOR
    inset_px: int = BORDER_INSET_PX

    @property
    def css(self) -> str:
        return f"border: {self.width}px {css_value(self.style)} {css_value(self.color)};"


@dataclass(frozen=True)
class TextNode:
    """One absolutely positioned block of text.

    ``left`` and ``top`` are percentages of the container; ``transform``
    decides which point of the text box sits on that anchor.
    """

    css_class: str
    text: str
    left: float
    top: float
    font_size: int
    font_family: str = DEFAULT_FONT_FAMILY
    color: str = DEFAULT_TEXT_COLOR
    align: str = "center"
    bold: bool = True
    underline: bool = False
    uppercase: bool = False
    letter_spacing_px: int | None = None
    line_height: float | None = None
    width_percent: float | None = None
    transform: str = CENTER_TRANSFORM
    multiline: bool = False

    @property
    def lines(self) -> list[str]:
        if not self.multiline:
            return [self.text]
        return self.text.split("\n")


@dataclass(frozen=True)
class CertificateDocument:
    paper_size: str
    orientation: str
    page: PageSize | None
    background: Background | None
    border: Border | None
    nodes: tuple[TextNode, ...]

    def nodes_by_class(self, css_class: str) -> list[TextNode]:
        return [node for node in self.nodes if node.css_class == css_class]

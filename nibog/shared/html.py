from __future__ import annotations

import os

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup, escape

from .layout import CertificateDocument, TextNode, css_value

_TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates")


def nl2br(value: str) -> Markup:
    lines = [escape(line) for line in str(value or "").split("\n")]
    return Markup("<br>").join(lines)


def node_style(node: TextNode) -> str:
    """Inline style for one positioned node, in declaration order."""
    rules = [
        "position: absolute",
        f"left: {node.left:g}%",
        f"top: {node.top:g}%",
        f"transform: {node.transform}",
        f"font-size: {node.font_size}px",
        f"color: {css_value(node.color)}",
        f"font-family: '{css_value(node.font_family)}', sans-serif",
        f"text-align: {css_value(node.align)}",
    ]
    if node.bold:
        rules.append("font-weight: bold")
    if node.width_percent is not None:
        rules.append(f"width: {node.width_percent:g}%")
    if node.uppercase:
        rules.append("text-transform: uppercase")
    if node.letter_spacing_px is not None:
        rules.append(f"letter-spacing: {node.letter_spacing_px}px")
    if node.line_height is not None:
        rules.append(f"line-height: {node.line_height:g}")
    if node.multiline:
        rules.append("white-space: pre-line")
    if node.underline:
        rules.append("text-decoration: underline")
    return "; ".join(rules) + ";"


_env = Environment(
    loader=FileSystemLoader(_TEMPLATES_DIR),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)
_env.filters["nl2br"] = nl2br
_env.filters["node_style"] = node_style
_env.filters["css_value"] = css_value


def render_certificate_html(document: CertificateDocument) -> str:
    template = _env.get_template("certificate.html")
    return template.render(doc=document)

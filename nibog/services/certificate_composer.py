from __future__ import annotations

import logging
from urllib.parse import quote

from ..models import BackgroundStyle, Certificate, CertificateTemplate, TemplateField
from ..shared.fields import FieldPlan, plan_fields, render_fields
from ..shared.html import render_certificate_html
from ..shared.layout import (
    CENTER_TRANSFORM,
    CENTER_X_TRANSFORM,
    DEFAULT_BORDER_COLOR,
    DEFAULT_BORDER_STYLE,
    DEFAULT_BORDER_WIDTH,
    DEFAULT_FONT_FAMILY,
    DEFAULT_TEXT_COLOR,
    Background,
    Border,
    CertificateDocument,
    TextNode,
    page_size_for,
)
from ..shared.variables import resolve, resolve_variable

logger = logging.getLogger("nibog.render")

DEFAULT_ASSET_BASE_URL = "http://localhost:3000"

TITLE_TOP_PERCENT = 15
TITLE_FONT_SIZE = 32
TITLE_LETTER_SPACING_PX = 2
TITLE_FIELD_LITERAL = "Certificate Title"

NAME_DEFAULTS = {
    "x": 50.0,
    "y": 40.0,
    "font_size": 28,
    "font_family": DEFAULT_FONT_FAMILY,
    "color": DEFAULT_TEXT_COLOR,
    "alignment": "center",
}

APPRECIATION_OFFSET_PERCENT = 20
APPRECIATION_DEFAULT_TOP = 65
APPRECIATION_FONT_SIZE = 16
APPRECIATION_WIDTH_PERCENT = 80
APPRECIATION_LINE_HEIGHT = 1.6

_TITLE_WORDS = {
    "participation": "Participation",
    "winner": "Achievement",
}

DEFAULT_APPRECIATION_TEXT = {
    "participation": (
        "In recognition of enthusiastic participation in {event_name}.\n"
        "Your involvement, energy, and commitment at NIBOG are truly appreciated.\n"
        "Thank you for being a valued part of the NIBOG community!"
    ),
    "winner": (
        "For achieving {achievement} in {event_name}.\n"
        "Your dedication, talent, and outstanding performance at NIBOG have "
        "distinguished you among the best.\n"
        "Congratulations on this remarkable achievement from the entire NIBOG team!"
    ),
}


def default_title(template_type: str | None) -> str:
    return f"Certificate of {_TITLE_WORDS.get(template_type or '', 'Excellence')}"


def absolute_asset_url(url: str, base_url: str = DEFAULT_ASSET_BASE_URL) -> str:
    if url.startswith("http"):
        absolute = url
    else:
        separator = "" if url.startswith("/") else "/"
        absolute = f"{base_url.rstrip('/')}{separator}{url}"
    return quote(absolute, safe=":/?#[]@!$&*+,;=%-._~")


def resolve_background(
    template: CertificateTemplate, base_url: str = DEFAULT_ASSET_BASE_URL
) -> Background | None:
    style = template.background_style
    if style is not None and style.type:
        if style.type == "image":
            image_url = style.image_url or template.background_image
            if image_url:
                return Background(kind="image", image_url=absolute_asset_url(image_url, base_url))
        elif style.type == "solid" and style.solid_color:
            return Background(kind="solid", color=style.solid_color)
        elif style.type == "gradient" and len(style.gradient_colors) == 2:
            first, second = style.gradient_colors
            return Background(kind="gradient", gradient=(first, second))
        return None
    if template.background_image:
        return Background(
            kind="image", image_url=absolute_asset_url(template.background_image, base_url)
        )
    return None


def resolve_border(style: BackgroundStyle | None) -> Border | None:
    if style is None or not style.border_enabled:
        return None
    return Border(
        width=style.border_width or DEFAULT_BORDER_WIDTH,
        style=style.border_style or DEFAULT_BORDER_STYLE,
        color=style.border_color or DEFAULT_BORDER_COLOR,
    )


def title_text(template: CertificateTemplate, title_field: TemplateField | None) -> str:
    if title_field is not None:
        if title_field.name == TITLE_FIELD_LITERAL:
            return default_title(template.type)
        return title_field.name
    if template.certificate_title:
        return template.certificate_title
    return default_title(template.type)


def title_block(
    template: CertificateTemplate,
    certificate: Certificate,
    title_field: TemplateField | None,
) -> TextNode:
    return TextNode(
        css_class="certificate-title",
        text=resolve(title_text(template, title_field), certificate),
        left=50,
        top=TITLE_TOP_PERCENT,
        font_size=TITLE_FONT_SIZE,
        font_family=DEFAULT_FONT_FAMILY,
        color=DEFAULT_TEXT_COLOR,
        underline=bool(title_field and title_field.underline),
        uppercase=True,
        letter_spacing_px=TITLE_LETTER_SPACING_PX,
        width_percent=90,
        transform=CENTER_X_TRANSFORM,
    )


def participant_name_block(
    certificate: Certificate, name_field: TemplateField | None
) -> TextNode:
    if name_field is None:
        x, y = NAME_DEFAULTS["x"], NAME_DEFAULTS["y"]
        font_size = NAME_DEFAULTS["font_size"]
        font_family = NAME_DEFAULTS["font_family"]
        color = NAME_DEFAULTS["color"]
        align = NAME_DEFAULTS["alignment"]
        underline = False
    else:
        x, y = name_field.x, name_field.y
        font_size = name_field.font_size or NAME_DEFAULTS["font_size"]
        font_family = name_field.font_family or NAME_DEFAULTS["font_family"]
        color = name_field.color or NAME_DEFAULTS["color"]
        align = name_field.alignment or NAME_DEFAULTS["alignment"]
        underline = name_field.underline
    return TextNode(
        css_class="participant-name",
        text=resolve_variable("participant_name", certificate) or "Participant",
        left=x,
        top=y,
        font_size=font_size,
        font_family=font_family,
        color=color,
        align=align,
        underline=underline,
        width_percent=90,
        transform=CENTER_TRANSFORM,
    )


def appreciation_text(template: CertificateTemplate, certificate: Certificate) -> str:
    raw = template.appreciation_text or DEFAULT_APPRECIATION_TEXT.get(template.type, "")
    # Stored templates sometimes carry the two-character sequence instead of a newline.
    raw = raw.replace("\\n", "\n")
    return resolve(raw, certificate)


def appreciation_block(
    template: CertificateTemplate,
    certificate: Certificate,
    name_field: TemplateField | None,
) -> TextNode:
    top = (
        name_field.y + APPRECIATION_OFFSET_PERCENT
        if name_field is not None
        else APPRECIATION_DEFAULT_TOP
    )
    return TextNode(
        css_class="appreciation-text",
        text=appreciation_text(template, certificate),
        left=50,
        top=top,
        font_size=APPRECIATION_FONT_SIZE,
        font_family=DEFAULT_FONT_FAMILY,
        color=DEFAULT_TEXT_COLOR,
        bold=False,
        line_height=APPRECIATION_LINE_HEIGHT,
        width_percent=APPRECIATION_WIDTH_PERCENT,
        transform=CENTER_TRANSFORM,
        multiline=True,
    )


def build_document(
    template: CertificateTemplate,
    certificate: Certificate,
    *,
    asset_base_url: str = DEFAULT_ASSET_BASE_URL,
) -> CertificateDocument:
    """Lay out a certificate without serializing it."""
    plan: FieldPlan = plan_fields(template.fields)
    nodes = [
        title_block(template, certificate, plan.title_field),
        participant_name_block(certificate, plan.name_field),
        appreciation_block(template, certificate, plan.name_field),
    ]
    nodes.extend(render_fields(template, certificate, plan))
    page = page_size_for(template.paper_size, template.orientation)
    if page is None:
        logger.warning(
            "[CERT-LAYOUT] unrecognized paper_size=%r; container size left unset",
            template.paper_size,
        )
    return CertificateDocument(
        paper_size=template.paper_size,
        orientation=template.orientation,
        page=page,
        background=resolve_background(template, asset_base_url),
        border=resolve_border(template.background_style),
        nodes=tuple(nodes),
    )


def compose(
    template: CertificateTemplate,
    certificate: Certificate,
    *,
    asset_base_url: str = DEFAULT_ASSET_BASE_URL,
) -> str:
    document = build_document(template, certificate, asset_base_url=asset_base_url)
    return render_certificate_html(document)

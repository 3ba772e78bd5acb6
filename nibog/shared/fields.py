"""Template field classification and generic field layout.

Fields are classified once by their (case-insensitive) name. The title and
participant-name roles are drawn by the composer from the first matching
field; suppressed fields duplicate content shown elsewhere and are dropped;
every other field becomes one positioned text node.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, NamedTuple

from ..models import Certificate, CertificateTemplate, TemplateField, TemplateShapeError
from .layout import (
    CENTER_TRANSFORM,
    DEFAULT_FIELD_COLOR,
    DEFAULT_FIELD_FONT_SIZE,
    DEFAULT_FONT_FAMILY,
    TextNode,
)
from .variables import Accessor, current_date, data, first_value, top


class FieldRole(str, enum.Enum):
    TITLE = "title"
    PARTICIPANT_NAME = "participant_name"
    SUPPRESSED = "suppressed"
    GENERIC = "generic"


def classify_field_name(name: str) -> FieldRole:
    lowered = (name or "").lower()
    if "certificate" in lowered and "title" in lowered:
        return FieldRole.TITLE
    if "participant" in lowered and "name" in lowered:
        return FieldRole.PARTICIPANT_NAME
    if "achievement" in lowered or "position" in lowered or "participant" in lowered:
        return FieldRole.SUPPRESSED
    if "event" in lowered and "name" in lowered:
        return FieldRole.SUPPRESSED
    if "name" in lowered and not any(q in lowered for q in ("venue", "city")):
        return FieldRole.SUPPRESSED
    return FieldRole.GENERIC


class ClassifiedField(NamedTuple):
    field: TemplateField
    role: FieldRole


@dataclass(frozen=True)
class FieldPlan:
    classified: tuple[ClassifiedField, ...]
    title_field: TemplateField | None
    name_field: TemplateField | None

    @property
    def generic_fields(self) -> list[TemplateField]:
        return [item.field for item in self.classified if item.role is FieldRole.GENERIC]


def plan_fields(fields: Iterable[TemplateField]) -> FieldPlan:
    try:
        items = tuple(ClassifiedField(f, classify_field_name(f.name)) for f in fields)
    except TypeError as exc:
        raise TemplateShapeError(f"Template fields are not iterable: {exc}") from exc
    title_field = next((i.field for i in items if i.role is FieldRole.TITLE), None)
    name_field = next(
        (i.field for i in items if i.role is FieldRole.PARTICIPANT_NAME), None
    )
    return FieldPlan(classified=items, title_field=title_field, name_field=name_field)


class FieldValueRule(NamedTuple):
    matches: Callable[[str], bool]
    accessors: tuple[Accessor, ...]
    default: str | Callable[[], str]


FIELD_VALUE_RULES: tuple[FieldValueRule, ...] = (
    FieldValueRule(
        lambda name: "date" in name,
        (top("event_date"), data("event_date")),
        current_date,
    ),
    FieldValueRule(
        lambda name: "venue" in name,
        (data("venue_name"), top("venue_name")),
        "Sports Arena",
    ),
    FieldValueRule(
        lambda name: "city" in name,
        (data("city_name"), top("city_name")),
        "New York",
    ),
    FieldValueRule(
        lambda name: "certificate" in name and "number" in name,
        (data("certificate_number"), top("certificate_number")),
        "CERT-001",
    ),
)


def _probe_accessors(raw_name: str) -> tuple[Accessor, ...]:
    lowered = raw_name.lower()
    snake = re.sub(r"\s+", "_", lowered)
    return (
        data(lowered),
        data(snake),
        data(raw_name),
        top(lowered),
        top(raw_name),
    )


def field_value(field: TemplateField, certificate: Certificate) -> str:
    """Resolve the display value of a generic field."""
    lowered = field.name.lower()
    for rule in FIELD_VALUE_RULES:
        if rule.matches(lowered):
            value: Any = first_value(certificate, rule.accessors)
            if value:
                return str(value)
            return rule.default() if callable(rule.default) else rule.default
    value = first_value(certificate, _probe_accessors(field.name))
    return str(value) if value else field.name


def field_node(field: TemplateField, value: str) -> TextNode:
    return TextNode(
        css_class="field",
        text=value,
        left=field.x,
        top=field.y,
        font_size=field.font_size or DEFAULT_FIELD_FONT_SIZE,
        font_family=field.font_family or DEFAULT_FONT_FAMILY,
        color=field.color or DEFAULT_FIELD_COLOR,
        align=field.alignment or "center",
        underline=field.underline,
        transform=CENTER_TRANSFORM,
    )


def render_fields(
    template: CertificateTemplate,
    certificate: Certificate,
    plan: FieldPlan | None = None,
) -> list[TextNode]:
    plan = plan or plan_fields(template.fields)
    return [field_node(f, field_value(f, certificate)) for f in plan.generic_fields]

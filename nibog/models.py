from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

# Top-level certificate columns the lookup service returns.
CERTIFICATE_COLUMNS = (
    "child_name",
    "parent_name",
    "event_title",
    "event_date",
    "venue_name",
    "city_name",
    "certificate_number",
    "game_name",
    "generated_at",
)


class TemplateShapeError(ValueError):
    """Raised when a template payload cannot be rendered as given."""


def _blank_to_none(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str) and value.strip().lower() in {"", "null"}:
        return None
    return value


def _as_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class TemplateField:
    name: str
    x: float = 50.0
    y: float = 50.0
    font_size: int | None = None
    font_family: str | None = None
    color: str | None = None
    alignment: str | None = None
    underline: bool = False

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "TemplateField":
        if not isinstance(raw, Mapping):
            raise TemplateShapeError(f"Template field must be an object, got {type(raw).__name__}")
        name = raw.get("name")
        if not isinstance(name, str):
            raise TemplateShapeError(f"Template field name must be a string, got {name!r}")
        alignment = raw.get("alignment")
        if alignment not in {"left", "center", "right"}:
            alignment = None
        return cls(
            name=name,
            x=_as_float(raw.get("x"), 50.0),
            y=_as_float(raw.get("y"), 50.0),
            font_size=_as_int(raw.get("font_size")),
            font_family=raw.get("font_family") or None,
            color=raw.get("color") or None,
            alignment=alignment,
            underline=bool(raw.get("underline")),
        )


@dataclass(frozen=True)
class BackgroundStyle:
    type: str | None = None
    image_url: str | None = None
    solid_color: str | None = None
    gradient_colors: tuple[str, ...] = ()
    border_enabled: bool = False
    border_width: int | None = None
    border_style: str | None = None
    border_color: str | None = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any] | None) -> "BackgroundStyle | None":
        if not isinstance(raw, Mapping):
            return None
        colors = raw.get("gradient_colors")
        if isinstance(colors, (list, tuple)):
            gradient = tuple(str(c) for c in colors if c)
        else:
            gradient = ()
        return cls(
            type=raw.get("type") or None,
            image_url=_blank_to_none(raw.get("image_url")),
            solid_color=raw.get("solid_color") or None,
            gradient_colors=gradient,
            border_enabled=bool(raw.get("border_enabled")),
            border_width=_as_int(raw.get("border_width")),
            border_style=raw.get("border_style") or None,
            border_color=raw.get("border_color") or None,
        )


@dataclass(frozen=True)
class CertificateTemplate:
    name: str = ""
    type: str = ""
    paper_size: str = "a4"
    orientation: str = "portrait"
    fields: tuple[TemplateField, ...] = ()
    background_style: BackgroundStyle | None = None
    background_image: str | None = None
    certificate_title: str | None = None
    appreciation_text: str | None = None
    id: int | None = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "CertificateTemplate":
        if not isinstance(raw, Mapping):
            raise TemplateShapeError("Certificate template must be an object")
        raw_fields = raw.get("fields")
        if raw_fields is None:
            raw_fields = []
        if not isinstance(raw_fields, (list, tuple)):
            raise TemplateShapeError(
                f"Template fields must be a list, got {type(raw_fields).__name__}"
            )
        return cls(
            id=_as_int(raw.get("id")),
            name=str(raw.get("name") or ""),
            type=str(raw.get("type") or ""),
            paper_size=str(raw.get("paper_size") or "").lower(),
            orientation=str(raw.get("orientation") or "portrait").lower(),
            fields=tuple(TemplateField.from_dict(item) for item in raw_fields),
            background_style=BackgroundStyle.from_dict(raw.get("background_style")),
            background_image=_blank_to_none(raw.get("background_image")),
            certificate_title=raw.get("certificate_title") or None,
            appreciation_text=raw.get("appreciation_text") or None,
        )


@dataclass(frozen=True)
class Certificate:
    child_name: Any = None
    parent_name: Any = None
    event_title: Any = None
    event_date: Any = None
    venue_name: Any = None
    city_name: Any = None
    certificate_number: Any = None
    game_name: Any = None
    generated_at: Any = None
    certificate_data: Mapping[str, Any] = field(default_factory=dict)
    extra: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any] | None) -> "Certificate":
        if not isinstance(raw, Mapping):
            return cls()
        data = raw.get("certificate_data")
        if not isinstance(data, Mapping):
            data = {}
        known = {key: raw.get(key) for key in CERTIFICATE_COLUMNS}
        extra = {
            key: value
            for key, value in raw.items()
            if key not in CERTIFICATE_COLUMNS and key != "certificate_data"
        }
        return cls(certificate_data=dict(data), extra=extra, **known)

    def get(self, key: str) -> Any:
        if key in CERTIFICATE_COLUMNS:
            return getattr(self, key)
        return self.extra.get(key)

    def data(self, key: str) -> Any:
        return self.certificate_data.get(key)

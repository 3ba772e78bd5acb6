"""Placeholder substitution for certificate titles and appreciation text.

Placeholders look like ``{participant_name}`` and match case-insensitively.
Each known variable resolves through an ordered chain of accessors; the first
non-empty value wins, otherwise the variable's default is used. Unknown
placeholders are left in the text untouched.
"""

from __future__ import annotations

import re
from typing import Any, Callable, NamedTuple

from ..models import Certificate
from .time import fmt_locale_date, parse_datetime, today

Accessor = Callable[[Certificate], Any]

PLACEHOLDER_RE = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


def top(key: str) -> Accessor:
    return lambda certificate: certificate.get(key)


def data(key: str) -> Accessor:
    return lambda certificate: certificate.data(key)


def locale_date(key: str) -> Accessor:
    def _read(certificate: Certificate) -> str | None:
        parsed = parse_datetime(certificate.get(key))
        return fmt_locale_date(parsed) if parsed else None

    return _read


def current_date() -> str:
    return fmt_locale_date(today())


class VariableRule(NamedTuple):
    accessors: tuple[Accessor, ...]
    default: str | Callable[[], str] = ""


VARIABLE_RULES: dict[str, VariableRule] = {
    "participant_name": VariableRule(
        (top("child_name"), data("participant_name"), top("parent_name")),
        "Participant",
    ),
    "child_name": VariableRule((top("child_name"), data("participant_name"))),
    "event_name": VariableRule((data("event_name"), top("event_title")), "Event"),
    "game_name": VariableRule((top("game_name"), data("game_name"))),
    "venue_name": VariableRule((data("venue_name"), top("venue_name"))),
    "city_name": VariableRule((data("city_name"), top("city_name"))),
    "certificate_number": VariableRule(
        (data("certificate_number"), top("certificate_number"))
    ),
    "event_date": VariableRule((top("event_date"), data("event_date")), current_date),
    "date": VariableRule((locale_date("generated_at"),), current_date),
    "generated_at": VariableRule((locale_date("generated_at"),), current_date),
    "position": VariableRule((data("position"), data("rank")), "1st Place"),
    "score": VariableRule((data("score"), data("points"))),
    "achievement": VariableRule(
        (data("achievement"), data("award")), "Outstanding Performance"
    ),
    "instructor": VariableRule((data("instructor"), data("teacher"))),
    "organization": VariableRule((data("organization"),), "Nibog Events"),
}


def first_value(certificate: Certificate, accessors: tuple[Accessor, ...]) -> Any:
    for accessor in accessors:
        value = accessor(certificate)
        if value:
            return value
    return None


def resolve_variable(name: str, certificate: Certificate) -> str | None:
    """Resolve one known variable, or None when the name is not in the table."""
    rule = VARIABLE_RULES.get(name.lower())
    if rule is None:
        return None
    value = first_value(certificate, rule.accessors)
    if value:
        return str(value)
    return rule.default() if callable(rule.default) else rule.default


def resolve(text: str | None, certificate: Certificate) -> str:
    if not text:
        return text or ""

    def _replace(match: re.Match) -> str:
        value = resolve_variable(match.group(1), certificate)
        return match.group(0) if value is None else value

    return PLACEHOLDER_RE.sub(_replace, text)

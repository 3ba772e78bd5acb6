import re
from datetime import date, datetime

# fromisoformat before 3.11 wants six fraction digits and a colon in the offset.
_ISO_RE = re.compile(
    r"^(?P<head>\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}(?::\d{2})?)"
    r"(?:[.,](?P<frac>\d+))?"
    r"(?:(?P<sign>[+-])(?P<hh>\d{2})(?::?(?P<mm>\d{2}))?)?$"
)


def today() -> date:
    """Return the current local date."""
    return date.today()


def _normalize_iso(text: str) -> str:
    match = _ISO_RE.match(text)
    if match is None:
        return text
    out = match["head"]
    if match["frac"]:
        out += "." + match["frac"][:6].ljust(6, "0")
    if match["sign"]:
        out += f"{match['sign']}{match['hh']}:{match['mm'] or '00'}"
    return out


def parse_datetime(value: datetime | date | str | None) -> datetime | None:
    """Parse ISO strings (with or without a trailing Z) into datetimes."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(_normalize_iso(text))
    except ValueError:
        return None


def fmt_locale_date(value: datetime | date | None) -> str:
    """Short en-US form, M/D/YYYY."""
    if not value:
        return ""
    return f"{value.month}/{value.day}/{value.year}"


def fmt_long_date(value: datetime | date | None) -> str:
    """Long en-US form, e.g. March 5, 2025."""
    if not value:
        return ""
    return f"{value.strftime('%B')} {value.day}, {value.year}"

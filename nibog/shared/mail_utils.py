"""Mail helper utilities."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from email.utils import formataddr, parseaddr
from typing import NamedTuple

logger = logging.getLogger("nibog.mailer")

_SPLIT_RE = re.compile(r"[;,]")
_INLINE_PNG_SRC_RE = re.compile(r'src="data:image/png;base64,[^"]*"')


class Recipients(NamedTuple):
    envelope: list[str]
    header: str


def _looks_deliverable(address: str) -> bool:
    local, _, domain = address.rpartition("@")
    return bool(local) and "." in domain


def parse_recipients(to: Sequence[str] | str | None) -> Recipients:
    """Turn a request's ``to`` value into SMTP recipients.

    Accepts a comma or semicolon separated string or a list, with optional
    display names (``Parent <p@x.com>``). Addresses are de-duplicated
    case-insensitively; the first spelling and display name win.
    """
    if not to:
        return Recipients([], "")
    values = [to] if isinstance(to, str) else [str(item) for item in to if item]
    tokens = [token.strip() for value in values for token in _SPLIT_RE.split(value)]

    seen: set[str] = set()
    envelope: list[str] = []
    display: list[str] = []
    for token in filter(None, tokens):
        name, address = parseaddr(token)
        if not _looks_deliverable(address):
            logger.warning("[MAIL-INVALID-RECIPIENT] token=%s", token)
            continue
        if address.lower() in seen:
            continue
        seen.add(address.lower())
        envelope.append(address)
        display.append(formataddr((name, address)))

    return Recipients(envelope, ", ".join(display))


def inline_qr_cid(html: str, cid: str = "qrcode") -> str:
    """Point embedded PNG data URIs at an attached image instead."""
    return _INLINE_PNG_SRC_RE.sub(f'src="cid:{cid}"', html or "")


def format_sender(name: str | None, address: str) -> str:
    return f'"{name}" <{address}>' if name else address

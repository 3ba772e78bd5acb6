from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from io import BytesIO
from typing import Any, Mapping, Sequence

from PIL import Image
from reportlab.lib.colors import Color
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from ..shared.time import fmt_long_date, parse_datetime

logger = logging.getLogger("nibog.tickets")

DEFAULT_SITE_URL = "nibog.in"
ADDRESS_WRAP_CHARS = 30

CARD_WIDTH = 550
CARD_HEIGHT = 380
CARD_TOP = 100
HEADER_HEIGHT = 60
QR_SIZE = 140
ROW_GAP = 55

HEADER_BLUE = (18, 35, 58)
CARD_EDGE = (229, 231, 235)
LABEL_GREY = (150, 150, 150)
VALUE_DARK = (50, 50, 50)
MUTED_GREY = (120, 120, 120)
TIME_GREEN = (34, 197, 94)
THANKS_GREEN = (39, 199, 90)
LINK_BLUE = (59, 130, 246)
SEPARATOR_GREY = (220, 220, 220)
PLACEHOLDER_FILL = (240, 240, 240)


def _rgb(triple: tuple[int, int, int]) -> Color:
    red, green, blue = triple
    return Color(red / 255.0, green / 255.0, blue / 255.0)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


@dataclass
class TicketData:
    event_title: str = "NIBOG Event"
    event_date: str = "Event Date"
    child_name: str = "Participant"
    parent_name: str = "Valued Customer"
    event_venue: str = "Event Venue"
    venue_address: str = ""
    game_name: str = "Event Games"
    game_description: str = ""
    game_price: float = 0.0
    start_time: str = ""
    end_time: str = ""
    slot_timing: str = ""
    security_code: str = "000"
    missing_fields: list[str] = field(default_factory=list)

    @property
    def formatted_price(self) -> str:
        return f"Rs. {self.game_price:.2f}"

    @property
    def has_complete_data(self) -> bool:
        return not self.missing_fields

    @property
    def address_lines(self) -> list[str]:
        if not self.venue_address:
            return []
        if len(self.venue_address) <= ADDRESS_WRAP_CHARS:
            return [self.venue_address]
        return [
            self.venue_address[:ADDRESS_WRAP_CHARS],
            self.venue_address[ADDRESS_WRAP_CHARS:],
        ]


def _first_ticket(ticket_details: Any) -> Mapping[str, Any] | None:
    if isinstance(ticket_details, Mapping):
        return ticket_details or None
    if isinstance(ticket_details, Sequence) and not isinstance(ticket_details, (str, bytes)):
        if ticket_details and isinstance(ticket_details[0], Mapping):
            return ticket_details[0]
    return None


def _first_text(ticket: Mapping[str, Any], *keys: str) -> str:
    for key in keys:
        value = _text(ticket.get(key))
        if value:
            return value
    return ""


def _price(ticket: Mapping[str, Any]) -> float:
    for key in ("custom_price", "slot_price", "game_price"):
        raw = ticket.get(key)
        if raw in (None, "", 0):
            continue
        try:
            price = float(raw)
        except (TypeError, ValueError):
            return 0.0
        return price if math.isfinite(price) else 0.0
    return 0.0


def validate_ticket_data(ticket_details: Any, booking_ref: str | None = None) -> TicketData:
    """Fill every ticket field, recording which source fields were missing.

    Only the first record of a list is used. Never raises.
    """
    data = TicketData()
    ticket = _first_ticket(ticket_details)
    if ticket is None:
        data.missing_fields.append("ticketDetails")
        return data

    title = _text(ticket.get("event_title"))
    if title:
        data.event_title = title
    else:
        data.missing_fields.append("event_title")

    raw_date = ticket.get("event_date")
    if raw_date:
        parsed = parse_datetime(raw_date)
        if parsed is not None:
            data.event_date = fmt_long_date(parsed)
        else:
            data.missing_fields.append("valid_event_date")
    else:
        data.missing_fields.append("event_date")

    data.child_name = _text(ticket.get("child_name")) or data.child_name
    data.parent_name = _first_text(ticket, "parent_name", "user_full_name") or data.parent_name
    data.event_venue = _text(ticket.get("venue_name")) or data.event_venue
    data.venue_address = ", ".join(
        part
        for part in (_text(ticket.get(key)) for key in ("venue_address", "city_name", "state"))
        if part
    )

    data.game_name = _first_text(ticket, "custom_title", "slot_title", "game_name") or data.game_name
    data.game_description = _first_text(
        ticket, "custom_description", "slot_description", "game_description"
    )
    data.game_price = _price(ticket)

    start, end = _text(ticket.get("start_time")), _text(ticket.get("end_time"))
    if start and end:
        data.start_time, data.end_time = start, end
        data.slot_timing = f"{start} - {end}"

    if ticket.get("booking_id"):
        data.security_code = str(ticket["booking_id"])
    elif _text(ticket.get("security_code")):
        data.security_code = _text(ticket.get("security_code"))
    elif booking_ref:
        data.security_code = booking_ref
    return data


def ticket_number(data: TicketData, booking_ref: str | None) -> str:
    return booking_ref or f"PPT{data.security_code}"


def spaced_game_name(name: str) -> str:
    """GAME NAME -> 'G A M E   N A M E'."""
    return "   ".join(" ".join(word) for word in name.upper().split(" "))


def _load_qr(qr_png: bytes | None) -> ImageReader | None:
    if not qr_png:
        return None
    try:
        with Image.open(BytesIO(qr_png)) as img:
            return ImageReader(img.convert("RGB"))
    except (OSError, ValueError):
        logger.warning("[TICKET-PDF] QR image could not be decoded; drawing placeholder")
        return None


class _Card:
    """Top-down drawing helpers for the ticket card."""

    def __init__(self, c: canvas.Canvas, page_height: float):
        self.c = c
        self.page_height = page_height

    def y(self, top: float) -> float:
        return self.page_height - top

    def text(self, value: str, x: float, top: float, *, size: float, color, bold=False, align="left"):
        self.c.setFont("Helvetica-Bold" if bold else "Helvetica", size)
        self.c.setFillColor(_rgb(color))
        if align == "center":
            self.c.drawCentredString(x, self.y(top), value)
        else:
            self.c.drawString(x, self.y(top), value)

    def label(self, caption: str, value: str, x: float, top: float) -> None:
        self.text(caption, x, top, size=10, color=LABEL_GREY)
        self.text(value, x, top + 18, size=11, color=VALUE_DARK, bold=True)


def _draw_ticket(
    c: canvas.Canvas,
    data: TicketData,
    qr_image: ImageReader | None,
    booking_ref: str | None,
    site_url: str,
) -> None:
    page_width, page_height = A4
    card_x = (page_width - CARD_WIDTH) / 2
    card_y = CARD_TOP
    card = _Card(c, page_height)
    center_x = card_x + CARD_WIDTH / 2

    c.setFillColor(_rgb((255, 255, 255)))
    c.setStrokeColor(_rgb(CARD_EDGE))
    c.setLineWidth(1)
    c.roundRect(card_x, card.y(card_y + CARD_HEIGHT), CARD_WIDTH, CARD_HEIGHT, 3, stroke=1, fill=1)

    c.setFillColor(_rgb(HEADER_BLUE))
    c.rect(card_x, card.y(card_y + HEADER_HEIGHT), CARD_WIDTH, HEADER_HEIGHT, stroke=0, fill=1)
    card.text(data.event_title.upper(), center_x, card_y + 30, size=16, color=(255, 255, 255), bold=True, align="center")
    card.text(data.event_date, center_x, card_y + 48, size=12, color=(255, 255, 255), bold=True, align="center")

    content_top = card_y + HEADER_HEIGHT
    qr_x = card_x + 30
    qr_top = content_top + 30
    if qr_image is not None:
        c.drawImage(qr_image, qr_x, card.y(qr_top + QR_SIZE), QR_SIZE, QR_SIZE)
    else:
        c.setFillColor(_rgb(PLACEHOLDER_FILL))
        c.roundRect(qr_x, card.y(qr_top + QR_SIZE), QR_SIZE, QR_SIZE, 5, stroke=0, fill=1)
        card.text("QR CODE", qr_x + QR_SIZE / 2, qr_top + QR_SIZE / 2, size=14, color=LABEL_GREY, align="center")
    card.text(
        "Check in for this event",
        qr_x + QR_SIZE / 2,
        qr_top + QR_SIZE + 15,
        size=10,
        color=MUTED_GREY,
        align="center",
    )

    right_x = card_x + QR_SIZE + 70
    column_x = right_x + (CARD_WIDTH - QR_SIZE - 100) / 2

    row = content_top + 30
    card.label("TICKET #", ticket_number(data, booking_ref), right_x, row)
    card.label("GAMES", spaced_game_name(data.game_name), column_x, row)
    timing = data.slot_timing or f"{data.start_time} - {data.end_time}"
    card.text(timing, column_x, row + 32, size=9, color=TIME_GREEN, bold=True)

    row += ROW_GAP
    card.label("PARTICIPANT", data.child_name, right_x, row)
    card.label("PRICE", data.formatted_price, column_x, row)

    row += ROW_GAP
    card.label("VENUE", data.event_venue, right_x, row)
    for index, line in enumerate(data.address_lines):
        card.text(line, right_x, row + 32 + index * 12, size=9, color=MUTED_GREY)
    card.label("SECURITY CODE", data.security_code, column_x, row)

    footer_top = card_y + CARD_HEIGHT - 70
    c.saveState()
    c.setStrokeColor(_rgb(SEPARATOR_GREY))
    c.setDash(1, 1)
    c.line(card_x + 50, card.y(footer_top), card_x + CARD_WIDTH - 50, card.y(footer_top))
    c.restoreState()

    org_name = data.event_title.split(" ")[0] or "NIBOG"
    card.text(site_url, center_x, footer_top + 20, size=10, color=LINK_BLUE, align="center")
    card.text(f"Thank you for choosing {org_name}!", center_x, footer_top + 40, size=12, color=THANKS_GREEN, bold=True, align="center")
    card.text("We can't wait to see you at the event!", center_x, footer_top + 55, size=10, color=LABEL_GREY, align="center")


def fallback_ticket_pdf(booking_ref: str | None) -> bytes:
    """Minimal page used when the full ticket cannot be drawn."""
    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4
    c.setFont("Helvetica-Bold", 20)
    c.drawCentredString(width / 2, height - 85, "NIBOG Event Ticket")
    c.setFont("Helvetica", 14)
    c.drawCentredString(width / 2, height - 142, f"Booking Reference: {booking_ref or ''}")
    c.setFont("Helvetica", 12)
    c.drawCentredString(width / 2, height - 198, "Your ticket details are available in the email content.")
    c.drawCentredString(width / 2, height - 241, "Please show this PDF or the email at the venue.")
    c.showPage()
    c.save()
    return buffer.getvalue()


def compose_ticket_pdf(
    ticket_details: Any,
    qr_png: bytes | None,
    booking_ref: str | None,
    *,
    site_url: str = DEFAULT_SITE_URL,
) -> bytes:
    """Render the one-page ticket; falls back to a minimal page on any drawing error."""
    data = validate_ticket_data(ticket_details, booking_ref)
    if data.missing_fields:
        logger.info(
            "[TICKET-PDF] booking=%s defaults used for %s",
            booking_ref,
            ",".join(data.missing_fields),
        )
    try:
        buffer = BytesIO()
        c = canvas.Canvas(buffer, pagesize=A4)
        _draw_ticket(c, data, _load_qr(qr_png), booking_ref, site_url)
        c.showPage()
        c.save()
        pdf = buffer.getvalue()
    except Exception:
        logger.exception("[TICKET-PDF] drawing failed for booking=%s; using fallback", booking_ref)
        return fallback_ticket_pdf(booking_ref)
    logger.info("[TICKET-PDF] booking=%s bytes=%d", booking_ref, len(pdf))
    return pdf

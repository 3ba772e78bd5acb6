from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from .. import emailer
from ..emailer import Attachment, SmtpSettings
from ..services.ticket_pdf import compose_ticket_pdf
from ..shared.mail_utils import inline_qr_cid

bp = Blueprint("tickets", __name__, url_prefix="/api")

QR_CID = "qrcode"


def _qr_bytes(raw) -> bytes | None:
    """QR codes arrive as a JSON array of byte values."""
    if not isinstance(raw, list) or not raw:
        return None
    try:
        return bytes(raw)
    except (TypeError, ValueError):
        current_app.logger.warning("[MAIL-OUT] qrCodeBuffer is not a byte array; skipping")
        return None


@bp.post("/send-ticket-email-with-attachment")
def send_ticket_email():
    try:
        payload = request.get_json(force=True) or {}
    except Exception:
        return jsonify({"error": "Invalid request payload."}), 400
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid request payload."}), 400

    to = payload.get("to")
    subject = payload.get("subject")
    html = payload.get("html")
    settings_raw = payload.get("settings")
    if not to or not subject or not html or not settings_raw:
        return jsonify({"error": "Missing required fields"}), 400

    booking_ref = payload.get("bookingRef") or None
    ticket_details = payload.get("ticketDetails")
    qr_png = _qr_bytes(payload.get("qrCodeBuffer"))
    current_app.logger.info(
        "[MAIL-OUT] ticket email to=%s booking=%s details=%s",
        to,
        booking_ref,
        len(ticket_details) if isinstance(ticket_details, list) else 0,
    )

    try:
        attachments: list[Attachment] = []
        try:
            pdf_bytes = compose_ticket_pdf(
                ticket_details,
                qr_png,
                booking_ref,
                site_url=current_app.config["TICKET_SITE_URL"],
            )
        except Exception:
            current_app.logger.exception("[TICKET-PDF] ticket PDF unavailable; sending without it")
        else:
            attachments.append(
                Attachment(
                    filename=f"NIBOG_Ticket_{booking_ref or 'ticket'}.pdf",
                    content=pdf_bytes,
                    mime_type="application/pdf",
                )
            )
        if qr_png is not None:
            attachments.append(
                Attachment(
                    filename=f"ticket-qr-{booking_ref or 'code'}.png",
                    content=qr_png,
                    mime_type="image/png",
                    cid=QR_CID,
                )
            )

        result = emailer.send(
            SmtpSettings.from_dict(settings_raw if isinstance(settings_raw, dict) else {}),
            to,
            subject,
            inline_qr_cid(html, QR_CID),
            attachments,
        )
    except Exception as exc:
        current_app.logger.exception("[MAIL-OUT] ticket email failed")
        return jsonify({"error": str(exc) or "Failed to send ticket email"}), 500

    if not result["ok"]:
        if result["stage"] == "connect":
            return jsonify({"error": "Email server configuration error"}), 500
        return jsonify({"error": result["detail"] or "Failed to send ticket email"}), 500

    return jsonify(
        {
            "success": True,
            "message": "Ticket email sent successfully with PDF ticket and QR code attachments",
            "messageId": result["message_id"],
            "attachments": len(attachments),
        }
    )

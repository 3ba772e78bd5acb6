import json
import logging
import smtplib
import sys
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Any, Mapping, NamedTuple, Sequence

from .shared.mail_utils import format_sender, parse_recipients

logger = logging.getLogger("nibog.mailer")
if not logger.handlers:
    handler = logging.StreamHandler(sys.stdout)
    logger.addHandler(handler)
logger.setLevel(logging.INFO)


@dataclass(frozen=True)
class SmtpSettings:
    host: str | None
    port: int | None
    username: str | None = None
    password: str | None = None
    sender_email: str | None = None
    sender_name: str | None = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any] | None) -> "SmtpSettings":
        raw = raw or {}
        try:
            port = int(raw.get("smtp_port")) if raw.get("smtp_port") else None
        except (TypeError, ValueError):
            port = None
        return cls(
            host=raw.get("smtp_host") or None,
            port=port,
            username=raw.get("smtp_username") or None,
            password=raw.get("smtp_password") or None,
            sender_email=raw.get("sender_email") or None,
            sender_name=raw.get("sender_name") or None,
        )


class Attachment(NamedTuple):
    filename: str
    content: bytes
    mime_type: str
    cid: str | None = None


def _stringify_envelope(recipients: Sequence[str]) -> str:
    return json.dumps(list(recipients))


def _connect(settings: SmtpSettings) -> smtplib.SMTP:
    if settings.port == 465:
        server = smtplib.SMTP_SSL(settings.host, settings.port)
    else:
        server = smtplib.SMTP(settings.host, settings.port)
    try:
        if settings.port == 587:
            server.starttls()
        if settings.username and settings.password:
            server.login(settings.username, settings.password)
    except (smtplib.SMTPException, OSError):
        server.close()
        raise
    return server


def _disconnect(server: smtplib.SMTP) -> None:
    try:
        server.quit()
    except (smtplib.SMTPException, OSError) as e:
        logger.info("[MAIL-OUT] quit failed; closing socket: %s", e)
    finally:
        server.close()


def build_message(
    settings: SmtpSettings,
    header: str,
    subject: str,
    html: str,
    attachments: Sequence[Attachment] = (),
) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["To"] = header
    msg["From"] = format_sender(settings.sender_name, settings.sender_email)
    domain = settings.sender_email.split("@")[-1] if settings.sender_email else None
    msg["Message-ID"] = make_msgid(domain=domain)
    msg.set_content(html, subtype="html")
    # Inline parts must join the related body before the message turns mixed.
    for item in attachments:
        if item.cid:
            maintype, subtype = item.mime_type.split("/", 1)
            msg.add_related(
                item.content,
                maintype=maintype,
                subtype=subtype,
                cid=f"<{item.cid}>",
                filename=item.filename,
                disposition="inline",
            )
    for item in attachments:
        if not item.cid:
            maintype, subtype = item.mime_type.split("/", 1)
            msg.add_attachment(
                item.content, maintype=maintype, subtype=subtype, filename=item.filename
            )
    return msg


def send(
    settings: SmtpSettings,
    recipients: Sequence[str] | str | None,
    subject: str,
    html: str,
    attachments: Sequence[Attachment] = (),
):
    """Send one HTML message.

    Returns ``{"ok", "detail", "stage", "message_id"}``; ``stage`` is
    ``"connect"`` when the server could not be reached or refused the login.
    """
    envelope, header = parse_recipients(recipients)
    host = settings.host
    if not host or not settings.port or not settings.sender_email:
        logger.info(
            "[MAIL-OUT] mode=stub to_header=%s envelope=%s subject=\"%s\" host=%s result=stub",
            header,
            _stringify_envelope(envelope),
            subject,
            host,
        )
        return {"ok": False, "detail": "stub: missing config", "stage": "connect", "message_id": None}

    if not envelope:
        logger.warning("[MAIL-NO-RECIPIENTS] subject=\"%s\" host=%s", subject, host)
        return {"ok": False, "detail": "no valid recipients", "stage": "send", "message_id": None}

    msg = build_message(settings, header, subject, html, attachments)
    try:
        server = _connect(settings)
    except (smtplib.SMTPException, OSError) as e:
        logger.info(
            "[MAIL-OUT] mode=real to_header=%s subject=\"%s\" host=%s result=connect-failed %s",
            header,
            subject,
            host,
            e,
        )
        return {"ok": False, "detail": str(e), "stage": "connect", "message_id": None}

    try:
        server.sendmail(settings.sender_email, envelope, msg.as_string())
    except (smtplib.SMTPException, OSError) as e:
        logger.info(
            "[MAIL-OUT] mode=real to_header=%s envelope=%s subject=\"%s\" host=%s result=%s",
            header,
            _stringify_envelope(envelope),
            subject,
            host,
            e,
        )
        return {"ok": False, "detail": str(e), "stage": "send", "message_id": msg["Message-ID"]}
    finally:
        _disconnect(server)

    logger.info(
        "[MAIL-OUT] mode=real to_header=%s envelope=%s subject=\"%s\" host=%s attachments=%d result=sent",
        header,
        _stringify_envelope(envelope),
        subject,
        host,
        len(attachments),
    )
    return {"ok": True, "detail": "sent", "stage": "send", "message_id": msg["Message-ID"]}

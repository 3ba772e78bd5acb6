import email
import smtplib
from email import policy

import pytest

from nibog.routes import tickets as ticket_routes

SETTINGS = {
    "smtp_host": "smtp.test",
    "smtp_port": 587,
    "smtp_username": "mailer",
    "smtp_password": "secret",
    "sender_name": "NIBOG",
    "sender_email": "tickets@nibog.test",
}


class FakeSMTP:
    instances: list["FakeSMTP"] = []
    fail_login = False
    fail_send = False

    def __init__(self, host, port):
        self.host = host
        self.port = port
        self.started_tls = False
        self.sent = []
        self.quit_called = False
        self.closed = False
        FakeSMTP.instances.append(self)

    def starttls(self):
        self.started_tls = True

    def login(self, user, password):
        if FakeSMTP.fail_login:
            raise smtplib.SMTPAuthenticationError(535, b"bad credentials")

    def sendmail(self, from_addr, to_addrs, msg):
        if FakeSMTP.fail_send:
            raise smtplib.SMTPDataError(554, b"rejected")
        self.sent.append((from_addr, to_addrs, msg))

    def quit(self):
        self.quit_called = True

    def close(self):
        self.closed = True


@pytest.fixture
def smtp(monkeypatch):
    FakeSMTP.instances = []
    FakeSMTP.fail_login = False
    FakeSMTP.fail_send = False
    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


def _payload(png_bytes, **overrides):
    body = {
        "to": "parent@example.com",
        "subject": "Your NIBOG ticket",
        "html": '<p>Hi</p><img src="data:image/png;base64,placeholder" alt="QR">',
        "settings": SETTINGS,
        "qrCodeBuffer": list(png_bytes()),
        "bookingRef": "PPT4821",
        "ticketDetails": [{"event_title": "NIBOG Baby Olympics", "child_name": "Aanya"}],
    }
    body.update(overrides)
    return body


@pytest.mark.smoke
def test_ticket_email_sent_with_attachments(client, smtp, png_bytes):
    resp = client.post("/api/send-ticket-email-with-attachment", json=_payload(png_bytes))
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["success"] is True
    assert data["attachments"] == 2
    assert data["messageId"].startswith("<")

    (server,) = smtp.instances
    assert (server.host, server.port, server.started_tls) == ("smtp.test", 587, True)
    from_addr, to_addrs, raw = server.sent[0]
    assert from_addr == "tickets@nibog.test"
    assert to_addrs == ["parent@example.com"]

    msg = email.message_from_string(raw, policy=policy.default)
    filenames = {part.get_filename() for part in msg.walk() if part.get_filename()}
    assert filenames == {"NIBOG_Ticket_PPT4821.pdf", "ticket-qr-PPT4821.png"}
    qr_part = next(p for p in msg.walk() if p.get_filename() == "ticket-qr-PPT4821.png")
    assert qr_part["Content-ID"] == "<qrcode>"
    html_part = msg.get_body(preferencelist=("html",))
    assert 'src="cid:qrcode"' in html_part.get_content()
    assert "data:image/png;base64" not in html_part.get_content()


@pytest.mark.parametrize("missing", ["to", "subject", "html", "settings"])
def test_required_fields(client, smtp, png_bytes, missing):
    body = _payload(png_bytes)
    body.pop(missing)
    resp = client.post("/api/send-ticket-email-with-attachment", json=body)
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "Missing required fields"}
    assert smtp.instances == []


def test_login_failure_is_configuration_error(client, smtp, png_bytes):
    smtp.fail_login = True
    resp = client.post("/api/send-ticket-email-with-attachment", json=_payload(png_bytes))
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Email server configuration error"}


def test_unreachable_server_is_configuration_error(client, monkeypatch, png_bytes):
    def refuse(host, port):
        raise ConnectionRefusedError("refused")

    monkeypatch.setattr(smtplib, "SMTP", refuse)
    resp = client.post("/api/send-ticket-email-with-attachment", json=_payload(png_bytes))
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Email server configuration error"}


def test_incomplete_settings_is_configuration_error(client, smtp, png_bytes):
    body = _payload(png_bytes, settings={"smtp_host": "smtp.test"})
    resp = client.post("/api/send-ticket-email-with-attachment", json=body)
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Email server configuration error"}


def test_send_failure_reports_error(client, smtp, png_bytes):
    smtp.fail_send = True
    resp = client.post("/api/send-ticket-email-with-attachment", json=_payload(png_bytes))
    assert resp.status_code == 500
    assert "554" in resp.get_json()["error"]


def test_email_still_sent_when_pdf_unavailable(client, smtp, png_bytes, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("no pdf today")

    monkeypatch.setattr(ticket_routes, "compose_ticket_pdf", broken)
    resp = client.post("/api/send-ticket-email-with-attachment", json=_payload(png_bytes))
    assert resp.status_code == 200
    assert resp.get_json()["attachments"] == 1


def test_without_qr_only_pdf_is_attached(client, smtp, png_bytes):
    body = _payload(png_bytes, qrCodeBuffer=None, bookingRef=None, ticketDetails=None)
    resp = client.post("/api/send-ticket-email-with-attachment", json=body)
    assert resp.status_code == 200
    assert resp.get_json()["attachments"] == 1
    raw = smtp.instances[0].sent[0][2]
    msg = email.message_from_string(raw, policy=policy.default)
    filenames = {part.get_filename() for part in msg.walk() if part.get_filename()}
    assert filenames == {"NIBOG_Ticket_ticket.pdf"}


def test_connection_closed_after_successful_send(client, smtp, png_bytes):
    client.post("/api/send-ticket-email-with-attachment", json=_payload(png_bytes))
    (server,) = smtp.instances
    assert server.quit_called
    assert server.closed


def test_connection_closed_when_login_fails(client, smtp, png_bytes):
    smtp.fail_login = True
    client.post("/api/send-ticket-email-with-attachment", json=_payload(png_bytes))
    (server,) = smtp.instances
    assert server.closed
    assert server.sent == []


def test_connection_closed_when_send_fails(client, smtp, png_bytes):
    smtp.fail_send = True
    client.post("/api/send-ticket-email-with-attachment", json=_payload(png_bytes))
    (server,) = smtp.instances
    assert server.closed

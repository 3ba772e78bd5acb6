from io import BytesIO

import pytest
from PyPDF2 import PdfReader

from nibog.routes import certificates as routes
from nibog.services.lookup import LookupServiceError, RecordNotFoundError

CERT_ROW = {
    "id": 12,
    "child_name": "Aanya",
    "event_title": "Baby Olympics",
    "certificate_data": {"event_name": "Baby Crawling Finals", "achievement": "1st Place"},
}

TEMPLATE = {
    "id": 3,
    "name": "Winner",
    "type": "winner",
    "paper_size": "a4",
    "orientation": "landscape",
    "fields": [{"name": "Participant Name", "x": 50, "y": 40}],
}


@pytest.fixture
def lookups(monkeypatch):
    calls = {}

    def fake_rows(certificate_id, **kwargs):
        calls["certificate"] = (certificate_id, kwargs)
        return [dict(CERT_ROW)]

    def fake_template(template_id, **kwargs):
        calls["template"] = (template_id, kwargs)
        return dict(TEMPLATE)

    monkeypatch.setattr(routes, "fetch_certificate_rows", fake_rows)
    monkeypatch.setattr(routes, "fetch_template", fake_template)
    return calls


@pytest.mark.smoke
def test_preview_returns_html(client, lookups):
    resp = client.post(
        "/api/certificates/preview-template", json={"certificate_id": 12, "template_id": 3}
    )
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["certificate_id"] == 12
    assert data["template_id"] == 3
    assert "Aanya" in data["html"]
    assert "For achieving 1st Place in Baby Crawling Finals." in data["html"]
    assert lookups["certificate"] == (
        12,
        {"base_url": "https://lookup.test/webhook", "timeout": 15.0},
    )


@pytest.mark.parametrize("body", [{}, {"certificate_id": 12}, {"template_id": 3}])
def test_preview_requires_both_ids(client, lookups, body):
    resp = client.post("/api/certificates/preview-template", json=body)
    assert resp.status_code == 400
    assert "required" in resp.get_json()["error"]


def test_preview_rejects_non_json(client):
    resp = client.post(
        "/api/certificates/preview-template", data="not json", content_type="application/json"
    )
    assert resp.status_code == 400


def test_certificate_lookup_failure(client, monkeypatch):
    def boom(*args, **kwargs):
        raise LookupServiceError("down")

    monkeypatch.setattr(routes, "fetch_certificate_rows", boom)
    resp = client.post(
        "/api/certificates/preview-template", json={"certificate_id": 1, "template_id": 2}
    )
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Failed to fetch certificate data"}


def test_certificate_not_found(client, monkeypatch):
    monkeypatch.setattr(routes, "fetch_certificate_rows", lambda *a, **k: [])
    resp = client.post(
        "/api/certificates/preview-template", json={"certificate_id": 1, "template_id": 2}
    )
    assert resp.status_code == 404
    assert resp.get_json() == {"error": "Certificate not found"}


def test_template_lookup_failure(client, monkeypatch):
    def missing(*args, **kwargs):
        raise RecordNotFoundError("no template")

    monkeypatch.setattr(routes, "fetch_certificate_rows", lambda *a, **k: [dict(CERT_ROW)])
    monkeypatch.setattr(routes, "fetch_template", missing)
    resp = client.post(
        "/api/certificates/preview-template", json={"certificate_id": 1, "template_id": 2}
    )
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Failed to fetch certificate template"}


def test_malformed_template_reports_details(client, monkeypatch):
    monkeypatch.setattr(routes, "fetch_certificate_rows", lambda *a, **k: [dict(CERT_ROW)])
    monkeypatch.setattr(
        routes, "fetch_template", lambda *a, **k: dict(TEMPLATE, fields="Participant Name")
    )
    resp = client.post(
        "/api/certificates/preview-template", json={"certificate_id": 1, "template_id": 2}
    )
    assert resp.status_code == 500
    data = resp.get_json()
    assert data["error"] == "Error generating certificate preview"
    assert "fields" in data["details"]


def test_download_returns_pdf(client, lookups):
    resp = client.post("/api/certificates/download", json={"certificate_id": 12, "template_id": 3})
    assert resp.status_code == 200
    assert resp.mimetype == "application/pdf"
    assert "certificate-12.pdf" in resp.headers["Content-Disposition"]
    text = PdfReader(BytesIO(resp.data)).pages[0].extract_text()
    assert "Aanya" in text
    assert "X-Render-Warnings" not in resp.headers


def test_download_reports_missing_background(client, lookups, monkeypatch):
    template = dict(TEMPLATE, background_style={"type": "image", "image_url": "/bg.png"})
    monkeypatch.setattr(routes, "fetch_template", lambda *a, **k: template)

    def unavailable(url, **kwargs):
        assert url == "https://assets.test/bg.png"
        raise LookupServiceError("404")

    monkeypatch.setattr(routes, "fetch_asset", unavailable)
    resp = client.post("/api/certificates/download", json={"certificate_id": 12, "template_id": 3})
    assert resp.status_code == 200
    assert "[pdf-bg]" in resp.headers["X-Render-Warnings"]


def test_download_shares_error_contract(client, monkeypatch):
    monkeypatch.setattr(routes, "fetch_certificate_rows", lambda *a, **k: [])
    resp = client.post("/api/certificates/download", json={"certificate_id": 1, "template_id": 2})
    assert resp.status_code == 404


def test_render_inline(client):
    resp = client.post(
        "/api/certificates/render",
        json={"template": TEMPLATE, "certificate": CERT_ROW},
    )
    assert resp.status_code == 200
    assert "Aanya" in resp.get_json()["html"]


@pytest.mark.parametrize(
    "body",
    [{}, {"template": "winner"}, {"template": dict(TEMPLATE, fields=[{"x": 1}])}],
)
def test_render_inline_rejects_bad_template(client, body):
    resp = client.post("/api/certificates/render", json=body)
    assert resp.status_code == 400


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.data == b"OK"

from __future__ import annotations

from flask import Blueprint, Response, current_app, jsonify, request

from ..models import Certificate, CertificateTemplate, TemplateShapeError
from ..services.certificate_composer import build_document
from ..services.certificate_pdf import render_certificate_pdf
from ..services.lookup import (
    LookupServiceError,
    fetch_asset,
    fetch_certificate_rows,
    fetch_template,
)
from ..shared.html import render_certificate_html

bp = Blueprint("certificates", __name__, url_prefix="/api/certificates")


def _json_payload() -> dict | None:
    try:
        payload = request.get_json(force=True)
    except Exception:
        return None
    return payload if isinstance(payload, dict) else None


def _lookup_kwargs() -> dict:
    return {
        "base_url": current_app.config["CERTIFICATE_API_BASE"],
        "timeout": current_app.config["LOOKUP_TIMEOUT"],
    }


def _load_sources():
    """Resolve the request ids into a template and a certificate.

    Returns ``(template, certificate, ids, None)`` or ``(None, None, ids, error_response)``.
    """
    payload = _json_payload()
    if payload is None:
        return None, None, (None, None), (jsonify({"error": "Invalid request payload."}), 400)
    certificate_id = payload.get("certificate_id")
    template_id = payload.get("template_id")
    ids = (certificate_id, template_id)
    if not certificate_id or not template_id:
        return None, None, ids, (
            jsonify({"error": "certificate_id and template_id are required"}),
            400,
        )

    current_app.logger.info(
        "[CERT-PREVIEW] certificate_id=%s template_id=%s", certificate_id, template_id
    )
    try:
        rows = fetch_certificate_rows(certificate_id, **_lookup_kwargs())
    except LookupServiceError:
        current_app.logger.exception("[CERT-PREVIEW] certificate lookup failed")
        return None, None, ids, (jsonify({"error": "Failed to fetch certificate data"}), 500)
    if not rows:
        return None, None, ids, (jsonify({"error": "Certificate not found"}), 404)

    try:
        template_payload = fetch_template(template_id, **_lookup_kwargs())
    except LookupServiceError:
        current_app.logger.exception("[CERT-PREVIEW] template lookup failed")
        return None, None, ids, (
            jsonify({"error": "Failed to fetch certificate template"}),
            500,
        )

    template = CertificateTemplate.from_dict(template_payload)
    return template, Certificate.from_dict(rows[0]), ids, None


@bp.post("/preview-template")
def preview_template():
    try:
        template, certificate, ids, error = _load_sources()
        if error is not None:
            return error
        document = build_document(
            template, certificate, asset_base_url=current_app.config["ASSET_BASE_URL"]
        )
        html = render_certificate_html(document)
    except Exception as exc:
        current_app.logger.exception("[CERT-PREVIEW] preview failed")
        return (
            jsonify({"error": "Error generating certificate preview", "details": str(exc)}),
            500,
        )
    certificate_id, template_id = ids
    return jsonify({"html": html, "certificate_id": certificate_id, "template_id": template_id})


@bp.post("/download")
def download_pdf():
    try:
        template, certificate, ids, error = _load_sources()
        if error is not None:
            return error
        document = build_document(
            template, certificate, asset_base_url=current_app.config["ASSET_BASE_URL"]
        )
        background_image = None
        if document.background is not None and document.background.kind == "image":
            try:
                background_image = fetch_asset(
                    document.background.image_url, timeout=current_app.config["LOOKUP_TIMEOUT"]
                )
            except LookupServiceError:
                current_app.logger.warning(
                    "[CERT-PREVIEW] background %s unavailable for PDF",
                    document.background.image_url,
                )
        result = render_certificate_pdf(document, background_image=background_image)
    except Exception as exc:
        current_app.logger.exception("[CERT-PREVIEW] PDF render failed")
        return (
            jsonify({"error": "Error generating certificate preview", "details": str(exc)}),
            500,
        )
    certificate_id, _ = ids
    response = Response(result.pdf_bytes, mimetype="application/pdf")
    response.headers["Content-Disposition"] = (
        f'attachment; filename="certificate-{certificate_id}.pdf"'
    )
    if result.warnings:
        response.headers["X-Render-Warnings"] = " | ".join(result.warnings)
    return response


@bp.post("/render")
def render_inline():
    payload = _json_payload()
    if payload is None or not isinstance(payload.get("template"), dict):
        return jsonify({"error": "template is required"}), 400
    try:
        template = CertificateTemplate.from_dict(payload["template"])
    except TemplateShapeError as exc:
        return jsonify({"error": "Invalid template", "details": str(exc)}), 400
    certificate = Certificate.from_dict(payload.get("certificate"))
    document = build_document(
        template, certificate, asset_base_url=current_app.config["ASSET_BASE_URL"]
    )
    return jsonify({"html": render_certificate_html(document)})

import json
import pathlib

import click
from flask import current_app
from flask.cli import FlaskGroup

from nibog.app import create_app
from nibog.models import Certificate, CertificateTemplate, TemplateShapeError
from nibog.services.certificate_composer import build_document
from nibog.services.certificate_pdf import render_certificate_pdf
from nibog.services.ticket_pdf import compose_ticket_pdf
from nibog.shared.html import render_certificate_html

cli = FlaskGroup(create_app=create_app)


def _read_json(path: str | None, default=None):
    if not path:
        return default
    try:
        return json.loads(pathlib.Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise click.BadParameter(f"{path}: {exc}")


@cli.command("render_certificate")
@click.option("--template", "template_path", required=True, type=click.Path(exists=True))
@click.option("--certificate", "certificate_path", required=True, type=click.Path(exists=True))
@click.option("--format", "fmt", type=click.Choice(["html", "pdf"]), default="html", show_default=True)
@click.option("--output", "output", type=click.Path(dir_okay=False))
def render_certificate(template_path: str, certificate_path: str, fmt: str, output: str | None):
    """Render a certificate from local template and certificate JSON files."""
    try:
        template = CertificateTemplate.from_dict(_read_json(template_path))
    except TemplateShapeError as exc:
        raise click.ClickException(f"Invalid template: {exc}")
    raw_certificate = _read_json(certificate_path)
    if isinstance(raw_certificate, list):
        raw_certificate = raw_certificate[0] if raw_certificate else {}
    document = build_document(
        template,
        Certificate.from_dict(raw_certificate),
        asset_base_url=current_app.config["ASSET_BASE_URL"],
    )

    if fmt == "pdf":
        if not output:
            raise click.UsageError("--output is required for PDF output")
        result = render_certificate_pdf(document)
        pathlib.Path(output).write_bytes(result.pdf_bytes)
        for warning in result.warnings:
            click.echo(warning, err=True)
        click.echo(output)
        return

    html = render_certificate_html(document)
    if output:
        pathlib.Path(output).write_text(html, encoding="utf-8")
        click.echo(output)
    else:
        click.echo(html)


@cli.command("render_ticket")
@click.option("--booking-ref", "booking_ref", required=True)
@click.option("--details", "details_path", type=click.Path(exists=True))
@click.option("--qr", "qr_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "output", required=True, type=click.Path(dir_okay=False))
def render_ticket(booking_ref: str, details_path: str | None, qr_path: str | None, output: str):
    """Write a ticket PDF for a booking."""
    details = _read_json(details_path)
    qr_png = pathlib.Path(qr_path).read_bytes() if qr_path else None
    pdf = compose_ticket_pdf(
        details, qr_png, booking_ref, site_url=current_app.config["TICKET_SITE_URL"]
    )
    pathlib.Path(output).write_bytes(pdf)
    current_app.logger.info("[TICKET-PDF] wrote %s (%d bytes)", output, len(pdf))
    click.echo(output)


if __name__ == "__main__":
    cli()

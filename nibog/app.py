import logging
import os

from flask import Flask

from .services.lookup import DEFAULT_API_BASE, DEFAULT_TIMEOUT
from .services.certificate_composer import DEFAULT_ASSET_BASE_URL
from .services.ticket_pdf import DEFAULT_SITE_URL


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logging.warning("%s=%r is not a number; using %s", name, raw, default)
        return default


def create_app():
    app = Flask(__name__, template_folder="templates")
    app.secret_key = os.getenv("SECRET_KEY", "dev")
    app.config["PREFERRED_URL_SCHEME"] = "https"
    app.config["MAX_CONTENT_LENGTH"] = 25 * 1024 * 1024

    app.config["CERTIFICATE_API_BASE"] = os.getenv("CERTIFICATE_API_BASE", DEFAULT_API_BASE)
    app.config["ASSET_BASE_URL"] = os.getenv("ASSET_BASE_URL", DEFAULT_ASSET_BASE_URL)
    app.config["LOOKUP_TIMEOUT"] = _float_env("LOOKUP_TIMEOUT", DEFAULT_TIMEOUT)
    app.config["TICKET_SITE_URL"] = os.getenv("TICKET_SITE_URL", DEFAULT_SITE_URL)

    @app.get("/health")
    def health():  # pragma: no cover - simple healthcheck
        return "OK", 200

    from .routes.certificates import bp as certificates_bp
    from .routes.tickets import bp as tickets_bp

    app.register_blueprint(certificates_bp)
    app.register_blueprint(tickets_bp)

    return app

"""Client for the remote certificate and template webhook API."""

from __future__ import annotations

import logging
from typing import Any

import requests

logger = logging.getLogger("nibog.lookup")

DEFAULT_API_BASE = "https://ai.alviongs.com/webhook/v1/nibog"
DEFAULT_TIMEOUT = 15


class LookupServiceError(RuntimeError):
    """The lookup service could not be reached or answered badly."""


class RecordNotFoundError(LookupServiceError):
    """The lookup service answered, but with no matching record."""


def _post(path: str, payload: dict[str, Any], *, base_url: str, timeout: float) -> Any:
    url = f"{base_url.rstrip('/')}/{path.lstrip('/')}"
    try:
        response = requests.post(url, json=payload, timeout=timeout)
    except requests.exceptions.RequestException as exc:
        logger.warning("[LOOKUP] POST %s failed: %s", url, exc)
        raise LookupServiceError(f"request to {path} failed: {exc}") from exc
    if not response.ok:
        logger.warning("[LOOKUP] POST %s status=%s", url, response.status_code)
        raise LookupServiceError(f"{path} returned HTTP {response.status_code}")
    try:
        return response.json()
    except ValueError as exc:
        logger.warning("[LOOKUP] POST %s returned non-JSON body", url)
        raise LookupServiceError(f"{path} returned an unreadable body") from exc


def fetch_certificate_rows(
    certificate_id: Any,
    *,
    base_url: str = DEFAULT_API_BASE,
    timeout: float = DEFAULT_TIMEOUT,
) -> list[dict[str, Any]]:
    """Return the certificate rows for ``certificate_id``; empty when unknown."""
    result = _post("certificates/get", {"id": certificate_id}, base_url=base_url, timeout=timeout)
    if not isinstance(result, list):
        return []
    return [row for row in result if isinstance(row, dict)]


def fetch_template(
    template_id: Any,
    *,
    base_url: str = DEFAULT_API_BASE,
    timeout: float = DEFAULT_TIMEOUT,
) -> dict[str, Any]:
    result = _post(
        "certificate-templates/get", {"id": template_id}, base_url=base_url, timeout=timeout
    )
    if isinstance(result, dict) and result:
        return result
    if isinstance(result, list) and result and isinstance(result[0], dict):
        return result[0]
    raise RecordNotFoundError(f"certificate template {template_id} not found")


def fetch_asset(url: str, *, timeout: float = DEFAULT_TIMEOUT) -> bytes:
    """Download a template asset such as a background image."""
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.RequestException as exc:
        logger.warning("[LOOKUP] GET %s failed: %s", url, exc)
        raise LookupServiceError(f"asset {url} unavailable: {exc}") from exc
    return response.content

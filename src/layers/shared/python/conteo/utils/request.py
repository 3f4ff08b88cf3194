"""Helpers for reading API Gateway proxy events."""

import base64
import binascii
import json
from typing import Any

import structlog

from conteo.models.pageview import GeoLocation
from conteo.utils.exceptions import ValidationError

logger = structlog.get_logger()

DEFAULT_CLIENT_IP = "127.0.0.1"

# Viewer geolocation headers forwarded by CloudFront in front of API Gateway
GEO_COUNTRY_HEADER = "CloudFront-Viewer-Country"
GEO_CITY_HEADER = "CloudFront-Viewer-City"
GEO_REGION_HEADER = "CloudFront-Viewer-Country-Region"


def get_header(event: dict, name: str) -> str | None:
    """Get a request header by name, case-insensitively.

    Args:
        event: API Gateway event dict.
        name: Header name.

    Returns:
        Header value or None if absent or blank.
    """
    headers = event.get("headers", {}) or {}
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value.strip() if isinstance(value, str) and value.strip() else None
    return None


def get_client_ip(event: dict) -> str:
    """Extract client IP from API Gateway event.

    Handles X-Forwarded-For header for requests behind CloudFront/ALB.

    Args:
        event: API Gateway event dict.

    Returns:
        Client IP address string.
    """
    forwarded_for = get_header(event, "X-Forwarded-For")
    if forwarded_for:
        # Take the first IP (original client)
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = get_header(event, "X-Real-IP")
    if real_ip:
        return real_ip

    request_context = event.get("requestContext", {}) or {}
    identity = request_context.get("identity", {}) or {}
    return identity.get("sourceIp") or DEFAULT_CLIENT_IP


def get_request_origin(event: dict) -> str | None:
    """Get the page URL the request claims to come from (Referer, then Origin)."""
    return get_header(event, "Referer") or get_header(event, "Origin")


def get_geo(event: dict) -> GeoLocation:
    """Resolve viewer geolocation from edge headers.

    Geolocation is best-effort; any field the edge did not provide is None.
    """
    return GeoLocation(
        country=get_header(event, GEO_COUNTRY_HEADER),
        city=get_header(event, GEO_CITY_HEADER),
        region=get_header(event, GEO_REGION_HEADER),
    )


def parse_json_body(event: dict) -> dict[str, Any]:
    """Parse the request body as a JSON object.

    Beacon deliveries may arrive base64-encoded.

    Raises:
        ValidationError: If the body is empty, not JSON, or not an object.
    """
    raw = event.get("body")
    if raw and event.get("isBase64Encoded"):
        try:
            raw = base64.b64decode(raw).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            raise ValidationError("Invalid request body encoding")

    if not raw or not raw.strip():
        raise ValidationError("Empty request body")

    try:
        body = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.debug("JSON parse error", error=str(e))
        raise ValidationError("Invalid JSON in request body")

    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body

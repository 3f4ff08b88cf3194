"""API response helper functions for the public ingestion endpoints."""

import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel as PydanticBaseModel


def get_cors_headers(request_origin: str | None = None) -> dict:
    """Get CORS headers for the tracking endpoints.

    The tracker is embedded on arbitrary customer sites, so any origin is
    allowed. A concrete origin is echoed back (with credentials allowed);
    requests without one get the wildcard.
    """
    headers = {
        "Access-Control-Allow-Methods": "POST,OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
        "Content-Type": "application/json",
    }
    if request_origin:
        headers["Access-Control-Allow-Origin"] = request_origin
        headers["Access-Control-Allow-Credentials"] = "true"
    else:
        headers["Access-Control-Allow-Origin"] = "*"
    return headers


def _json_serializer(obj: Any) -> Any:
    """JSON serializer for objects not serializable by default."""
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, PydanticBaseModel):
        return obj.model_dump(mode="json")
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    raise TypeError(f"Object of type {type(obj)} is not JSON serializable")


def _serialize(data: Any) -> str:
    """Serialize data to JSON string."""
    return json.dumps(data, default=_json_serializer)


def success(data: Any = None, status_code: int = 200, origin: str | None = None) -> dict:
    """Create a successful API response.

    Args:
        data: Extra response fields merged next to ``success: true``.
        status_code: HTTP status code (default 200).
        origin: Request origin to echo in CORS headers.

    Returns:
        API Gateway response dict.
    """
    if isinstance(data, PydanticBaseModel):
        data = data.model_dump(mode="json")

    body: dict[str, Any] = {"success": True}
    if data:
        body.update(data)

    return {
        "statusCode": status_code,
        "headers": get_cors_headers(origin),
        "body": _serialize(body),
    }


def preflight(origin: str | None = None) -> dict:
    """Create an empty 200 response for CORS pre-flight requests."""
    return {
        "statusCode": 200,
        "headers": get_cors_headers(origin),
        "body": "",
    }


def error(
    message: str,
    status_code: int = 500,
    error_code: str | None = None,
    details: dict | None = None,
    origin: str | None = None,
) -> dict:
    """Create an error API response.

    Args:
        message: Error message.
        status_code: HTTP status code.
        error_code: Machine-readable error code.
        details: Additional error details.
        origin: Request origin to echo in CORS headers.

    Returns:
        API Gateway response dict.
    """
    body: dict[str, Any] = {
        "error": True,
        "message": message,
    }

    if error_code:
        body["error_code"] = error_code
    if details:
        body["details"] = details

    return {
        "statusCode": status_code,
        "headers": get_cors_headers(origin),
        "body": _serialize(body),
    }


def from_exception(exc: Any, origin: str | None = None) -> dict:
    """Create an error response from a ConteoError.

    Args:
        exc: The raised ConteoError.
        origin: Request origin to echo in CORS headers.

    Returns:
        API Gateway response dict.
    """
    response = error(
        message=exc.message,
        status_code=exc.status_code,
        error_code=exc.error_code,
        details=exc.details or None,
        origin=origin,
    )
    retry_after = getattr(exc, "retry_after", None)
    if retry_after:
        response["headers"]["Retry-After"] = str(retry_after)
    return response

"""Public tracking API handler (authenticated by site credential only)."""

from typing import Any

import structlog
from pydantic import BaseModel as PydanticBaseModel, ValidationError as PydanticValidationError

from conteo.models.conversion import ConversionRequest
from conteo.models.custom_event import CustomEventRequest
from conteo.models.pageview import PageviewRequest
from conteo.services.ingestion import IngestionService, RequestMeta
from conteo.utils.exceptions import ConteoError, ValidationError
from conteo.utils.request import get_header, parse_json_body
from conteo.utils.responses import error, from_exception, preflight, success

logger = structlog.get_logger()

PAGEVIEW_PATHS = ("/track", "/api/track")
CONVERSION_PATHS = ("/track/conversion", "/track-cod", "/api/track-cod")
CUSTOM_EVENT_PATHS = ("/track/event", "/track-event", "/api/track-event")


def handler(event: dict[str, Any], context: Any) -> dict:
    """Handle tracking requests from the embedded tracker.

    Routes:
        POST /track             - Record a pageview
        POST /track/conversion  - Apply a conversion intent to the funnel
        POST /track/event       - Record a custom event
        OPTIONS (any of the above) - CORS pre-flight
    """
    http_method = event.get("httpMethod", "").upper()
    path = (event.get("path") or "").rstrip("/") or "/"
    origin = get_header(event, "Origin")

    try:
        if path in PAGEVIEW_PATHS:
            route = track_pageview
        elif path in CONVERSION_PATHS:
            route = track_conversion
        elif path in CUSTOM_EVENT_PATHS:
            route = track_custom_event
        else:
            return error("Not found", 404, origin=origin)

        if http_method == "OPTIONS":
            return preflight(origin)
        if http_method != "POST":
            return error("Method not allowed", 405, origin=origin)

        return route(event, origin)

    except ConteoError as e:
        return from_exception(e, origin)
    except Exception as e:
        logger.exception("Tracking handler error", path=path, error=str(e))
        return error("Internal server error", 500, origin=origin)


def _parse(event: dict, model: type[PydanticBaseModel]) -> Any:
    body = parse_json_body(event)
    try:
        return model.model_validate(body)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e)


def track_pageview(event: dict, origin: str | None) -> dict:
    """Record a pageview intent."""
    request = _parse(event, PageviewRequest)
    pageview = IngestionService().record_pageview(request, RequestMeta.from_event(event))
    return success({"visitor_id": pageview.visitor_id}, origin=origin)


def track_conversion(event: dict, origin: str | None) -> dict:
    """Apply a conversion intent.

    Acknowledged with success even when nothing is stored (conversion
    tracking disabled, or ignored in purchase-only mode).
    """
    request = _parse(event, ConversionRequest)
    record = IngestionService().record_conversion(request, RequestMeta.from_event(event))
    if record is None:
        return success({"tracked": False}, origin=origin)
    return success({"tracked": True, "stage": record.stage.value}, origin=origin)


def track_custom_event(event: dict, origin: str | None) -> dict:
    """Record a custom event intent."""
    request = _parse(event, CustomEventRequest)
    IngestionService().record_custom_event(request, RequestMeta.from_event(event))
    return success(origin=origin)

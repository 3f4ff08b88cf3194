"""Pydantic models for Conteo entities."""

from conteo.models.base import BaseModel, TimestampMixin
from conteo.models.site import Site
from conteo.models.pageview import GeoLocation, Pageview, PageviewRequest, UtmParams
from conteo.models.conversion import (
    ConversionRecord,
    ConversionRequest,
    FunnelEvent,
    FunnelStage,
)
from conteo.models.custom_event import CustomEvent, CustomEventRequest

__all__ = [
    # Base
    "BaseModel",
    "TimestampMixin",
    # Sites
    "Site",
    # Pageviews
    "GeoLocation",
    "Pageview",
    "PageviewRequest",
    "UtmParams",
    # Conversions
    "ConversionRecord",
    "ConversionRequest",
    "FunnelEvent",
    "FunnelStage",
    # Custom events
    "CustomEvent",
    "CustomEventRequest",
]

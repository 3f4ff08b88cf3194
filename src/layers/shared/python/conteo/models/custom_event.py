"""Custom event model.

Named site-specific events with a string property bag. Immutable,
append-only.

Key Pattern:
    PK: SITE#{site_id}
    SK: EVENT#{id}
"""

import json
from typing import Any

from pydantic import AliasChoices, BaseModel as PydanticBaseModel, Field, field_validator

from conteo.models.base import BaseModel

MAX_PROPERTIES = 50
MAX_PROPERTY_LENGTH = 500
DEFAULT_SOURCE = "Direct"


class CustomEvent(BaseModel):
    """A named event reported by site instrumentation."""

    site_id: str
    visitor_id: str
    session_id: str | None = None
    event_name: str
    properties: dict[str, str] = Field(default_factory=dict)
    path: str | None = None
    referrer: str | None = None
    source: str = DEFAULT_SOURCE
    device: str | None = None
    browser: str | None = None
    country: str | None = None

    @property
    def timestamp(self):
        """When the event was recorded."""
        return self.created_at

    def get_pk(self) -> str:
        """Get partition key: SITE#{site_id}."""
        return f"SITE#{self.site_id}"

    def get_sk(self) -> str:
        """Get sort key: EVENT#{id}."""
        return f"EVENT#{self.id}"


class CustomEventRequest(PydanticBaseModel):
    """Request body of a custom event intent."""

    credential: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("credential", "api_key"),
    )
    visitor_id: str = Field(..., min_length=1, max_length=128)
    session_id: str | None = Field(None, max_length=128)
    event_name: str = Field(..., min_length=1, max_length=255)
    properties: dict[str, str] | None = None
    path: str | None = Field(None, max_length=2048)
    referrer: str | None = Field(None, max_length=2048)
    source: str | None = Field(None, max_length=255)
    device: str | None = Field(None, max_length=64)
    browser: str | None = Field(None, max_length=64)
    country: str | None = Field(None, max_length=64)

    @field_validator("event_name")
    @classmethod
    def strip_event_name(cls, v: str) -> str:
        """Reject names that are only whitespace."""
        v = v.strip()
        if not v:
            raise ValueError("event_name must not be blank")
        return v

    @field_validator("properties", mode="before")
    @classmethod
    def coerce_properties(cls, v: Any) -> Any:
        """Coerce property values to strings and cap the bag size."""
        if v is None:
            return None
        if not isinstance(v, dict):
            raise ValueError("properties must be an object")
        if len(v) > MAX_PROPERTIES:
            raise ValueError(f"at most {MAX_PROPERTIES} properties are allowed")

        coerced = {}
        for key, value in v.items():
            if value is None:
                continue
            if isinstance(value, str):
                text = value
            elif isinstance(value, (dict, list)):
                text = json.dumps(value, separators=(",", ":"))
            else:
                text = str(value).lower() if isinstance(value, bool) else str(value)
            coerced[str(key)[:MAX_PROPERTY_LENGTH]] = text[:MAX_PROPERTY_LENGTH]
        return coerced

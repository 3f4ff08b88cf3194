"""Conversion record model.

One evolving attribution record per visitor funnel instance. Booleans only
ever flip from False to True. A purchased record is terminal: new view or
checkout intents for the same visitor start a fresh record.

Key Pattern:
    PK: SITE#{site_id}
    SK: CONVERSION#{visitor_id}#{id}
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel as PydanticBaseModel, Field, field_validator

from conteo.models.base import BaseModel

DEFAULT_SOURCE = "Direct"
MAX_ORDER_VALUE = 1e12


class FunnelEvent(str, Enum):
    """Conversion intents reported by the tracker."""

    PRODUCT_VIEW = "product_view"
    INITIATE_CHECKOUT = "initiate_checkout"
    PURCHASE = "purchase"


class FunnelStage(str, Enum):
    """Furthest funnel stage a record has reached."""

    NEW = "new"
    VIEWED = "viewed"
    CHECKOUT_OPENED = "checkout_opened"
    PURCHASED = "purchased"


def conversion_sk_prefix(visitor_id: str) -> str:
    """Sort key prefix shared by all conversion records of a visitor."""
    return f"CONVERSION#{visitor_id}#"


def _stringify_scalar(value: Any) -> Any:
    # Pixels often send numeric product ids
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class ConversionRecord(BaseModel):
    """Attribution state of one visitor's view → checkout → purchase funnel."""

    site_id: str
    visitor_id: str
    product_name: str | None = None
    product_id: str | None = None
    product_page: str | None = None
    source: str = DEFAULT_SOURCE
    viewed_product: bool = False
    opened_form: bool = False
    purchased: bool = False
    value: float | None = None
    currency: str | None = None
    product_view_at: datetime | None = None
    form_opened_at: datetime | None = None
    purchased_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        """Whether merges may still target this record."""
        return not self.purchased

    @property
    def stage(self) -> FunnelStage:
        """Furthest stage reached, derived from the monotonic flags."""
        if self.purchased:
            return FunnelStage.PURCHASED
        if self.opened_form:
            return FunnelStage.CHECKOUT_OPENED
        if self.viewed_product:
            return FunnelStage.VIEWED
        return FunnelStage.NEW

    def get_pk(self) -> str:
        """Get partition key: SITE#{site_id}."""
        return f"SITE#{self.site_id}"

    def get_sk(self) -> str:
        """Get sort key: CONVERSION#{visitor_id}#{id}."""
        return f"{conversion_sk_prefix(self.visitor_id)}{self.id}"


class ConversionRequest(PydanticBaseModel):
    """Request body of a conversion intent."""

    credential: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("credential", "api_key"),
    )
    visitor_id: str = Field(..., min_length=1, max_length=128, pattern=r"^[^#]+$")
    event_type: FunnelEvent
    product_id: str | None = Field(None, max_length=255)
    product_name: str | None = Field(None, max_length=500)
    product_page: str | None = Field(None, max_length=2048)
    value: float | None = Field(None, ge=0, le=MAX_ORDER_VALUE, allow_inf_nan=False)
    currency: str | None = Field(None, min_length=3, max_length=3)
    source: str | None = Field(None, max_length=255)

    @field_validator("product_id", "product_name", mode="before")
    @classmethod
    def stringify_ids(cls, v: Any) -> Any:
        """Accept numeric product ids and names."""
        return _stringify_scalar(v)

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, v: str | None) -> str | None:
        """Normalize currency codes to upper case."""
        return v.upper() if v else v

"""Pageview model.

One immutable row per observed navigation.

Key Pattern:
    PK: SITE#{site_id}
    SK: PAGEVIEW#{id}
"""

from pydantic import AliasChoices, BaseModel as PydanticBaseModel, Field

from conteo.models.base import BaseModel


class GeoLocation(PydanticBaseModel):
    """Best-effort viewer location supplied by the network edge."""

    country: str | None = None
    city: str | None = None
    region: str | None = None


class UtmParams(PydanticBaseModel):
    """Campaign parameters captured from the landing URL."""

    source: str | None = None
    medium: str | None = None
    campaign: str | None = None
    content: str | None = None
    term: str | None = None


class Pageview(BaseModel):
    """A single observed navigation on a site."""

    site_id: str
    visitor_id: str
    path: str
    referrer_domain: str
    user_agent: str | None = None
    browser: str
    os: str
    device_class: str
    geo: GeoLocation = Field(default_factory=GeoLocation)
    utm: UtmParams = Field(default_factory=UtmParams)
    screen_width: int | None = None
    screen_height: int | None = None

    @property
    def timestamp(self):
        """When the pageview was recorded."""
        return self.created_at

    def get_pk(self) -> str:
        """Get partition key: SITE#{site_id}."""
        return f"SITE#{self.site_id}"

    def get_sk(self) -> str:
        """Get sort key: PAGEVIEW#{id}."""
        return f"PAGEVIEW#{self.id}"


class PageviewRequest(PydanticBaseModel):
    """Request body of a pageview intent."""

    credential: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("credential", "api_key"),
    )
    path: str = Field(..., min_length=1, max_length=2048)
    referrer: str | None = Field(None, max_length=2048)
    user_agent: str | None = None
    utm_source: str | None = Field(None, max_length=255)
    utm_medium: str | None = Field(None, max_length=255)
    utm_campaign: str | None = Field(None, max_length=255)
    utm_content: str | None = Field(None, max_length=255)
    utm_term: str | None = Field(None, max_length=255)
    screen_width: int | None = Field(None, ge=0)
    screen_height: int | None = Field(None, ge=0)

    def utm(self) -> UtmParams:
        """Collect the UTM fields, dropping empty strings."""
        return UtmParams(
            source=self.utm_source or None,
            medium=self.utm_medium or None,
            campaign=self.utm_campaign or None,
            content=self.utm_content or None,
            term=self.utm_term or None,
        )

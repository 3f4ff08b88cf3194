"""Site registration model.

Sites are created by account owners outside the ingestion core; ingestion
only reads them, looking them up by credential.

Key Pattern:
    PK: SITE#{id}
    SK: PROFILE
    GSI1PK: CREDENTIAL#{credential}
    GSI1SK: SITE#{id}
"""

import secrets

from pydantic import Field, field_validator

from conteo.models.base import BaseModel


def generate_credential() -> str:
    """Generate a new site credential."""
    return secrets.token_hex(16)


class Site(BaseModel):
    """A registered site that may report analytics."""

    domain: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Registered domain (e.g., shop.example.com)",
    )
    credential: str = Field(default_factory=generate_credential, min_length=1)
    name: str | None = Field(None, max_length=255)
    conversion_tracking_enabled: bool = False

    @field_validator("domain")
    @classmethod
    def normalize_domain(cls, v: str) -> str:
        """Normalize domain to lowercase, strip whitespace."""
        return v.lower().strip()

    def get_pk(self) -> str:
        """Get partition key: SITE#{id}."""
        return f"SITE#{self.id}"

    def get_sk(self) -> str:
        """Get sort key: PROFILE."""
        return "PROFILE"

    def get_gsi1_keys(self) -> dict[str, str]:
        """Get GSI1 keys for credential lookup."""
        return {
            "GSI1PK": f"CREDENTIAL#{self.credential}",
            "GSI1SK": f"SITE#{self.id}",
        }

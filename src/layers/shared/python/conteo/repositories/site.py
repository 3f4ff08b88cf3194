"""Site repository for DynamoDB operations."""

import structlog

from conteo.models.site import Site
from conteo.repositories.base import BaseRepository

logger = structlog.get_logger()


class SiteRepository(BaseRepository[Site]):
    """Repository for Site registrations.

    Ingestion only reads sites; create_site is used for seeding.
    """

    def __init__(self, table_name: str | None = None):
        """Initialize site repository."""
        super().__init__(Site, table_name)

    def get_by_id(self, site_id: str) -> Site | None:
        """Get site by ID.

        Args:
            site_id: The site ID.

        Returns:
            Site or None if not found.
        """
        return self.get(pk=f"SITE#{site_id}", sk="PROFILE")

    def get_by_credential(self, credential: str) -> Site | None:
        """Resolve the site a credential belongs to, using GSI1.

        Args:
            credential: The site credential presented by the tracker.

        Returns:
            Site or None if the credential is unknown.
        """
        items = self.query(
            pk=f"CREDENTIAL#{credential}",
            sk_begins_with="SITE#",
            index_name="GSI1",
            limit=1,
        )
        return items[0] if items else None

    def create_site(self, site: Site) -> Site:
        """Register a new site.

        Args:
            site: The site to create.

        Returns:
            The created site.
        """
        return self.create(site, gsi_keys=site.get_gsi1_keys())

"""Repositories for the append-only record streams (pageviews, custom events)."""

import structlog

from conteo.models.custom_event import CustomEvent
from conteo.models.pageview import Pageview
from conteo.repositories.base import BaseRepository

logger = structlog.get_logger()


class PageviewRepository(BaseRepository[Pageview]):
    """Repository for Pageview rows."""

    def __init__(self, table_name: str | None = None):
        """Initialize pageview repository."""
        super().__init__(Pageview, table_name)

    def add(self, pageview: Pageview) -> Pageview:
        """Append a pageview row.

        Args:
            pageview: The pageview to store.

        Returns:
            The stored pageview.
        """
        return self.create(pageview)

    def list_by_site(self, site_id: str, limit: int = 100) -> list[Pageview]:
        """List the most recent pageviews of a site, newest first."""
        return self.query(
            pk=f"SITE#{site_id}",
            sk_begins_with="PAGEVIEW#",
            limit=limit,
            scan_forward=False,
        )


class CustomEventRepository(BaseRepository[CustomEvent]):
    """Repository for CustomEvent rows."""

    def __init__(self, table_name: str | None = None):
        """Initialize custom event repository."""
        super().__init__(CustomEvent, table_name)

    def add(self, event: CustomEvent) -> CustomEvent:
        """Append a custom event row.

        Args:
            event: The event to store.

        Returns:
            The stored event.
        """
        return self.create(event)

    def list_by_site(self, site_id: str, limit: int = 100) -> list[CustomEvent]:
        """List the most recent custom events of a site, newest first."""
        return self.query(
            pk=f"SITE#{site_id}",
            sk_begins_with="EVENT#",
            limit=limit,
            scan_forward=False,
        )

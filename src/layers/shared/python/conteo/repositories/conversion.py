"""Conversion record repository.

Records of one visitor share the sort key prefix CONVERSION#{visitor_id}#
followed by a ULID, so a descending query returns them newest first.
"""

from typing import Any

import structlog

from conteo.models.base import utc_now
from conteo.models.conversion import ConversionRecord, conversion_sk_prefix
from conteo.repositories.base import BaseRepository

logger = structlog.get_logger()


def _newest_first(records: list[ConversionRecord]) -> list[ConversionRecord]:
    return sorted(records, key=lambda r: (r.created_at, r.id), reverse=True)


class ConversionRepository(BaseRepository[ConversionRecord]):
    """Repository for ConversionRecord entities."""

    def __init__(self, table_name: str | None = None):
        """Initialize conversion repository."""
        super().__init__(ConversionRecord, table_name)

    def list_for_visitor(self, site_id: str, visitor_id: str) -> list[ConversionRecord]:
        """List all conversion records of a visitor, newest first.

        Args:
            site_id: The site ID.
            visitor_id: The visitor ID.

        Returns:
            Records ordered by descending creation time.
        """
        records = self.query(
            pk=f"SITE#{site_id}",
            sk_begins_with=conversion_sk_prefix(visitor_id),
            scan_forward=False,
        )
        return _newest_first(records)

    def find_latest(
        self,
        site_id: str,
        visitor_id: str,
        open_only: bool = False,
    ) -> ConversionRecord | None:
        """Find the single most recent record of a visitor.

        When races left several candidates, exactly one is chosen: the
        newest by creation time, then by ID.

        Args:
            site_id: The site ID.
            visitor_id: The visitor ID.
            open_only: Skip purchased (terminal) records.

        Returns:
            The record or None.
        """
        for record in self.list_for_visitor(site_id, visitor_id):
            if not open_only or record.is_open:
                return record
        return None

    def create_record(self, record: ConversionRecord) -> ConversionRecord:
        """Store a new conversion record.

        Args:
            record: The record to create.

        Returns:
            The created record.
        """
        record = self.create(record)
        logger.info(
            "Conversion record created",
            site_id=record.site_id,
            visitor_id=record.visitor_id,
            conversion_id=record.id,
            stage=record.stage.value,
        )
        return record

    def merge(
        self,
        record: ConversionRecord,
        fields: dict[str, Any],
        if_missing: dict[str, Any] | None = None,
    ) -> ConversionRecord:
        """Atomically merge fields into an existing record.

        Args:
            record: The record to update (only its keys are used).
            fields: Attributes to overwrite.
            if_missing: Attributes to fill only when absent.

        Returns:
            The record as stored after the update.
        """
        fields = {**fields, "updated_at": utc_now()}
        updated = self.update_fields(
            record.get_pk(),
            record.get_sk(),
            fields=fields,
            if_missing=if_missing,
        )
        logger.info(
            "Conversion record updated",
            site_id=updated.site_id,
            visitor_id=updated.visitor_id,
            conversion_id=updated.id,
            stage=updated.stage.value,
        )
        return updated

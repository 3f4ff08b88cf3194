"""Conversion funnel reconciler.

Merges conversion intents into one attribution record per (site, visitor).
Client instrumentation cannot guarantee delivery order, so intents are not
applied as strict state transitions. Each intent is a monotonic merge:

    product_view       viewed_product
    initiate_checkout  viewed_product, opened_form
    purchase           viewed_product, opened_form, purchased

Flags are only ever set, never cleared, and a later stage implies the
earlier ones. A purchase updates the most recent record even when it is
already purchased, and creates a complete record when none exists, so a
purchase is never lost.

View and checkout intents target the most recent open record. A purchased
record is terminal, except that intents arriving within the reorder window
after its purchase are late deliveries of that same funnel: they are merged
into it, filling only what is missing. Later ones start a fresh record.

Every merge is a single UpdateItem against one row. Concurrent intents for
the same visitor may race on product metadata (last write wins).
"""

from dataclasses import dataclass
from datetime import timedelta

import structlog

from conteo.config import get_settings
from conteo.models.base import utc_now
from conteo.models.conversion import (
    DEFAULT_SOURCE,
    ConversionRecord,
    ConversionRequest,
    FunnelEvent,
)
from conteo.repositories.conversion import ConversionRepository

logger = structlog.get_logger()


@dataclass(frozen=True)
class ConversionIntent:
    """One observed funnel signal for a visitor."""

    visitor_id: str
    event_type: FunnelEvent
    product_id: str | None = None
    product_name: str | None = None
    product_page: str | None = None
    value: float | None = None
    currency: str | None = None
    source: str | None = None

    @classmethod
    def from_request(cls, request: ConversionRequest) -> "ConversionIntent":
        """Build an intent from a validated conversion request."""
        return cls(
            visitor_id=request.visitor_id,
            event_type=FunnelEvent(request.event_type),
            product_id=request.product_id or None,
            product_name=request.product_name or None,
            product_page=request.product_page or None,
            value=request.value,
            currency=request.currency,
            source=request.source or None,
        )

    def product_fields(self) -> dict[str, str]:
        """Product metadata actually supplied with the intent."""
        fields = {
            "product_name": self.product_name,
            "product_id": self.product_id,
            "product_page": self.product_page,
        }
        return {k: v for k, v in fields.items() if v}


class ConversionFunnel:
    """Applies conversion intents to conversion records."""

    def __init__(
        self,
        repository: ConversionRepository | None = None,
        default_currency: str | None = None,
        reorder_window_seconds: int | None = None,
    ):
        """Initialize the reconciler.

        Args:
            repository: Conversion record store.
            default_currency: Currency used when a purchase carries none.
            reorder_window_seconds: How long after a purchase view/checkout
                intents still count as late deliveries of that funnel.
        """
        settings = get_settings()
        self.repository = repository or ConversionRepository()
        self.default_currency = default_currency or settings.default_currency
        if reorder_window_seconds is None:
            reorder_window_seconds = settings.reorder_window_seconds
        self.reorder_window = timedelta(seconds=reorder_window_seconds)

    def apply(self, site_id: str, intent: ConversionIntent) -> ConversionRecord:
        """Merge one intent into the visitor's funnel.

        Args:
            site_id: The site ID.
            intent: The conversion intent.

        Returns:
            The created or updated record.

        Raises:
            PersistenceError: If the store fails.
        """
        logger.debug(
            "Applying conversion intent",
            site_id=site_id,
            visitor_id=intent.visitor_id,
            event_type=intent.event_type.value,
        )

        if intent.event_type == FunnelEvent.PRODUCT_VIEW:
            return self._product_view(site_id, intent)
        if intent.event_type == FunnelEvent.INITIATE_CHECKOUT:
            return self._initiate_checkout(site_id, intent)
        return self._purchase(site_id, intent)

    def _is_late_arrival(self, record: ConversionRecord) -> bool:
        purchased_at = record.purchased_at or record.updated_at
        return utc_now() - purchased_at <= self.reorder_window

    def _pre_purchase_target(self, site_id: str, visitor_id: str) -> ConversionRecord | None:
        """Record a view or checkout intent merges into, if any."""
        records = self.repository.list_for_visitor(site_id, visitor_id)
        if records and not records[0].is_open and self._is_late_arrival(records[0]):
            logger.debug(
                "Late funnel intent for purchased record",
                site_id=site_id,
                visitor_id=visitor_id,
                conversion_id=records[0].id,
            )
            return records[0]
        return next((r for r in records if r.is_open), None)

    def _new_record(self, site_id: str, intent: ConversionIntent, **flags) -> ConversionRecord:
        return ConversionRecord(
            site_id=site_id,
            visitor_id=intent.visitor_id,
            source=intent.source or DEFAULT_SOURCE,
            **intent.product_fields(),
            **flags,
        )

    def _product_view(self, site_id: str, intent: ConversionIntent) -> ConversionRecord:
        now = utc_now()
        existing = self._pre_purchase_target(site_id, intent.visitor_id)
        if existing and existing.is_open:
            return self.repository.merge(
                existing,
                fields={
                    "viewed_product": True,
                    "product_view_at": now,
                    **intent.product_fields(),
                },
            )
        if existing:
            return self.repository.merge(
                existing,
                fields={"viewed_product": True},
                if_missing={"product_view_at": now, **intent.product_fields()},
            )

        return self.repository.create_record(
            self._new_record(
                site_id,
                intent,
                viewed_product=True,
                product_view_at=now,
            )
        )

    def _initiate_checkout(self, site_id: str, intent: ConversionIntent) -> ConversionRecord:
        now = utc_now()
        existing = self._pre_purchase_target(site_id, intent.visitor_id)
        if existing:
            # Entering checkout implies the product was viewed
            fields = {"viewed_product": True, "opened_form": True}
            if_missing = intent.product_fields()
            if existing.is_open:
                fields["form_opened_at"] = now
            else:
                if_missing = {"form_opened_at": now, **if_missing}
            return self.repository.merge(existing, fields=fields, if_missing=if_missing)

        return self.repository.create_record(
            self._new_record(
                site_id,
                intent,
                viewed_product=True,
                opened_form=True,
                form_opened_at=now,
            )
        )

    def _purchase(self, site_id: str, intent: ConversionIntent) -> ConversionRecord:
        now = utc_now()
        purchase_fields = {
            "viewed_product": True,
            "opened_form": True,
            "purchased": True,
            "value": float(intent.value or 0),
            "currency": intent.currency or self.default_currency,
            "purchased_at": now,
        }

        existing = self.repository.find_latest(site_id, intent.visitor_id)
        if existing:
            return self.repository.merge(
                existing,
                fields=purchase_fields,
                if_missing=intent.product_fields(),
            )

        logger.info(
            "Purchase without prior funnel record",
            site_id=site_id,
            visitor_id=intent.visitor_id,
        )
        return self.repository.create_record(
            self._new_record(site_id, intent, **purchase_fields)
        )

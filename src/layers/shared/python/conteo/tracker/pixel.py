"""Advertising pixel interceptor.

Observes conversion events the host page already reports to third-party
advertising pixels and turns them into conversion intents, so the host
needs no extra instrumentation. Pixel entry points are replaced with
transparent forwarding proxies; the pixel itself keeps receiving every
call unchanged.

Pixel events:
    ViewContent                            -> product_view
    AddToCart                              -> remember last known product
    InitiateCheckout                       -> initiate_checkout
    Purchase, CompletePayment, PlaceAnOrder -> purchase
"""

import json
import threading
import time
from collections.abc import Callable, Mapping
from typing import Any

import structlog

from conteo.models.conversion import FunnelEvent
from conteo.tracker.context import CONVERSION_PATH, TrackerContext
from conteo.tracker.guard import intercept, swallow_errors
from conteo.tracker.markup import ProductInfo, clean_text, extract_product

logger = structlog.get_logger()

PIXEL_EVENTS: dict[str, FunnelEvent] = {
    "ViewContent": FunnelEvent.PRODUCT_VIEW,
    "InitiateCheckout": FunnelEvent.INITIATE_CHECKOUT,
    "Purchase": FunnelEvent.PURCHASE,
    "CompletePayment": FunnelEvent.PURCHASE,
    "PlaceAnOrder": FunnelEvent.PURCHASE,
}
ADD_TO_CART_EVENTS = frozenset({"AddToCart"})

LAST_PRODUCT_KEY = "conteo_last_product"

# Call shapes of pixel entry points
CALL_SHAPE = "call"  # fbq('track', 'Purchase', {...})
METHOD_SHAPE = "method"  # ttq.track('Purchase', {...})

DEFAULT_ENTRY_POINTS: dict[str, str] = {
    "fbq": CALL_SHAPE,
    "ttq": METHOD_SHAPE,
}

TRACK_COMMANDS = frozenset({"track", "trackCustom"})

POLL_INTERVAL_SECONDS = 0.1
POLL_TIMEOUT_SECONDS = 10.0


def product_from_params(params: Mapping[str, Any]) -> ProductInfo:
    """Read product identity from a pixel event payload."""
    contents = params.get("contents")
    first = contents[0] if isinstance(contents, list) and contents else {}
    if not isinstance(first, Mapping):
        first = {}

    content_ids = params.get("content_ids")
    if isinstance(content_ids, list):
        content_ids = content_ids[0] if content_ids else None

    return ProductInfo(
        name=clean_text(params.get("content_name") or first.get("content_name") or first.get("name")),
        id=clean_text(
            content_ids
            or params.get("content_id")
            or first.get("content_id")
            or first.get("id")
        ),
    )


def _parse_value(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if number >= 0 else None


def _parse_currency(value: Any) -> str | None:
    if isinstance(value, str) and len(value.strip()) == 3:
        return value.strip().upper()
    return None


class PixelInterceptor:
    """Wraps pixel entry points found in the page globals."""

    def __init__(
        self,
        context: TrackerContext,
        entry_points: Mapping[str, str] | None = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        poll_timeout: float = POLL_TIMEOUT_SECONDS,
    ):
        """Initialize the interceptor.

        Args:
            context: Tracker context.
            entry_points: Global name to call shape.
            poll_interval: Seconds between checks for a missing entry point.
            poll_timeout: Seconds after which a missing entry point is given up.
        """
        self.context = context
        self.page = context.page
        self.entry_points = dict(entry_points or DEFAULT_ENTRY_POINTS)
        self.poll_interval = poll_interval
        self.poll_timeout = poll_timeout
        self._pollers: dict[str, tuple[threading.Thread, threading.Event]] = {}

    @swallow_errors
    def install(self) -> None:
        """Wrap every present entry point and poll for the missing ones."""
        for name in self.entry_points:
            if not self._wrap_global(name):
                self._start_polling(name)

    def wrap_entry_point(self, real: Callable, shape: str = CALL_SHAPE) -> Callable:
        """Return a forwarding proxy that reports the calls it observes.

        Wrapping an already wrapped entry point returns it unchanged.
        """
        observer = self._observe_method if shape == METHOD_SHAPE else self._observe_call
        return intercept(real, before=observer)

    def _wrap_global(self, name: str) -> bool:
        target = self.page.globals.get(name)
        if target is None:
            return False

        shape = self.entry_points[name]
        if shape == METHOD_SHAPE:
            track = getattr(target, "track", None)
            if not callable(track):
                return False
            setattr(target, "track", self.wrap_entry_point(track, METHOD_SHAPE))
        else:
            if not callable(target):
                return False
            self.page.globals[name] = self.wrap_entry_point(target, CALL_SHAPE)

        logger.debug("Pixel entry point wrapped", entry_point=name)
        return True

    def _start_polling(self, name: str) -> None:
        if name in self._pollers:
            return
        stop = threading.Event()
        thread = threading.Thread(
            target=self._poll,
            args=(name, stop),
            name=f"conteo-pixel-{name}",
            daemon=True,
        )
        self._pollers[name] = (thread, stop)
        thread.start()

    def _poll(self, name: str, stop: threading.Event) -> None:
        deadline = time.monotonic() + self.poll_timeout
        while not stop.wait(self.poll_interval):
            try:
                if self._wrap_global(name):
                    return
            except Exception as e:
                logger.debug("Pixel wrap failed", entry_point=name, error=str(e))
                return
            if time.monotonic() >= deadline:
                logger.debug("Pixel entry point never appeared", entry_point=name)
                return

    def stop(self) -> None:
        """Cancel pending polls."""
        for _, stop in self._pollers.values():
            stop.set()

    def join(self, timeout: float | None = None) -> None:
        """Wait for pending polls to finish."""
        for thread, _ in list(self._pollers.values()):
            thread.join(timeout)

    def _observe_call(self, *args, **kwargs) -> None:
        if len(args) >= 2 and args[0] in TRACK_COMMANDS:
            self.handle_event(args[1], args[2] if len(args) > 2 else None)
        elif len(args) >= 3 and args[0] == "trackSingle":
            # fbq('trackSingle', pixel_id, event, params)
            self.handle_event(args[2], args[3] if len(args) > 3 else None)

    def _observe_method(self, *args, **kwargs) -> None:
        if args:
            self.handle_event(args[0], args[1] if len(args) > 1 else None)

    @swallow_errors
    def handle_event(self, name: Any, params: Any = None) -> None:
        """Translate one pixel event into a conversion intent."""
        if not isinstance(name, str):
            return
        params = params if isinstance(params, Mapping) else {}
        product = product_from_params(params)

        if name in ADD_TO_CART_EVENTS:
            self.remember_product(product)
            return

        event_type = PIXEL_EVENTS.get(name)
        if event_type is None:
            return

        if event_type == FunnelEvent.PRODUCT_VIEW:
            product = product.backfill(extract_product(self.page.html, self.page.path))
            self.remember_product(product)
            self.report(event_type, product)
            return

        product = product.backfill(self.last_product())
        self.report(
            event_type,
            product,
            value=_parse_value(params.get("value")),
            currency=_parse_currency(params.get("currency")),
        )

    @swallow_errors
    def scan_page(self) -> None:
        """Report a product view for product pages no pixel reported."""
        product = extract_product(self.page.html, self.page.path)
        if not product:
            return
        self.remember_product(product)
        self.report(FunnelEvent.PRODUCT_VIEW, product)

    def remember_product(self, product: ProductInfo) -> None:
        """Cache a product as the visitor's last known product."""
        if not product:
            return
        product = product.backfill(ProductInfo(page=self.page.path))
        self.page.session_storage[LAST_PRODUCT_KEY] = json.dumps(product.to_dict())

    def last_product(self) -> ProductInfo | None:
        """The last known product cached for this session, if any."""
        raw = self.page.session_storage.get(LAST_PRODUCT_KEY)
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return None
        return ProductInfo.from_dict(data) if isinstance(data, dict) else None

    def report(
        self,
        event_type: FunnelEvent,
        product: ProductInfo | None = None,
        value: float | None = None,
        currency: str | None = None,
    ) -> None:
        """Send a conversion intent."""
        product = product or ProductInfo()
        payload = {
            "visitor_id": self.context.visitor_id,
            "event_type": event_type.value,
            "product_id": product.id,
            "product_name": product.name,
            "product_page": product.page or self.page.path,
            "value": value,
            "currency": currency,
            "source": self.context.source,
        }
        logger.debug("Conversion intent", event_type=event_type.value, product_id=product.id)
        self.context.send(CONVERSION_PATH, {k: v for k, v in payload.items() if v is not None})

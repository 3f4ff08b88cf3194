"""Embedded tracker entry point.

A page embeds the tracker with a single script tag::

    <script src="https://api.conteo.online/tracker.js" data-api-key="..."></script>

Tracker.from_script_tag() builds the context once from the tag attributes
and wires the navigation observer, pixel interceptor and custom event
reporter to it. Loading the script twice on the same page reuses the first
instance.
"""

from collections.abc import Mapping
from typing import Any

import structlog

from conteo.tracker.context import TrackerContext, resolve_base_url
from conteo.tracker.events import CustomEventReporter
from conteo.tracker.guard import swallow_errors
from conteo.tracker.navigation import NavigationObserver
from conteo.tracker.page import PageEnvironment
from conteo.tracker.pixel import PixelInterceptor
from conteo.tracker.transport import Beacon, Transport

logger = structlog.get_logger()

INSTANCE_GLOBAL = "__conteo__"


class Tracker:
    """One tracker instance bound to one page."""

    def __init__(
        self,
        context: TrackerContext,
        navigation: NavigationObserver | None = None,
        pixels: PixelInterceptor | None = None,
        events: CustomEventReporter | None = None,
    ):
        self.context = context
        self.navigation = navigation or NavigationObserver(context)
        self.pixels = pixels or PixelInterceptor(context)
        self.events = events or CustomEventReporter(context)
        self.navigation.on_pageview.append(self.pixels.scan_page)
        self._started = False

    @classmethod
    def from_script_tag(
        cls,
        attributes: Mapping[str, str],
        page: PageEnvironment,
        beacon: Beacon | None = None,
        transport: Transport | None = None,
    ) -> "Tracker | None":
        """Create the tracker for a page from its script tag.

        Args:
            attributes: Script element attributes (``data-api-key``,
                ``data-endpoint``, ``src``).
            page: The host page.
            beacon: Optional unload-safe sender.
            transport: Preconfigured transport, mainly for tests.

        Returns:
            The page's tracker, or None when the tag carries no credential.
        """
        existing = page.globals.get(INSTANCE_GLOBAL)
        if isinstance(existing, cls):
            return existing

        credential = (attributes.get("data-api-key") or "").strip()
        if not credential:
            logger.error("Tracker script tag is missing data-api-key")
            return None

        base_url = resolve_base_url(attributes.get("src"), attributes.get("data-endpoint"))
        context = TrackerContext(
            credential=credential,
            base_url=base_url,
            page=page,
            transport=transport or Transport(base_url, beacon=beacon),
        )
        tracker = cls(context)
        page.globals[INSTANCE_GLOBAL] = tracker
        return tracker

    @swallow_errors
    def start(self) -> None:
        """Report the current page and begin observing it."""
        if self._started:
            return
        self._started = True
        self.pixels.install()
        self.navigation.install()

    def track_event(self, name: Any, props: Mapping[str, Any] | None = None) -> bool:
        """Report a custom event."""
        return bool(self.events.track_event(name, props))

    @swallow_errors
    def shutdown(self) -> None:
        """Stop polling and deliver pending payloads."""
        self.pixels.stop()
        self.context.transport.close()

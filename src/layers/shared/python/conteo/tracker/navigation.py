"""Single-page navigation observer.

Emits one pageview intent for the initial page and one for every later
client-side route change: history pushes and replacements, back/forward
traversal, and hash changes.
"""

import structlog

from conteo.tracker.context import PAGEVIEW_PATH, TrackerContext
from conteo.tracker.guard import intercept, swallow_errors

logger = structlog.get_logger()

UTM_FIELDS = ("utm_source", "utm_medium", "utm_campaign", "utm_content", "utm_term")


class NavigationObserver:
    """Turns route changes on a page into pageview intents."""

    def __init__(self, context: TrackerContext):
        self.context = context
        self.page = context.page
        self._installed = False
        self._last_url: str | None = None
        self.on_pageview: list = []

    @swallow_errors
    def install(self) -> None:
        """Wrap the history entry points, subscribe to navigation signals
        and report the current page. Calling it again is a no-op."""
        if self._installed:
            return
        self._installed = True

        history = self.page.history
        history.push_state = intercept(history.push_state, after=self._route_changed)
        history.replace_state = intercept(history.replace_state, after=self._route_changed)
        self.page.events.add_event_listener("popstate", self._on_signal)
        self.page.events.add_event_listener("hashchange", self._on_signal)

        self._route_changed()

    def _on_signal(self, _payload) -> None:
        self._route_changed()

    def _route_changed(self) -> None:
        url = self.page.url
        if url == self._last_url:
            return
        self._last_url = url
        self.track_pageview()
        for callback in self.on_pageview:
            swallow_errors(callback)()

    @swallow_errors
    def track_pageview(self) -> None:
        """Send a pageview intent for the current location."""
        page = self.page
        payload = {
            "path": page.path,
            "referrer": page.referrer or None,
            "user_agent": page.user_agent or None,
            "screen_width": page.screen_width,
            "screen_height": page.screen_height,
        }
        query = page.query
        for name in UTM_FIELDS:
            if query.get(name):
                payload[name] = query[name]

        logger.debug("Route change", path=page.path)
        # Only the first reply is needed; later pageviews may use the beacon
        on_response = None if self.context.has_issued_visitor_id else self.context.remember_visitor_id
        self.context.send(
            PAGEVIEW_PATH,
            {k: v for k, v in payload.items() if v is not None},
            on_response=on_response,
        )

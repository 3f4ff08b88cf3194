"""Custom event reporting for host pages."""

from collections.abc import Mapping
from typing import Any

import structlog

from conteo.tracker.context import CUSTOM_EVENT_PATH, TrackerContext
from conteo.tracker.guard import swallow_errors
from conteo.utils.user_agent import parse_user_agent

logger = structlog.get_logger()


class CustomEventReporter:
    """Public ``track_event`` call of the embedded tracker."""

    def __init__(self, context: TrackerContext):
        self.context = context

    @swallow_errors
    def track_event(self, name: Any, props: Mapping[str, Any] | None = None) -> bool:
        """Report a named custom event.

        Args:
            name: Event name, a non-empty string.
            props: Event properties; values are stringified by the gateway.

        Returns:
            True when the event was handed to the transport.
        """
        if not isinstance(name, str) or not name.strip():
            logger.debug("Ignoring custom event without a name", name=repr(name))
            return False

        if props is None:
            props = {}
        elif not isinstance(props, Mapping):
            logger.debug("Ignoring non-mapping event properties", event_name=name)
            props = {}

        page = self.context.page
        ua = parse_user_agent(page.user_agent)
        payload = {
            "visitor_id": self.context.visitor_id,
            "session_id": self.context.session_id,
            "event_name": name.strip(),
            "properties": dict(props),
            "path": page.path,
            "referrer": page.referrer or None,
            "source": self.context.source,
            "device": ua.device_class,
            "browser": ua.browser,
        }
        self.context.send(CUSTOM_EVENT_PATH, {k: v for k, v in payload.items() if v is not None})
        return True

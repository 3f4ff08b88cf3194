"""Host page model driven by the tracker.

The tracker never owns the page it runs on. PageEnvironment is the surface
the host exposes to it: the current location, the document referrer and
markup, session storage, a globals namespace where third-party scripts
install their entry points, a History object, and an event bus carrying
navigation signals (``popstate``, ``hashchange``).
"""

from collections import defaultdict
from collections.abc import Callable, MutableMapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qs, urljoin, urlparse

import structlog

logger = structlog.get_logger()

Listener = Callable[[Any], None]


class EventBus:
    """Minimal event target: listeners run in registration order.

    A failing listener is logged and does not stop the others.
    """

    def __init__(self):
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def add_event_listener(self, name: str, listener: Listener) -> None:
        if listener not in self._listeners[name]:
            self._listeners[name].append(listener)

    def remove_event_listener(self, name: str, listener: Listener) -> None:
        if listener in self._listeners[name]:
            self._listeners[name].remove(listener)

    def dispatch(self, name: str, payload: Any = None) -> None:
        for listener in list(self._listeners[name]):
            try:
                listener(payload)
            except Exception as e:
                logger.warning("Event listener failed", event=name, error=str(e))


class History:
    """Session history of a page.

    push_state/replace_state change the URL without firing events, like the
    browser API; back() fires ``popstate``.
    """

    def __init__(self, page: "PageEnvironment"):
        self._page = page
        self._entries: list[tuple[Any, str]] = [(None, page.url)]

    @property
    def length(self) -> int:
        return len(self._entries)

    @property
    def state(self) -> Any:
        return self._entries[-1][0]

    def push_state(self, state: Any, title: str = "", url: str | None = None) -> None:
        target = self._page.resolve(url) if url else self._page.url
        self._entries.append((state, target))
        self._page.url = target

    def replace_state(self, state: Any, title: str = "", url: str | None = None) -> None:
        target = self._page.resolve(url) if url else self._page.url
        self._entries[-1] = (state, target)
        self._page.url = target

    def back(self) -> None:
        if len(self._entries) < 2:
            return
        self._entries.pop()
        state, url = self._entries[-1]
        self._page.url = url
        self._page.events.dispatch("popstate", state)


@dataclass
class PageEnvironment:
    """The page a tracker instance is embedded in."""

    url: str
    referrer: str | None = None
    user_agent: str = ""
    html: str = ""
    client_ip: str | None = None
    screen_width: int | None = None
    screen_height: int | None = None
    session_storage: MutableMapping[str, str] = field(default_factory=dict)
    globals: dict[str, Any] = field(default_factory=dict)
    events: EventBus = field(default_factory=EventBus)
    history: History = field(init=False)

    def __post_init__(self):
        self.history = History(self)

    @property
    def path(self) -> str:
        return urlparse(self.url).path or "/"

    @property
    def hostname(self) -> str:
        return (urlparse(self.url).hostname or "").lower()

    @property
    def query(self) -> dict[str, str]:
        """First value of each query string parameter."""
        return {k: v[0] for k, v in parse_qs(urlparse(self.url).query).items() if v}

    def resolve(self, url: str) -> str:
        """Resolve a possibly relative URL against the current one."""
        return urljoin(self.url, url)

    def set_hash(self, fragment: str) -> None:
        """Change the URL fragment and fire ``hashchange``."""
        old_url = self.url
        self.url = urljoin(self.url, f"#{fragment.lstrip('#')}")
        if self.url != old_url:
            self.events.dispatch("hashchange", {"old_url": old_url, "new_url": self.url})

"""Per-page tracker context.

Built once when the script initializes and handed to every reporting
component, instead of each call site re-reading configuration and storage.
"""

from dataclasses import dataclass
from typing import Any
from urllib.parse import urljoin, urlparse

from conteo.models.conversion import DEFAULT_SOURCE
from conteo.tracker.page import PageEnvironment
from conteo.tracker.transport import ResponseHandler, Transport
from conteo.utils.identity import fingerprint, session_token
from conteo.utils.origin import strip_www

DEFAULT_BASE_URL = "https://api.conteo.online"

PAGEVIEW_PATH = "/track"
CONVERSION_PATH = "/track/conversion"
CUSTOM_EVENT_PATH = "/track/event"

VISITOR_ID_STORAGE_KEY = "conteo_visitor_id"


def resolve_base_url(script_src: str | None, endpoint: str | None = None) -> str:
    """Find the ingestion base URL.

    An explicit endpoint wins. Otherwise the base is the directory the
    tracker script was loaded from.

    Args:
        script_src: The script element's ``src``.
        endpoint: The ``data-endpoint`` override.

    Returns:
        Absolute base URL without a trailing slash.
    """
    if endpoint and endpoint.strip():
        return endpoint.strip().rstrip("/")
    if script_src:
        parsed = urlparse(script_src)
        if parsed.scheme in ("http", "https") and parsed.netloc:
            return urljoin(script_src, ".").rstrip("/")
    return DEFAULT_BASE_URL


def traffic_source(page: PageEnvironment) -> str:
    """Attribution source for the current visit.

    ``utm_source`` when present, else the external referrer's host, else
    "Direct". Same-site referrers count as direct.
    """
    utm_source = page.query.get("utm_source")
    if utm_source:
        return utm_source[:100]

    if page.referrer:
        try:
            host = urlparse(page.referrer).hostname
        except ValueError:
            host = None
        if host and strip_www(host.lower()) != strip_www(page.hostname):
            return strip_www(host.lower())

    return DEFAULT_SOURCE


@dataclass
class TrackerContext:
    """Configuration and identity shared by one tracker instance."""

    credential: str
    base_url: str
    page: PageEnvironment
    transport: Transport

    @property
    def visitor_id(self) -> str:
        """Correlation key for conversions and custom events.

        A browser never sees its own public address, so the fingerprint the
        gateway derived for the first pageview is cached in session storage
        and reused. Before that reply arrives, the fingerprint is computed
        locally when the host relays the visitor address; otherwise the
        session token stands in, and those events do not join the pageviews.
        """
        issued = self.page.session_storage.get(VISITOR_ID_STORAGE_KEY)
        if issued:
            return issued
        if self.page.client_ip:
            return fingerprint(self.page.client_ip, self.page.user_agent)
        return self.session_id

    @property
    def has_issued_visitor_id(self) -> bool:
        """Whether the gateway already told us the visitor id."""
        return bool(self.page.session_storage.get(VISITOR_ID_STORAGE_KEY))

    def remember_visitor_id(self, reply: dict[str, Any]) -> None:
        """Cache the visitor id from a pageview reply."""
        visitor_id = reply.get("visitor_id")
        if isinstance(visitor_id, str) and visitor_id:
            self.page.session_storage[VISITOR_ID_STORAGE_KEY] = visitor_id

    @property
    def session_id(self) -> str:
        return session_token(self.page.session_storage)

    @property
    def source(self) -> str:
        return traffic_source(self.page)

    def send(self, path: str, payload: dict, on_response: ResponseHandler | None = None) -> None:
        """Send an authenticated payload for the current page."""
        self.transport.send(
            path,
            {"credential": self.credential, **payload},
            referer=self.page.url,
            client_ip=self.page.client_ip,
            on_response=on_response,
        )

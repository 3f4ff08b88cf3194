"""Fire-and-forget delivery of tracking payloads.

A host-provided beacon is tried first (it survives page unload). When no
beacon is available, it refuses the payload, or the caller wants the reply,
the payload is posted with httpx on a background worker. Delivery failures are logged at debug level
and never surface to the caller.
"""

import json
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, wait

import httpx
import structlog

logger = structlog.get_logger()

Beacon = Callable[[str, bytes], bool]
ResponseHandler = Callable[[dict], None]

DEFAULT_TIMEOUT = 5.0


class Transport:
    """Sends JSON payloads to the ingestion gateway."""

    def __init__(
        self,
        base_url: str,
        beacon: Beacon | None = None,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_workers: int = 2,
    ):
        """Initialize the transport.

        Args:
            base_url: Ingestion base URL, without a trailing slash.
            beacon: Optional ``(url, body) -> accepted`` callable.
            client: httpx client for the fallback path.
            timeout: Fallback request timeout in seconds.
            max_workers: Background workers for the fallback path.
        """
        self.base_url = base_url.rstrip("/")
        self.beacon = beacon
        self.timeout = timeout
        self._client = client
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="conteo")
        self._pending: list[Future] = []

    @property
    def client(self) -> httpx.Client:
        """Lazy-load the httpx client."""
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout)
        return self._client

    def send(
        self,
        path: str,
        payload: dict,
        referer: str | None = None,
        client_ip: str | None = None,
        on_response: ResponseHandler | None = None,
    ) -> None:
        """Deliver one payload without waiting for the outcome.

        Args:
            path: Endpoint path, e.g. ``/track``.
            payload: JSON-serializable body.
            referer: Page URL reported as the request Referer.
            client_ip: Visitor address relayed as X-Forwarded-For.
            on_response: Called with the decoded JSON body of a successful
                reply. Beacons never expose a reply, so the POST path is used.
        """
        url = f"{self.base_url}{path}"
        try:
            body = json.dumps(payload, default=str).encode("utf-8")
        except (TypeError, ValueError) as e:
            logger.debug("Unserializable tracking payload", url=url, error=str(e))
            return

        if self.beacon is not None and on_response is None:
            try:
                if self.beacon(url, body):
                    return
            except Exception as e:
                logger.debug("Beacon failed, falling back to POST", url=url, error=str(e))

        headers = {"Content-Type": "application/json"}
        if referer:
            headers["Referer"] = referer
        if client_ip:
            headers["X-Forwarded-For"] = client_ip

        try:
            future = self._executor.submit(self._post, url, body, headers, on_response)
        except RuntimeError as e:
            # Executor already shut down
            logger.debug("Transport closed, dropping payload", url=url, error=str(e))
            return
        self._pending = [f for f in self._pending if not f.done()]
        self._pending.append(future)

    def _post(
        self,
        url: str,
        body: bytes,
        headers: dict[str, str],
        on_response: ResponseHandler | None = None,
    ) -> None:
        try:
            response = self.client.post(url, content=body, headers=headers)
            if response.status_code >= 400:
                logger.debug("Tracking request rejected", url=url, status_code=response.status_code)
                return
            if on_response is not None:
                reply = response.json()
                if isinstance(reply, dict):
                    on_response(reply)
        except Exception as e:
            logger.debug("Tracking request failed", url=url, error=str(e))

    def flush(self, timeout: float | None = None) -> None:
        """Wait for queued fallback requests to finish."""
        pending, self._pending = self._pending, []
        if pending:
            wait(pending, timeout=timeout)

    def close(self) -> None:
        """Flush, then release the worker pool and HTTP client."""
        self.flush(timeout=self.timeout)
        self._executor.shutdown(wait=False)
        if self._client is not None:
            self._client.close()

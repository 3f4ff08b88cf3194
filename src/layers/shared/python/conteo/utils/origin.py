"""Origin validation for tracking requests.

A site credential is embedded in public pages, so anyone can copy it. The
Origin/Referer of the request is the only thing tying a request to the
registered domain.
"""

from urllib.parse import urlparse

import structlog

logger = structlog.get_logger()

LOCAL_HOSTNAMES = frozenset({"localhost", "127.0.0.1"})


def strip_www(hostname: str) -> str:
    """Remove a leading ``www.`` label."""
    hostname = hostname.strip().lower()
    if hostname.startswith("www."):
        return hostname[4:]
    return hostname


def is_local_hostname(hostname: str) -> bool:
    """Check whether a hostname is a local development host."""
    return hostname in LOCAL_HOSTNAMES or hostname.endswith(".localhost")


def is_origin_allowed(site_domain: str, origin: str | None) -> bool:
    """Decide whether a request origin may report for a site.

    Args:
        site_domain: Registered domain of the site.
        origin: Origin or Referer header value, or None when absent.

    Returns:
        True to admit, False to reject. A missing origin is admitted, a
        malformed one is rejected.
    """
    if not origin:
        return True

    try:
        hostname = urlparse(origin.strip()).hostname
    except ValueError:
        hostname = None

    if not hostname:
        logger.warning("Malformed request origin", origin=origin[:200])
        return False

    hostname = strip_www(hostname)
    if is_local_hostname(hostname):
        return True

    domain = strip_www(site_domain)
    return hostname == domain or hostname.endswith(f".{domain}")

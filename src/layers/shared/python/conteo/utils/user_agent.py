"""User agent and referrer normalization."""

import re
from typing import NamedTuple
from urllib.parse import urlparse

from conteo.utils.origin import strip_www

UNKNOWN = "Unknown"
DIRECT_REFERRER = "Direct / None"

# Order matters: Edge and Opera UAs also contain "Chrome" and "Safari",
# Chrome UAs also contain "Safari".
BROWSER_TOKENS: tuple[tuple[str, str], ...] = (
    ("Edg", "Edge"),
    ("OPR", "Opera"),
    ("Opera", "Opera"),
    ("Firefox", "Firefox"),
    ("Chrome", "Chrome"),
    ("Safari", "Safari"),
)

# iOS UAs contain "Mac OS X", Android UAs contain "Linux".
OS_TOKENS: tuple[tuple[str, str], ...] = (
    ("Windows", "Windows"),
    ("iPhone", "iOS"),
    ("iPad", "iOS"),
    ("Android", "Android"),
    ("Mac", "Mac"),
    ("Linux", "Linux"),
)

MOBILE_PATTERN = re.compile(r"Mobile|Android|iPhone|iPad")


class UserAgentInfo(NamedTuple):
    """Coarse classification of a user agent."""

    browser: str
    os: str
    device_class: str


def _first_match(user_agent: str, tokens: tuple[tuple[str, str], ...]) -> str:
    for token, name in tokens:
        if token in user_agent:
            return name
    return UNKNOWN


def parse_user_agent(user_agent: str | None) -> UserAgentInfo:
    """Classify a user agent into browser, OS and device class.

    Args:
        user_agent: Raw User-Agent string.

    Returns:
        UserAgentInfo; unmatched parts are "Unknown", device is "Mobile" or "Desktop".
    """
    user_agent = user_agent or ""
    return UserAgentInfo(
        browser=_first_match(user_agent, BROWSER_TOKENS),
        os=_first_match(user_agent, OS_TOKENS),
        device_class="Mobile" if MOBILE_PATTERN.search(user_agent) else "Desktop",
    )


def extract_referrer_domain(referrer: str | None) -> str:
    """Reduce a referrer URL to its bare hostname.

    Returns:
        Hostname without a leading ``www.``, or "Direct / None" when the
        referrer is absent or unparsable.
    """
    if not referrer:
        return DIRECT_REFERRER
    try:
        hostname = urlparse(referrer.strip()).hostname
    except ValueError:
        return DIRECT_REFERRER
    if not hostname:
        return DIRECT_REFERRER
    return strip_www(hostname)

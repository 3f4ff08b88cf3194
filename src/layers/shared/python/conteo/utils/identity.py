"""Pseudonymous visitor identity.

Visitors are never stored as entities. A visitor id is a deterministic hash
of the client network address and user agent, so every ingestion endpoint
derives the same id for the same browser on the same network. Collisions
are an accepted privacy trade-off.

Sessions are tracked separately with a random token that lives in
session-scoped client storage.
"""

import secrets
from collections.abc import MutableMapping

SESSION_STORAGE_KEY = "conteo_session_id"

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def fingerprint(ip: str, user_agent: str) -> str:
    """Derive the visitor id for an (ip, user agent) pair.

    Rolling 31-multiplier hash over the UTF-16 code units of ``"{ip}:{ua}"``,
    wrapped to a signed 32-bit integer, reduced to base 36. Ids produced here
    match the ids already stored by earlier tracker deployments.

    Args:
        ip: Client IP address.
        user_agent: Client user agent string (may be empty).

    Returns:
        Compact base-36 visitor id.
    """
    data = f"{ip}:{user_agent}".encode("utf-16-le")
    value = 0
    for i in range(0, len(data), 2):
        code_unit = data[i] | (data[i + 1] << 8)
        value = ((value << 5) - value + code_unit) & 0xFFFFFFFF

    if value & 0x80000000:
        value -= 1 << 32
    return _to_base36(abs(value))


def new_session_token() -> str:
    """Generate a random session token."""
    return secrets.token_hex(12)


def session_token(storage: MutableMapping[str, str]) -> str:
    """Get the session token from session storage, creating it on first use.

    Args:
        storage: Session-scoped client storage.

    Returns:
        The token, unchanged for the lifetime of the storage.
    """
    token = storage.get(SESSION_STORAGE_KEY)
    if not token:
        token = new_session_token()
        storage[SESSION_STORAGE_KEY] = token
    return token

"""Utility functions and helpers."""

from conteo.utils.responses import success, error, preflight, from_exception
from conteo.utils.identity import fingerprint, session_token
from conteo.utils.origin import is_origin_allowed
from conteo.utils.user_agent import UserAgentInfo, extract_referrer_domain, parse_user_agent
from conteo.utils.exceptions import (
    ConteoError,
    ValidationError,
    UnauthorizedError,
    ForbiddenError,
    RateLimitError,
    PersistenceError,
)

__all__ = [
    # Response helpers
    "success",
    "error",
    "preflight",
    "from_exception",
    # Identity and normalization
    "fingerprint",
    "session_token",
    "is_origin_allowed",
    "UserAgentInfo",
    "extract_referrer_domain",
    "parse_user_agent",
    # Exceptions
    "ConteoError",
    "ValidationError",
    "UnauthorizedError",
    "ForbiddenError",
    "RateLimitError",
    "PersistenceError",
]

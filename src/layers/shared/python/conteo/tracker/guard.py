"""Boundary guards for code running inside a host page.

Nothing the tracker does may raise into the host: every public entry point
is wrapped with swallow_errors, and third-party callables are only ever
replaced with intercept() proxies that always forward to the original.
"""

import functools
from collections.abc import Callable
from typing import Any

import structlog

logger = structlog.get_logger()

WRAPPED_MARKER = "__conteo_wrapped__"


def swallow_errors(func: Callable) -> Callable:
    """Decorate a tracker entry point so it never raises."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            logger.debug("Tracker call failed", call=func.__qualname__, error=str(e))
            return None

    return wrapper


def is_intercepted(func: Any) -> bool:
    """Whether a callable is already an intercept() proxy."""
    return bool(getattr(func, WRAPPED_MARKER, False))


def intercept(
    real: Callable,
    before: Callable[..., Any] | None = None,
    after: Callable[..., Any] | None = None,
) -> Callable:
    """Build a transparent forwarding proxy around a callable.

    ``before`` sees the call arguments before they are forwarded, ``after``
    runs once the real call returned. Observer failures are swallowed; the
    real callable's result and exceptions pass through unchanged. Wrapping a
    proxy again returns it as is.

    Args:
        real: The callable to wrap.
        before: Observer called with the same arguments before forwarding.
        after: Observer called with no arguments after forwarding.

    Returns:
        The proxy.
    """
    if is_intercepted(real):
        return real

    observe_before = swallow_errors(before) if before else None
    observe_after = swallow_errors(after) if after else None

    @functools.wraps(real)
    def proxy(*args, **kwargs):
        if observe_before:
            observe_before(*args, **kwargs)
        result = real(*args, **kwargs)
        if observe_after:
            observe_after()
        return result

    setattr(proxy, WRAPPED_MARKER, True)
    proxy.__wrapped_original__ = real
    return proxy

"""Fixtures for the client tracker tests."""

from unittest.mock import MagicMock

import pytest

from conteo.tracker.context import TrackerContext
from conteo.tracker.page import PageEnvironment
from conteo.tracker.transport import Transport

SHOP_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)


@pytest.fixture
def page():
    """A shop landing page."""
    return PageEnvironment(
        url="https://shop.example.com/?utm_source=newsletter&utm_campaign=spring",
        referrer="https://www.google.com/",
        user_agent=SHOP_UA,
        client_ip="203.0.113.7",
        screen_width=390,
        screen_height=844,
    )


@pytest.fixture
def transport():
    """A transport double recording every send."""
    return MagicMock(spec=Transport)


@pytest.fixture
def context(page, transport):
    """Tracker context bound to the shop page."""
    return TrackerContext(
        credential="cred-shop-0123456789",
        base_url="https://api.conteo.online",
        page=page,
        transport=transport,
    )


@pytest.fixture
def sent(transport):
    """Payloads handed to the transport, optionally filtered by path."""
    def _sent(path=None):
        return [
            c.args[1]
            for c in transport.send.call_args_list
            if path is None or c.args[0] == path
        ]

    return _sent

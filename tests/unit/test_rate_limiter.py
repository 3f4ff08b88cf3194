"""Tests for the rate limiter utility."""

from unittest.mock import patch

import pytest
from botocore.exceptions import ClientError

from conteo.config import get_settings
from conteo.utils.exceptions import RateLimitError
from conteo.utils.rate_limiter import check_rate_limit, enforce_rate_limit


class TestRateLimiter:
    """Tests for check_rate_limit."""

    def test_rate_limit_allows_under_limit(self, dynamodb_table):
        """Requests under the limit should be allowed."""
        result = check_rate_limit(
            identifier="visitor-1",
            action="pageview",
            requests_per_minute=5,
            requests_per_hour=100,
        )

        assert result.allowed is True
        assert result.requests_remaining >= 0
        assert result.retry_after is None

    def test_rate_limit_blocks_over_minute(self, dynamodb_table):
        """Exceeding the per-minute limit should block the request."""
        for _ in range(5):
            result = check_rate_limit(
                identifier="visitor-1",
                action="pageview",
                requests_per_minute=5,
                requests_per_hour=100,
            )
            assert result.allowed is True

        # The 6th request should be blocked
        result = check_rate_limit(
            identifier="visitor-1",
            action="pageview",
            requests_per_minute=5,
            requests_per_hour=100,
        )

        assert result.allowed is False
        assert result.requests_remaining == 0
        assert result.retry_after > 0

    def test_rate_limit_blocks_over_hour(self, dynamodb_table):
        """Exceeding the per-hour limit should block the request."""
        for _ in range(3):
            assert check_rate_limit("visitor-1", "pageview", 100, 3).allowed is True

        result = check_rate_limit("visitor-1", "pageview", 100, 3)

        assert result.allowed is False
        assert result.retry_after > 0

    def test_rate_limit_different_identifiers(self, dynamodb_table):
        """Different visitors should have independent rate limits."""
        for _ in range(2):
            check_rate_limit("visitor-1", "pageview", 2, 100)

        assert check_rate_limit("visitor-1", "pageview", 2, 100).allowed is False
        assert check_rate_limit("visitor-2", "pageview", 2, 100).allowed is True

    def test_rate_limit_different_actions(self, dynamodb_table):
        """Actions are counted separately."""
        for _ in range(2):
            check_rate_limit("visitor-1", "pageview", 2, 100)

        assert check_rate_limit("visitor-1", "conversion", 2, 100).allowed is True

    def test_rate_limit_fails_open(self):
        """A store failure lets the request through."""
        error = ClientError({"Error": {"Code": "InternalServerError", "Message": "boom"}}, "UpdateItem")
        with patch("conteo.utils.rate_limiter._increment", side_effect=error):
            result = check_rate_limit("visitor-1", "pageview", 1, 1)

        assert result.allowed is True


class TestEnforceRateLimit:
    """Tests for enforce_rate_limit."""

    def test_disabled_is_noop(self, dynamodb_table):
        """With limiting disabled nothing is counted."""
        for _ in range(10):
            enforce_rate_limit("visitor-1", "pageview")

    def test_raises_when_exceeded(self, dynamodb_table, monkeypatch):
        """Exceeding the configured limit raises RateLimitError."""
        monkeypatch.setenv("RATE_LIMIT_ENABLED", "true")
        monkeypatch.setenv("RATE_LIMIT_PER_MINUTE", "2")
        get_settings.cache_clear()

        enforce_rate_limit("visitor-1", "pageview")
        enforce_rate_limit("visitor-1", "pageview")

        with pytest.raises(RateLimitError) as exc_info:
            enforce_rate_limit("visitor-1", "pageview")

        assert exc_info.value.status_code == 429
        assert exc_info.value.retry_after > 0

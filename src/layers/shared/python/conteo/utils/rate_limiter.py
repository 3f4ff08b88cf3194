"""Rate limiting for the public ingestion endpoints."""

import time
from typing import NamedTuple

import boto3
import structlog
from botocore.exceptions import ClientError

from conteo.config import get_settings
from conteo.utils.exceptions import RateLimitError

logger = structlog.get_logger()


class RateLimitResult(NamedTuple):
    """Result of a rate limit check."""

    allowed: bool
    requests_remaining: int
    retry_after: int | None  # Seconds until limit resets


def _get_dynamodb():
    """Get DynamoDB resource."""
    return boto3.resource("dynamodb")


def _increment(table, key: str, identifier: str, ttl: int) -> int:
    response = table.update_item(
        Key={"PK": key, "SK": identifier},
        UpdateExpression="SET #count = if_not_exists(#count, :zero) + :inc, #ttl = :ttl",
        ExpressionAttributeNames={"#count": "count", "#ttl": "ttl"},
        ExpressionAttributeValues={
            ":zero": 0,
            ":inc": 1,
            ":ttl": ttl,
        },
        ReturnValues="ALL_NEW",
    )
    return int(response["Attributes"]["count"])


def check_rate_limit(
    identifier: str,
    action: str,
    requests_per_minute: int,
    requests_per_hour: int,
) -> RateLimitResult:
    """Check if a request should be rate limited.

    Uses DynamoDB counters with minute and hour buckets and TTL cleanup.
    Fails open when the store is unavailable.

    Args:
        identifier: Visitor fingerprint.
        action: Action being rate limited (e.g., "pageview").
        requests_per_minute: Max requests allowed per minute.
        requests_per_hour: Max requests allowed per hour.

    Returns:
        RateLimitResult with allowed status and remaining requests.
    """
    table = _get_dynamodb().Table(get_settings().table_name)
    current_time = int(time.time())
    current_minute = current_time // 60
    current_hour = current_time // 3600

    try:
        minute_count = _increment(
            table,
            f"RATELIMIT#{action}#MIN#{current_minute}",
            identifier,
            current_time + 120,
        )

        # Minute limit first (stricter)
        if minute_count > requests_per_minute:
            logger.warning(
                "Rate limit exceeded (minute)",
                identifier=identifier,
                action=action,
                count=minute_count,
                limit=requests_per_minute,
            )
            return RateLimitResult(
                allowed=False,
                requests_remaining=0,
                retry_after=60 - (current_time % 60),
            )

        hour_count = _increment(
            table,
            f"RATELIMIT#{action}#HOUR#{current_hour}",
            identifier,
            current_time + 7200,
        )

        if hour_count > requests_per_hour:
            logger.warning(
                "Rate limit exceeded (hour)",
                identifier=identifier,
                action=action,
                count=hour_count,
                limit=requests_per_hour,
            )
            return RateLimitResult(
                allowed=False,
                requests_remaining=0,
                retry_after=3600 - (current_time % 3600),
            )

        return RateLimitResult(
            allowed=True,
            requests_remaining=min(
                requests_per_minute - minute_count,
                requests_per_hour - hour_count,
            ),
            retry_after=None,
        )

    except ClientError as e:
        logger.error(
            "Rate limiter DynamoDB error",
            error=str(e),
            identifier=identifier,
            action=action,
        )
        return RateLimitResult(allowed=True, requests_remaining=-1, retry_after=None)


def enforce_rate_limit(identifier: str, action: str) -> None:
    """Apply the configured ingestion rate limit.

    Raises:
        RateLimitError: If the visitor exceeded the limit for this action.
    """
    settings = get_settings()
    if not settings.rate_limit_enabled:
        return

    result = check_rate_limit(
        identifier=identifier,
        action=action,
        requests_per_minute=settings.rate_limit_per_minute,
        requests_per_hour=settings.rate_limit_per_hour,
    )
    if not result.allowed:
        raise RateLimitError(
            "Too many requests. Please try again later.",
            retry_after=result.retry_after or 60,
        )

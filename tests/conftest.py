"""Pytest configuration and fixtures."""

import base64
import json
import os

import pytest

# Set environment variables before imports
os.environ["TABLE_NAME"] = "conteo-test"
os.environ["STAGE"] = "test"
os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"

CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
IPHONE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)


@pytest.fixture(autouse=True)
def reset_settings(monkeypatch):
    """Reload settings around every test so env overrides apply."""
    from conteo.config import get_settings

    monkeypatch.setenv("RATE_LIMIT_ENABLED", "false")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def aws_credentials():
    """Mock AWS credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"


@pytest.fixture
def dynamodb_table(aws_credentials):
    """Create mocked DynamoDB table."""
    import boto3
    from moto import mock_aws

    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name="us-east-1")

        table = dynamodb.create_table(
            TableName="conteo-test",
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
                {"AttributeName": "GSI1PK", "AttributeType": "S"},
                {"AttributeName": "GSI1SK", "AttributeType": "S"},
            ],
            GlobalSecondaryIndexes=[
                {
                    "IndexName": "GSI1",
                    "KeySchema": [
                        {"AttributeName": "GSI1PK", "KeyType": "HASH"},
                        {"AttributeName": "GSI1SK", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                },
            ],
            BillingMode="PAY_PER_REQUEST",
        )

        table.wait_until_exists()

        yield table


@pytest.fixture
def site(dynamodb_table):
    """Register a site with conversion tracking enabled."""
    from conteo.models.site import Site
    from conteo.repositories.site import SiteRepository

    return SiteRepository().create_site(
        Site(
            id="site-shop-001",
            domain="shop.example.com",
            credential="cred-shop-0123456789",
            name="Example Shop",
            conversion_tracking_enabled=True,
        )
    )


@pytest.fixture
def site_without_conversions(dynamodb_table):
    """Register a site with conversion tracking disabled."""
    from conteo.models.site import Site
    from conteo.repositories.site import SiteRepository

    return SiteRepository().create_site(
        Site(
            id="site-blog-002",
            domain="blog.example.org",
            credential="cred-blog-9876543210",
            name="Example Blog",
            conversion_tracking_enabled=False,
        )
    )


@pytest.fixture
def api_gateway_event():
    """Create a sample API Gateway event for the tracking endpoints."""
    def _create_event(
        method: str = "POST",
        path: str = "/track",
        body=None,
        headers: dict = None,
        source_ip: str = "203.0.113.7",
        base64_body: bool = False,
    ):
        if body is None or isinstance(body, str):
            raw_body = body
        else:
            raw_body = json.dumps(body)

        if base64_body and raw_body is not None:
            raw_body = base64.b64encode(raw_body.encode("utf-8")).decode("ascii")

        request_headers = {
            "Content-Type": "application/json",
            "User-Agent": CHROME_UA,
        }
        request_headers.update(headers or {})

        return {
            "httpMethod": method,
            "path": path,
            "pathParameters": {},
            "queryStringParameters": {},
            "body": raw_body,
            "isBase64Encoded": base64_body,
            "headers": request_headers,
            "requestContext": {
                "identity": {"sourceIp": source_ip},
            },
        }

    return _create_event


class LambdaContext:
    """Mock Lambda context."""

    def __init__(self):
        self.function_name = "test-function"
        self.memory_limit_in_mb = 128
        self.invoked_function_arn = "arn:aws:lambda:us-east-1:123456789:function:test"
        self.aws_request_id = "test-request-id"

    def get_remaining_time_in_millis(self):
        return 30000


@pytest.fixture
def lambda_context():
    """Create a mock Lambda context."""
    return LambdaContext()

"""Tests for Pydantic models."""

from datetime import datetime
from decimal import Decimal

import pytest
from pydantic import ValidationError

from conteo.models.base import generate_ulid
from conteo.models.conversion import (
    ConversionRecord,
    ConversionRequest,
    FunnelEvent,
    FunnelStage,
)
from conteo.models.custom_event import MAX_PROPERTIES, CustomEvent, CustomEventRequest
from conteo.models.pageview import Pageview, PageviewRequest
from conteo.models.site import Site


class TestBaseModel:
    """Tests for BaseModel."""

    def test_generate_ulid(self):
        """Test ULID generation."""
        ulid1 = generate_ulid()
        ulid2 = generate_ulid()

        assert len(ulid1) == 26
        assert ulid1 != ulid2

    def test_model_serialization(self):
        """Test DynamoDB serialization."""
        record = ConversionRecord(
            id="conv-123",
            site_id="site-1",
            visitor_id="abc",
            purchased=True,
            value=19.99,
            currency="EUR",
        )

        db_item = record.to_dynamodb()

        assert db_item["id"] == "conv-123"
        assert db_item["value"] == Decimal("19.99")
        assert isinstance(db_item["created_at"], str)
        # None attributes are not written
        assert "product_name" not in db_item
        assert "purchased_at" not in db_item

    def test_model_deserialization(self):
        """Test DynamoDB deserialization."""
        db_item = {
            "PK": "SITE#site-1",
            "SK": "CONVERSION#abc#conv-123",
            "id": "conv-123",
            "site_id": "site-1",
            "visitor_id": "abc",
            "viewed_product": True,
            "value": Decimal("25"),
            "created_at": "2024-01-01T12:00:00+00:00",
            "updated_at": "2024-01-01T12:00:00+00:00",
        }

        record = ConversionRecord.from_dynamodb(db_item)

        assert record.id == "conv-123"
        assert record.value == 25
        assert isinstance(record.created_at, datetime)
        assert record.viewed_product is True

    def test_deserialize_large_decimals(self):
        """Exponent-form Decimals read back as plain numbers."""
        assert ConversionRecord._deserialize_value(Decimal("1E+30")) == 10**30
        assert ConversionRecord._deserialize_value(Decimal("39.9")) == 39.9


class TestSite:
    """Tests for Site model."""

    def test_domain_normalized(self):
        site = Site(domain="  Shop.Example.COM ")

        assert site.domain == "shop.example.com"

    def test_generated_credential(self):
        assert Site(domain="a.com").credential != Site(domain="a.com").credential

    def test_keys(self):
        site = Site(id="s1", domain="a.com", credential="cred-1")

        assert site.get_keys() == {"PK": "SITE#s1", "SK": "PROFILE"}
        assert site.get_gsi1_keys() == {"GSI1PK": "CREDENTIAL#cred-1", "GSI1SK": "SITE#s1"}


class TestPageview:
    """Tests for pageview models."""

    def test_keys(self):
        pageview = Pageview(
            site_id="s1",
            visitor_id="v1",
            path="/",
            referrer_domain="Direct / None",
            browser="Chrome",
            os="Windows",
            device_class="Desktop",
        )

        assert pageview.get_pk() == "SITE#s1"
        assert pageview.get_sk() == f"PAGEVIEW#{pageview.id}"
        assert pageview.timestamp == pageview.created_at

    def test_request_accepts_api_key_alias(self):
        request = PageviewRequest.model_validate({"api_key": "cred", "path": "/"})

        assert request.credential == "cred"

    def test_request_requires_path(self):
        with pytest.raises(ValidationError):
            PageviewRequest.model_validate({"credential": "cred"})

    def test_utm_drops_empty_values(self):
        request = PageviewRequest(credential="c", path="/", utm_source="news", utm_medium="")

        utm = request.utm()

        assert utm.source == "news"
        assert utm.medium is None


class TestConversion:
    """Tests for conversion models."""

    def test_stage_from_flags(self):
        record = ConversionRecord(site_id="s", visitor_id="v")
        assert record.stage == FunnelStage.NEW
        assert record.is_open

        record = ConversionRecord(site_id="s", visitor_id="v", viewed_product=True, opened_form=True)
        assert record.stage == FunnelStage.CHECKOUT_OPENED

        record = ConversionRecord(site_id="s", visitor_id="v", purchased=True)
        assert record.stage == FunnelStage.PURCHASED
        assert not record.is_open

    def test_sort_key_groups_by_visitor(self):
        record = ConversionRecord(id="01ABC", site_id="s", visitor_id="v9")

        assert record.get_sk() == "CONVERSION#v9#01ABC"

    def test_request_parses_event_type(self):
        request = ConversionRequest(
            credential="c",
            visitor_id="v",
            event_type="purchase",
            product_id=12345,
            currency="usd",
        )

        assert request.event_type == FunnelEvent.PURCHASE
        assert request.product_id == "12345"
        assert request.currency == "USD"

    @pytest.mark.parametrize(
        "body",
        [
            {"credential": "c", "visitor_id": "v", "event_type": "add_to_wishlist"},
            {"credential": "c", "visitor_id": "v"},
            {"credential": "c", "visitor_id": "a#b", "event_type": "purchase"},
            {"credential": "c", "visitor_id": "v", "event_type": "purchase", "value": -1},
            {"credential": "c", "visitor_id": "v", "event_type": "purchase", "value": 1e30},
            {"credential": "c", "visitor_id": "v", "event_type": "purchase", "value": float("inf")},
            {"credential": "c", "visitor_id": "v", "event_type": "purchase", "value": float("nan")},
            {"credential": "c", "visitor_id": "v", "event_type": "purchase", "currency": "EURO"},
        ],
    )
    def test_request_rejects_invalid(self, body):
        with pytest.raises(ValidationError):
            ConversionRequest.model_validate(body)


class TestCustomEvent:
    """Tests for custom event models."""

    def test_keys(self):
        event = CustomEvent(site_id="s1", visitor_id="v1", event_name="signup")

        assert event.get_sk() == f"EVENT#{event.id}"
        assert event.source == "Direct"

    def test_properties_are_stringified(self):
        request = CustomEventRequest(
            credential="c",
            visitor_id="v",
            event_name="  newsletter_signup ",
            properties={"plan": "pro", "seats": 3, "trial": True, "tags": ["a", "b"], "gone": None},
        )

        assert request.event_name == "newsletter_signup"
        assert request.properties == {
            "plan": "pro",
            "seats": "3",
            "trial": "true",
            "tags": '["a","b"]',
        }

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError):
            CustomEventRequest(credential="c", visitor_id="v", event_name="   ")

    def test_too_many_properties_rejected(self):
        properties = {f"k{i}": "v" for i in range(MAX_PROPERTIES + 1)}

        with pytest.raises(ValidationError):
            CustomEventRequest(credential="c", visitor_id="v", event_name="x", properties=properties)

    def test_non_object_properties_rejected(self):
        with pytest.raises(ValidationError):
            CustomEventRequest(credential="c", visitor_id="v", event_name="x", properties=["a"])

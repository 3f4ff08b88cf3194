"""Tests for the ingestion service."""

import pytest

from conteo.config import ConversionSurface, get_settings
from conteo.models.conversion import ConversionRequest
from conteo.models.custom_event import CustomEventRequest
from conteo.models.pageview import GeoLocation, PageviewRequest
from conteo.repositories.conversion import ConversionRepository
from conteo.repositories.events import CustomEventRepository, PageviewRepository
from conteo.services.ingestion import IngestionService, RequestMeta
from conteo.utils.exceptions import ForbiddenError, UnauthorizedError
from conteo.utils.identity import fingerprint

UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0.0.0 Safari/537.36"
SHOP_ORIGIN = "https://www.shop.example.com/products/blue-mug"


def meta(origin=SHOP_ORIGIN, ip="203.0.113.7", user_agent=UA, geo=None) -> RequestMeta:
    return RequestMeta(ip=ip, user_agent=user_agent, origin=origin, geo=geo or GeoLocation())


class TestAdmission:
    """Tests for credential and origin checks."""

    def test_admits_matching_origin(self, site):
        assert IngestionService().admit(site.credential, SHOP_ORIGIN).id == site.id

    def test_unknown_credential(self, site):
        with pytest.raises(UnauthorizedError):
            IngestionService().admit("no-such-credential", SHOP_ORIGIN)

    def test_foreign_origin(self, site):
        with pytest.raises(ForbiddenError) as exc_info:
            IngestionService().admit(site.credential, "https://evil.com/")

        assert exc_info.value.status_code == 403

    def test_missing_origin_admitted_by_default(self, site):
        assert IngestionService().admit(site.credential, None).id == site.id

    def test_missing_origin_rejected_when_strict(self, site, monkeypatch):
        monkeypatch.setenv("STRICT_ORIGIN_CHECK", "true")
        get_settings.cache_clear()

        with pytest.raises(ForbiddenError):
            IngestionService().admit(site.credential, None)


class TestPageviews:
    """Tests for record_pageview."""

    def test_records_normalized_pageview(self, site):
        request = PageviewRequest(
            credential=site.credential,
            path="/products/blue-mug",
            referrer="https://www.google.com/search?q=mug",
            utm_source="newsletter",
            screen_width=1920,
        )

        pageview = IngestionService().record_pageview(
            request, meta(geo=GeoLocation(country="DE", city="Berlin"))
        )

        assert pageview.visitor_id == fingerprint("203.0.113.7", UA)
        assert pageview.referrer_domain == "google.com"
        assert pageview.browser == "Chrome"
        assert pageview.os == "Windows"
        assert pageview.device_class == "Desktop"
        assert pageview.utm.source == "newsletter"

        stored = PageviewRepository().list_by_site(site.id)
        assert len(stored) == 1
        assert stored[0].geo.country == "DE"
        assert stored[0].screen_width == 1920

    def test_body_user_agent_wins(self, site):
        request = PageviewRequest(credential=site.credential, path="/", user_agent="Firefox/121.0")

        pageview = IngestionService().record_pageview(request, meta())

        assert pageview.visitor_id == fingerprint("203.0.113.7", "Firefox/121.0")
        assert pageview.browser == "Firefox"

    def test_missing_referrer_and_geo(self, site):
        request = PageviewRequest(credential=site.credential, path="/")

        pageview = IngestionService().record_pageview(request, meta())

        assert pageview.referrer_domain == "Direct / None"
        assert pageview.geo.country is None

    def test_same_visitor_id_across_endpoints(self, site):
        """Pageviews and the tracker derive the same visitor id."""
        request = PageviewRequest(credential=site.credential, path="/")

        first = IngestionService().record_pageview(request, meta())
        second = IngestionService().record_pageview(request, meta())

        assert first.visitor_id == second.visitor_id


class TestConversions:
    """Tests for record_conversion."""

    def test_funnel_intent_applied(self, site):
        request = ConversionRequest(
            credential=site.credential,
            visitor_id="visitor-1",
            event_type="product_view",
            product_name="Blue Mug",
        )

        record = IngestionService().record_conversion(request, meta())

        assert record.viewed_product is True
        assert record.site_id == site.id

    def test_disabled_site_is_noop(self, site_without_conversions):
        request = ConversionRequest(
            credential=site_without_conversions.credential,
            visitor_id="visitor-1",
            event_type="purchase",
        )

        result = IngestionService().record_conversion(
            request, meta(origin="https://blog.example.org/")
        )

        assert result is None
        assert ConversionRepository().list_for_visitor(site_without_conversions.id, "visitor-1") == []

    def test_disabled_site_still_checks_origin(self, site_without_conversions):
        request = ConversionRequest(
            credential=site_without_conversions.credential,
            visitor_id="visitor-1",
            event_type="purchase",
        )

        with pytest.raises(ForbiddenError):
            IngestionService().record_conversion(request, meta(origin="https://evil.com/"))

    def test_purchase_only_mode_ignores_funnel_steps(self, site, monkeypatch):
        monkeypatch.setenv("CONVERSION_EVENTS", ConversionSurface.PURCHASE_ONLY.value)
        get_settings.cache_clear()
        service = IngestionService()

        view = ConversionRequest(credential=site.credential, visitor_id="v", event_type="product_view")
        purchase = ConversionRequest(
            credential=site.credential, visitor_id="v", event_type="purchase", value=20
        )

        assert service.record_conversion(view, meta()) is None
        record = service.record_conversion(purchase, meta())

        assert record.purchased is True
        assert len(ConversionRepository().list_for_visitor(site.id, "v")) == 1


class TestCustomEvents:
    """Tests for record_custom_event."""

    def test_records_event(self, site):
        request = CustomEventRequest(
            credential=site.credential,
            visitor_id="visitor-1",
            session_id="sess-1",
            event_name="newsletter_signup",
            properties={"plan": "pro"},
            path="/blog",
            device="Mobile",
        )

        event = IngestionService().record_custom_event(request, meta())

        assert event.source == "Direct"
        assert event.country is None
        stored = CustomEventRepository().list_by_site(site.id)
        assert len(stored) == 1
        assert stored[0].properties == {"plan": "pro"}
        assert stored[0].session_id == "sess-1"

    def test_unknown_credential(self, site):
        request = CustomEventRequest(credential="nope", visitor_id="v", event_name="x")

        with pytest.raises(UnauthorizedError):
            IngestionService().record_custom_event(request, meta())

"""Tests for request origin validation."""

import pytest

from conteo.utils.origin import is_local_hostname, is_origin_allowed, strip_www


class TestOriginValidation:
    """Tests for is_origin_allowed()."""

    def test_exact_domain(self):
        assert is_origin_allowed("shop.example.com", "https://shop.example.com/cart") is True

    def test_www_prefix_is_ignored(self):
        assert is_origin_allowed("shop.example.com", "https://www.shop.example.com/x") is True

    def test_www_in_registered_domain(self):
        assert is_origin_allowed("www.shop.example.com", "https://shop.example.com/") is True

    def test_subdomain_is_admitted(self):
        assert is_origin_allowed("example.com", "https://blog.example.com/post") is True

    def test_unrelated_domain_is_rejected(self):
        assert is_origin_allowed("shop.example.com", "https://evil.com") is False

    def test_suffix_lookalike_is_rejected(self):
        """A domain that merely ends with the same characters is not a subdomain."""
        assert is_origin_allowed("example.com", "https://notexample.com/") is False

    @pytest.mark.parametrize(
        "origin",
        [
            "http://localhost:3000",
            "http://127.0.0.1:8000/page",
            "http://shop.localhost/",
        ],
    )
    def test_local_development_hosts(self, origin):
        assert is_origin_allowed("shop.example.com", origin) is True

    def test_missing_origin_is_admitted(self):
        assert is_origin_allowed("shop.example.com", None) is True
        assert is_origin_allowed("shop.example.com", "") is True

    def test_malformed_origin_is_rejected(self):
        assert is_origin_allowed("shop.example.com", "not a url") is False

    def test_case_insensitive(self):
        assert is_origin_allowed("Shop.Example.com", "https://SHOP.example.COM/") is True


class TestHostnameHelpers:
    """Tests for hostname helpers."""

    def test_strip_www(self):
        assert strip_www("www.example.com") == "example.com"
        assert strip_www("example.com") == "example.com"
        assert strip_www("wwwexample.com") == "wwwexample.com"

    def test_is_local_hostname(self):
        assert is_local_hostname("localhost") is True
        assert is_local_hostname("app.localhost") is True
        assert is_local_hostname("localhost.example.com") is False

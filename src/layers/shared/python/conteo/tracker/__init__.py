"""Embeddable client tracker.

Drives a host page model: reports pageviews on every route change,
observes advertising pixels for conversion intents, and exposes
``track_event`` for custom events. Never raises into the host.
"""

from conteo.tracker.context import TrackerContext, resolve_base_url, traffic_source
from conteo.tracker.events import CustomEventReporter
from conteo.tracker.guard import intercept, swallow_errors
from conteo.tracker.markup import ProductInfo, extract_product, looks_like_product_page
from conteo.tracker.navigation import NavigationObserver
from conteo.tracker.page import EventBus, History, PageEnvironment
from conteo.tracker.pixel import PixelInterceptor, product_from_params
from conteo.tracker.tracker import Tracker
from conteo.tracker.transport import Transport

__all__ = [
    "CustomEventReporter",
    "EventBus",
    "History",
    "NavigationObserver",
    "PageEnvironment",
    "PixelInterceptor",
    "ProductInfo",
    "Tracker",
    "TrackerContext",
    "Transport",
    "extract_product",
    "intercept",
    "looks_like_product_page",
    "product_from_params",
    "resolve_base_url",
    "swallow_errors",
    "traffic_source",
]

"""Ingestion service shared by the three tracking endpoints.

Every intent goes through the same steps: resolve the credential to a site,
check the request origin against the site domain, normalize the payload,
then persist. Rejections raise ConteoError subclasses; the handler turns
them into responses.
"""

from dataclasses import dataclass, field

import structlog

from conteo.config import ConversionSurface, Settings, get_settings
from conteo.models.conversion import ConversionRecord, ConversionRequest, FunnelEvent
from conteo.models.custom_event import DEFAULT_SOURCE, CustomEvent, CustomEventRequest
from conteo.models.pageview import GeoLocation, Pageview, PageviewRequest
from conteo.models.site import Site
from conteo.repositories.events import CustomEventRepository, PageviewRepository
from conteo.repositories.site import SiteRepository
from conteo.services.funnel import ConversionFunnel, ConversionIntent
from conteo.utils.exceptions import ForbiddenError, UnauthorizedError
from conteo.utils.identity import fingerprint
from conteo.utils.origin import is_origin_allowed
from conteo.utils.rate_limiter import enforce_rate_limit
from conteo.utils.request import get_client_ip, get_geo, get_header, get_request_origin
from conteo.utils.user_agent import extract_referrer_domain, parse_user_agent

logger = structlog.get_logger()

MAX_USER_AGENT_LENGTH = 500


def _mask(credential: str) -> str:
    return f"{credential[:8]}..."


@dataclass(frozen=True)
class RequestMeta:
    """Network-level facts about an ingestion request."""

    ip: str
    user_agent: str | None = None
    origin: str | None = None
    geo: GeoLocation = field(default_factory=GeoLocation)

    @classmethod
    def from_event(cls, event: dict) -> "RequestMeta":
        """Collect request facts from an API Gateway event."""
        return cls(
            ip=get_client_ip(event),
            user_agent=get_header(event, "User-Agent"),
            origin=get_request_origin(event),
            geo=get_geo(event),
        )


class IngestionService:
    """Admits and persists pageview, conversion and custom event intents."""

    def __init__(
        self,
        sites: SiteRepository | None = None,
        pageviews: PageviewRepository | None = None,
        custom_events: CustomEventRepository | None = None,
        funnel: ConversionFunnel | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.sites = sites or SiteRepository()
        self.pageviews = pageviews or PageviewRepository()
        self.custom_events = custom_events or CustomEventRepository()
        self.funnel = funnel or ConversionFunnel(
            default_currency=self.settings.default_currency,
            reorder_window_seconds=self.settings.reorder_window_seconds,
        )

    def admit(self, credential: str, origin: str | None) -> Site:
        """Resolve a credential and check the request origin.

        Args:
            credential: Site credential from the request body.
            origin: Referer/Origin header value, if any.

        Returns:
            The site the request reports for.

        Raises:
            UnauthorizedError: If the credential is unknown.
            ForbiddenError: If the origin is not the site's domain.
        """
        site = self.sites.get_by_credential(credential)
        if not site:
            logger.warning("Unknown site credential", credential=_mask(credential))
            raise UnauthorizedError()

        if not origin and self.settings.strict_origin_check:
            logger.warning("Missing request origin", site_id=site.id)
            raise ForbiddenError("Missing origin")

        if not is_origin_allowed(site.domain, origin):
            logger.warning(
                "Domain validation failed",
                site_id=site.id,
                site_domain=site.domain,
                origin=origin[:200] if origin else None,
            )
            raise ForbiddenError(origin=origin[:200] if origin else None)

        return site

    def record_pageview(self, request: PageviewRequest, meta: RequestMeta) -> Pageview:
        """Store one pageview.

        Args:
            request: Validated pageview request.
            meta: Request network facts.

        Returns:
            The stored pageview (its visitor_id is the derived fingerprint).
        """
        site = self.admit(request.credential, meta.origin)

        user_agent = request.user_agent or meta.user_agent or ""
        visitor_id = fingerprint(meta.ip, user_agent)
        enforce_rate_limit(visitor_id, "pageview")

        ua = parse_user_agent(user_agent)
        pageview = Pageview(
            site_id=site.id,
            visitor_id=visitor_id,
            path=request.path,
            referrer_domain=extract_referrer_domain(request.referrer),
            user_agent=user_agent[:MAX_USER_AGENT_LENGTH] or None,
            browser=ua.browser,
            os=ua.os,
            device_class=ua.device_class,
            geo=meta.geo,
            utm=request.utm(),
            screen_width=request.screen_width,
            screen_height=request.screen_height,
        )
        self.pageviews.add(pageview)

        logger.info(
            "Pageview tracked",
            site_id=site.id,
            visitor_id=visitor_id,
            path=pageview.path,
            country=meta.geo.country,
        )
        return pageview

    def record_conversion(
        self,
        request: ConversionRequest,
        meta: RequestMeta,
    ) -> ConversionRecord | None:
        """Apply one conversion intent to the visitor's funnel.

        Returns:
            The merged record, or None when the intent was acknowledged but
            not stored (tracking disabled for the site, or a non-purchase
            intent in purchase-only mode).
        """
        site = self.admit(request.credential, meta.origin)
        enforce_rate_limit(request.visitor_id, "conversion")

        if not site.conversion_tracking_enabled:
            logger.debug("Conversion tracking disabled", site_id=site.id)
            return None

        intent = ConversionIntent.from_request(request)
        if (
            self.settings.conversion_events == ConversionSurface.PURCHASE_ONLY
            and intent.event_type != FunnelEvent.PURCHASE
        ):
            logger.debug(
                "Ignoring non-purchase intent",
                site_id=site.id,
                event_type=intent.event_type.value,
            )
            return None

        return self.funnel.apply(site.id, intent)

    def record_custom_event(self, request: CustomEventRequest, meta: RequestMeta) -> CustomEvent:
        """Store one custom event.

        Args:
            request: Validated custom event request.
            meta: Request network facts.

        Returns:
            The stored event.
        """
        site = self.admit(request.credential, meta.origin)
        enforce_rate_limit(request.visitor_id, "custom_event")

        event = CustomEvent(
            site_id=site.id,
            visitor_id=request.visitor_id,
            session_id=request.session_id or None,
            event_name=request.event_name,
            properties=request.properties or {},
            path=request.path or None,
            referrer=request.referrer or None,
            source=request.source or DEFAULT_SOURCE,
            device=request.device or None,
            browser=request.browser or None,
            country=request.country or None,
        )
        self.custom_events.add(event)

        logger.info(
            "Custom event tracked",
            site_id=site.id,
            visitor_id=event.visitor_id,
            event_name=event.event_name,
        )
        return event

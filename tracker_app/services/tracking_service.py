import logging
import time
from datetime import datetime, timezone
from typing import Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tracker_app.geo.exceptions import GeolocationUnavailable
from tracker_app.geo.providers import fallback_geolocation
from tracker_app.geo.resolver import GeolocationResolver
from tracker_app.models.visitor import Visitor
from tracker_app.schemas.geo import GeolocationRecord
from tracker_app.schemas.visitor import (
    AdditionalData,
    ClientFingerprint,
    DetailedAnalysis,
    DeviceAnalysis,
    FingerprintingAnalysis,
    LocationAnalysis,
    NetworkAnalysis,
    RequestHeadersSummary,
    SecurityAnalysis,
    TimingAnalysis,
    TrackResponse,
    VisitorInfo,
)
from tracker_app.services import classifier
from tracker_app.services.ip_resolver import extract_client_ip, is_private_ip

logger = logging.getLogger(__name__)


class TrackingService:
    """
    Visitor enrichment and persistence for one tracked page load.

    Flow:
    1. Extract client IP from headers
    2. Resolve geolocation (fallback chain; static record if all fail)
    3. Parse user agent and run the heuristic classifier
    4. Store the visitor row (best effort, never fails the request)
    5. Assemble the summary + detailed analysis response

    Note: async for the outbound geolocation calls; the DB write is sync.
    """

    def __init__(self, db: Session, resolver: GeolocationResolver):
        self.db = db
        self.resolver = resolver

    async def track(self, fingerprint: ClientFingerprint, headers: Mapping[str, str]) -> TrackResponse:
        started = time.perf_counter()

        ip = extract_client_ip(headers)
        # Body userAgent wins over the User-Agent header, which is only the fallback
        user_agent = fingerprint.user_agent or headers.get("user-agent") or ""

        logger.info("Tracking visitor with IP: %s", ip)

        geo = await self._resolve_geolocation(ip, fingerprint.timezone)

        parsed = classifier.parse_user_agent(user_agent, geo)
        is_vpn = classifier.detect_vpn(geo)
        is_proxy = geo.proxy or is_vpn
        threat = classifier.get_threat_level(geo, is_vpn, user_agent)
        connection = classifier.get_connection_type(user_agent, geo)
        device_hash = classifier.generate_device_fingerprint(user_agent, headers)

        visitor_info = VisitorInfo(
            ip=ip,
            country=geo.country,
            region=geo.region_name,
            city=geo.city,
            latitude=geo.lat,
            longitude=geo.lon,
            timezone=geo.timezone,
            browser=parsed.browser,
            os=parsed.os,
            device=parsed.device,
            user_agent=user_agent,
            isp=geo.isp,
            connection=connection,
            threat=threat,
            vpn=is_vpn,
            proxy=is_proxy,
        )

        persisted = self._save_visitor(visitor_info)

        analysis = DetailedAnalysis(
            security=self._security(geo, visitor_info, parsed.is_bot, user_agent),
            network=NetworkAnalysis(
                ip=ip,
                is_private_ip=is_private_ip(ip),
                isp=geo.isp,
                organization=geo.org,
                asn=geo.asn,
                reverse_dns=geo.reverse,
                connection_type=connection,
                provider=geo.provider,
            ),
            location=LocationAnalysis(
                country=geo.country,
                country_code=geo.country_code,
                region=geo.region_name,
                city=geo.city,
                zip=geo.zip,
                latitude=geo.lat,
                longitude=geo.lon,
                timezone=geo.timezone,
                client_timezone=fingerprint.timezone,
                timezone_mismatch=bool(fingerprint.timezone) and fingerprint.timezone != geo.timezone,
            ),
            device=DeviceAnalysis(
                browser=parsed.browser,
                os=parsed.os,
                device=parsed.device,
                platform=fingerprint.platform,
                screen=f"{fingerprint.screen.width}x{fingerprint.screen.height}",
                viewport=f"{fingerprint.viewport.width}x{fingerprint.viewport.height}",
                color_depth=fingerprint.screen.color_depth,
                pixel_depth=fingerprint.screen.pixel_depth,
                orientation=fingerprint.screen.orientation,
                language=fingerprint.language,
                languages=fingerprint.languages,
                cookie_enabled=fingerprint.cookie_enabled,
                on_line=fingerprint.on_line,
            ),
            fingerprinting=FingerprintingAnalysis(
                device_hash=device_hash,
                canvas_available=bool(fingerprint.canvas),
                webgl=fingerprint.webgl,
                font_count=len(fingerprint.fonts or []),
                plugin_count=len(fingerprint.plugins or []),
                storage=fingerprint.storage,
                do_not_track=headers.get("dnt") == "1" or classifier.has_do_not_track(user_agent),
            ),
            privacy=classifier.analyze_privacy(is_vpn, fingerprint, user_agent),
            timing=TimingAnalysis(
                client_timestamp=fingerprint.timestamp,
                server_timestamp=datetime.now(timezone.utc).isoformat(),
                timezone_offset=fingerprint.timezone_offset,
                processing_ms=round((time.perf_counter() - started) * 1000, 2),
            ),
        )

        return TrackResponse(
            persisted=persisted,
            visitor_info=visitor_info,
            detailed_analysis=analysis,
            additional_data=AdditionalData(
                headers=RequestHeadersSummary(
                    accept_language=headers.get("accept-language") or "",
                    accept_encoding=headers.get("accept-encoding") or "",
                    connection=headers.get("connection") or "",
                    dnt="Do Not Track Enabled" if headers.get("dnt") == "1" else "Tracking Allowed",
                )
            ),
        )

    async def _resolve_geolocation(self, ip: str, client_timezone: str) -> GeolocationRecord:
        try:
            return await self.resolver.resolve(ip)
        except GeolocationUnavailable as e:
            logger.warning("Geolocation fetch failed, using fallback record: %s", e)
            return fallback_geolocation(ip, client_timezone)

    def _save_visitor(self, info: VisitorInfo) -> bool:
        """Insert the visitor row. Returns False (and logs) instead of raising."""
        visitor = Visitor(
            ip=info.ip,
            country=info.country,
            region=info.region,
            city=info.city,
            latitude=info.latitude,
            longitude=info.longitude,
            timezone=info.timezone,
            browser=info.browser,
            os=info.os,
            device=info.device,
            user_agent=info.user_agent,
        )

        try:
            self.db.add(visitor)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Database save failed for visitor %s", info.ip)
            return False

        logger.info("Visitor data saved (id=%s, ip=%s)", visitor.id, info.ip)
        return True

    @staticmethod
    def _security(
        geo: GeolocationRecord,
        info: VisitorInfo,
        is_bot: bool,
        user_agent: str
    ) -> SecurityAnalysis:
        risk_factors = []
        if geo.threat and geo.threat != "low":
            risk_factors.append(f"Provider threat tag: {geo.threat}")
        if info.vpn:
            risk_factors.append("VPN or anonymizing network")
        if geo.proxy:
            risk_factors.append("Proxy flagged by geolocation provider")
        if geo.hosting:
            risk_factors.append("Hosting/datacenter address")
        if is_bot or classifier.is_automation_agent(user_agent):
            risk_factors.append("Automated client user agent")

        return SecurityAnalysis(
            threat_level=info.threat,
            vpn_detected=info.vpn,
            proxy_detected=info.proxy,
            hosting_provider=geo.hosting,
            is_bot=is_bot or classifier.is_automation_agent(user_agent),
            risk_factors=risk_factors,
        )

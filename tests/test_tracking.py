"""
Tests for the tracking endpoint and TrackingService.
"""
import asyncio
from unittest.mock import MagicMock

import httpx
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError

from main import app
from tracker_app.database.connection import get_db
from tracker_app.dependencies import get_geo_resolver
from tracker_app.models.visitor import Visitor
from tracker_app.schemas.visitor import ClientFingerprint
from tracker_app.services.tracking_service import TrackingService

MOBILE_UA = (
    "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36"
)
DESKTOP_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def fingerprint_body(**overrides):
    body = {
        "userAgent": MOBILE_UA,
        "language": "en-US",
        "languages": ["en-US", "en"],
        "platform": "Linux armv8l",
        "cookieEnabled": True,
        "onLine": True,
        "screen": {"width": 412, "height": 915, "colorDepth": 24, "pixelDepth": 24},
        "viewport": {"width": 412, "height": 780},
        "timezone": "America/New_York",
        "timezoneOffset": 240,
        "timestamp": "2025-10-29T10:30:00.000Z",
        "referrer": "",
        "url": "https://tracker.example/",
    }
    body.update(overrides)
    return body


class TestTrackEndpoint:
    """End-to-end tests through the FastAPI app"""

    def test_forwarded_ip_and_mobile_device(self, client: TestClient, db_session):
        response = client.post(
            "/api/track",
            json=fingerprint_body(),
            headers={"x-forwarded-for": "8.8.8.8, 10.0.0.1"},
        )
        assert response.status_code == 200

        data = response.json()
        assert data["success"] is True
        assert data["persisted"] is True
        assert data["visitorInfo"]["ip"] == "8.8.8.8"
        assert data["visitorInfo"]["device"] == "Mobile"
        assert data["visitorInfo"]["connection"] == "Mobile"
        assert data["visitorInfo"]["city"] == "Ashburn"
        assert data["visitorInfo"]["userAgent"] == MOBILE_UA

        visitors = db_session.query(Visitor).all()
        assert len(visitors) == 1
        assert visitors[0].ip == "8.8.8.8"
        assert visitors[0].device == "Mobile"
        assert visitors[0].country == "United States"

    def test_detailed_analysis_sections(self, client: TestClient):
        response = client.post(
            "/api/track",
            json=fingerprint_body(canvas="data:image/png;base64,AAAA", fonts=["Arial"]),
            headers={"x-forwarded-for": "8.8.8.8", "dnt": "1", "accept-language": "en-US"},
        )
        analysis = response.json()["detailedAnalysis"]

        assert set(analysis) == {
            "security", "network", "location", "device", "fingerprinting", "privacy", "timing"
        }
        # ip-api marks Google's range as hosting
        assert analysis["security"]["vpnDetected"] is True
        assert analysis["security"]["threatLevel"] == "medium"
        assert analysis["network"]["provider"] == "ip-api"
        assert analysis["network"]["asn"] == "AS15169 Google LLC"
        assert analysis["location"]["timezoneMismatch"] is False
        assert analysis["device"]["screen"] == "412x915"
        assert analysis["fingerprinting"]["canvasAvailable"] is True
        assert analysis["fingerprinting"]["fontCount"] == 1
        assert analysis["fingerprinting"]["doNotTrack"] is True
        assert analysis["privacy"]["level"] in ("low", "medium", "high")
        assert analysis["timing"]["clientTimestamp"] == "2025-10-29T10:30:00.000Z"

        headers = response.json()["additionalData"]["headers"]
        assert headers["dnt"] == "Do Not Track Enabled"
        assert headers["acceptLanguage"] == "en-US"

    def test_no_ip_headers_uses_loopback(self, client: TestClient, db_session):
        """testclient has no public address: probe finds 8.8.4.4 in the fixture"""
        response = client.post("/api/track", json=fingerprint_body())
        assert response.status_code == 200

        data = response.json()
        assert data["visitorInfo"]["ip"] == "127.0.0.1"
        assert db_session.query(Visitor).one().ip == "127.0.0.1"

    def test_header_user_agent_when_body_has_none(self, client: TestClient):
        response = client.post(
            "/api/track",
            json=fingerprint_body(userAgent=""),
            headers={"x-forwarded-for": "8.8.8.8", "user-agent": DESKTOP_UA},
        )
        data = response.json()
        assert data["visitorInfo"]["userAgent"] == DESKTOP_UA
        assert data["visitorInfo"]["device"] == "Desktop"

    def test_body_user_agent_beats_header(self, client: TestClient):
        response = client.post(
            "/api/track",
            json=fingerprint_body(userAgent=MOBILE_UA),
            headers={"x-forwarded-for": "8.8.8.8", "user-agent": DESKTOP_UA},
        )
        data = response.json()
        assert data["visitorInfo"]["userAgent"] == MOBILE_UA
        assert data["visitorInfo"]["device"] == "Mobile"

    def test_all_providers_down_uses_fallback_record(self, client: TestClient, make_resolver, db_session):
        app.dependency_overrides[get_geo_resolver] = lambda: make_resolver(
            lambda request: httpx.Response(503)
        )

        response = client.post(
            "/api/track",
            json=fingerprint_body(timezone="Europe/Berlin"),
            headers={"x-forwarded-for": "8.8.8.8"},
        )
        assert response.status_code == 200

        info = response.json()["visitorInfo"]
        assert info["country"] == "Unknown"
        assert info["isp"] == "Unknown ISP"
        assert info["timezone"] == "Europe/Berlin"
        assert info["latitude"] == 0
        assert info["threat"] == "unknown"
        assert db_session.query(Visitor).count() == 1

    def test_odd_provider_body_does_not_fail_request(self, client: TestClient, make_resolver):
        def handler(request):
            if request.url.host == "ipwho.is":
                return httpx.Response(200, json={"success": True, "timezone": "UTC"})
            return httpx.Response(503)

        app.dependency_overrides[get_geo_resolver] = lambda: make_resolver(handler)

        response = client.post(
            "/api/track",
            json=fingerprint_body(),
            headers={"x-forwarded-for": "8.8.8.8"},
        )
        assert response.status_code == 200

        data = response.json()
        assert data["success"] is True
        assert data["visitorInfo"]["timezone"] == "UTC"
        assert data["detailedAnalysis"]["network"]["provider"] == "ipwho.is"

    def test_database_failure_still_responds(self, client: TestClient):
        broken = MagicMock()
        broken.commit.side_effect = SQLAlchemyError("database is down")

        def override_get_db():
            yield broken

        app.dependency_overrides[get_db] = override_get_db

        response = client.post(
            "/api/track",
            json=fingerprint_body(),
            headers={"x-forwarded-for": "8.8.8.8"},
        )
        assert response.status_code == 200
        assert response.json()["persisted"] is False
        assert response.json()["visitorInfo"]["ip"] == "8.8.8.8"
        broken.rollback.assert_called_once()

    def test_partial_body_is_accepted(self, client: TestClient):
        response = client.post(
            "/api/track",
            json={"userAgent": MOBILE_UA},
            headers={"x-forwarded-for": "8.8.8.8"},
        )
        assert response.status_code == 200
        assert response.json()["detailedAnalysis"]["device"]["screen"] == "0x0"

    def test_malformed_body_returns_error_envelope(self, client: TestClient):
        response = client.post(
            "/api/track",
            content="this is not json",
            headers={"content-type": "application/json"},
        )
        assert response.status_code == 500

        data = response.json()
        assert data["success"] is False
        assert data["error"] == "Tracking failed"
        assert data["message"]

    def test_non_object_body_returns_error_envelope(self, client: TestClient):
        response = client.post("/api/track", json=[1, 2, 3])
        assert response.status_code == 500
        assert response.json()["success"] is False

    def test_repeat_visits_create_rows(self, client: TestClient, db_session):
        for _ in range(3):
            client.post("/api/track", json=fingerprint_body(), headers={"x-forwarded-for": "8.8.8.8"})

        assert db_session.query(Visitor).filter(Visitor.ip == "8.8.8.8").count() == 3


class TestTrackingService:
    """Test tracking business logic directly"""

    def test_track_stores_visitor(self, db_session, ip_api_resolver):
        service = TrackingService(db_session, ip_api_resolver)
        fingerprint = ClientFingerprint(user_agent=DESKTOP_UA, timezone="America/New_York")

        result = asyncio.run(service.track(fingerprint, {"x-real-ip": "8.8.8.8"}))

        assert result.persisted is True
        assert result.visitor_info.ip == "8.8.8.8"
        assert result.visitor_info.region == "Virginia"
        assert result.visitor_info.proxy is True  # hosting → VPN → proxy

        stored = db_session.query(Visitor).one()
        assert stored.browser == result.visitor_info.browser
        assert stored.latitude == 39.03
        assert stored.created_at is not None

    def test_persistence_failure_is_flagged(self, ip_api_resolver):
        db = MagicMock()
        db.commit.side_effect = SQLAlchemyError("disk I/O error")
        service = TrackingService(db, ip_api_resolver)

        result = asyncio.run(service.track(ClientFingerprint(user_agent=DESKTOP_UA), {}))

        assert result.persisted is False
        db.rollback.assert_called_once()

    def test_same_request_same_device_hash(self, db_session, ip_api_resolver):
        service = TrackingService(db_session, ip_api_resolver)
        headers = {"x-real-ip": "8.8.8.8", "accept-language": "de-DE"}
        fingerprint = ClientFingerprint(user_agent=DESKTOP_UA)

        first = asyncio.run(service.track(fingerprint, headers))
        second = asyncio.run(service.track(fingerprint, headers))

        assert first.detailed_analysis.fingerprinting.device_hash == \
            second.detailed_analysis.fingerprinting.device_hash

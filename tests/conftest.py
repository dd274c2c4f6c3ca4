"""
Test configuration and fixtures for the visitor tracker.
This centralizes all test setup, making individual tests clean.

Outbound geolocation calls never hit the network: resolvers are built
on an httpx.MockTransport.
"""

import pytest
import httpx
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from main import app
from tracker_app.cache.strategies import NullCache
from tracker_app.database.connection import Base, get_db
from tracker_app.dependencies import get_cache, get_geo_resolver
from tracker_app.geo.providers import IP_API, IPAPI_CO, IPWHO_IS
from tracker_app.geo.resolver import GeolocationResolver

# Test database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_visitors.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PROBE_URL = "https://api.ipify.org?format=json"

IP_API_SUCCESS = {
    "status": "success",
    "query": "8.8.8.8",
    "country": "United States",
    "countryCode": "US",
    "region": "VA",
    "regionName": "Virginia",
    "city": "Ashburn",
    "zip": "20149",
    "lat": 39.03,
    "lon": -77.5,
    "timezone": "America/New_York",
    "isp": "Google LLC",
    "org": "Google Public DNS",
    "as": "AS15169 Google LLC",
    "reverse": "dns.google",
    "mobile": False,
    "proxy": False,
    "hosting": True,
}

IPAPI_CO_SUCCESS = {
    "ip": "8.8.8.8",
    "city": "Mountain View",
    "region": "California",
    "region_code": "CA",
    "country_code": "US",
    "country_name": "United States",
    "postal": "94043",
    "latitude": 37.42301,
    "longitude": -122.083352,
    "timezone": "America/Los_Angeles",
    "asn": "AS15169",
    "org": "GOOGLE",
}

IPWHO_IS_SUCCESS = {
    "ip": "8.8.8.8",
    "success": True,
    "country": "United States",
    "country_code": "US",
    "region": "California",
    "region_code": "CA",
    "city": "Mountain View",
    "postal": "94039",
    "latitude": 37.3860517,
    "longitude": -122.0838511,
    "connection": {"asn": 15169, "org": "Google LLC", "isp": "Google LLC", "domain": "google.com"},
    "timezone": {"id": "America/Los_Angeles"},
}


@pytest.fixture
def ip_api_payload():
    return dict(IP_API_SUCCESS)


@pytest.fixture
def ipapi_co_payload():
    return dict(IPAPI_CO_SUCCESS)


@pytest.fixture
def ipwho_is_payload():
    return dict(IPWHO_IS_SUCCESS)


@pytest.fixture
def make_resolver():
    """
    Build a GeolocationResolver whose HTTP calls go to `handler`.

    handler(request) -> httpx.Response, or raises an httpx exception to
    simulate timeouts and connection errors.
    """
    def _make(handler, providers=None, probe_url=PROBE_URL):
        return GeolocationResolver(
            providers if providers is not None else [IP_API, IPAPI_CO, IPWHO_IS],
            timeout=5.0,
            probe_url=probe_url,
            probe_timeout=3.0,
            transport=httpx.MockTransport(handler),
        )
    return _make


@pytest.fixture
def ip_api_resolver(make_resolver):
    """Resolver where ip-api answers every lookup and the probe finds 8.8.4.4"""
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.ipify.org":
            return httpx.Response(200, json={"ip": "8.8.4.4"})
        if request.url.host == "ip-api.com":
            ip = request.url.path.rsplit("/", 1)[-1]
            return httpx.Response(200, json=dict(IP_API_SUCCESS, query=ip))
        return httpx.Response(503)

    return make_resolver(handler)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    This ensures tests are isolated and don't affect each other.
    """
    # Create tables
    Base.metadata.create_all(bind=engine)

    # Create session
    db = TestingSessionLocal()

    try:
        yield db
    finally:
        # Cleanup
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session, ip_api_resolver):
    """
    Create a test client with database, cache and resolver overridden.
    This is the main fixture that tests will use.
    """
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: NullCache()
    app.dependency_overrides[get_geo_resolver] = lambda: ip_api_resolver

    # Create test client
    with TestClient(app) as test_client:
        yield test_client

    # Clean up overrides
    app.dependency_overrides.clear()

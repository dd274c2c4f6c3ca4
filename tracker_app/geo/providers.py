"""
Geolocation providers.

A provider is a pair of plain functions: one builds the request URL for an
IP, the other maps the provider's JSON body into a GeolocationRecord (or
raises ProviderError when the body carries the provider's own error flag).
The resolver walks an ordered list of them.
"""

from typing import Any, Callable, Dict, NamedTuple, Optional

from tracker_app.geo.exceptions import ProviderError
from tracker_app.schemas.geo import GeolocationRecord


class GeoProvider(NamedTuple):
    name: str
    build_url: Callable[[str], str]
    normalize: Callable[[Dict[str, Any], str], GeolocationRecord]


def _text(value: Any, default: str = "Unknown") -> str:
    """Stringify a provider value, treating None/"" as missing"""
    if value is None or value == "":
        return default
    return str(value)


def _number(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0


def _label(value: Any) -> Optional[str]:
    """Optional string tag; anything that is not a non-empty string is dropped"""
    if isinstance(value, str) and value:
        return value
    return None


def _section(value: Any) -> Dict[str, Any]:
    """Nested object of a provider body, {} when missing or not an object"""
    return value if isinstance(value, dict) else {}


# ---------------------------------------------------------------------------
# ip-api.com
# ---------------------------------------------------------------------------

IP_API_FIELDS = (
    "status,message,country,countryCode,region,regionName,city,zip,"
    "lat,lon,timezone,isp,org,as,reverse,mobile,proxy,hosting,query"
)


def ip_api_url(ip: str) -> str:
    return f"http://ip-api.com/json/{ip}?fields={IP_API_FIELDS}&lang=en"


def normalize_ip_api(data: Dict[str, Any], ip: str) -> GeolocationRecord:
    """ip-api.com signals errors with status="fail" and a message"""
    if data.get("status") != "success":
        raise ProviderError("ip-api", f"{data.get('status')} - {data.get('message')}")

    return GeolocationRecord(
        query=_text(data.get("query"), ip),
        country=_text(data.get("country")),
        country_code=_text(data.get("countryCode"), "XX"),
        region=_text(data.get("region"), "XX"),
        region_name=_text(data.get("regionName")),
        city=_text(data.get("city")),
        zip=_text(data.get("zip")),
        lat=_number(data.get("lat")),
        lon=_number(data.get("lon")),
        timezone=_text(data.get("timezone"), "UTC"),
        isp=_text(data.get("isp")),
        org=_text(data.get("org")),
        asn=_text(data.get("as")),
        reverse=_text(data.get("reverse")),
        mobile=bool(data.get("mobile")),
        proxy=bool(data.get("proxy")),
        hosting=bool(data.get("hosting")),
        threat=_label(data.get("threat")),
        provider="ip-api",
    )


# ---------------------------------------------------------------------------
# ipapi.co
# ---------------------------------------------------------------------------

def ipapi_co_url(ip: str) -> str:
    return f"https://ipapi.co/{ip}/json/"


def normalize_ipapi_co(data: Dict[str, Any], ip: str) -> GeolocationRecord:
    """ipapi.co returns {"error": true, "reason": ...} with HTTP 200 on failure

    It has no separate ISP field, the organization name stands in for it,
    and it reports no mobile/proxy/hosting flags.
    """
    if data.get("error"):
        raise ProviderError("ipapi.co", _text(data.get("reason"), "error"))

    org = _text(data.get("org"))
    return GeolocationRecord(
        query=_text(data.get("ip"), ip),
        country=_text(data.get("country_name")),
        country_code=_text(data.get("country_code"), "XX"),
        region=_text(data.get("region_code"), "XX"),
        region_name=_text(data.get("region")),
        city=_text(data.get("city")),
        zip=_text(data.get("postal")),
        lat=_number(data.get("latitude")),
        lon=_number(data.get("longitude")),
        timezone=_text(data.get("timezone"), "UTC"),
        isp=org,
        org=org,
        asn=_text(data.get("asn")),
        provider="ipapi.co",
    )


# ---------------------------------------------------------------------------
# ipwho.is
# ---------------------------------------------------------------------------

def ipwho_is_url(ip: str) -> str:
    return f"https://ipwho.is/{ip}"


def normalize_ipwho_is(data: Dict[str, Any], ip: str) -> GeolocationRecord:
    """ipwho.is uses success=false plus a message; timezone and ISP are nested"""
    if data.get("success") is not True:
        raise ProviderError("ipwho.is", _text(data.get("message"), "unsuccessful lookup"))

    connection = _section(data.get("connection"))
    timezone = _section(data.get("timezone"))
    asn = connection.get("asn")

    return GeolocationRecord(
        query=_text(data.get("ip"), ip),
        country=_text(data.get("country")),
        country_code=_text(data.get("country_code"), "XX"),
        region=_text(data.get("region_code"), "XX"),
        region_name=_text(data.get("region")),
        city=_text(data.get("city")),
        zip=_text(data.get("postal")),
        lat=_number(data.get("latitude")),
        lon=_number(data.get("longitude")),
        timezone=_text(timezone.get("id"), "UTC"),
        isp=_text(connection.get("isp")),
        org=_text(connection.get("org")),
        asn=f"AS{asn}" if asn else "Unknown",
        reverse=_text(connection.get("domain")),
        provider="ipwho.is",
    )


IP_API = GeoProvider("ip-api", ip_api_url, normalize_ip_api)
IPAPI_CO = GeoProvider("ipapi.co", ipapi_co_url, normalize_ipapi_co)
IPWHO_IS = GeoProvider("ipwho.is", ipwho_is_url, normalize_ipwho_is)


# ---------------------------------------------------------------------------
# Static records
# ---------------------------------------------------------------------------

def demo_geolocation(ip: str) -> GeolocationRecord:
    """Placeholder location for local development (private/loopback clients)"""
    return GeolocationRecord(
        query=ip,
        country="United States",
        country_code="US",
        region="CA",
        region_name="California",
        city="San Francisco",
        zip="94107",
        lat=37.7749,
        lon=-122.4194,
        timezone="America/Los_Angeles",
        isp="Local Development",
        org="Local Network",
        asn="Unknown",
        reverse="localhost",
        provider="demo",
    )


def fallback_geolocation(ip: str, timezone: str = "") -> GeolocationRecord:
    """Record used when the whole provider chain failed"""
    return GeolocationRecord(
        query=ip,
        timezone=timezone or "UTC",
        isp="Unknown ISP",
        org="Unknown Organization",
        threat="unknown",
        provider="fallback",
    )

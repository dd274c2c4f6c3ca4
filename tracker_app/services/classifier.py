"""
Heuristic visitor classification.

All functions are pure and total: they never raise and never do I/O.
The keyword tables below are policy, not contract; edit them freely.
"""

from typing import Mapping, NamedTuple

from user_agents import parse

from tracker_app.schemas.geo import GeolocationRecord
from tracker_app.schemas.visitor import ClientFingerprint, PrivacyReport


VPN_KEYWORDS = (
    "vpn", "proxy", "tor", "nord", "express", "surfshark", "cyberghost",
    "private internet access", "pia", "tunnelbear", "hotspot shield",
    "windscribe", "protonvpn", "mullvad", "purevpn", "ipvanish",
    "hide.me", "zenmate", "hola", "betternet",
)

HOSTING_PROVIDERS = (
    "digitalocean", "amazon", "google cloud", "microsoft azure",
    "vultr", "linode", "ovh", "hetzner", "scaleway",
)

AUTOMATION_UA_TOKENS = (
    "bot", "crawler", "spider", "scraper", "curl", "wget", "python",
    "java", "php", "ruby", "perl", "go-http-client", "okhttp",
)

FINGERPRINT_HEADERS = (
    "accept-language",
    "accept-encoding",
    "accept",
    "dnt",
    "upgrade-insecure-requests",
)

BASE36_CHARS = "0123456789abcdefghijklmnopqrstuvwxyz"


class ParsedUserAgent(NamedTuple):
    browser: str
    os: str
    device: str
    is_bot: bool


def _contains_any(haystacks, needles) -> bool:
    return any(needle in haystack for haystack in haystacks for needle in needles)


def detect_vpn(geo: GeolocationRecord) -> bool:
    """VPN/proxy likelihood from ISP/org names and provider flags"""
    isp = (geo.isp or "").lower()
    org = (geo.org or "").lower()

    has_vpn_keyword = _contains_any((isp, org), VPN_KEYWORDS)
    is_hosting_provider = _contains_any((isp, org), HOSTING_PROVIDERS)

    return has_vpn_keyword or is_hosting_provider or geo.proxy or geo.hosting


def is_automation_agent(user_agent: str) -> bool:
    ua = (user_agent or "").lower()
    return any(token in ua for token in AUTOMATION_UA_TOKENS)


def get_threat_level(geo: GeolocationRecord, is_vpn: bool, user_agent: str = "") -> str:
    """
    "low", "medium", or whatever non-low tag the provider supplied.

    A provider-supplied threat always beats local signals.
    """
    if geo.threat and geo.threat != "low":
        return geo.threat

    if is_vpn or geo.proxy or geo.hosting:
        return "medium"

    if is_automation_agent(user_agent):
        return "medium"

    return "low"


def get_connection_type(user_agent: str, geo: GeolocationRecord) -> str:
    if geo.mobile:
        return "Mobile"

    ua = (user_agent or "").lower()

    if "mobile" in ua:
        return "Mobile"
    if "tablet" in ua or "ipad" in ua:
        return "Tablet"
    if "smart-tv" in ua or "tv" in ua:
        return "Smart TV"
    if "playstation" in ua or "xbox" in ua or "nintendo" in ua:
        return "Gaming Console"

    return "Broadband"


def _base36_encode(number: int) -> str:
    if number == 0:
        return BASE36_CHARS[0]

    result = ""
    while number > 0:
        result = BASE36_CHARS[number % 36] + result
        number //= 36
    return result


def generate_device_fingerprint(user_agent: str, headers: Mapping[str, str]) -> str:
    """
    Grouping key for "same device" from UA plus a few request headers.

    Polynomial hash (h * 31 + c) over UTF-16 code units, wrapped to a
    signed 32-bit integer, absolute value in base 36. Deterministic, not
    a security token.
    """
    lowered = {k.lower(): v for k, v in headers.items()}
    fingerprint_data = "|".join(
        [user_agent or ""] + [lowered.get(name) or "" for name in FINGERPRINT_HEADERS]
    )

    encoded = fingerprint_data.encode("utf-16-le")
    hash_value = 0
    for i in range(0, len(encoded), 2):
        code_unit = encoded[i] | (encoded[i + 1] << 8)
        hash_value = (hash_value * 31 + code_unit) & 0xFFFFFFFF

    if hash_value >= 0x80000000:
        hash_value -= 0x100000000

    return _base36_encode(abs(hash_value))


def parse_user_agent(user_agent: str, geo: GeolocationRecord = None) -> ParsedUserAgent:
    """Browser/OS labels and device category for the visitor row"""
    ua_string = user_agent or ""
    ua = parse(ua_string)

    browser = f"{ua.browser.family or 'Unknown'} {ua.browser.version_string or 'Unknown'}"
    os = f"{ua.os.family or 'Unknown'} {ua.os.version_string or 'Unknown'}"

    if ua.is_mobile:
        device = "Mobile"
    elif ua.is_tablet:
        device = "Tablet"
    elif (geo is not None and geo.mobile) or "Mobile" in ua_string:
        device = "Mobile"
    elif "Tablet" in ua_string:
        device = "Tablet"
    else:
        device = "Desktop"

    return ParsedUserAgent(browser=browser, os=os, device=device, is_bot=ua.is_bot)


def has_do_not_track(user_agent: str) -> bool:
    return "DNT" in user_agent or "Do Not Track" in user_agent


def analyze_privacy(vpn: bool, fingerprint: ClientFingerprint, user_agent: str = "") -> PrivacyReport:
    """Score how exposed the visitor is (higher is more private)"""
    score = 0
    concerns = []
    recommendations = []

    if vpn:
        score += 20
        concerns.append("VPN detected - attempting to hide real location")
    else:
        concerns.append("No VPN protection - real location exposed")
        recommendations.append("Consider using a VPN for better privacy")

    if fingerprint.canvas:
        score -= 15
        concerns.append("Canvas fingerprinting possible")
        recommendations.append("Use browser extensions to block canvas fingerprinting")

    if fingerprint.webgl:
        score -= 10
        concerns.append("WebGL fingerprinting detected")
        recommendations.append("Disable WebGL in browser settings")

    if fingerprint.fonts and len(fingerprint.fonts) > 20:
        score -= 10
        concerns.append("Large font collection increases fingerprint uniqueness")

    if not has_do_not_track(user_agent or fingerprint.user_agent):
        score -= 5
        concerns.append("Do Not Track not enabled")
        recommendations.append("Enable Do Not Track in browser settings")

    if score >= 50:
        level = "high"
    elif score >= 20:
        level = "medium"
    else:
        level = "low"

    return PrivacyReport(
        score=max(0, min(100, score)),
        level=level,
        concerns=concerns,
        recommendations=recommendations,
    )

"""
Client IP extraction from request headers.

The headers are client-supplied and trivially spoofable. That is fine for
a tracking demo; never use the result as a security boundary.
"""

import ipaddress
import re
from typing import Mapping

LOOPBACK_IP = "127.0.0.1"

# Checked in this order, first non-empty value wins
_SIMPLE_HEADERS_AFTER_XFF = ("x-real-ip", "x-client-ip", "x-forwarded", "forwarded-for")

_FORWARDED_FOR = re.compile(r"for=([^;,\s]+)")


def _header(headers: Mapping[str, str], name: str) -> str:
    value = headers.get(name)
    if value is None:
        # Plain dicts are case-sensitive, Starlette's Headers are not
        value = next((v for k, v in headers.items() if k.lower() == name), None)
    return (value or "").strip()


def extract_client_ip(headers: Mapping[str, str]) -> str:
    """Best-guess client IP, or the loopback sentinel when nothing matches"""
    # Cloudflare
    cf_connecting_ip = _header(headers, "cf-connecting-ip")
    if cf_connecting_ip:
        return cf_connecting_ip

    forwarded_for = _header(headers, "x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    for name in _SIMPLE_HEADERS_AFTER_XFF:
        value = _header(headers, name)
        if value:
            return value

    forwarded = _header(headers, "forwarded")
    if forwarded:
        match = _FORWARDED_FOR.search(forwarded)
        if match:
            return match.group(1)

    return LOOPBACK_IP


def is_private_ip(ip: str) -> bool:
    """True for non-routable addresses and for strings that are not IPs"""
    try:
        addr = ipaddress.ip_address(ip)
    except ValueError:
        return True
    return (
        addr.is_private
        or addr.is_loopback
        or addr.is_link_local
        or addr.is_reserved
        or addr.is_unspecified
    )

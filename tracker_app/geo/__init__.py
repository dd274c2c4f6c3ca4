"""
Geolocation module for the visitor tracker.
Ordered provider chain with per-provider normalization and fallback.
"""

from .exceptions import ProviderError, GeolocationUnavailable
from .providers import GeoProvider, demo_geolocation, fallback_geolocation
from .factory import ProviderChainFactory, GeoProviderType
from .resolver import GeolocationResolver

__all__ = [
    "ProviderError",
    "GeolocationUnavailable",
    "GeoProvider",
    "demo_geolocation",
    "fallback_geolocation",
    "ProviderChainFactory",
    "GeoProviderType",
    "GeolocationResolver",
]

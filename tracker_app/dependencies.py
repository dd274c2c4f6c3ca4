"""
FastAPI dependencies for dependency injection.

This module provides singleton instances of the cache and the geolocation
resolver, and builds the request-scoped services on top of them.
Tests override these with fakes via app.dependency_overrides.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from tracker_app.cache.factory import CacheFactory, CacheBackend
from tracker_app.cache.strategies import CacheStrategy
from tracker_app.database.connection import get_db
from tracker_app.geo.factory import ProviderChainFactory
from tracker_app.geo.resolver import GeolocationResolver
from tracker_app.config import settings


@lru_cache()
def get_cache() -> CacheStrategy:
    """
    Get cache instance (singleton).

    Factory gets config from settings internally.
    """
    backend = CacheBackend(settings.cache_backend)
    return CacheFactory.create(backend)


@lru_cache()
def get_geo_resolver() -> GeolocationResolver:
    """
    Get the geolocation resolver (singleton).

    The resolver only holds configuration; it opens a fresh HTTP client
    for every lookup.
    """
    providers = ProviderChainFactory.create()
    return GeolocationResolver.from_settings(providers)


def get_tracking_service(
    db: Session = Depends(get_db),
    resolver: GeolocationResolver = Depends(get_geo_resolver)
):
    """TrackingService with the request's DB session and the shared resolver"""
    from tracker_app.services.tracking_service import TrackingService
    return TrackingService(db=db, resolver=resolver)


def get_dashboard_service(
    db: Session = Depends(get_db),
    cache: CacheStrategy = Depends(get_cache)
):
    """DashboardService with the request's DB session and the shared cache"""
    from tracker_app.services.dashboard_service import DashboardService
    return DashboardService(db=db, cache=cache)

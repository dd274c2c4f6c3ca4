"""
Geolocation resolver with provider fallback.

Flow:
1. Private/loopback client → ask a public-IP echo service for a real
   address (demo convenience). If that fails too, return the demo
   placeholder location instead of erroring.
2. Try each provider in order, one at a time. Non-2xx status, provider
   error flag, bad or malformed JSON or timeout counts as that provider
   failing and the next one is tried.
3. If every provider failed, raise GeolocationUnavailable so the caller
   can substitute its static fallback record.

There is no retry of the same provider and no backoff.
"""

import logging
from typing import List, Optional

import httpx
from pydantic import ValidationError

from tracker_app.config import settings
from tracker_app.geo.exceptions import GeolocationUnavailable, ProviderError
from tracker_app.geo.providers import GeoProvider, demo_geolocation
from tracker_app.schemas.geo import GeolocationRecord
from tracker_app.services.ip_resolver import is_private_ip

logger = logging.getLogger(__name__)


class GeolocationResolver:
    """
    Resolves an IP to a normalized GeolocationRecord.

    Stateless between calls: a fresh httpx.AsyncClient is opened for each
    resolve() and nothing is cached. `transport` lets tests plug in an
    httpx.MockTransport instead of the network.
    """

    def __init__(
        self,
        providers: List[GeoProvider],
        timeout: float = 5.0,
        probe_url: Optional[str] = None,
        probe_timeout: float = 3.0,
        user_agent: str = "LocationTracker/1.0",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.providers = list(providers)
        self.timeout = timeout
        self.probe_url = probe_url
        self.probe_timeout = probe_timeout
        self.user_agent = user_agent
        self.transport = transport

    @classmethod
    def from_settings(cls, providers: List[GeoProvider], **kwargs) -> "GeolocationResolver":
        options = dict(
            timeout=settings.geo_timeout,
            probe_url=settings.public_ip_probe_url,
            probe_timeout=settings.public_ip_timeout,
            user_agent=settings.geo_user_agent,
        )
        options.update(kwargs)
        return cls(providers, **options)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            headers={"User-Agent": self.user_agent},
            transport=self.transport,
        )

    async def resolve(self, ip: str) -> GeolocationRecord:
        """
        Resolve `ip` through the provider chain.

        Raises:
            GeolocationUnavailable: every provider failed
        """
        async with self._client() as client:
            if is_private_ip(ip):
                public_ip = await self._probe_public_ip(client)
                if public_ip is None:
                    logger.info("Private address %s and no public IP, using demo location", ip)
                    return demo_geolocation(ip)
                logger.info("Private address %s, resolving public IP %s instead", ip, public_ip)
                ip = public_ip

            return await self._resolve_chain(client, ip)

    async def _probe_public_ip(self, client: httpx.AsyncClient) -> Optional[str]:
        """Ask the echo service for this host's public address (one attempt)"""
        if not self.probe_url:
            return None

        try:
            response = await client.get(self.probe_url, timeout=self.probe_timeout)
            response.raise_for_status()
            public_ip = response.json().get("ip")
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            logger.warning("Public IP probe failed: %s", e)
            return None

        if not public_ip or is_private_ip(public_ip):
            logger.warning("Public IP probe returned unusable address: %r", public_ip)
            return None
        return public_ip

    async def _resolve_chain(self, client: httpx.AsyncClient, ip: str) -> GeolocationRecord:
        errors: List[ProviderError] = []

        for provider in self.providers:
            try:
                record = await self._lookup(client, provider, ip)
            except ProviderError as e:
                logger.warning("Geolocation provider %s failed for %s: %s", provider.name, ip, e.reason)
                errors.append(e)
                continue

            logger.debug("Resolved %s via %s", ip, provider.name)
            return record

        logger.warning("All %d geolocation providers failed for %s", len(self.providers), ip)
        raise GeolocationUnavailable(ip, errors)

    async def _lookup(
        self,
        client: httpx.AsyncClient,
        provider: GeoProvider,
        ip: str
    ) -> GeolocationRecord:
        """One provider attempt; every failure mode surfaces as ProviderError"""
        try:
            response = await client.get(provider.build_url(ip), timeout=self.timeout)
        except httpx.TimeoutException:
            raise ProviderError(provider.name, f"timed out after {self.timeout}s")
        except httpx.HTTPError as e:
            raise ProviderError(provider.name, f"request error: {e}")

        if not response.is_success:
            raise ProviderError(provider.name, f"HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError:
            raise ProviderError(provider.name, "response is not JSON")

        if not isinstance(data, dict):
            raise ProviderError(provider.name, "unexpected response shape")

        try:
            return provider.normalize(data, ip)
        except ProviderError:
            raise
        except (ValidationError, AttributeError, TypeError, ValueError) as e:
            raise ProviderError(provider.name, f"malformed response: {e}")

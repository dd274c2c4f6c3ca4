"""
Factory for building the geolocation provider chain.
Order comes from settings, so the fallback sequence is configurable.
"""

from enum import Enum
from typing import List, Optional

from .providers import GeoProvider, IP_API, IPAPI_CO, IPWHO_IS
from tracker_app.config import settings


class GeoProviderType(Enum):
    """Available geolocation providers"""
    IP_API = "ip-api"
    IPAPI_CO = "ipapi.co"
    IPWHO_IS = "ipwho.is"


_PROVIDERS = {
    GeoProviderType.IP_API: IP_API,
    GeoProviderType.IPAPI_CO: IPAPI_CO,
    GeoProviderType.IPWHO_IS: IPWHO_IS,
}


class ProviderChainFactory:
    """Builds the ordered provider list for the resolver"""

    @classmethod
    def create(cls, names: Optional[List[str]] = None) -> List[GeoProvider]:
        """
        Build the provider chain.

        Args:
            names: Provider names in the order they should be tried.
                   If None, uses settings.geo_providers.

        Returns:
            Ordered list of GeoProvider entries (duplicates dropped)

        Raises:
            ValueError: If a name is unknown or the chain would be empty
        """
        if names is None:
            names = settings.geo_providers

        chain: List[GeoProvider] = []
        for name in names:
            provider = _PROVIDERS[GeoProviderType(name)]
            if provider not in chain:
                chain.append(provider)

        if not chain:
            raise ValueError("At least one geolocation provider must be configured")
        return chain

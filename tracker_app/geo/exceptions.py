class ProviderError(Exception):
    """A single geolocation provider could not produce a record"""

    def __init__(self, provider: str, reason: str):
        self.provider = provider
        self.reason = reason
        super().__init__(f"{provider}: {reason}")


class GeolocationUnavailable(Exception):
    """Every provider in the fallback chain failed"""

    def __init__(self, ip: str, errors=None):
        self.ip = ip
        self.errors = list(errors or [])
        super().__init__(
            f"No geolocation provider could resolve {ip} "
            f"({len(self.errors)} attempts failed)"
        )

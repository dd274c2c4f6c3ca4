from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class GeolocationRecord(BaseModel):
    """
    Normalized geolocation record.

    Every provider response is mapped into this one shape. Fields a
    provider does not supply are filled with "Unknown"/0/False defaults,
    so a record is always fully typed.
    """
    query: str = Field(..., description="IP address that was looked up")
    country: str = "Unknown"
    country_code: str = "XX"
    region: str = "XX"
    region_name: str = "Unknown"
    city: str = "Unknown"
    zip: str = "Unknown"
    lat: float = 0
    lon: float = 0
    timezone: str = "UTC"
    isp: str = "Unknown"
    org: str = "Unknown"
    asn: str = Field("Unknown", description="Autonomous system, e.g. 'AS15169 Google LLC'")
    reverse: str = "Unknown"
    mobile: bool = False
    proxy: bool = False
    hosting: bool = False
    threat: Optional[str] = None
    provider: str = Field(..., description="Provider that produced the record")

    model_config = ConfigDict(json_schema_extra={
            "example": {
                "query": "8.8.8.8",
                "country": "United States",
                "country_code": "US",
                "region": "VA",
                "region_name": "Virginia",
                "city": "Ashburn",
                "zip": "20149",
                "lat": 39.03,
                "lon": -77.5,
                "timezone": "America/New_York",
                "isp": "Google LLC",
                "org": "Google Public DNS",
                "asn": "AS15169 Google LLC",
                "reverse": "dns.google",
                "mobile": False,
                "proxy": False,
                "hosting": True,
                "threat": None,
                "provider": "ip-api",
            }
        })

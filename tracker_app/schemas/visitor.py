from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from typing import List, Optional


class CamelModel(BaseModel):
    """Base schema that reads and writes camelCase JSON keys

    The browser sends camelCase (userAgent, cookieEnabled, ...) and the
    pages read camelCase back, while Python code keeps snake_case names.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Client fingerprint (request body)
# ---------------------------------------------------------------------------

class ScreenInfo(CamelModel):
    width: int = 0
    height: int = 0
    color_depth: int = 0
    pixel_depth: int = 0
    orientation: Optional[str] = None


class ViewportInfo(CamelModel):
    width: int = 0
    height: int = 0


class StorageSupport(CamelModel):
    local_storage: bool = False
    session_storage: bool = False
    indexed_db: bool = Field(False, alias="indexedDB")


class WebGLInfo(CamelModel):
    vendor: str = "Unknown"
    renderer: str = "Unknown"


class ClientFingerprint(CamelModel):
    """Browser-side signals posted by the tracking page.

    Every field has a default so partially collected fingerprints
    (blocked canvas, no WebGL, ...) still validate.
    """
    user_agent: str = ""
    language: str = ""
    languages: List[str] = Field(default_factory=list)
    platform: str = ""
    cookie_enabled: bool = False
    on_line: bool = True
    screen: ScreenInfo = Field(default_factory=ScreenInfo)
    viewport: ViewportInfo = Field(default_factory=ViewportInfo)
    timezone: str = ""
    timezone_offset: int = 0
    timestamp: Optional[str] = None
    referrer: str = ""
    url: str = ""
    storage: Optional[StorageSupport] = None
    webgl: Optional[WebGLInfo] = None
    canvas: Optional[str] = None
    fonts: Optional[List[str]] = None
    plugins: Optional[List[str]] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "userAgent": "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 "
                             "(KHTML, like Gecko) Chrome/120.0 Mobile Safari/537.36",
                "language": "en-US",
                "platform": "Linux armv8l",
                "cookieEnabled": True,
                "onLine": True,
                "screen": {"width": 412, "height": 915, "colorDepth": 24, "pixelDepth": 24},
                "viewport": {"width": 412, "height": 780},
                "timezone": "Europe/Berlin",
                "timestamp": "2025-10-29T10:30:00.000Z",
                "referrer": "",
                "url": "https://tracker.example/",
            }
        },
    )


# ---------------------------------------------------------------------------
# Track response
# ---------------------------------------------------------------------------

class VisitorInfo(CamelModel):
    """Visitor summary shown on the tracking page"""
    ip: str
    country: str
    region: str
    city: str
    latitude: float
    longitude: float
    timezone: str
    browser: str
    os: str
    device: str
    user_agent: str
    isp: str
    connection: str
    threat: str
    vpn: bool
    proxy: bool


class SecurityAnalysis(CamelModel):
    threat_level: str
    vpn_detected: bool
    proxy_detected: bool
    hosting_provider: bool
    is_bot: bool
    risk_factors: List[str] = Field(default_factory=list)


class NetworkAnalysis(CamelModel):
    ip: str
    is_private_ip: bool
    isp: str
    organization: str
    asn: str
    reverse_dns: str
    connection_type: str
    provider: str


class LocationAnalysis(CamelModel):
    country: str
    country_code: str
    region: str
    city: str
    zip: str
    latitude: float
    longitude: float
    timezone: str
    client_timezone: str
    timezone_mismatch: bool


class DeviceAnalysis(CamelModel):
    browser: str
    os: str
    device: str
    platform: str
    screen: str
    viewport: str
    color_depth: int
    pixel_depth: int
    orientation: Optional[str] = None
    language: str
    languages: List[str] = Field(default_factory=list)
    cookie_enabled: bool
    on_line: bool


class FingerprintingAnalysis(CamelModel):
    device_hash: str
    canvas_available: bool
    webgl: Optional[WebGLInfo] = None
    font_count: int
    plugin_count: int
    storage: Optional[StorageSupport] = None
    do_not_track: bool


class PrivacyReport(CamelModel):
    score: int
    level: str  # "low", "medium" or "high"
    concerns: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class TimingAnalysis(CamelModel):
    client_timestamp: Optional[str] = None
    server_timestamp: str
    timezone_offset: int
    processing_ms: float


class DetailedAnalysis(CamelModel):
    security: SecurityAnalysis
    network: NetworkAnalysis
    location: LocationAnalysis
    device: DeviceAnalysis
    fingerprinting: FingerprintingAnalysis
    privacy: PrivacyReport
    timing: TimingAnalysis


class RequestHeadersSummary(CamelModel):
    accept_language: str = ""
    accept_encoding: str = ""
    connection: str = ""
    dnt: str = "Tracking Allowed"


class AdditionalData(CamelModel):
    headers: RequestHeadersSummary


class TrackResponse(CamelModel):
    success: bool = True
    message: str = "Visitor tracked successfully"
    persisted: bool = Field(..., description="False when the visitor row could not be stored")
    visitor_info: VisitorInfo
    detailed_analysis: DetailedAnalysis
    additional_data: AdditionalData


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    message: str

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Loading priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values below
    """

    # Environment
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Application
    app_name: str = "Visitor Tracker"
    app_version: str = "1.0.0"
    cors_origins: List[str] = ["*"]

    # Database
    database_url: str = "sqlite:///./visitors.db"

    # Geolocation providers, tried in this order
    geo_providers: List[str] = ["ip-api", "ipapi.co", "ipwho.is"]
    geo_timeout: float = 5.0  # Per-provider timeout in seconds
    geo_user_agent: str = "LocationTracker/1.0"

    # Public IP echo, used when the client address is private/loopback
    public_ip_probe_url: str = "https://api.ipify.org?format=json"
    public_ip_timeout: float = 3.0

    # Cache settings (dashboard snapshots only)
    cache_backend: str = "memory"  # Options: "redis", "memory", "null"
    redis_url: str = "redis://localhost:6379/0"
    dashboard_cache_ttl: int = 30  # Seconds, 0 disables caching

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Create settings instance
settings = Settings()

from pydantic import Field, ConfigDict
from typing import List, Optional
from datetime import datetime
from tracker_app.schemas.visitor import CamelModel


class VisitorSummary(CamelModel):
    """Visitor row as listed on the admin dashboard (ORM mode)"""
    id: int
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
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CountryCount(CamelModel):
    country: str
    count: int


class BrowserCount(CamelModel):
    browser: str
    count: int


class DeviceCount(CamelModel):
    device: str
    count: int


class OSCount(CamelModel):
    os: str
    count: int


class HourlyBucket(CamelModel):
    hour: int
    count: int
    timestamp: datetime


class VisitorLocation(CamelModel):
    latitude: float
    longitude: float
    city: str
    country: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RepeatVisitor(CamelModel):
    ip: str
    visits: int


class DailyStats(CamelModel):
    today: int
    yesterday: int
    growth_rate: str = Field(..., description="Day-over-day change, e.g. '12.5%'")


class DashboardResponse(CamelModel):
    total_visitors: int
    unique_countries: int
    unique_devices: int
    recent_visitors: List[VisitorSummary]
    top_countries: List[CountryCount]
    top_browsers: List[BrowserCount]
    top_devices: List[DeviceCount]
    top_os: List[OSCount] = Field(..., alias="topOS")
    hourly_data: List[HourlyBucket]
    visitor_locations: List[VisitorLocation]
    repeat_visitors: List[RepeatVisitor]
    daily_stats: DailyStats
    last_updated: datetime


class RecentActivity(CamelModel):
    success: bool = True
    recent_activity: int
    timestamp: datetime


class DashboardError(CamelModel):
    error: str
    message: str
    timestamp: Optional[datetime] = None

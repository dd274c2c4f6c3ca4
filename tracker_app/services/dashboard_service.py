import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import distinct, func
from sqlalchemy.orm import Session

from tracker_app.cache.strategies import CacheStrategy
from tracker_app.config import settings
from tracker_app.models.visitor import Visitor, utcnow
from tracker_app.schemas.dashboard import (
    BrowserCount,
    CountryCount,
    DailyStats,
    DashboardResponse,
    DeviceCount,
    HourlyBucket,
    OSCount,
    RecentActivity,
    RepeatVisitor,
    VisitorLocation,
    VisitorSummary,
)

logger = logging.getLogger(__name__)

DASHBOARD_CACHE_KEY = "dashboard:snapshot"


class DashboardService:
    """
    Aggregate queries for the admin dashboard.

    All times are naive UTC, matching Visitor.created_at. The assembled
    snapshot is cached for settings.dashboard_cache_ttl seconds.
    """

    TOP_LIMIT = 10
    RECENT_LIMIT = 20
    LOCATIONS_LIMIT = 100

    def __init__(
        self,
        db: Session,
        cache: Optional[CacheStrategy] = None,
        cache_ttl: Optional[int] = None
    ):
        self.db = db
        self.cache = cache
        self.cache_ttl = settings.dashboard_cache_ttl if cache_ttl is None else cache_ttl

    async def get_dashboard(self, now: Optional[datetime] = None) -> DashboardResponse:
        """Dashboard snapshot, from cache when fresh (cache-aside)"""
        use_cache = self.cache is not None and self.cache_ttl > 0 and now is None

        if use_cache:
            cached = await self.cache.get(DASHBOARD_CACHE_KEY)
            if cached:
                return DashboardResponse.model_validate_json(cached)

        snapshot = self.build_snapshot(now or utcnow())

        if use_cache:
            await self.cache.set(
                DASHBOARD_CACHE_KEY,
                snapshot.model_dump_json(by_alias=True),
                ttl=self.cache_ttl,
            )
        return snapshot

    def build_snapshot(self, now: datetime) -> DashboardResponse:
        total_visitors = self.db.query(func.count(Visitor.id)).scalar() or 0
        unique_countries = self.db.query(func.count(distinct(Visitor.country))).scalar() or 0
        unique_devices = self.db.query(func.count(distinct(Visitor.device))).scalar() or 0

        recent_visitors = (
            self.db.query(Visitor)
            .filter(Visitor.created_at >= now - timedelta(hours=24))
            .order_by(Visitor.created_at.desc(), Visitor.id.desc())
            .limit(self.RECENT_LIMIT)
            .all()
        )

        locations = (
            self.db.query(Visitor)
            .filter(Visitor.latitude != 0, Visitor.longitude != 0)
            .order_by(Visitor.created_at.desc(), Visitor.id.desc())
            .limit(self.LOCATIONS_LIMIT)
            .all()
        )

        return DashboardResponse(
            total_visitors=total_visitors,
            unique_countries=unique_countries,
            unique_devices=unique_devices,
            recent_visitors=[VisitorSummary.model_validate(v) for v in recent_visitors],
            top_countries=[CountryCount(country=k, count=c) for k, c in self._top(Visitor.country)],
            top_browsers=[BrowserCount(browser=k, count=c) for k, c in self._top(Visitor.browser)],
            top_devices=[DeviceCount(device=k, count=c) for k, c in self._top(Visitor.device)],
            top_os=[OSCount(os=k, count=c) for k, c in self._top(Visitor.os)],
            hourly_data=self._hourly_buckets(now),
            visitor_locations=[VisitorLocation.model_validate(v) for v in locations],
            repeat_visitors=self._repeat_visitors(),
            daily_stats=self._daily_stats(now),
            last_updated=now,
        )

    def get_recent_activity(self, now: Optional[datetime] = None) -> RecentActivity:
        """Visits in the last minute"""
        now = now or utcnow()
        count = (
            self.db.query(func.count(Visitor.id))
            .filter(Visitor.created_at >= now - timedelta(minutes=1))
            .scalar()
        )
        return RecentActivity(recent_activity=count or 0, timestamp=now)

    def _top(self, column, limit: int = TOP_LIMIT) -> List[Tuple[str, int]]:
        """Most frequent values of `column`, ties broken alphabetically"""
        count = func.count(Visitor.id)
        rows = (
            self.db.query(column, count)
            .group_by(column)
            .order_by(count.desc(), column)
            .limit(limit)
            .all()
        )
        return [(value, n) for value, n in rows]

    def _hourly_buckets(self, now: datetime) -> List[HourlyBucket]:
        """24 hourly buckets ending with the current hour, oldest first"""
        current_hour = now.replace(minute=0, second=0, microsecond=0)
        start = current_hour - timedelta(hours=23)

        timestamps = (
            self.db.query(Visitor.created_at)
            .filter(Visitor.created_at >= start, Visitor.created_at < current_hour + timedelta(hours=1))
            .all()
        )
        counts = Counter(
            ts.replace(minute=0, second=0, microsecond=0) for (ts,) in timestamps
        )

        buckets = []
        for i in range(24):
            hour = start + timedelta(hours=i)
            buckets.append(HourlyBucket(hour=hour.hour, count=counts.get(hour, 0), timestamp=hour))
        return buckets

    def _repeat_visitors(self) -> List[RepeatVisitor]:
        visits = func.count(Visitor.id)
        rows = (
            self.db.query(Visitor.ip, visits)
            .group_by(Visitor.ip)
            .having(visits > 1)
            .order_by(visits.desc(), Visitor.ip)
            .limit(self.TOP_LIMIT)
            .all()
        )
        return [RepeatVisitor(ip=ip, visits=n) for ip, n in rows]

    def _daily_stats(self, now: datetime) -> DailyStats:
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        tomorrow = today + timedelta(days=1)
        yesterday = today - timedelta(days=1)

        today_visitors = self._count_between(today, tomorrow)
        yesterday_visitors = self._count_between(yesterday, today)

        if yesterday_visitors > 0:
            growth = f"{(today_visitors - yesterday_visitors) / yesterday_visitors * 100:.1f}"
        else:
            growth = "0"

        return DailyStats(
            today=today_visitors,
            yesterday=yesterday_visitors,
            growth_rate=f"{growth}%",
        )

    def _count_between(self, start: datetime, end: datetime) -> int:
        return (
            self.db.query(func.count(Visitor.id))
            .filter(Visitor.created_at >= start, Visitor.created_at < end)
            .scalar()
        ) or 0

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Float, Text
from tracker_app.database.connection import Base


def utcnow() -> datetime:
    """Naive UTC timestamp, the format SQLite stores and compares"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Visitor(Base):
    """
    One row per tracked page load.

    Rows are insert-only: the application never updates or deletes them,
    and repeat visits from the same IP create new rows.
    """
    __tablename__ = "visitors"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    ip = Column(String(64), nullable=False, default="127.0.0.1", index=True)
    country = Column(String, nullable=False, default="Unknown", index=True)
    region = Column(String, nullable=False, default="Unknown")
    city = Column(String, nullable=False, default="Unknown")
    latitude = Column(Float, nullable=False, default=0)
    longitude = Column(Float, nullable=False, default=0)
    timezone = Column(String, nullable=False, default="UTC")
    browser = Column(String, nullable=False, default="Unknown")
    os = Column(String, nullable=False, default="Unknown")
    device = Column(String, nullable=False, default="Desktop")
    user_agent = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)

"""
SiteLocation model — circular geofences used to admit punches.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, Float, Integer, String

from punchclock.db.base import Base


class SiteLocation(Base):
    __tablename__ = "site_locations"
    __table_args__ = (CheckConstraint("radius_meters > 0", name="ck_site_radius_positive"),)

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    latitude: float = Column(Float, nullable=False)  # type: ignore[assignment]
    longitude: float = Column(Float, nullable=False)  # type: ignore[assignment]
    radius_meters: float = Column(Float, nullable=False, default=100.0)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

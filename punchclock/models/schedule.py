"""
Schedule model — expected working hours per user and weekday.

``day_of_week`` counts from Sunday (0) to Saturday (6).
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (Boolean, CheckConstraint, Column, DateTime, ForeignKey,
                        Integer, String, UniqueConstraint)

from punchclock.db.base import Base


class Schedule(Base):
    __tablename__ = "schedules"
    __table_args__ = (
        UniqueConstraint("user_id", "day_of_week", name="uq_schedule_user_day"),
        CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="ck_schedule_day"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    user_id: int = Column(Integer, ForeignKey("users.id"), nullable=False)  # type: ignore[assignment]
    day_of_week: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    start_time: str = Column(String(5), nullable=False)  # type: ignore[assignment]  # HH:MM
    end_time: str = Column(String(5), nullable=False)  # type: ignore[assignment]  # HH:MM
    is_active: bool = Column(Boolean, nullable=False, default=True)  # type: ignore[assignment]
    created_by: int | None = Column(Integer, ForeignKey("users.id"), nullable=True)  # type: ignore[assignment]
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

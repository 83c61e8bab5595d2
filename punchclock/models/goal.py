"""
Goal model — personal targets (hours, days, sessions, percentage).
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String

from punchclock.db.base import Base


class Goal(Base):
    __tablename__ = "goals"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    user_id: int = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)  # type: ignore[assignment]
    title: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    description: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    target_value: float = Column(Float, nullable=False)  # type: ignore[assignment]
    unit: str = Column(String(20), nullable=False, default="hours")  # type: ignore[assignment]
    # hours | days | sessions | percentage
    current_value: float = Column(Float, nullable=False, default=0.0)  # type: ignore[assignment]
    target_date: str | None = Column(String(10), nullable=True)  # type: ignore[assignment]  # YYYY-MM-DD
    status: str = Column(String(20), nullable=False, default="active")  # type: ignore[assignment]
    # active | completed | paused | failed
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

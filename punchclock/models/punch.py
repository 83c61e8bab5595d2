"""
Punch ledger & daily totals cache — core business domain.

``punch_records`` is append-only: rows are never deleted and only the
``verified`` / ``notes`` columns may be touched by an administrator.
``work_sessions`` caches the reducer output per user and accounting day.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (Boolean, Column, DateTime, Float, ForeignKey, Index,
                        Integer, String, UniqueConstraint)

from punchclock.db.base import Base


class PunchRecord(Base):
    __tablename__ = "punch_records"
    __table_args__ = (
        Index("ix_punch_user_date", "user_id", "date"),
        Index("ix_punch_user_timestamp", "user_id", "timestamp"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    user_id: int = Column(Integer, ForeignKey("users.id"), nullable=False)  # type: ignore[assignment]
    kind: str = Column(String(20), nullable=False)  # type: ignore[assignment]
    # in | out | break_start | break_end
    timestamp: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    date: str = Column(String(10), nullable=False)  # type: ignore[assignment]  # accounting day YYYY-MM-DD
    method: str = Column(String(20), nullable=False, default="manual")  # type: ignore[assignment]
    # qr_code | card | photo | manual
    latitude: float | None = Column(Float, nullable=True)  # type: ignore[assignment]
    longitude: float | None = Column(Float, nullable=True)  # type: ignore[assignment]
    verified: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]
    verified_by: int | None = Column(Integer, ForeignKey("users.id"), nullable=True)  # type: ignore[assignment]
    notes: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]


class WorkSession(Base):
    __tablename__ = "work_sessions"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_work_session_user_date"),)

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    user_id: int = Column(Integer, ForeignKey("users.id"), nullable=False)  # type: ignore[assignment]
    date: str = Column(String(10), nullable=False)  # type: ignore[assignment]
    total_work_minutes: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    total_break_minutes: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

"""
Notification model — one row per punch, shown in the user's inbox.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String

from punchclock.db.base import Base


class Notification(Base):
    __tablename__ = "notifications"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    user_id: int = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)  # type: ignore[assignment]
    kind: str = Column(String(20), nullable=False, default="info")  # type: ignore[assignment]  # info | warning
    title: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    message: str = Column(String(500), nullable=False)  # type: ignore[assignment]
    is_read: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

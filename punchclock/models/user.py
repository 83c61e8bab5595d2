"""
User model — identity, role and kiosk badge.

Everyone who punches is a user; ``role`` separates administrators from
employees and students.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from punchclock.db.base import Base


class User(Base):
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    email: str = Column(String(320), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    hashed_password: str = Column(String(128), nullable=False)  # type: ignore[assignment]
    full_name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    role: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default="employee",
        server_default="employee",
    )  # admin | employee | student
    employee_code: str | None = Column(String(20), unique=True, nullable=True)  # type: ignore[assignment]  # EMP0001
    department: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    qr_code: str | None = Column(String(64), unique=True, nullable=True, index=True)  # type: ignore[assignment]
    card_number: str | None = Column(String(64), unique=True, nullable=True)  # type: ignore[assignment]
    is_active: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

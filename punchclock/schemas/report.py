"""Pydantic schemas for dashboards, reports, notifications and goals."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from punchclock.core.ledger import PunchStatus


# ── Totals ──────────────────────────────────────────────────────────
class TotalsRead(BaseModel):
    worked_minutes: int
    break_minutes: int


class DailyTotalsRead(TotalsRead):
    user_id: int
    date: date


class DashboardResponse(BaseModel):
    date: date
    status: PunchStatus
    today: TotalsRead
    week: TotalsRead
    month: TotalsRead
    week_daily_minutes: list[int]  # Monday .. Sunday


class DailyReportUser(BaseModel):
    user_id: int
    full_name: str
    first_in: datetime | None
    last_out: datetime | None
    worked_minutes: int
    break_minutes: int
    total_events: int


class DailyReportResponse(BaseModel):
    date: date
    total_users: int
    details: list[DailyReportUser]


class RecomputeResponse(BaseModel):
    date: date
    users_updated: int


class OverviewResponse(BaseModel):
    total_users: int
    present: int
    on_break: int
    out: int
    today_punches: int


# ── Health / Status ────────────────────────────────────────────────
class HealthResponse(BaseModel):
    db: bool
    redis: bool


class StatusResponse(BaseModel):
    total_users: int
    total_sites: int
    today_punches: int
    status: str


# ── Notifications ──────────────────────────────────────────────────
class NotificationRead(BaseModel):
    id: int
    kind: str
    title: str
    message: str
    is_read: bool
    created_at: datetime | None

    model_config = {"from_attributes": True}


# ── Goals ──────────────────────────────────────────────────────────
VALID_GOAL_UNITS = {"hours", "days", "sessions", "percentage"}
VALID_GOAL_STATUSES = {"active", "completed", "paused", "failed"}


class GoalCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=500)
    target_value: float = Field(gt=0)
    unit: str = "hours"
    current_value: float = Field(default=0.0, ge=0)
    target_date: date | None = None

    @field_validator("unit")
    @classmethod
    def _unit(cls, v: str) -> str:
        if v not in VALID_GOAL_UNITS:
            raise ValueError(f"Unit must be one of: {sorted(VALID_GOAL_UNITS)}")
        return v


class GoalUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=500)
    target_value: float | None = Field(default=None, gt=0)
    current_value: float | None = Field(default=None, ge=0)
    target_date: date | None = None
    status: str | None = None

    @field_validator("status")
    @classmethod
    def _status(cls, v: str | None) -> str | None:
        if v is not None and v not in VALID_GOAL_STATUSES:
            raise ValueError(f"Status must be one of: {sorted(VALID_GOAL_STATUSES)}")
        return v


class GoalRead(BaseModel):
    id: int
    title: str
    description: str | None
    target_value: float
    unit: str
    current_value: float
    target_date: str | None
    status: str
    progress_percent: float = 0.0

    model_config = {"from_attributes": True}


# ── Generic ────────────────────────────────────────────────────────
class DeleteResponse(BaseModel):
    success: bool
    message: str

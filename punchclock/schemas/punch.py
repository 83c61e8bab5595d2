"""Pydantic schemas for punching, punch history and the kiosk."""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from punchclock.core.ledger import PunchKind, PunchStatus

_QR_RE = re.compile(r"^[A-Za-z0-9_-]{4,64}$")

VALID_METHODS = {"qr_code", "card", "photo", "manual"}


class _Located(BaseModel):
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)

    @model_validator(mode="after")
    def _both_or_neither(self):
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be given together")
        return self


# ── Punch ───────────────────────────────────────────────────────────
class PunchRequest(_Located):
    kind: PunchKind
    method: str = "manual"
    accuracy: float | None = Field(default=None, ge=0)
    notes: str | None = Field(default=None, max_length=500)

    @field_validator("method")
    @classmethod
    def _method(cls, v: str) -> str:
        if v not in VALID_METHODS:
            raise ValueError(f"Method must be one of: {sorted(VALID_METHODS)}")
        return v


class PunchRead(BaseModel):
    id: int
    user_id: int
    kind: str
    timestamp: datetime
    date: str
    method: str
    latitude: float | None = None
    longitude: float | None = None
    verified: bool
    notes: str | None = None

    model_config = {"from_attributes": True}


class PunchUpdate(BaseModel):
    verified: bool | None = None
    notes: str | None = Field(default=None, max_length=500)


class PunchResponse(BaseModel):
    success: bool
    punch: PunchRead
    status: PunchStatus
    distance_meters: int | None = None
    site_name: str | None = None


# ── Kiosk ───────────────────────────────────────────────────────────
class QRPunchRequest(_Located):
    qr_code: str

    @field_validator("qr_code")
    @classmethod
    def _qr(cls, v: str) -> str:
        v = v.strip()
        if not _QR_RE.match(v):
            raise ValueError("QR code must be 4-64 alphanumeric chars (hyphens allowed)")
        return v


class QRPunchResponse(BaseModel):
    success: bool
    full_name: str
    kind: PunchKind
    punched_at: datetime
    punch_id: int
    message: str


# ── Status ──────────────────────────────────────────────────────────
class PunchStatusResponse(BaseModel):
    status: PunchStatus
    allowed_kinds: list[PunchKind]
    last_punch: PunchRead | None = None
    worked_minutes: int
    break_minutes: int

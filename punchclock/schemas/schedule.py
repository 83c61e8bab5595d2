"""Pydantic schemas for weekly schedules."""

from __future__ import annotations

import re

from pydantic import BaseModel, Field, field_validator, model_validator

_HHMM_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class ScheduleUpsert(BaseModel):
    user_id: int
    day_of_week: int = Field(ge=0, le=6)  # 0 = Sunday
    start_time: str
    end_time: str
    is_active: bool = True

    @field_validator("start_time", "end_time")
    @classmethod
    def _hhmm(cls, v: str) -> str:
        v = v.strip()
        if not _HHMM_RE.match(v):
            raise ValueError("Time must be HH:MM (24h)")
        return v

    @model_validator(mode="after")
    def _ordered(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class ScheduleRead(BaseModel):
    id: int
    user_id: int
    day_of_week: int
    start_time: str
    end_time: str
    is_active: bool

    model_config = {"from_attributes": True}

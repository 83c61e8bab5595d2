"""Pydantic schemas for site locations and geofence checks."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class SiteCreate(BaseModel):
    name: str
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    radius_meters: float | None = Field(default=None, gt=0)

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be empty")
        return v


class SiteUpdate(BaseModel):
    name: str | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    radius_meters: float | None = Field(default=None, gt=0)


class SiteRead(BaseModel):
    id: int
    name: str
    latitude: float
    longitude: float
    radius_meters: float
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class LocationCheckRequest(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    accuracy: float | None = Field(default=None, ge=0)


class AdmissionRead(BaseModel):
    admitted: bool
    nearest_site: SiteRead | None = None
    distance_meters: int | None = None
    outside_by_meters: int | None = None
    message: str

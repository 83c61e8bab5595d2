"""Pydantic schemas for User CRUD."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, field_validator

VALID_ROLES = {"admin", "employee", "student"}


def _check_role(v: str | None) -> str | None:
    if v is not None and v not in VALID_ROLES:
        raise ValueError(f"Role must be one of: {sorted(VALID_ROLES)}")
    return v


class UserCreate(BaseModel):
    email: str
    password: str
    full_name: str
    role: str = "employee"
    department: str | None = None
    card_number: str | None = None

    @field_validator("role")
    @classmethod
    def _validate_role(cls, v: str) -> str:
        return _check_role(v)  # type: ignore[return-value]

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v

    @field_validator("full_name")
    @classmethod
    def _name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be empty")
        if len(v) > 200:
            raise ValueError("Name must not exceed 200 characters")
        return v

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        return v


class UserRead(BaseModel):
    id: int
    email: str
    full_name: str
    role: str
    employee_code: str | None
    department: str | None
    qr_code: str | None
    card_number: str | None
    is_active: bool
    created_at: datetime | None

    model_config = {"from_attributes": True}


class UserUpdate(BaseModel):
    full_name: str | None = None
    role: str | None = None
    department: str | None = None
    card_number: str | None = None
    is_active: bool | None = None
    password: str | None = None

    @field_validator("role")
    @classmethod
    def _validate_role(cls, v: str | None) -> str | None:
        return _check_role(v)

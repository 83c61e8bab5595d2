"""
JWT access tokens, password hashing (bcrypt) and badge code generation.
"""

from __future__ import annotations

import re
import secrets
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from punchclock.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

_ALGORITHM = settings.ALGORITHM
_SECRET = settings.SECRET_KEY

_EMPLOYEE_CODE_RE = re.compile(r"^EMP(\d+)$")


# ── Passwords ───────────────────────────────────────────────────────
def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def get_password_hash(plain: str) -> str:
    return pwd_context.hash(plain)


# ── JWT tokens ──────────────────────────────────────────────────────
def create_access_token(
    subject: str | Any,
    expires_delta: timedelta | None = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    return jwt.encode(
        {"exp": expire, "sub": str(subject), "type": "access"},
        _SECRET,
        algorithm=_ALGORITHM,
    )


def decode_access_token(token: str) -> dict | None:
    """Return payload dict if *access* token is valid, else ``None``."""
    try:
        payload = jwt.decode(token, _SECRET, algorithms=[_ALGORITHM])
        if payload.get("type") != "access":
            return None
        return payload
    except JWTError:
        return None


# ── Badge codes ─────────────────────────────────────────────────────
def generate_qr_code(prefix: str | None = None) -> str:
    """Random kiosk badge code, e.g. ``PUNCH-3F9A0C51B2D7``."""
    return f"{prefix or settings.QR_CODE_PREFIX}-{secrets.token_hex(6).upper()}"


def next_employee_code(existing: Iterable[str | None]) -> str:
    """Next ``EMPnnnn`` code after the highest well-formed one in ``existing``."""
    highest = 0
    for code in existing:
        match = _EMPLOYEE_CODE_RE.match(code or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return f"EMP{highest + 1:04d}"

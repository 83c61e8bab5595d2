"""
FastAPI dependencies — auth guards and database session.

Three levels of access: the public kiosk (no dependency, the QR badge is
the identity), any active user, and administrators.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from punchclock.core.config import settings
from punchclock.core.security import decode_access_token
from punchclock.db.session import async_session_factory
from punchclock.models.user import User

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_PREFIX}/auth/login",
    auto_error=False,
)


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Auth dependencies ───────────────────────────────────────────────
def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the bearer token's ``sub`` to a user row."""
    payload = decode_access_token(token) if token else None
    subject = payload.get("sub") if payload else None
    if subject is None or not str(subject).isdigit():
        raise _unauthorized()

    result = await db.execute(select(User).where(User.id == int(subject)))
    user = result.scalar_one_or_none()
    if user is None:
        raise _unauthorized()
    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """Deactivated users keep their ledger but can no longer act."""
    if not current_user.is_active:
        raise HTTPException(status_code=400, detail="Inactive user account")
    return current_user


async def require_admin(
    current_user: User = Depends(get_current_active_user),
) -> User:
    """Only allow admin role to proceed."""
    if current_user.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current_user


def ensure_self_or_admin(current_user: User, user_id: int | None) -> int:
    """Return the user whose data is being read; others' data needs admin."""
    if user_id is None or user_id == current_user.id:
        return current_user.id
    if current_user.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return user_id

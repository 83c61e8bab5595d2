"""
User management — admin only.

New users get the next ``EMPnnnn`` employee code and a fresh kiosk QR code.
Deleting a user only deactivates it; the punch ledger is preserved.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from punchclock.api.v1.deps import get_db, require_admin
from punchclock.core.security import (generate_qr_code, get_password_hash,
                                      next_employee_code)
from punchclock.models.user import User
from punchclock.schemas.report import DeleteResponse
from punchclock.schemas.user import UserCreate, UserRead, UserUpdate

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)


async def _unique_qr_code(db: AsyncSession) -> str:
    while True:
        code = generate_qr_code()
        taken = await db.execute(select(User.id).where(User.qr_code == code))
        if taken.scalar_one_or_none() is None:
            return code


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("", response_model=list[UserRead])
async def list_users(
    skip: int = 0,
    limit: int = Query(default=50, le=500),
    search: str | None = None,
    role: str | None = None,
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> list[User]:
    query = select(User).order_by(User.full_name).offset(skip).limit(limit)
    if not include_inactive:
        query = query.where(User.is_active.is_(True))
    if role:
        query = query.where(User.role == role)
    if search:
        # Escape SQL LIKE metacharacters to prevent wildcard injection
        safe_search = search.replace("%", r"\%").replace("_", r"\_")
        query = query.where(User.full_name.ilike(f"%{safe_search}%", escape="\\"))
    result = await db.execute(query)
    return list(result.scalars().all())


@router.post("", response_model=UserRead, status_code=201)
async def create_user(
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> User:
    existing = await db.execute(select(User).where(User.email == body.email))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="Email already registered")

    codes = await db.execute(select(User.employee_code))
    user = User(
        email=body.email,
        hashed_password=get_password_hash(body.password),
        full_name=body.full_name,
        role=body.role,
        department=body.department,
        card_number=body.card_number,
        employee_code=next_employee_code(codes.scalars().all()),
        qr_code=await _unique_qr_code(db),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("Created user %s (%s, %s)", user.email, user.employee_code, user.role)
    return user


@router.get("/{user_id}", response_model=UserRead)
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> User:
    return await _get_user_or_404(db, user_id)


@router.put("/{user_id}", response_model=UserRead)
async def update_user(
    user_id: int,
    body: UserUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> User:
    user = await _get_user_or_404(db, user_id)

    changes = body.model_dump(exclude_unset=True)
    password = changes.pop("password", None)
    if password:
        user.hashed_password = get_password_hash(password)
    for field, value in changes.items():
        setattr(user, field, value)

    await db.commit()
    await db.refresh(user)
    logger.info("Updated user %d", user_id)
    return user


@router.post("/{user_id}/qr-code", response_model=UserRead)
async def regenerate_qr_code(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> User:
    """Issue a new kiosk QR code; the old one stops working immediately."""
    user = await _get_user_or_404(db, user_id)
    user.qr_code = await _unique_qr_code(db)
    await db.commit()
    await db.refresh(user)
    logger.info("Regenerated QR code for user %d", user_id)
    return user


@router.delete("/{user_id}", response_model=DeleteResponse)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> DeleteResponse:
    """Soft-delete (deactivate) a user. Punch history is preserved."""
    user = await _get_user_or_404(db, user_id)
    user.is_active = False
    await db.commit()
    logger.info("Deactivated user %d (%s)", user_id, user.email)
    return DeleteResponse(success=True, message=f"User '{user.full_name}' deactivated")

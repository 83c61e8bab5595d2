"""
Weekly schedules — expected hours per user and weekday (0 = Sunday).

PUT upserts on ``(user_id, day_of_week)``, so an admin edits a week by
sending one row per day.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from punchclock.api.v1.deps import get_current_active_user, get_db, require_admin
from punchclock.models.schedule import Schedule
from punchclock.models.user import User
from punchclock.schemas.report import DeleteResponse
from punchclock.schemas.schedule import ScheduleRead, ScheduleUpsert

router = APIRouter(prefix="/schedules", tags=["schedules"])
logger = logging.getLogger(__name__)


@router.get("/me", response_model=list[ScheduleRead])
async def my_schedule(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> list[Schedule]:
    result = await db.execute(
        select(Schedule)
        .where(Schedule.user_id == user.id, Schedule.is_active.is_(True))
        .order_by(Schedule.day_of_week)
    )
    return list(result.scalars().all())


@router.get("", response_model=list[ScheduleRead])
async def list_schedules(
    user_id: int | None = None,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> list[Schedule]:
    query = select(Schedule).order_by(Schedule.user_id, Schedule.day_of_week)
    if user_id is not None:
        query = query.where(Schedule.user_id == user_id)
    result = await db.execute(query)
    return list(result.scalars().all())


@router.put("", response_model=ScheduleRead)
async def upsert_schedule(
    body: ScheduleUpsert,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> Schedule:
    """Create or replace the schedule of one user for one weekday."""
    target = await db.execute(select(User.id).where(User.id == body.user_id))
    if target.scalar_one_or_none() is None:
        raise HTTPException(status_code=404, detail="User not found")

    existing = await db.execute(
        select(Schedule).where(
            Schedule.user_id == body.user_id,
            Schedule.day_of_week == body.day_of_week,
        )
    )
    schedule = existing.scalar_one_or_none()

    if schedule:
        schedule.start_time = body.start_time
        schedule.end_time = body.end_time
        schedule.is_active = body.is_active
        schedule.created_by = admin.id
    else:
        schedule = Schedule(**body.model_dump(), created_by=admin.id)
        db.add(schedule)

    await db.commit()
    await db.refresh(schedule)
    logger.info(
        "Schedule for user %d day %d set to %s-%s",
        body.user_id, body.day_of_week, body.start_time, body.end_time,
    )
    return schedule


@router.delete("/{schedule_id}", response_model=DeleteResponse)
async def delete_schedule(
    schedule_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> DeleteResponse:
    result = await db.execute(select(Schedule).where(Schedule.id == schedule_id))
    schedule = result.scalar_one_or_none()
    if schedule is None:
        raise HTTPException(status_code=404, detail="Schedule not found")

    await db.delete(schedule)
    await db.commit()
    return DeleteResponse(success=True, message="Schedule deleted")

"""
Personal goals with progress derived from the punch ledger.

``hours``, ``days`` and ``sessions`` goals are measured over the current
month; ``percentage`` goals track whatever ``current_value`` the user sets.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from punchclock.api.v1.deps import get_current_active_user, get_db
from punchclock.core.config import settings
from punchclock.core.periods import (accounting_day, month_days,
                                     partition_by_day, summarize_days,
                                     window_totals)
from punchclock.models.goal import Goal
from punchclock.models.user import User
from punchclock.schemas.report import (DeleteResponse, GoalCreate, GoalRead,
                                       GoalUpdate)
from punchclock.services.punches import fetch_punches

router = APIRouter(prefix="/goals", tags=["goals"])
logger = logging.getLogger(__name__)


async def _month_measures(db: AsyncSession, user_id: int) -> dict[str, float]:
    """Ledger-derived values for this month, keyed by goal unit."""
    now = datetime.now(timezone.utc)
    zone = settings.reporting_zone
    day = accounting_day(now, zone)
    days = month_days(day, up_to=day)

    events = await fetch_punches(db, days[0], days[-1], user_id=user_id)
    by_day = partition_by_day(events, zone)
    totals = window_totals(by_day, days, zone, as_of=now)
    daily = summarize_days(by_day, days, zone, as_of=now)

    return {
        "hours": round(totals.worked_minutes / 60, 2),
        "days": float(sum(1 for d in daily if d.worked_minutes > 0)),
        "sessions": float(totals.sessions),
    }


def _to_read(goal: Goal, measures: dict[str, float]) -> GoalRead:
    current = measures.get(goal.unit, goal.current_value)
    progress = min(100.0, current / goal.target_value * 100) if goal.target_value else 0.0
    read = GoalRead.model_validate(goal)
    read.current_value = current
    read.progress_percent = round(progress, 1)
    return read


async def _get_own_goal(db: AsyncSession, goal_id: int, user: User) -> Goal:
    result = await db.execute(
        select(Goal).where(Goal.id == goal_id, Goal.user_id == user.id)
    )
    goal = result.scalar_one_or_none()
    if goal is None:
        raise HTTPException(status_code=404, detail="Goal not found")
    return goal


@router.get("", response_model=list[GoalRead])
async def list_goals(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> list[GoalRead]:
    result = await db.execute(
        select(Goal).where(Goal.user_id == user.id).order_by(Goal.created_at.desc(), Goal.id.desc())
    )
    goals = list(result.scalars().all())
    if not goals:
        return []
    measures = await _month_measures(db, user.id)
    return [_to_read(g, measures) for g in goals]


@router.post("", response_model=GoalRead, status_code=201)
async def create_goal(
    body: GoalCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> GoalRead:
    data = body.model_dump()
    if data["target_date"] is not None:
        data["target_date"] = data["target_date"].isoformat()
    goal = Goal(**data, user_id=user.id)
    db.add(goal)
    await db.commit()
    await db.refresh(goal)
    logger.info("User %d created goal %d (%s %s)", user.id, goal.id, goal.target_value, goal.unit)
    return _to_read(goal, await _month_measures(db, user.id))


@router.put("/{goal_id}", response_model=GoalRead)
async def update_goal(
    goal_id: int,
    body: GoalUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> GoalRead:
    goal = await _get_own_goal(db, goal_id, user)
    for field, value in body.model_dump(exclude_unset=True).items():
        if value is None and field not in ("description", "target_date"):
            continue
        if field == "target_date" and value is not None:
            value = value.isoformat()
        setattr(goal, field, value)
    await db.commit()
    await db.refresh(goal)
    return _to_read(goal, await _month_measures(db, user.id))


@router.delete("/{goal_id}", response_model=DeleteResponse)
async def delete_goal(
    goal_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> DeleteResponse:
    goal = await _get_own_goal(db, goal_id, user)
    await db.delete(goal)
    await db.commit()
    return DeleteResponse(success=True, message="Goal deleted")

"""
Dashboards, reports, the totals cache and the live punch feed.

Every endpoint fetches its window of punches in **one** SQL query and
reduces per user and accounting day in Python with the shared ledger
reducer.  Running sessions accrue up to "now" only on the current day.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections import defaultdict
from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from punchclock.api.v1.deps import (ensure_self_or_admin, get_current_active_user,
                                    get_db, require_admin)
from punchclock.core.config import settings
from punchclock.core.feed import punch_feed
from punchclock.core.ledger import (PunchStatus, current_status, ensure_utc,
                                    reduce_punches)
from punchclock.core.periods import (accounting_day, month_days,
                                     partition_by_day, summarize_days,
                                     week_days, window_totals)
from punchclock.models.punch import PunchRecord, WorkSession
from punchclock.models.site import SiteLocation
from punchclock.models.user import User
from punchclock.schemas.report import (DailyReportResponse, DailyReportUser,
                                       DailyTotalsRead, DashboardResponse,
                                       HealthResponse, OverviewResponse,
                                       RecomputeResponse, StatusResponse,
                                       TotalsRead)
from punchclock.services.punches import fetch_punches, today

router = APIRouter(tags=["reports"])
logger = logging.getLogger(__name__)

FEED_KEEPALIVE_SECONDS = 15


def _as_of_for(day: date, now: datetime) -> datetime | None:
    """Open sessions only accrue on the day that contains ``now``."""
    return now if day == accounting_day(now, settings.reporting_zone) else None


def _group_by_user(events: list[PunchRecord]) -> dict[int, list[PunchRecord]]:
    by_user: dict[int, list[PunchRecord]] = defaultdict(list)
    for ev in events:
        by_user[ev.user_id].append(ev)
    return by_user


# ── Dashboard (current user) ────────────────────────────────────────
@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> DashboardResponse:
    """Today / this week (Monday start) / this month totals for the caller."""
    now = datetime.now(timezone.utc)
    zone = settings.reporting_zone
    day = accounting_day(now, zone)
    week = week_days(day)
    month = month_days(day, up_to=day)

    events = await fetch_punches(db, min(week[0], month[0]), max(week[-1], day), user_id=user.id)
    by_day = partition_by_day(events, zone)

    today_totals = reduce_punches(by_day.get(day, []), as_of=now)
    week_summary = summarize_days(by_day, week, zone, as_of=now, subject_id=user.id)
    month_totals = window_totals(by_day, month, zone, as_of=now)

    return DashboardResponse(
        date=day,
        status=current_status(by_day.get(day, [])),
        today=TotalsRead(
            worked_minutes=today_totals.worked_minutes,
            break_minutes=today_totals.break_minutes,
        ),
        week=TotalsRead(
            worked_minutes=sum(d.worked_minutes for d in week_summary),
            break_minutes=sum(d.break_minutes for d in week_summary),
        ),
        month=TotalsRead(
            worked_minutes=month_totals.worked_minutes,
            break_minutes=month_totals.break_minutes,
        ),
        week_daily_minutes=[d.worked_minutes for d in week_summary],
    )


# ── Totals for one user-day ─────────────────────────────────────────
@router.get("/reports/totals/{user_id}/{day}", response_model=DailyTotalsRead)
async def user_day_totals(
    user_id: int,
    day: date,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> DailyTotalsRead:
    events = await fetch_punches(db, day, user_id=ensure_self_or_admin(user, user_id))
    totals = reduce_punches(events, as_of=_as_of_for(day, datetime.now(timezone.utc)))
    return DailyTotalsRead(
        user_id=user_id,
        date=day,
        worked_minutes=totals.worked_minutes,
        break_minutes=totals.break_minutes,
    )


# ── Daily report (all users) ────────────────────────────────────────
@router.get("/reports/daily/{day}", response_model=DailyReportResponse)
async def daily_report(
    day: date,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> DailyReportResponse:
    """Per-user worked and break minutes for one accounting day."""
    result = await db.execute(
        select(PunchRecord, User.full_name)
        .join(User, PunchRecord.user_id == User.id)
        .where(PunchRecord.date == day.isoformat())
        .order_by(PunchRecord.user_id, PunchRecord.timestamp.asc(), PunchRecord.id.asc())
    )
    rows = result.all()

    by_user: dict[int, list[PunchRecord]] = defaultdict(list)
    names: dict[int, str] = {}
    for punch, name in rows:
        by_user[punch.user_id].append(punch)
        names[punch.user_id] = name

    as_of = _as_of_for(day, datetime.now(timezone.utc))
    details = []
    for user_id, events in by_user.items():
        totals = reduce_punches(events, as_of=as_of)
        details.append(
            DailyReportUser(
                user_id=user_id,
                full_name=names[user_id],
                first_in=next((e.timestamp for e in events if e.kind == "in"), None),
                last_out=next((e.timestamp for e in reversed(events) if e.kind == "out"), None),
                worked_minutes=totals.worked_minutes,
                break_minutes=totals.break_minutes,
                total_events=len(events),
            )
        )

    return DailyReportResponse(date=day, total_users=len(details), details=details)


# ── Totals cache ────────────────────────────────────────────────────
@router.post("/reports/recompute", response_model=RecomputeResponse)
async def recompute_totals(
    day: date | None = Query(default=None, alias="date"),
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> RecomputeResponse:
    """Rebuild the ``work_sessions`` cache for every user who punched on ``day``."""
    day = day or today()
    events = await fetch_punches(db, day)
    as_of = _as_of_for(day, datetime.now(timezone.utc))

    existing = await db.execute(select(WorkSession).where(WorkSession.date == day.isoformat()))
    cached = {ws.user_id: ws for ws in existing.scalars().all()}

    by_user = _group_by_user(events)
    for user_id, user_events in by_user.items():
        totals = reduce_punches(user_events, as_of=as_of)
        session = cached.get(user_id)
        if session is None:
            session = WorkSession(user_id=user_id, date=day.isoformat())
            db.add(session)
        session.total_work_minutes = totals.worked_minutes
        session.total_break_minutes = totals.break_minutes

    await db.commit()
    logger.info("Recomputed work_sessions for %s (%d users)", day, len(by_user))
    return RecomputeResponse(date=day, users_updated=len(by_user))


# ── Live overview (admin) ───────────────────────────────────────────
@router.get("/attendance/overview", response_model=OverviewResponse)
async def attendance_overview(
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> OverviewResponse:
    """Who is in, on break or out right now."""
    user_count = await db.execute(
        select(func.count(User.id)).where(User.is_active.is_(True))
    )
    total_users = user_count.scalar() or 0

    events = await fetch_punches(db, today())
    statuses = [current_status(evts) for evts in _group_by_user(events).values()]
    present = sum(1 for s in statuses if s is PunchStatus.IN)
    on_break = sum(1 for s in statuses if s is PunchStatus.ON_BREAK)

    return OverviewResponse(
        total_users=total_users,
        present=present,
        on_break=on_break,
        out=max(0, total_users - present - on_break),
        today_punches=len(events),
    )


# ── Live punch feed (server-sent events) ────────────────────────────
@router.get("/feed")
async def punch_stream(
    request: Request,
    user: User = Depends(get_current_active_user),
) -> StreamingResponse:
    """Stream newly stored punches; admins see everyone, others themselves."""

    async def iter_events():
        async with punch_feed.subscription() as queue:
            while not await request.is_disconnected():
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=FEED_KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
                    continue
                if user.role != "admin" and event.subject_id != user.id:
                    continue
                payload = {
                    "id": event.id,
                    "user_id": event.subject_id,
                    "kind": event.kind.value,
                    "timestamp": ensure_utc(event.timestamp).isoformat(),
                    "verified": event.verified,
                }
                yield f"event: punch\ndata: {json.dumps(payload)}\n\n"

    return StreamingResponse(iter_events(), media_type="text/event-stream")


# ── Health / Status ─────────────────────────────────────────────────
@router.get("/health", response_model=HealthResponse)
async def health(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Public health check — DB and Redis connectivity."""
    result = HealthResponse(db=False, redis=False)

    try:
        await db.execute(select(1))
        result.db = True
    except Exception as e:
        logger.error("Health check DB failure: %s", e)

    try:
        import redis.asyncio as aioredis

        r = aioredis.from_url(settings.REDIS_URL)
        await r.ping()
        await r.aclose()
        result.redis = True
    except Exception as e:
        logger.error("Health check Redis failure: %s", e)

    return result


@router.get("/status", response_model=StatusResponse)
async def system_status(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_active_user),
) -> StatusResponse:
    """Return current system status — user, site and today's punch counts."""
    user_count = await db.execute(
        select(func.count(User.id)).where(User.is_active.is_(True))
    )
    site_count = await db.execute(select(func.count(SiteLocation.id)))
    punch_count = await db.execute(
        select(func.count(PunchRecord.id)).where(PunchRecord.date == today().isoformat())
    )

    return StatusResponse(
        total_users=user_count.scalar() or 0,
        total_sites=site_count.scalar() or 0,
        today_punches=punch_count.scalar() or 0,
        status="operational",
    )

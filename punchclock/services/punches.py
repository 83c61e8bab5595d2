"""
Punch ledger access — the only place that reads or appends punch records.

Appending a punch also drops a notification in the user's inbox and
publishes the event on the change feed once the row is committed.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from punchclock.core.config import settings
from punchclock.core.feed import punch_feed
from punchclock.core.ledger import PunchEvent, PunchKind
from punchclock.core.periods import accounting_day
from punchclock.models.notification import Notification
from punchclock.models.punch import PunchRecord
from punchclock.models.user import User

logger = logging.getLogger(__name__)

_NOTIFICATION_TEXT = {
    PunchKind.IN: ("Clock-in", "Clock-in recorded at {time}"),
    PunchKind.OUT: ("Clock-out", "Clock-out recorded at {time}"),
    PunchKind.BREAK_START: ("Break started", "Break started at {time}"),
    PunchKind.BREAK_END: ("Break ended", "Break ended at {time}"),
}


def today() -> date:
    return accounting_day(datetime.now(timezone.utc), settings.reporting_zone)


def to_event(record: PunchRecord) -> PunchEvent:
    return PunchEvent(
        id=record.id,
        subject_id=record.user_id,
        kind=PunchKind(record.kind),
        timestamp=record.timestamp,
        verified=record.verified,
    )


# ── Reads ───────────────────────────────────────────────────────────
def punches_query(
    start: date,
    end: date | None = None,
    user_id: int | None = None,
    *,
    for_update: bool = False,
) -> Select:
    end = end or start
    query = (
        select(PunchRecord)
        .where(PunchRecord.date >= start.isoformat(), PunchRecord.date <= end.isoformat())
        .order_by(PunchRecord.user_id, PunchRecord.timestamp.asc(), PunchRecord.id.asc())
    )
    if user_id is not None:
        query = query.where(PunchRecord.user_id == user_id)
    if for_update:
        query = query.with_for_update()
    return query


async def fetch_punches(
    db: AsyncSession,
    start: date,
    end: date | None = None,
    user_id: int | None = None,
    *,
    for_update: bool = False,
) -> list[PunchRecord]:
    """Punches between two accounting days (inclusive), oldest first.

    ``for_update`` write-locks the rows until the caller commits.
    """
    result = await db.execute(punches_query(start, end, user_id, for_update=for_update))
    return list(result.scalars().all())


def subject_lock_query(user_id: int) -> Select:
    return select(User.id).where(User.id == user_id).with_for_update()


async def lock_ledger(db: AsyncSession, user_id: int) -> None:
    """Serialize punch writers for one user, even before their first punch of the day."""
    await db.execute(subject_lock_query(user_id))


# ── Writes ──────────────────────────────────────────────────────────
async def record_punch(
    db: AsyncSession,
    user: User,
    kind: PunchKind,
    *,
    method: str = "manual",
    latitude: float | None = None,
    longitude: float | None = None,
    verified: bool = False,
    notes: str | None = None,
    now: datetime | None = None,
) -> PunchRecord:
    """Append one punch to the ledger and announce it."""
    now = now or datetime.now(timezone.utc)
    zone = settings.reporting_zone

    record = PunchRecord(
        user_id=user.id,
        kind=kind.value,
        timestamp=now,
        date=accounting_day(now, zone).isoformat(),
        method=method,
        latitude=latitude,
        longitude=longitude,
        verified=verified,
        notes=notes,
    )
    db.add(record)

    title, message = _NOTIFICATION_TEXT[kind]
    db.add(
        Notification(
            user_id=user.id,
            kind="info",
            title=title,
            message=message.format(time=now.astimezone(zone).strftime("%H:%M")),
        )
    )

    await db.commit()
    await db.refresh(record)

    logger.info(
        "Punch %s for %s via %s (verified=%s)", kind.value, user.email, method, verified
    )
    punch_feed.publish(to_event(record))
    return record

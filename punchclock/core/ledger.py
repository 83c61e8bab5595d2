"""
Punch ledger reducer — worked / break minutes from an ordered punch log.

Every view that shows time (punch status, dashboard, reports, goal progress,
the ``work_sessions`` cache) goes through :func:`reduce_punches`, so there is
exactly one implementation of the time math.

The reducer is a pure function of its input.  It never raises: orphan
closes, double clock-ins and out-of-order timestamps degrade to lower totals
and are only logged at DEBUG level.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class PunchKind(str, enum.Enum):
    IN = "in"
    OUT = "out"
    BREAK_START = "break_start"
    BREAK_END = "break_end"


class PunchStatus(str, enum.Enum):
    OUT = "out"
    IN = "in"
    ON_BREAK = "on_break"


class PunchLike(Protocol):
    """Anything with a ``kind`` and a ``timestamp`` (ORM rows included)."""

    kind: Any
    timestamp: datetime


@dataclass(frozen=True)
class PunchEvent:
    """A single immutable clock action for one subject."""

    id: Any
    subject_id: Any
    kind: PunchKind
    timestamp: datetime
    verified: bool = False


@dataclass(frozen=True)
class LedgerTotals:
    worked_minutes: int = 0
    break_minutes: int = 0
    sessions: int = 0  # closed in/out pairs

    @property
    def total_minutes(self) -> int:
        return self.worked_minutes + self.break_minutes

    def __add__(self, other: LedgerTotals) -> LedgerTotals:
        return LedgerTotals(
            worked_minutes=self.worked_minutes + other.worked_minutes,
            break_minutes=self.break_minutes + other.break_minutes,
            sessions=self.sessions + other.sessions,
        )


# ── Helpers ─────────────────────────────────────────────────────────
def ensure_utc(dt: datetime) -> datetime:
    """Normalise a potentially-naive timestamp to UTC-aware."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _whole_minutes(start: datetime, end: datetime) -> int:
    """Floor of the elapsed minutes, clamped at zero."""
    return max(0, int((end - start).total_seconds() // 60))


def _coerce_kind(value: Any) -> PunchKind | None:
    if isinstance(value, PunchKind):
        return value
    try:
        return PunchKind(value)
    except ValueError:
        logger.debug("Ignoring punch with unknown kind %r", value)
        return None


# ── Reducer ─────────────────────────────────────────────────────────
def reduce_punches(
    events: Iterable[PunchLike],
    as_of: datetime | None = None,
) -> LedgerTotals:
    """Compute worked and break minutes for one subject on one accounting day.

    ``events`` must already be partitioned to a single subject and day and
    ordered by timestamp.  When the last session is still open, it accrues
    up to ``as_of``; without ``as_of`` it contributes nothing.

    Worked time of a session is its wall-clock span minus the break minutes
    taken inside it.  Break minutes are counted once, in their own bucket.
    """
    worked = 0
    breaks = 0
    sessions = 0

    work_start: datetime | None = None
    break_start: datetime | None = None
    session_break = 0
    previous: datetime | None = None

    def close_break(end: datetime) -> int:
        # A break can never be longer than what is left of its session.
        available = max(0, _whole_minutes(work_start, end) - session_break)
        return min(_whole_minutes(break_start, end), available)

    for ev in events:
        kind = _coerce_kind(ev.kind)
        if kind is None:
            continue
        ts = ensure_utc(ev.timestamp)
        if previous is not None and ts < previous:
            logger.debug("Out-of-order punch %s at %s (after %s)", kind.value, ts, previous)
        previous = ts

        if kind is PunchKind.IN:
            if work_start is not None:
                logger.debug("Double clock-in at %s, restarting session", ts)
            work_start = ts
            break_start = None
            session_break = 0

        elif kind is PunchKind.OUT:
            if work_start is None:
                logger.debug("Orphan clock-out at %s ignored", ts)
                continue
            if break_start is not None:
                minutes = close_break(ts)
                breaks += minutes
                session_break += minutes
                break_start = None
            worked += max(0, _whole_minutes(work_start, ts) - session_break)
            sessions += 1
            work_start = None
            session_break = 0

        elif kind is PunchKind.BREAK_START:
            if work_start is None:
                logger.debug("Break start outside a work session at %s ignored", ts)
                continue
            break_start = ts

        elif kind is PunchKind.BREAK_END:
            if break_start is None:
                logger.debug("Orphan break end at %s ignored", ts)
                continue
            minutes = close_break(ts)
            breaks += minutes
            session_break += minutes
            break_start = None

    if work_start is not None and as_of is not None:
        now = ensure_utc(as_of)
        if break_start is not None:
            minutes = close_break(now)
            breaks += minutes
            session_break += minutes
        worked += max(0, _whole_minutes(work_start, now) - session_break)

    return LedgerTotals(worked_minutes=worked, break_minutes=breaks, sessions=sessions)


# ── Status ──────────────────────────────────────────────────────────
def current_status(events: Iterable[PunchLike]) -> PunchStatus:
    """Derive in / out / on-break from the event log, using the reducer's rules."""
    status = PunchStatus.OUT
    for ev in events:
        kind = _coerce_kind(ev.kind)
        if kind is PunchKind.IN:
            status = PunchStatus.IN
        elif kind is PunchKind.OUT:
            status = PunchStatus.OUT
        elif kind is PunchKind.BREAK_START and status is PunchStatus.IN:
            status = PunchStatus.ON_BREAK
        elif kind is PunchKind.BREAK_END and status is PunchStatus.ON_BREAK:
            status = PunchStatus.IN
    return status


_ALLOWED: dict[PunchStatus, tuple[PunchKind, ...]] = {
    PunchStatus.OUT: (PunchKind.IN,),
    PunchStatus.IN: (PunchKind.OUT, PunchKind.BREAK_START),
    PunchStatus.ON_BREAK: (PunchKind.BREAK_END,),
}


def allowed_kinds(status: PunchStatus) -> tuple[PunchKind, ...]:
    return _ALLOWED[status]


_SCAN_KIND: dict[PunchStatus, PunchKind] = {
    PunchStatus.OUT: PunchKind.IN,
    PunchStatus.IN: PunchKind.OUT,
    PunchStatus.ON_BREAK: PunchKind.BREAK_END,
}


def next_scan_kind(status: PunchStatus) -> PunchKind:
    """Kiosk toggle: out clocks in, in clocks out, a scan on break ends the break."""
    return _SCAN_KIND[status]

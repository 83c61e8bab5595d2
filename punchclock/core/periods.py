"""
Accounting periods — day / week / month windows in the reporting timezone.

Callers fetch one window of punches, partition them per accounting day and
reduce each day on its own.  Weeks start on Monday.
"""

from __future__ import annotations

import calendar
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any
from zoneinfo import ZoneInfo

from punchclock.core.ledger import LedgerTotals, PunchLike, ensure_utc, reduce_punches


@dataclass(frozen=True)
class DailyTotals:
    subject_id: Any
    day: date
    worked_minutes: int
    break_minutes: int


def accounting_day(ts: datetime, tz: ZoneInfo) -> date:
    """Calendar date of ``ts`` as seen in the reporting timezone."""
    return ensure_utc(ts).astimezone(tz).date()


def week_days(day: date) -> list[date]:
    """Monday..Sunday of the week containing ``day``."""
    monday = day - timedelta(days=day.weekday())
    return [monday + timedelta(days=i) for i in range(7)]


def month_days(day: date, up_to: date | None = None) -> list[date]:
    """First of the month up to ``up_to`` (or month end), inclusive."""
    first = day.replace(day=1)
    _, days_in_month = calendar.monthrange(day.year, day.month)
    last = first.replace(day=days_in_month)
    if up_to is not None and up_to < last:
        last = up_to
    return [first + timedelta(days=i) for i in range((last - first).days + 1)]


def partition_by_day(
    events: Iterable[PunchLike], tz: ZoneInfo
) -> dict[date, list[PunchLike]]:
    """Group events by accounting day, keeping their order inside each day."""
    by_day: dict[date, list[PunchLike]] = defaultdict(list)
    for ev in events:
        by_day[accounting_day(ev.timestamp, tz)].append(ev)
    return dict(by_day)


def summarize_days(
    events_by_day: dict[date, list[PunchLike]],
    days: Sequence[date],
    tz: ZoneInfo,
    as_of: datetime | None = None,
    subject_id: Any = None,
) -> list[DailyTotals]:
    """Reduce every day of a window; ``as_of`` only applies to its own day."""
    today = accounting_day(as_of, tz) if as_of is not None else None
    summary = []
    for day in days:
        totals = reduce_punches(
            events_by_day.get(day, []),
            as_of=as_of if day == today else None,
        )
        summary.append(
            DailyTotals(
                subject_id=subject_id,
                day=day,
                worked_minutes=totals.worked_minutes,
                break_minutes=totals.break_minutes,
            )
        )
    return summary


def window_totals(
    events_by_day: dict[date, list[PunchLike]],
    days: Sequence[date],
    tz: ZoneInfo,
    as_of: datetime | None = None,
) -> LedgerTotals:
    today = accounting_day(as_of, tz) if as_of is not None else None
    total = LedgerTotals()
    for day in days:
        total += reduce_punches(
            events_by_day.get(day, []),
            as_of=as_of if day == today else None,
        )
    return total

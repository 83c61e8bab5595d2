"""Tests for accounting days and the week / month windows."""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from punchclock.core.ledger import PunchEvent, PunchKind
from punchclock.core.periods import (accounting_day, month_days,
                                     partition_by_day, summarize_days,
                                     week_days, window_totals)

UTC = ZoneInfo("UTC")
KARACHI = ZoneInfo("Asia/Karachi")  # UTC+5, no DST


def _ev(i: int, kind: str, ts: datetime) -> PunchEvent:
    return PunchEvent(id=i, subject_id=1, kind=PunchKind(kind), timestamp=ts)


def test_accounting_day_uses_reporting_timezone():
    late = datetime(2024, 3, 4, 21, 30, tzinfo=timezone.utc)
    assert accounting_day(late, UTC) == date(2024, 3, 4)
    assert accounting_day(late, KARACHI) == date(2024, 3, 5)


def test_accounting_day_accepts_naive_utc():
    assert accounting_day(datetime(2024, 3, 4, 21, 30), KARACHI) == date(2024, 3, 5)


def test_week_starts_on_monday():
    days = week_days(date(2024, 3, 7))  # Thursday
    assert days[0] == date(2024, 3, 4)
    assert days[-1] == date(2024, 3, 10)
    assert len(days) == 7


def test_week_of_a_sunday():
    assert week_days(date(2024, 3, 10))[0] == date(2024, 3, 4)


def test_month_days_full_and_truncated():
    assert len(month_days(date(2024, 2, 10))) == 29
    assert month_days(date(2024, 2, 10), up_to=date(2024, 2, 10))[-1] == date(2024, 2, 10)
    assert month_days(date(2024, 2, 10), up_to=date(2024, 2, 10))[0] == date(2024, 2, 1)


def test_partition_keeps_order_within_day():
    events = [
        _ev(1, "in", datetime(2024, 3, 4, 9, tzinfo=timezone.utc)),
        _ev(2, "out", datetime(2024, 3, 4, 17, tzinfo=timezone.utc)),
        _ev(3, "in", datetime(2024, 3, 5, 9, tzinfo=timezone.utc)),
    ]
    by_day = partition_by_day(events, UTC)
    assert [e.id for e in by_day[date(2024, 3, 4)]] == [1, 2]
    assert [e.id for e in by_day[date(2024, 3, 5)]] == [3]


def test_partition_moves_late_shift_to_next_local_day():
    events = [
        _ev(1, "in", datetime(2024, 3, 4, 20, tzinfo=timezone.utc)),
        _ev(2, "out", datetime(2024, 3, 4, 22, tzinfo=timezone.utc)),
    ]
    assert list(partition_by_day(events, KARACHI)) == [date(2024, 3, 5)]


def test_summarize_days_applies_as_of_only_to_its_day():
    by_day = {
        date(2024, 3, 4): [_ev(1, "in", datetime(2024, 3, 4, 9, tzinfo=timezone.utc))],
        date(2024, 3, 5): [_ev(2, "in", datetime(2024, 3, 5, 9, tzinfo=timezone.utc))],
    }
    as_of = datetime(2024, 3, 5, 11, tzinfo=timezone.utc)
    summary = summarize_days(by_day, week_days(date(2024, 3, 5)), UTC, as_of=as_of, subject_id=1)

    assert [d.worked_minutes for d in summary] == [0, 120, 0, 0, 0, 0, 0]
    assert all(d.subject_id == 1 for d in summary)


def test_window_totals_sums_days():
    by_day = {
        date(2024, 3, 4): [
            _ev(1, "in", datetime(2024, 3, 4, 9, tzinfo=timezone.utc)),
            _ev(2, "out", datetime(2024, 3, 4, 17, tzinfo=timezone.utc)),
        ],
        date(2024, 3, 6): [
            _ev(3, "in", datetime(2024, 3, 6, 9, tzinfo=timezone.utc)),
            _ev(4, "break_start", datetime(2024, 3, 6, 12, tzinfo=timezone.utc)),
            _ev(5, "break_end", datetime(2024, 3, 6, 12, 30, tzinfo=timezone.utc)),
            _ev(6, "out", datetime(2024, 3, 6, 13, tzinfo=timezone.utc)),
        ],
    }
    totals = window_totals(by_day, month_days(date(2024, 3, 1)), UTC)
    assert totals.worked_minutes == 480 + 210
    assert totals.break_minutes == 30
    assert totals.sessions == 2

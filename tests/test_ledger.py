"""Tests for the punch ledger reducer and the status helpers."""

from datetime import datetime, timedelta, timezone

import pytest

from punchclock.core.ledger import (LedgerTotals, PunchEvent, PunchKind,
                                    PunchStatus, allowed_kinds, current_status,
                                    next_scan_kind, reduce_punches)

BASE = datetime(2024, 3, 4, tzinfo=timezone.utc)


def _log(*punches: tuple[str, str]) -> list[PunchEvent]:
    """Build an event list from (kind, "HH:MM[:SS]") pairs."""
    events = []
    for i, (kind, clock) in enumerate(punches, start=1):
        parts = [int(p) for p in clock.split(":")]
        hours, minutes = parts[0], parts[1]
        seconds = parts[2] if len(parts) > 2 else 0
        ts = BASE + timedelta(hours=hours, minutes=minutes, seconds=seconds)
        events.append(PunchEvent(id=i, subject_id=7, kind=PunchKind(kind), timestamp=ts))
    return events


# ── Reference shifts ────────────────────────────────────────────────
def test_simple_shift():
    totals = reduce_punches(_log(("in", "09:00"), ("out", "17:00")))
    assert totals.worked_minutes == 480
    assert totals.break_minutes == 0
    assert totals.sessions == 1


def test_shift_with_one_break():
    totals = reduce_punches(
        _log(("in", "09:00"), ("break_start", "12:00"), ("break_end", "12:30"), ("out", "17:00"))
    )
    assert (totals.worked_minutes, totals.break_minutes) == (450, 30)


def test_open_session_accrues_until_as_of():
    events = _log(("in", "09:00"))
    totals = reduce_punches(events, as_of=BASE + timedelta(hours=10))
    assert (totals.worked_minutes, totals.break_minutes) == (60, 0)


def test_open_session_without_as_of_contributes_nothing():
    assert reduce_punches(_log(("in", "09:00"))) == LedgerTotals()


def test_empty_log():
    assert reduce_punches([]) == LedgerTotals()


def test_two_sessions_in_one_day():
    totals = reduce_punches(
        _log(("in", "09:00"), ("out", "12:00"), ("in", "13:00"), ("out", "17:00"))
    )
    assert totals.worked_minutes == 420
    assert totals.sessions == 2


# ── General properties ──────────────────────────────────────────────
def test_reduction_is_idempotent():
    events = _log(("in", "08:12"), ("break_start", "10:01"), ("break_end", "10:17"), ("out", "16:45"))
    assert reduce_punches(events) == reduce_punches(events)
    assert reduce_punches(events) == reduce_punches(list(events))


@pytest.mark.parametrize(
    "punches",
    [
        (("out", "17:00"), ("in", "09:00")),
        (("in", "17:00"), ("out", "09:00")),
        (("in", "09:00"), ("break_start", "12:00"), ("break_end", "11:00"), ("out", "10:00")),
        (("break_end", "08:00"), ("break_start", "09:00"), ("out", "07:00")),
    ],
)
def test_totals_are_never_negative(punches):
    totals = reduce_punches(_log(*punches), as_of=BASE)
    assert totals.worked_minutes >= 0
    assert totals.break_minutes >= 0


def test_worked_plus_break_fits_inside_the_span():
    events = _log(
        ("in", "08:00:30"),
        ("break_start", "10:00:45"),
        ("break_end", "10:20:10"),
        ("out", "12:00:00"),
        ("in", "12:30:00"),
        ("out", "15:59:59"),
    )
    totals = reduce_punches(events)
    span = events[-1].timestamp - events[0].timestamp
    assert totals.worked_minutes + totals.break_minutes <= -(-span.total_seconds() // 60)


def test_orphan_closing_events_are_inert():
    assert reduce_punches(_log(("out", "17:00"))) == LedgerTotals()

    shift = [("in", "09:00"), ("out", "17:00")]
    with_orphans = [("out", "08:00"), ("break_end", "08:30")] + shift + [("break_end", "17:30")]
    assert reduce_punches(_log(*with_orphans)) == reduce_punches(_log(*shift))


def test_break_start_outside_session_is_ignored():
    totals = reduce_punches(_log(("break_start", "08:00"), ("in", "09:00"), ("out", "10:00")))
    assert (totals.worked_minutes, totals.break_minutes) == (60, 0)


# ── Edge cases ──────────────────────────────────────────────────────
def test_segments_are_floored_to_whole_minutes():
    totals = reduce_punches(_log(("in", "09:00:00"), ("out", "09:00:59")))
    assert totals.worked_minutes == 0

    totals = reduce_punches(_log(("in", "09:00:10"), ("out", "09:02:09")))
    assert totals.worked_minutes == 1


def test_double_clock_in_restarts_the_session():
    totals = reduce_punches(_log(("in", "09:00"), ("in", "10:00"), ("out", "11:00")))
    assert totals.worked_minutes == 60
    assert totals.sessions == 1


def test_double_clock_in_drops_open_break():
    totals = reduce_punches(
        _log(("in", "09:00"), ("break_start", "09:30"), ("in", "10:00"), ("out", "11:00"))
    )
    assert (totals.worked_minutes, totals.break_minutes) == (60, 0)


def test_break_open_at_clock_out_is_closed_there():
    totals = reduce_punches(_log(("in", "09:00"), ("break_start", "12:00"), ("out", "13:00")))
    assert (totals.worked_minutes, totals.break_minutes) == (180, 60)


def test_duplicate_break_start_keeps_latest():
    totals = reduce_punches(
        _log(
            ("in", "09:00"),
            ("break_start", "12:00"),
            ("break_start", "12:20"),
            ("break_end", "12:30"),
            ("out", "13:00"),
        )
    )
    assert (totals.worked_minutes, totals.break_minutes) == (230, 10)


def test_open_break_accrues_until_as_of():
    events = _log(("in", "09:00"), ("break_start", "10:00"))
    totals = reduce_punches(events, as_of=BASE + timedelta(hours=10, minutes=30))
    assert (totals.worked_minutes, totals.break_minutes) == (60, 30)


def test_as_of_is_ignored_for_closed_sessions():
    events = _log(("in", "09:00"), ("out", "10:00"))
    assert reduce_punches(events, as_of=BASE + timedelta(hours=20)).worked_minutes == 60


def test_naive_timestamps_are_treated_as_utc():
    naive = [
        PunchEvent(id=1, subject_id=1, kind=PunchKind.IN, timestamp=datetime(2024, 3, 4, 9)),
        PunchEvent(id=2, subject_id=1, kind=PunchKind.OUT, timestamp=datetime(2024, 3, 4, 10)),
    ]
    assert reduce_punches(naive, as_of=BASE + timedelta(hours=12)).worked_minutes == 60


def test_string_kinds_and_unknown_kinds():
    class Row:
        def __init__(self, kind, hour):
            self.kind = kind
            self.timestamp = BASE + timedelta(hours=hour)

    rows = [Row("in", 9), Row("lunch", 10), Row("out", 11)]
    assert reduce_punches(rows).worked_minutes == 120


def test_totals_add_up():
    total = LedgerTotals(60, 10, 1) + LedgerTotals(30, 5, 2)
    assert total == LedgerTotals(worked_minutes=90, break_minutes=15, sessions=3)
    assert total.total_minutes == 105


# ── Status / kiosk toggle ───────────────────────────────────────────
@pytest.mark.parametrize(
    "punches, expected",
    [
        ((), PunchStatus.OUT),
        ((("in", "09:00"),), PunchStatus.IN),
        ((("in", "09:00"), ("break_start", "12:00")), PunchStatus.ON_BREAK),
        ((("in", "09:00"), ("break_start", "12:00"), ("break_end", "12:30")), PunchStatus.IN),
        ((("in", "09:00"), ("break_start", "12:00"), ("out", "13:00")), PunchStatus.OUT),
        ((("break_start", "08:00"),), PunchStatus.OUT),
    ],
)
def test_current_status(punches, expected):
    assert current_status(_log(*punches)) is expected


def test_allowed_kinds():
    assert allowed_kinds(PunchStatus.OUT) == (PunchKind.IN,)
    assert set(allowed_kinds(PunchStatus.IN)) == {PunchKind.OUT, PunchKind.BREAK_START}
    assert allowed_kinds(PunchStatus.ON_BREAK) == (PunchKind.BREAK_END,)


@pytest.mark.parametrize(
    "punches, expected",
    [
        ((), PunchKind.IN),
        ((("in", "09:00"),), PunchKind.OUT),
        ((("in", "09:00"), ("break_start", "12:00")), PunchKind.BREAK_END),
        ((("in", "09:00"), ("break_start", "12:00"), ("break_end", "12:30")), PunchKind.OUT),
        ((("in", "09:00"), ("out", "17:00")), PunchKind.IN),
        ((("break_start", "08:00"),), PunchKind.IN),
    ],
)
def test_next_scan_kind(punches, expected):
    assert next_scan_kind(current_status(_log(*punches))) is expected


def test_scan_on_break_never_lowers_totals():
    events = _log(("in", "09:00"), ("break_start", "11:30"))
    as_of = BASE + timedelta(hours=12)
    before = reduce_punches(events, as_of=as_of)

    scanned = PunchEvent(id=3, subject_id=7, kind=next_scan_kind(current_status(events)), timestamp=as_of)
    after = reduce_punches([*events, scanned], as_of=as_of)

    assert (before.worked_minutes, before.break_minutes) == (150, 30)
    assert after == before

"""
Punching — clock in/out, breaks, kiosk QR scans and punch history.

- POST /punch records a punch for the logged-in user.
- POST /punch/qr is the kiosk endpoint: no login, identity comes from the QR
  badge, and the kind toggles between in and out (a scan on break ends it).
- Both write paths lock the user's ledger before reading today's punches,
  so two concurrent taps cannot both pass the state check.
- PATCH /punches/{id} only lets an admin mark a punch verified or annotate
  it; kind and timestamp are immutable.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from punchclock.api.v1.deps import (ensure_self_or_admin, get_current_active_user,
                                    get_db, require_admin)
from punchclock.core.config import settings
from punchclock.core.geofence import Admission, GeoPoint, check_admission
from punchclock.core.ledger import (PunchKind, allowed_kinds, current_status,
                                    ensure_utc, next_scan_kind, reduce_punches)
from punchclock.core.limiter import limiter
from punchclock.models.punch import PunchRecord
from punchclock.models.site import SiteLocation
from punchclock.models.user import User
from punchclock.schemas.punch import (PunchRead, PunchRequest, PunchResponse,
                                      PunchStatusResponse, PunchUpdate,
                                      QRPunchRequest, QRPunchResponse)
from punchclock.services.punches import (fetch_punches, lock_ledger,
                                         record_punch, today)

router = APIRouter(tags=["punches"])
logger = logging.getLogger(__name__)

_QR_MESSAGES = {
    PunchKind.IN: "Clock-in recorded",
    PunchKind.OUT: "Clock-out recorded",
    PunchKind.BREAK_START: "Break started",
    PunchKind.BREAK_END: "Break ended",
}


async def _verify_location(
    db: AsyncSession,
    latitude: float | None,
    longitude: float | None,
    accuracy: float | None = None,
) -> Admission | None:
    """Run the geofence check; refuse the punch only when enforcement is on."""
    if latitude is None or longitude is None:
        if settings.GEOFENCE_ENFORCED:
            raise HTTPException(status_code=400, detail="Location is required to punch")
        return None

    result = await db.execute(select(SiteLocation))
    sites = list(result.scalars().all())
    admission = check_admission(GeoPoint(latitude, longitude, accuracy), sites)

    if settings.GEOFENCE_ENFORCED:
        if not admission.has_sites:
            logger.error("Geofence enforced but no sites configured")
            raise HTTPException(status_code=503, detail="No sites configured")
        if not admission.admitted:
            logger.info("Punch refused: %s", admission.describe())
            raise HTTPException(status_code=403, detail=admission.describe())
    return admission


def _is_bounce(last: PunchRecord | None, now: datetime, kind: PunchKind | None = None) -> bool:
    """True when `last` happened inside the bounce window (and matches `kind`)."""
    if last is None or (kind is not None and last.kind != kind.value):
        return False
    elapsed = (now - ensure_utc(last.timestamp)).total_seconds()
    return elapsed < settings.BOUNCE_WINDOW_SECONDS


# ── Punch (logged-in user) ──────────────────────────────────────────
@router.post("/punch", response_model=PunchResponse)
async def punch(
    body: PunchRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> PunchResponse:
    """Record a clock-in, clock-out, break start or break end."""
    await lock_ledger(db, user.id)
    events = await fetch_punches(db, today(), user_id=user.id, for_update=True)
    now = datetime.now(timezone.utc)
    last = events[-1] if events else None

    # Anti-bounce: a repeated tap returns the punch it duplicates
    if _is_bounce(last, now, body.kind):
        return PunchResponse(
            success=True,
            punch=PunchRead.model_validate(last),
            status=current_status(events),
        )

    status = current_status(events)
    if body.kind not in allowed_kinds(status):
        raise HTTPException(
            status_code=409,
            detail=f"Cannot {body.kind.value} while status is {status.value}",
        )

    admission = await _verify_location(db, body.latitude, body.longitude, body.accuracy)

    record = await record_punch(
        db,
        user,
        body.kind,
        method=body.method,
        latitude=body.latitude,
        longitude=body.longitude,
        verified=bool(admission and admission.admitted),
        notes=body.notes,
        now=now,
    )

    return PunchResponse(
        success=True,
        punch=PunchRead.model_validate(record),
        status=current_status([*events, record]),
        distance_meters=admission.distance_meters if admission else None,
        site_name=admission.nearest_site.name if admission and admission.has_sites else None,
    )


# ── Kiosk QR scan (PUBLIC — the badge is the identity) ──────────────
@router.post("/punch/qr", response_model=QRPunchResponse)
@limiter.limit(settings.QR_SCAN_RATE_LIMIT)
async def punch_with_qr(
    request: Request,
    body: QRPunchRequest,
    db: AsyncSession = Depends(get_db),
) -> QRPunchResponse:
    """Toggle in/out for the badge holder; a scan while on break ends the break."""
    result = await db.execute(select(User).where(User.qr_code == body.qr_code))
    user = result.scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=404, detail="Unknown QR code")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="User account is deactivated")

    await lock_ledger(db, user.id)
    events = await fetch_punches(db, today(), user_id=user.id, for_update=True)
    now = datetime.now(timezone.utc)
    last = events[-1] if events else None
    kind = next_scan_kind(current_status(events))

    # Anti-bounce: the second of two quick scans would undo the first
    if _is_bounce(last, now):
        return QRPunchResponse(
            success=True,
            full_name=user.full_name,
            kind=PunchKind(last.kind),
            punched_at=last.timestamp,
            punch_id=last.id,
            message=_QR_MESSAGES[PunchKind(last.kind)],
        )

    admission = await _verify_location(db, body.latitude, body.longitude)

    # Without coordinates the badge alone vouches for the scan
    record = await record_punch(
        db,
        user,
        kind,
        method="qr_code",
        latitude=body.latitude,
        longitude=body.longitude,
        verified=admission is None or admission.admitted,
        now=now,
    )
    return QRPunchResponse(
        success=True,
        full_name=user.full_name,
        kind=kind,
        punched_at=record.timestamp,
        punch_id=record.id,
        message=_QR_MESSAGES[kind],
    )


# ── Status ──────────────────────────────────────────────────────────
@router.get("/punch/status", response_model=PunchStatusResponse)
async def punch_status(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> PunchStatusResponse:
    """Current status, what can be punched next, and today's running totals."""
    events = await fetch_punches(db, today(), user_id=user.id)
    status = current_status(events)
    totals = reduce_punches(events, as_of=datetime.now(timezone.utc))
    return PunchStatusResponse(
        status=status,
        allowed_kinds=list(allowed_kinds(status)),
        last_punch=PunchRead.model_validate(events[-1]) if events else None,
        worked_minutes=totals.worked_minutes,
        break_minutes=totals.break_minutes,
    )


# ── History ─────────────────────────────────────────────────────────
@router.get("/punches", response_model=list[PunchRead])
async def list_punches(
    date_from: date | None = None,
    date_to: date | None = None,
    user_id: int | None = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> list[PunchRecord]:
    """Punch history, newest day last. Non-admins only see their own."""
    end = date_to or today()
    start = date_from or end - timedelta(days=30)
    if start > end:
        raise HTTPException(status_code=400, detail="date_from must not be after date_to")

    return await fetch_punches(db, start, end, user_id=ensure_self_or_admin(user, user_id))


@router.get("/punches/all", response_model=list[PunchRead])
async def list_all_punches(
    day: date | None = Query(default=None, alias="date"),
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> list[PunchRecord]:
    """Every user's punches for one accounting day (admin overview)."""
    return await fetch_punches(db, day or today())


@router.patch("/punches/{punch_id}", response_model=PunchRead)
async def update_punch(
    punch_id: int,
    body: PunchUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> PunchRecord:
    """Mark a punch verified or annotate it."""
    result = await db.execute(select(PunchRecord).where(PunchRecord.id == punch_id))
    record = result.scalar_one_or_none()
    if record is None:
        raise HTTPException(status_code=404, detail="Punch not found")

    changes = body.model_dump(exclude_unset=True)
    if "verified" in changes:
        record.verified = changes["verified"]
        record.verified_by = admin.id if changes["verified"] else None
    if "notes" in changes:
        record.notes = changes["notes"]

    await db.commit()
    await db.refresh(record)
    logger.info("Admin %d updated punch %d: %s", admin.id, punch_id, changes)
    return record

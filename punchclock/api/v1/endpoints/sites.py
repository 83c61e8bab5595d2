"""
Site registry — the geofences punches are admitted against.

Anyone logged in can list sites and check a position; only admins edit.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from punchclock.api.v1.deps import get_current_active_user, get_db, require_admin
from punchclock.core.config import settings
from punchclock.core.geofence import GeoPoint, check_admission
from punchclock.models.site import SiteLocation
from punchclock.models.user import User
from punchclock.schemas.report import DeleteResponse
from punchclock.schemas.site import (AdmissionRead, LocationCheckRequest,
                                     SiteCreate, SiteRead, SiteUpdate)

router = APIRouter(prefix="/sites", tags=["sites"])
logger = logging.getLogger(__name__)


async def _get_site_or_404(db: AsyncSession, site_id: int) -> SiteLocation:
    result = await db.execute(select(SiteLocation).where(SiteLocation.id == site_id))
    site = result.scalar_one_or_none()
    if site is None:
        raise HTTPException(status_code=404, detail="Site not found")
    return site


@router.get("", response_model=list[SiteRead])
async def list_sites(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_active_user),
) -> list[SiteLocation]:
    result = await db.execute(select(SiteLocation).order_by(SiteLocation.name))
    return list(result.scalars().all())


@router.post("", response_model=SiteRead, status_code=201)
async def create_site(
    body: SiteCreate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> SiteLocation:
    site = SiteLocation(
        name=body.name,
        latitude=body.latitude,
        longitude=body.longitude,
        radius_meters=body.radius_meters or settings.DEFAULT_SITE_RADIUS_M,
    )
    db.add(site)
    await db.commit()
    await db.refresh(site)
    logger.info(
        "Created site %s at (%.6f, %.6f) r=%.0fm",
        site.name, site.latitude, site.longitude, site.radius_meters,
    )
    return site


@router.put("/{site_id}", response_model=SiteRead)
async def update_site(
    site_id: int,
    body: SiteUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> SiteLocation:
    site = await _get_site_or_404(db, site_id)
    for field, value in body.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        setattr(site, field, value)
    await db.commit()
    await db.refresh(site)
    logger.info("Updated site %d", site_id)
    return site


@router.delete("/{site_id}", response_model=DeleteResponse)
async def delete_site(
    site_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> DeleteResponse:
    site = await _get_site_or_404(db, site_id)
    await db.delete(site)
    await db.commit()
    logger.warning("Deleted site %d (%s)", site_id, site.name)
    return DeleteResponse(success=True, message=f"Site '{site.name}' deleted")


@router.post("/check", response_model=AdmissionRead)
async def check_location(
    body: LocationCheckRequest,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_active_user),
) -> AdmissionRead:
    """Would a punch from this position be admitted?"""
    result = await db.execute(select(SiteLocation))
    admission = check_admission(
        GeoPoint(body.latitude, body.longitude, body.accuracy),
        result.scalars().all(),
    )
    return AdmissionRead(
        admitted=admission.admitted,
        nearest_site=SiteRead.model_validate(admission.nearest_site) if admission.has_sites else None,
        distance_meters=admission.distance_meters,
        outside_by_meters=admission.outside_by_meters,
        message=admission.describe(),
    )

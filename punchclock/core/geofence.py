"""
Geofence admission — is a GPS reading inside any registered site?

Distances are great-circle distances (Haversine, spherical earth).  The
admission decision compares at full precision with an inclusive radius;
the reported distance is rounded to whole metres.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Protocol

EARTH_RADIUS_M = 6_371_000.0


class SiteLike(Protocol):
    id: Any
    name: str
    latitude: float
    longitude: float
    radius_meters: float


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float
    accuracy_meters: float | None = None


@dataclass(frozen=True)
class Admission:
    admitted: bool
    nearest_site: Any | None = None
    distance_meters: int | None = None

    @property
    def has_sites(self) -> bool:
        """False means the registry was empty (operator issue, not user issue)."""
        return self.nearest_site is not None

    @property
    def outside_by_meters(self) -> int | None:
        if self.admitted or self.nearest_site is None or self.distance_meters is None:
            return None
        return max(0, self.distance_meters - round(float(self.nearest_site.radius_meters)))

    def describe(self) -> str:
        if self.nearest_site is None:
            return "No sites configured"
        radius = round(float(self.nearest_site.radius_meters))
        if self.admitted:
            return (
                f"Within {radius}m of {self.nearest_site.name} "
                f"({self.distance_meters}m from centre)"
            )
        return (
            f"You are {self.outside_by_meters}m outside the {radius}m radius "
            f"of {self.nearest_site.name}"
        )


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Distance in metres between two WGS84 points given in degrees."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def check_admission(point: GeoPoint, sites: Iterable[SiteLike]) -> Admission:
    """Admit the point if it lies within the radius of at least one site.

    The reported site is the nearest admitting site, or the globally nearest
    one when nothing admits.  An empty registry yields no site at all.
    """
    nearest: tuple[float, SiteLike] | None = None
    nearest_admitting: tuple[float, SiteLike] | None = None

    for site in sites:
        distance = haversine_distance(
            point.latitude,
            point.longitude,
            float(site.latitude),
            float(site.longitude),
        )
        if nearest is None or distance < nearest[0]:
            nearest = (distance, site)
        if distance <= float(site.radius_meters):
            if nearest_admitting is None or distance < nearest_admitting[0]:
                nearest_admitting = (distance, site)

    if nearest is None:
        return Admission(admitted=False)

    distance, site = nearest_admitting or nearest
    return Admission(
        admitted=nearest_admitting is not None,
        nearest_site=site,
        distance_meters=round(distance),
    )

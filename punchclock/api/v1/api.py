"""
V1 API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from punchclock.api.v1.endpoints import (auth, goals, notifications, punches,
                                         reports, schedules, sites, users)

api_router = APIRouter()

# Auth (login, current user) and user administration
api_router.include_router(auth.router)
api_router.include_router(users.router)

# Punching, kiosk scans, punch history
api_router.include_router(punches.router)

# Geofence sites and weekly schedules
api_router.include_router(sites.router)
api_router.include_router(schedules.router)

# Dashboard, reports, live feed, health, status
api_router.include_router(reports.router)

# Inbox and personal goals
api_router.include_router(notifications.router)
api_router.include_router(goals.router)

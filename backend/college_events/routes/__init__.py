"""
HTTP routes for the events API, grouped by resource.
"""

from fastapi import APIRouter

from college_events.routes import auth, events, health, notifications, registrations

router = APIRouter()
router.include_router(health.router, tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(events.router, prefix="/events", tags=["events"])
router.include_router(
    registrations.router, prefix="/registrations", tags=["registrations"]
)
router.include_router(
    notifications.router, prefix="/notifications", tags=["notifications"]
)

"""
A signed-in user's own registrations.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from college_events.db import DbClient
from college_events.dependencies import get_db_client
from college_events.schemas import EventResponse, MyRegistrationResponse
from college_events.security import AuthUser, get_current_user

router = APIRouter()


@router.get("", response_model=list[MyRegistrationResponse])
def list_my_registrations(
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    """
    Newest first, each with its event. Registrations whose event has been
    deleted are left out.
    """
    registrations = sorted(
        db.list_registrations_for_user(user.user_id),
        key=lambda reg: reg.created_at or "",
        reverse=True,
    )
    if not registrations:
        return []

    events = db.get_events(reg.event_id for reg in registrations)
    return [
        MyRegistrationResponse.from_record(
            reg, event=EventResponse.from_record(events[reg.event_id])
        )
        for reg in registrations
        if reg.event_id in events
    ]

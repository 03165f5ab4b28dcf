"""
Event CRUD, student registration and attendee listing.
"""

from __future__ import annotations

import logging
from datetime import time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from college_events.config import Settings, get_settings
from college_events.db import DbClient, EventRecord, NotificationRecord
from college_events.dependencies import get_db_client, get_mailer
from college_events.mailer import Mailer, send_confirmation_email
from college_events.scheduling import (
    combine_local,
    day_bounds,
    event_start,
    now_iso,
    parse_iso,
    registration_closed,
    to_iso,
    to_local,
    utc_now,
)
from college_events.schemas import (
    AttendeeResponse,
    AttendeeUser,
    EventListItem,
    EventPayload,
    EventRegistrationResponse,
    EventResponse,
    MessageResponse,
    OrganizerSummary,
    RegistrationResponse,
)
from college_events.security import AuthUser, Role, get_current_user, require_roles

logger = logging.getLogger(__name__)

router = APIRouter()

require_event_manager = require_roles(Role.ORGANIZER, Role.ADMIN)
require_attendee_viewer = require_roles(Role.ORGANIZER, Role.ADMIN, Role.STAFF)
require_student = require_roles(
    Role.STUDENT, detail="Unauthorized. Only students can register."
)

# EventPayload attribute -> stored field, for fields copied verbatim on edit.
_EDITABLE_FIELDS = (
    ("title", "title"),
    ("description", "description"),
    ("to_time", "toTime"),
    ("venue", "venue"),
    ("room", "room"),
    ("manual_venue", "manualVenue"),
    ("category", "category"),
    ("poster_url", "posterUrl"),
    ("poster_type", "posterType"),
    ("registration_link", "registrationLink"),
    ("limit", "limit"),
)


def _load_managed_event(
    event_id: str,
    user: AuthUser,
    db: DbClient,
    unrestricted_roles: tuple[Role, ...] = (Role.ADMIN,),
) -> EventRecord:
    """Fetch an event the caller may manage; organizers only reach their own."""
    event = db.get_event(event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Not found")
    unrestricted = {role.value for role in unrestricted_roles}
    if user.role not in unrestricted and event.organizer_id != user.user_id:
        raise HTTPException(status_code=403, detail="Unauthorized")
    return event


def _resolve_start(date_value: str, from_time: Optional[str], tz_name: str):
    """
    Turn the submitted date fields into (start, dateOnly, fromTime).

    ``date_value`` is either a calendar date combined with ``from_time`` or a
    full ISO timestamp.
    """
    if "T" in date_value:
        start = parse_iso(date_value)
        if start is None:
            raise HTTPException(status_code=400, detail="Invalid date or time")
        local = to_local(start, tz_name)
        return start, local.date().isoformat(), local.strftime("%H:%M")
    if not from_time:
        raise HTTPException(status_code=400, detail="Invalid date or time")
    try:
        start = combine_local(date_value, from_time, tz_name)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date or time")
    return start, date_value.strip(), from_time.strip()


def _check_time(value: Optional[str]) -> None:
    if value is None:
        return
    try:
        time.fromisoformat(value.strip())
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date or time")


@router.get("", response_model=list[EventListItem])
def list_events(
    date: Optional[str] = Query(None, description="Only events starting on this day"),
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
):
    events = db.list_events()
    if date:
        try:
            day_start, day_end = day_bounds(date, settings.event_timezone)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid date")
        on_day = []
        for event in events:
            start = event_start(event, settings.event_timezone)
            if start and day_start <= start <= day_end:
                on_day.append(event)
        events = on_day

    organizers = db.get_users(
        event.organizer_id for event in events if event.organizer_id
    )
    items = []
    for event in events:
        organizer = organizers.get(event.organizer_id or "")
        summary = (
            OrganizerSummary(name=organizer.name, email=organizer.email)
            if organizer
            else None
        )
        items.append(EventListItem.from_record(event, organizer=summary))
    return items


@router.post("", response_model=EventResponse)
def create_event(
    payload: EventPayload,
    user: AuthUser = Depends(require_event_manager),
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
):
    if not (
        payload.title
        and payload.date
        and payload.from_time
        and payload.to_time
        and payload.venue
    ):
        raise HTTPException(status_code=400, detail="Missing required fields")
    _check_time(payload.to_time)
    start, date_only, from_time = _resolve_start(
        payload.date, payload.from_time, settings.event_timezone
    )

    event = EventRecord(
        event_id="",
        title=payload.title,
        description=payload.description or "",
        date=to_iso(start),
        date_only=date_only,
        from_time=from_time,
        to_time=payload.to_time,
        venue=payload.venue,
        room=payload.room or "",
        manual_venue=bool(payload.manual_venue),
        category=payload.category or "General",
        poster_url=payload.poster_url or "",
        poster_type=payload.poster_type or "image/jpeg",
        registration_link=payload.registration_link or "",
        limit=payload.limit or 0,
        organizer_id=user.user_id,
    )
    db.create_event(event)
    logger.info("Event %s created by %s", event.event_id, user.user_id)
    return EventResponse.from_record(event)


@router.get("/{event_id}", response_model=EventResponse)
def get_event(
    event_id: str,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    event = db.get_event(event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return EventResponse.from_record(event)


@router.put("/{event_id}", response_model=EventResponse)
def update_event(
    event_id: str,
    payload: EventPayload,
    user: AuthUser = Depends(require_event_manager),
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
):
    event = _load_managed_event(event_id, user, db)

    changes = {}
    for attr, key in _EDITABLE_FIELDS:
        value = getattr(payload, attr)
        if value is not None:
            changes[key] = value
    _check_time(payload.to_time)

    if payload.date or payload.from_time:
        start, date_only, from_time = _resolve_start(
            payload.date or event.date_only or "",
            payload.from_time or event.from_time,
            settings.event_timezone,
        )
        changes.update(date=to_iso(start), dateOnly=date_only, fromTime=from_time)

    changes["updatedAt"] = now_iso()
    db.update_event(event_id, changes)
    return EventResponse.from_record(
        EventRecord.from_doc(event_id, {**event.as_dict(), **changes})
    )


@router.delete("/{event_id}", response_model=MessageResponse)
def delete_event(
    event_id: str,
    user: AuthUser = Depends(require_event_manager),
    db: DbClient = Depends(get_db_client),
):
    _load_managed_event(event_id, user, db)
    db.delete_event(event_id)
    logger.info("Event %s deleted by %s", event_id, user.user_id)
    return MessageResponse(message="Deleted successfully")


def _notify_registration(
    user: AuthUser,
    event: EventRecord,
    db: DbClient,
    mailer: Mailer,
    settings: Settings,
) -> None:
    """Write the in-app notifications and send the confirmation email; failures are only logged."""
    notifications = [
        NotificationRecord(
            user_id=user.user_id,
            message=f"You have successfully registered for the event: {event.title}",
        )
    ]
    if event.organizer_id:
        notifications.append(
            NotificationRecord(
                user_id=event.organizer_id,
                message=f"New registration for {event.title}: {user.email}",
            )
        )
    try:
        db.add_notifications(notifications)
    except Exception:
        logger.exception("Notification write failed for event %s", event.event_id)

    if not user.email:
        logger.info("No email on file for %s; skipping confirmation", user.user_id)
        return
    try:
        send_confirmation_email(db, mailer, user.email, event, settings.event_timezone)
    except Exception:
        logger.exception("Confirmation email failed for event %s", event.event_id)


@router.post("/{event_id}/register", response_model=EventRegistrationResponse)
def register_for_event(
    event_id: str,
    user: AuthUser = Depends(require_student),
    db: DbClient = Depends(get_db_client),
    mailer: Mailer = Depends(get_mailer),
    settings: Settings = Depends(get_settings),
):
    event = db.get_event(event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")

    if registration_closed(
        event, utc_now(), settings.registration_cutoff_hours, settings.event_timezone
    ):
        raise HTTPException(
            status_code=400,
            detail=(
                "Registration closed. Registration must be completed at least "
                f"{settings.registration_cutoff_hours} hours before the event starts."
            ),
        )

    # Read-then-write without a transaction; concurrent requests can race.
    if event.limit > 0 and db.count_registrations(event_id) >= event.limit:
        raise HTTPException(status_code=400, detail="Event is full")
    if db.find_registration(user.user_id, event_id):
        raise HTTPException(status_code=400, detail="Already registered")

    registration = db.create_registration(user.user_id, event_id)
    logger.info("User %s registered for event %s", user.user_id, event_id)

    _notify_registration(user, event, db, mailer, settings)

    return EventRegistrationResponse(
        message="Registered successfully",
        registration=RegistrationResponse.from_record(registration),
    )


@router.get("/{event_id}/attendees", response_model=list[AttendeeResponse])
def list_attendees(
    event_id: str,
    user: AuthUser = Depends(require_attendee_viewer),
    db: DbClient = Depends(get_db_client),
):
    _load_managed_event(
        event_id, user, db, unrestricted_roles=(Role.ADMIN, Role.STAFF)
    )
    registrations = db.list_registrations_for_event(event_id)
    users = db.get_users(reg.user_id for reg in registrations)

    attendees = []
    for reg in registrations:
        attendee = users.get(reg.user_id)
        attendees.append(
            AttendeeResponse.from_record(
                reg,
                user=AttendeeUser.from_record(attendee) if attendee else None,
                registered_at=reg.registered_at or reg.created_at or None,
            )
        )
    return attendees

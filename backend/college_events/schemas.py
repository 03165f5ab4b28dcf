"""
Pydantic schemas for the events API. Fields are camelCase on the wire.
"""

from __future__ import annotations

import math
import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from college_events.db import (
    EventRecord,
    NotificationRecord,
    RegistrationRecord,
    UserRecord,
)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class RegisterRequest(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None
    register_number: Optional[str] = None


class LoginRequest(CamelModel):
    email: Optional[str] = None
    register_number: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None


class EventPayload(CamelModel):
    """Body for creating or editing an event; required fields are checked by the handler."""

    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[str] = None
    from_time: Optional[str] = None
    to_time: Optional[str] = None
    venue: Optional[str] = None
    room: Optional[str] = None
    manual_venue: Optional[bool] = None
    category: Optional[str] = None
    poster_url: Optional[str] = None
    poster_type: Optional[str] = None
    registration_link: Optional[str] = None
    limit: Optional[int] = None

    @field_validator("limit", mode="before")
    @classmethod
    def _parse_limit(cls, value):
        """Accept numbers or numeric strings; anything unparseable means unlimited."""
        if value is None or value == "":
            return None
        if isinstance(value, bool):
            return 0
        if isinstance(value, float) and not math.isfinite(value):
            return 0
        if isinstance(value, (int, float)):
            return max(int(value), 0)
        match = _LEADING_INT.match(str(value))
        return max(int(match.group(1)), 0) if match else 0


class UserResponse(CamelModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    role: str
    register_number: Optional[str] = None


class AuthResponse(CamelModel):
    message: str
    token: str
    user: UserResponse


class MessageResponse(CamelModel):
    message: str


class HealthResponse(CamelModel):
    status: str
    timestamp: str


class OrganizerSummary(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None


class EventResponse(CamelModel):
    id: str
    title: str
    description: str = ""
    date: Optional[str] = None
    date_only: Optional[str] = None
    from_time: Optional[str] = None
    to_time: Optional[str] = None
    venue: Optional[str] = None
    room: str = ""
    manual_venue: bool = False
    category: str = "General"
    poster_url: str = ""
    poster_type: str = "image/jpeg"
    registration_link: str = ""
    limit: int = 0
    organizer_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_record(cls, event: EventRecord, **extra) -> "EventResponse":
        return cls(
            id=event.event_id,
            title=event.title,
            description=event.description,
            date=event.date,
            date_only=event.date_only,
            from_time=event.from_time,
            to_time=event.to_time,
            venue=event.venue,
            room=event.room,
            manual_venue=event.manual_venue,
            category=event.category,
            poster_url=event.poster_url,
            poster_type=event.poster_type,
            registration_link=event.registration_link,
            limit=event.limit,
            organizer_id=event.organizer_id,
            created_at=event.created_at or None,
            updated_at=event.updated_at,
            **extra,
        )


class EventListItem(EventResponse):
    organizer: Optional[OrganizerSummary] = None


class RegistrationResponse(CamelModel):
    id: str
    user_id: str
    event_id: str
    created_at: Optional[str] = None

    @classmethod
    def from_record(cls, reg: RegistrationRecord, **extra) -> "RegistrationResponse":
        return cls(
            id=reg.registration_id,
            user_id=reg.user_id,
            event_id=reg.event_id,
            created_at=reg.created_at or None,
            **extra,
        )


class EventRegistrationResponse(CamelModel):
    message: str
    registration: RegistrationResponse


class AttendeeUser(CamelModel):
    id: str
    name: str
    email: str
    register_number: str

    @classmethod
    def from_record(cls, user: UserRecord) -> "AttendeeUser":
        return cls(
            id=user.user_id,
            name=user.name or "Unknown",
            email=user.email or "N/A",
            register_number=user.register_number or "N/A",
        )


class AttendeeResponse(RegistrationResponse):
    user: Optional[AttendeeUser] = None
    registered_at: Optional[str] = None


class MyRegistrationResponse(RegistrationResponse):
    event: EventResponse


class NotificationResponse(CamelModel):
    id: str
    user_id: str
    message: str
    created_at: Optional[str] = None

    @classmethod
    def from_record(cls, notification: NotificationRecord) -> "NotificationResponse":
        return cls(
            id=notification.notification_id,
            user_id=notification.user_id,
            message=notification.message,
            created_at=notification.created_at or None,
        )

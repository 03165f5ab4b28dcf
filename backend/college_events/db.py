"""
Database abstraction for Firestore and an in-memory test implementation.

Documents are stored with camelCase field names; records expose them as
snake_case dataclass attributes.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Iterable, Optional, Protocol

from google.cloud.firestore_v1 import Query
from google.cloud.firestore_v1.base_query import FieldFilter

from college_events.scheduling import now_iso

USERS_COLLECTION = "users"
EVENTS_COLLECTION = "events"
REGISTRATIONS_COLLECTION = "registrations"
NOTIFICATIONS_COLLECTION = "notifications"
EMAIL_LOGS_COLLECTION = "email_logs"


@dataclass
class UserRecord:
    user_id: str
    name: str
    role: str
    email: Optional[str] = None
    register_number: Optional[str] = None
    password_hash: Optional[str] = None
    created_at: str = field(default_factory=now_iso)

    def as_dict(self) -> dict:
        data = {
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "createdAt": self.created_at,
        }
        if self.register_number is not None:
            data["registerNumber"] = self.register_number
        if self.password_hash is not None:
            data["password"] = self.password_hash
        return data

    @classmethod
    def from_doc(cls, user_id: str, data: dict) -> "UserRecord":
        return cls(
            user_id=user_id,
            name=data.get("name") or "",
            role=data.get("role") or "",
            email=data.get("email"),
            register_number=data.get("registerNumber"),
            password_hash=data.get("password"),
            created_at=data.get("createdAt") or "",
        )


@dataclass
class EventRecord:
    event_id: str
    title: str
    date: Optional[str]
    organizer_id: Optional[str]
    description: str = ""
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
    created_at: str = field(default_factory=now_iso)
    updated_at: Optional[str] = None

    def as_dict(self) -> dict:
        data = {
            "title": self.title,
            "description": self.description,
            "date": self.date,
            "dateOnly": self.date_only,
            "fromTime": self.from_time,
            "toTime": self.to_time,
            "venue": self.venue,
            "room": self.room,
            "manualVenue": self.manual_venue,
            "category": self.category,
            "posterUrl": self.poster_url,
            "posterType": self.poster_type,
            "registrationLink": self.registration_link,
            "limit": self.limit,
            "organizerId": self.organizer_id,
            "createdAt": self.created_at,
        }
        if self.updated_at is not None:
            data["updatedAt"] = self.updated_at
        return data

    @classmethod
    def from_doc(cls, event_id: str, data: dict) -> "EventRecord":
        try:
            limit = int(data.get("limit") or 0)
        except (TypeError, ValueError):
            limit = 0
        return cls(
            event_id=event_id,
            title=data.get("title") or "",
            date=data.get("date"),
            organizer_id=data.get("organizerId"),
            description=data.get("description") or "",
            date_only=data.get("dateOnly"),
            from_time=data.get("fromTime"),
            to_time=data.get("toTime"),
            venue=data.get("venue"),
            room=data.get("room") or "",
            manual_venue=bool(data.get("manualVenue")),
            category=data.get("category") or "General",
            poster_url=data.get("posterUrl") or "",
            poster_type=data.get("posterType") or "image/jpeg",
            registration_link=data.get("registrationLink") or "",
            limit=max(limit, 0),
            created_at=data.get("createdAt") or "",
            updated_at=data.get("updatedAt"),
        )


@dataclass
class RegistrationRecord:
    registration_id: str
    user_id: str
    event_id: str
    created_at: str = field(default_factory=now_iso)
    # Older documents carry an explicit registration time.
    registered_at: Optional[str] = None

    def as_dict(self) -> dict:
        data = {
            "userId": self.user_id,
            "eventId": self.event_id,
            "createdAt": self.created_at,
        }
        if self.registered_at is not None:
            data["registeredAt"] = self.registered_at
        return data

    @classmethod
    def from_doc(cls, registration_id: str, data: dict) -> "RegistrationRecord":
        return cls(
            registration_id=registration_id,
            user_id=data.get("userId") or "",
            event_id=data.get("eventId") or "",
            created_at=data.get("createdAt") or "",
            registered_at=data.get("registeredAt"),
        )


@dataclass
class NotificationRecord:
    user_id: str
    message: str
    notification_id: str = ""
    created_at: str = field(default_factory=now_iso)

    def as_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "message": self.message,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_doc(cls, notification_id: str, data: dict) -> "NotificationRecord":
        return cls(
            notification_id=notification_id,
            user_id=data.get("userId") or "",
            message=data.get("message") or "",
            created_at=data.get("createdAt") or "",
        )


@dataclass
class EmailLogRecord:
    to: str
    subject: str
    status: str
    message_id: Optional[str] = None
    error: Optional[str] = None
    created_at: str = field(default_factory=now_iso)

    def as_dict(self) -> dict:
        data = {
            "to": self.to,
            "subject": self.subject,
            "status": self.status,
            "createdAt": self.created_at,
        }
        if self.message_id is not None:
            data["messageId"] = self.message_id
        if self.error is not None:
            data["error"] = self.error
        return data


class DbClient(Protocol):
    """Interface for database access."""

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        ...

    def get_users(self, user_ids: Iterable[str]) -> dict[str, UserRecord]:
        ...

    def find_user_by_register_number(
        self, register_number: str
    ) -> Optional[UserRecord]:
        ...

    def create_user(self, user: UserRecord) -> UserRecord:
        ...

    def list_events(self) -> list[EventRecord]:
        ...

    def list_events_between(self, start_iso: str, end_iso: str) -> list[EventRecord]:
        ...

    def get_event(self, event_id: str) -> Optional[EventRecord]:
        ...

    def get_events(self, event_ids: Iterable[str]) -> dict[str, EventRecord]:
        ...

    def create_event(self, event: EventRecord) -> EventRecord:
        ...

    def update_event(self, event_id: str, changes: dict) -> None:
        ...

    def delete_event(self, event_id: str) -> None:
        ...

    def count_registrations(self, event_id: str) -> int:
        ...

    def find_registration(
        self, user_id: str, event_id: str
    ) -> Optional[RegistrationRecord]:
        ...

    def create_registration(
        self, user_id: str, event_id: str
    ) -> RegistrationRecord:
        ...

    def list_registrations_for_user(self, user_id: str) -> list[RegistrationRecord]:
        ...

    def list_registrations_for_event(self, event_id: str) -> list[RegistrationRecord]:
        ...

    def add_notifications(self, notifications: list[NotificationRecord]) -> None:
        ...

    def list_notifications(self, user_id: str) -> list[NotificationRecord]:
        ...

    def add_email_log(self, log: EmailLogRecord) -> None:
        ...


class InMemoryDbClient:
    """Simple in-memory document store for development and tests."""

    def __init__(self):
        self.collections: dict[str, dict[str, dict]] = {
            USERS_COLLECTION: {},
            EVENTS_COLLECTION: {},
            REGISTRATIONS_COLLECTION: {},
            NOTIFICATIONS_COLLECTION: {},
            EMAIL_LOGS_COLLECTION: {},
        }

    def _add(self, collection: str, data: dict, doc_id: str | None = None) -> str:
        doc_id = doc_id or uuid.uuid4().hex
        self.collections[collection][doc_id] = dict(data)
        return doc_id

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        for docs in self.collections.values():
            docs.clear()

    @property
    def email_logs(self) -> list[dict]:
        return list(self.collections[EMAIL_LOGS_COLLECTION].values())

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        data = self.collections[USERS_COLLECTION].get(user_id)
        return UserRecord.from_doc(user_id, data) if data is not None else None

    def get_users(self, user_ids: Iterable[str]) -> dict[str, UserRecord]:
        users = {}
        for user_id in set(user_ids):
            user = self.get_user(user_id)
            if user:
                users[user_id] = user
        return users

    def find_user_by_register_number(
        self, register_number: str
    ) -> Optional[UserRecord]:
        for user_id, data in self.collections[USERS_COLLECTION].items():
            if data.get("registerNumber") == register_number:
                return UserRecord.from_doc(user_id, data)
        return None

    def create_user(self, user: UserRecord) -> UserRecord:
        user.user_id = self._add(USERS_COLLECTION, user.as_dict(), user.user_id or None)
        return user

    def list_events(self) -> list[EventRecord]:
        docs = self.collections[EVENTS_COLLECTION].items()
        events = [EventRecord.from_doc(event_id, data) for event_id, data in docs]
        return sorted(events, key=lambda event: event.date or "")

    def list_events_between(self, start_iso: str, end_iso: str) -> list[EventRecord]:
        return [
            event
            for event in self.list_events()
            if event.date and start_iso <= event.date <= end_iso
        ]

    def get_event(self, event_id: str) -> Optional[EventRecord]:
        data = self.collections[EVENTS_COLLECTION].get(event_id)
        return EventRecord.from_doc(event_id, data) if data is not None else None

    def get_events(self, event_ids: Iterable[str]) -> dict[str, EventRecord]:
        events = {}
        for event_id in set(event_ids):
            event = self.get_event(event_id)
            if event:
                events[event_id] = event
        return events

    def create_event(self, event: EventRecord) -> EventRecord:
        event.event_id = self._add(EVENTS_COLLECTION, event.as_dict())
        return event

    def update_event(self, event_id: str, changes: dict) -> None:
        doc = self.collections[EVENTS_COLLECTION].get(event_id)
        if doc is None:
            raise KeyError(event_id)
        doc.update(changes)

    def delete_event(self, event_id: str) -> None:
        self.collections[EVENTS_COLLECTION].pop(event_id, None)

    def _registrations(self) -> list[RegistrationRecord]:
        docs = self.collections[REGISTRATIONS_COLLECTION].items()
        return [RegistrationRecord.from_doc(reg_id, data) for reg_id, data in docs]

    def count_registrations(self, event_id: str) -> int:
        return len(self.list_registrations_for_event(event_id))

    def find_registration(
        self, user_id: str, event_id: str
    ) -> Optional[RegistrationRecord]:
        for reg in self._registrations():
            if reg.user_id == user_id and reg.event_id == event_id:
                return reg
        return None

    def create_registration(
        self, user_id: str, event_id: str
    ) -> RegistrationRecord:
        reg = RegistrationRecord(registration_id="", user_id=user_id, event_id=event_id)
        reg.registration_id = self._add(REGISTRATIONS_COLLECTION, reg.as_dict())
        return reg

    def list_registrations_for_user(self, user_id: str) -> list[RegistrationRecord]:
        return [reg for reg in self._registrations() if reg.user_id == user_id]

    def list_registrations_for_event(self, event_id: str) -> list[RegistrationRecord]:
        return [reg for reg in self._registrations() if reg.event_id == event_id]

    def add_notifications(self, notifications: list[NotificationRecord]) -> None:
        for notification in notifications:
            notification.notification_id = self._add(
                NOTIFICATIONS_COLLECTION, notification.as_dict()
            )

    def list_notifications(self, user_id: str) -> list[NotificationRecord]:
        docs = self.collections[NOTIFICATIONS_COLLECTION].items()
        notifications = [
            NotificationRecord.from_doc(notification_id, data)
            for notification_id, data in docs
            if data.get("userId") == user_id
        ]
        return sorted(notifications, key=lambda n: n.created_at, reverse=True)

    def add_email_log(self, log: EmailLogRecord) -> None:
        self._add(EMAIL_LOGS_COLLECTION, log.as_dict())


class FirestoreDbClient:
    """
    Firestore-backed implementation. Accepts a ``google.cloud.firestore.Client``
    (e.g. ``firebase_admin.firestore.client()``).
    """

    def __init__(self, client):
        self.client = client

    def _collection(self, name: str):
        return self.client.collection(name)

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        snapshot = self._collection(USERS_COLLECTION).document(user_id).get()
        if not snapshot.exists:
            return None
        return UserRecord.from_doc(snapshot.id, snapshot.to_dict() or {})

    def get_users(self, user_ids: Iterable[str]) -> dict[str, UserRecord]:
        refs = [
            self._collection(USERS_COLLECTION).document(user_id)
            for user_id in set(user_ids)
        ]
        if not refs:
            return {}
        return {
            snapshot.id: UserRecord.from_doc(snapshot.id, snapshot.to_dict() or {})
            for snapshot in self.client.get_all(refs)
            if snapshot.exists
        }

    def find_user_by_register_number(
        self, register_number: str
    ) -> Optional[UserRecord]:
        query = (
            self._collection(USERS_COLLECTION)
            .where(filter=FieldFilter("registerNumber", "==", register_number))
            .limit(1)
        )
        for snapshot in query.stream():
            return UserRecord.from_doc(snapshot.id, snapshot.to_dict() or {})
        return None

    def create_user(self, user: UserRecord) -> UserRecord:
        if user.user_id:
            self._collection(USERS_COLLECTION).document(user.user_id).set(user.as_dict())
        else:
            _, ref = self._collection(USERS_COLLECTION).add(user.as_dict())
            user.user_id = ref.id
        return user

    def list_events(self) -> list[EventRecord]:
        query = self._collection(EVENTS_COLLECTION).order_by("date")
        return [
            EventRecord.from_doc(snapshot.id, snapshot.to_dict() or {})
            for snapshot in query.stream()
        ]

    def list_events_between(self, start_iso: str, end_iso: str) -> list[EventRecord]:
        query = (
            self._collection(EVENTS_COLLECTION)
            .where(filter=FieldFilter("date", ">=", start_iso))
            .where(filter=FieldFilter("date", "<=", end_iso))
        )
        return [
            EventRecord.from_doc(snapshot.id, snapshot.to_dict() or {})
            for snapshot in query.stream()
        ]

    def get_event(self, event_id: str) -> Optional[EventRecord]:
        snapshot = self._collection(EVENTS_COLLECTION).document(event_id).get()
        if not snapshot.exists:
            return None
        return EventRecord.from_doc(snapshot.id, snapshot.to_dict() or {})

    def get_events(self, event_ids: Iterable[str]) -> dict[str, EventRecord]:
        refs = [
            self._collection(EVENTS_COLLECTION).document(event_id)
            for event_id in set(event_ids)
        ]
        if not refs:
            return {}
        return {
            snapshot.id: EventRecord.from_doc(snapshot.id, snapshot.to_dict() or {})
            for snapshot in self.client.get_all(refs)
            if snapshot.exists
        }

    def create_event(self, event: EventRecord) -> EventRecord:
        _, ref = self._collection(EVENTS_COLLECTION).add(event.as_dict())
        event.event_id = ref.id
        return event

    def update_event(self, event_id: str, changes: dict) -> None:
        self._collection(EVENTS_COLLECTION).document(event_id).update(changes)

    def delete_event(self, event_id: str) -> None:
        self._collection(EVENTS_COLLECTION).document(event_id).delete()

    def _registrations_query(self, field_path: str, value: str):
        return self._collection(REGISTRATIONS_COLLECTION).where(
            filter=FieldFilter(field_path, "==", value)
        )

    def count_registrations(self, event_id: str) -> int:
        results = self._registrations_query("eventId", event_id).count().get()
        return int(results[0][0].value)

    def find_registration(
        self, user_id: str, event_id: str
    ) -> Optional[RegistrationRecord]:
        query = (
            self._registrations_query("userId", user_id)
            .where(filter=FieldFilter("eventId", "==", event_id))
            .limit(1)
        )
        for snapshot in query.stream():
            return RegistrationRecord.from_doc(snapshot.id, snapshot.to_dict() or {})
        return None

    def create_registration(
        self, user_id: str, event_id: str
    ) -> RegistrationRecord:
        reg = RegistrationRecord(registration_id="", user_id=user_id, event_id=event_id)
        _, ref = self._collection(REGISTRATIONS_COLLECTION).add(reg.as_dict())
        reg.registration_id = ref.id
        return reg

    def list_registrations_for_user(self, user_id: str) -> list[RegistrationRecord]:
        return [
            RegistrationRecord.from_doc(snapshot.id, snapshot.to_dict() or {})
            for snapshot in self._registrations_query("userId", user_id).stream()
        ]

    def list_registrations_for_event(self, event_id: str) -> list[RegistrationRecord]:
        return [
            RegistrationRecord.from_doc(snapshot.id, snapshot.to_dict() or {})
            for snapshot in self._registrations_query("eventId", event_id).stream()
        ]

    def add_notifications(self, notifications: list[NotificationRecord]) -> None:
        if not notifications:
            return
        batch = self.client.batch()
        for notification in notifications:
            ref = self._collection(NOTIFICATIONS_COLLECTION).document()
            notification.notification_id = ref.id
            batch.set(ref, notification.as_dict())
        batch.commit()

    def list_notifications(self, user_id: str) -> list[NotificationRecord]:
        # Requires a composite index on (userId, createdAt desc).
        query = (
            self._collection(NOTIFICATIONS_COLLECTION)
            .where(filter=FieldFilter("userId", "==", user_id))
            .order_by("createdAt", direction=Query.DESCENDING)
        )
        return [
            NotificationRecord.from_doc(snapshot.id, snapshot.to_dict() or {})
            for snapshot in query.stream()
        ]

    def add_email_log(self, log: EmailLogRecord) -> None:
        self._collection(EMAIL_LOGS_COLLECTION).add(log.as_dict())

import unittest
from datetime import timedelta
from typing import Optional

from fastapi.testclient import TestClient

from college_events.app import create_app
from college_events.config import Settings, get_settings
from college_events.db import EventRecord, InMemoryDbClient, UserRecord
from college_events.dependencies import get_db_client, get_identity_provider, get_mailer
from college_events.identity import InMemoryIdentityProvider
from college_events.mailer import InMemoryMailer
from college_events.scheduling import to_iso, utc_now
from college_events.security import create_access_token, hash_password


def make_settings(**overrides) -> Settings:
    values = {
        "jwt_secret": "test-secret",
        "use_in_memory_backends": True,
        "event_timezone": "UTC",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class ApiTestCase(unittest.TestCase):
    """Runs the app against fresh in-memory backends for every test."""

    settings_overrides: dict = {}

    def setUp(self):
        self.db = InMemoryDbClient()
        self.identity = InMemoryIdentityProvider()
        self.mailer = InMemoryMailer()
        self.settings = make_settings(**self.settings_overrides)

        self.app = create_app()
        self.app.dependency_overrides[get_db_client] = lambda: self.db
        self.app.dependency_overrides[get_identity_provider] = lambda: self.identity
        self.app.dependency_overrides[get_mailer] = lambda: self.mailer
        self.app.dependency_overrides[get_settings] = lambda: self.settings
        self.client = TestClient(self.app)

    def add_user(
        self,
        role: str,
        name: str = "Test User",
        email: Optional[str] = None,
        register_number: Optional[str] = None,
        password: Optional[str] = None,
    ) -> UserRecord:
        user = UserRecord(
            user_id="",
            name=name,
            role=role,
            email=email,
            register_number=register_number,
            password_hash=hash_password(password) if password else None,
        )
        return self.db.create_user(user)

    def auth_headers(self, user: UserRecord) -> dict:
        token = create_access_token(user.user_id, user.email, user.role, self.settings)
        return {"Authorization": f"Bearer {token}"}

    def add_event(
        self,
        organizer: Optional[UserRecord] = None,
        starts_in: timedelta = timedelta(days=3),
        **fields,
    ) -> EventRecord:
        start = utc_now() + starts_in
        values = {
            "title": "Hackathon",
            "venue": "Main Hall",
            "from_time": start.strftime("%H:%M"),
            "to_time": "23:59",
            "date_only": start.date().isoformat(),
        }
        values.update(fields)
        event = EventRecord(
            event_id="",
            date=to_iso(start),
            organizer_id=organizer.user_id if organizer else None,
            **values,
        )
        return self.db.create_event(event)

"""
Credential provider for staff, organizer and admin accounts.

Student credentials live in the users collection; every other role signs in
against Firebase Authentication. The in-memory provider mirrors the
validation rules Firebase applies so the API behaves the same in tests.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from typing import Optional, Protocol

import requests
from firebase_admin import auth

REQUEST_TIMEOUT = 15  # seconds
SIGN_IN_URL = "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"

INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"
EMAIL_EXISTS_MESSAGE = "Email already registered"
WEAK_PASSWORD_MESSAGE = "Password should be at least 6 characters"
INVALID_EMAIL_MESSAGE = "Invalid email address"
MISSING_API_KEY_MESSAGE = "Server configuration error: Missing API Key"

# Firebase REST error codes that all mean "wrong email or password".
_BAD_CREDENTIAL_CODES = {"INVALID_LOGIN_CREDENTIALS", "EMAIL_NOT_FOUND", "INVALID_PASSWORD"}
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6


class IdentityError(Exception):
    """The provider rejected a credential operation; the message is user-facing."""


class IdentityNotConfiguredError(IdentityError):
    pass


class IdentityProvider(Protocol):
    def create_user(self, email: str, password: str, display_name: str) -> str:
        ...

    def sign_in(self, email: str, password: str) -> str:
        ...


@dataclass
class InMemoryIdentityProvider:
    """Test double for the external credential store."""

    accounts: dict[str, tuple[str, str]] = field(default_factory=dict)

    def create_user(self, email: str, password: str, display_name: str) -> str:
        if not _EMAIL_PATTERN.match(email or ""):
            raise IdentityError(INVALID_EMAIL_MESSAGE)
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise IdentityError(WEAK_PASSWORD_MESSAGE)
        key = email.lower()
        if key in self.accounts:
            raise IdentityError(EMAIL_EXISTS_MESSAGE)
        uid = uuid.uuid4().hex[:28]
        self.accounts[key] = (uid, password)
        return uid

    def sign_in(self, email: str, password: str) -> str:
        account = self.accounts.get((email or "").lower())
        if not account or account[1] != password:
            raise IdentityError(INVALID_CREDENTIALS_MESSAGE)
        return account[0]


class FirebaseIdentityProvider:
    """Firebase Authentication via the Admin SDK and the password sign-in REST API."""

    def __init__(self, app, api_key: Optional[str]):
        self.app = app
        self.api_key = api_key

    def create_user(self, email: str, password: str, display_name: str) -> str:
        try:
            record = auth.create_user(
                email=email,
                password=password,
                display_name=display_name,
                app=self.app,
            )
        except auth.EmailAlreadyExistsError as exc:
            raise IdentityError(EMAIL_EXISTS_MESSAGE) from exc
        except ValueError as exc:
            # The Admin SDK validates arguments locally before calling the API.
            message = str(exc).lower()
            if "password" in message:
                raise IdentityError(WEAK_PASSWORD_MESSAGE) from exc
            if "email" in message:
                raise IdentityError(INVALID_EMAIL_MESSAGE) from exc
            raise
        return record.uid

    def sign_in(self, email: str, password: str) -> str:
        if not self.api_key:
            raise IdentityNotConfiguredError(MISSING_API_KEY_MESSAGE)

        response = requests.post(
            SIGN_IN_URL,
            params={"key": self.api_key},
            json={"email": email, "password": password, "returnSecureToken": True},
            timeout=REQUEST_TIMEOUT,
        )
        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if not response.ok:
            code = (payload.get("error") or {}).get("message") or "Login failed"
            if code.split(" ")[0] in _BAD_CREDENTIAL_CODES:
                raise IdentityError(INVALID_CREDENTIALS_MESSAGE)
            raise IdentityError(code)
        return payload["localId"]

"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging

from college_events.config import get_settings
from college_events.db import DbClient, FirestoreDbClient, InMemoryDbClient
from college_events.firebase import get_firebase_app, get_firestore_client
from college_events.identity import (
    FirebaseIdentityProvider,
    IdentityProvider,
    InMemoryIdentityProvider,
)
from college_events.mailer import InMemoryMailer, Mailer, SmtpMailer

logger = logging.getLogger(__name__)

_db_client: DbClient | None = None
_identity_provider: IdentityProvider | None = None
_mailer: Mailer | None = None


def _use_firebase() -> bool:
    settings = get_settings()
    return not settings.use_in_memory_backends and settings.firebase_configured


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so in-memory state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    if _use_firebase():
        _db_client = FirestoreDbClient(get_firestore_client(get_settings()))
    else:
        logger.warning("Firebase not configured; using in-memory database")
        _db_client = InMemoryDbClient()
    return _db_client


def get_identity_provider() -> IdentityProvider:
    global _identity_provider
    if _identity_provider:
        return _identity_provider

    settings = get_settings()
    if _use_firebase():
        _identity_provider = FirebaseIdentityProvider(
            get_firebase_app(settings), settings.firebase_api_key
        )
    else:
        _identity_provider = InMemoryIdentityProvider()
    return _identity_provider


def get_mailer() -> Mailer:
    global _mailer
    if _mailer:
        return _mailer

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.smtp_host:
        logger.warning("SMTP not configured; outgoing mail is kept in memory")
        _mailer = InMemoryMailer()
    else:
        _mailer = SmtpMailer(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_pass,
            sender=settings.mail_from,
        )
    return _mailer

"""
Firebase Admin initialisation from service-account settings.
"""

from __future__ import annotations

import logging

import firebase_admin
from firebase_admin import credentials, firestore

from college_events.config import Settings

logger = logging.getLogger(__name__)


def get_firebase_app(settings: Settings) -> firebase_admin.App:
    """Return the default Firebase app, initialising it on first use."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    cert = credentials.Certificate(
        {
            "type": "service_account",
            "project_id": settings.firebase_project_id,
            "client_email": settings.firebase_client_email,
            "private_key": settings.firebase_private_key_pem,
            "token_uri": "https://oauth2.googleapis.com/token",
        }
    )
    options = {"projectId": settings.firebase_project_id}
    if settings.firebase_storage_bucket:
        options["storageBucket"] = settings.firebase_storage_bucket
    app = firebase_admin.initialize_app(cert, options)
    logger.info("Firebase Admin initialised for project %s", settings.firebase_project_id)
    return app


def get_firestore_client(settings: Settings):
    return firestore.client(app=get_firebase_app(settings))

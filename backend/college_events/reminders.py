"""
Day-before reminders for registered attendees.

A single linear pass: find events starting in the clock hour one lead period
from now, then email and notify everyone registered for them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from college_events.db import DbClient, EventRecord, NotificationRecord, UserRecord
from college_events.mailer import Mailer, deliver_email
from college_events.scheduling import (
    event_start,
    format_event_time,
    reminder_window,
    to_iso,
    utc_now,
)

logger = logging.getLogger(__name__)


@dataclass
class ReminderResult:
    events: int = 0
    sent: int = 0
    skipped: int = 0
    failed: int = 0


def _remind(
    user: UserRecord,
    event: EventRecord,
    db: DbClient,
    mailer: Mailer,
    tz_name: str,
) -> bool:
    start = event_start(event, tz_name)
    at = format_event_time(start, tz_name) if start else "the scheduled time"
    venue = event.venue or "To be announced"
    sent = deliver_email(
        db,
        mailer,
        user.email,
        f"Reminder: {event.title} is tomorrow!",
        (
            f"Hi {user.name},\n\nJust a reminder that {event.title} is starting "
            f"tomorrow at {at}.\nVenue: {venue}\n\nSee you there!"
        ),
    )
    if sent:
        db.add_notifications(
            [
                NotificationRecord(
                    user_id=user.user_id,
                    message=f"Reminder: {event.title} is tomorrow at {at}!",
                )
            ]
        )
    return sent


def send_due_reminders(
    db: DbClient,
    mailer: Mailer,
    *,
    tz_name: str = "UTC",
    lead_hours: int = 24,
    now: Optional[datetime] = None,
) -> ReminderResult:
    now = now or utc_now()
    window_start, window_end = reminder_window(now, lead_hours)
    events = db.list_events_between(to_iso(window_start), to_iso(window_end))
    logger.info(
        "Found %d events starting around %s", len(events), to_iso(window_start)
    )

    result = ReminderResult(events=len(events))
    for event in events:
        registrations = db.list_registrations_for_event(event.event_id)
        users = db.get_users(reg.user_id for reg in registrations)
        for reg in registrations:
            user = users.get(reg.user_id)
            if not user or not user.email:
                result.skipped += 1
                continue
            try:
                if _remind(user, event, db, mailer, tz_name):
                    result.sent += 1
                else:
                    result.failed += 1
            except Exception:
                # One attendee's failure must not stop the rest of the pass.
                logger.exception("Failed to remind %s about %s", user.email, event.event_id)
                result.failed += 1

    logger.info(
        "Reminders done: %d sent, %d skipped, %d failed",
        result.sent,
        result.skipped,
        result.failed,
    )
    return result

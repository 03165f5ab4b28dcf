"""
Outgoing mail: an SMTP transport, an in-memory test double, and the
delivery helper that records every attempt in the email log collection.
"""

from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass, field
from email.message import EmailMessage
from email.utils import make_msgid, parseaddr
from html import escape
from typing import Optional, Protocol

from college_events.db import DbClient, EmailLogRecord, EventRecord
from college_events.scheduling import format_event_datetime, event_start

logger = logging.getLogger(__name__)

SMTP_TIMEOUT = 30  # seconds


class Mailer(Protocol):
    def send(
        self, to: str, subject: str, text: str, html: Optional[str] = None
    ) -> str:
        """Send a message and return its Message-ID."""
        ...


@dataclass
class SentMessage:
    to: str
    subject: str
    text: str
    html: Optional[str]
    message_id: str


@dataclass
class InMemoryMailer:
    """Collects messages instead of sending them. Set ``fail_with`` to simulate outages."""

    outbox: list[SentMessage] = field(default_factory=list)
    fail_with: Optional[Exception] = None

    def send(
        self, to: str, subject: str, text: str, html: Optional[str] = None
    ) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        message_id = make_msgid(domain="collegeevents.test")
        self.outbox.append(SentMessage(to, subject, text, html, message_id))
        return message_id


@dataclass
class SmtpMailer:
    host: str
    port: int
    username: Optional[str]
    password: Optional[str]
    sender: str

    def send(
        self, to: str, subject: str, text: str, html: Optional[str] = None
    ) -> str:
        message = EmailMessage()
        _, sender_address = parseaddr(self.sender)
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message["Message-ID"] = make_msgid(domain=sender_address.split("@")[-1] or None)
        message.set_content(text)
        if html:
            message.add_alternative(html, subtype="html")

        with smtplib.SMTP(self.host, self.port, timeout=SMTP_TIMEOUT) as server:
            server.ehlo()
            if server.has_extn("starttls"):
                server.starttls()
                server.ehlo()
            if self.username:
                server.login(self.username, self.password or "")
            server.send_message(message)
        return message["Message-ID"]


def deliver_email(
    db: DbClient,
    mailer: Mailer,
    to: str,
    subject: str,
    text: str,
    html: Optional[str] = None,
) -> bool:
    """Send one message and write a SENT/FAILED entry to the email log."""
    try:
        message_id = mailer.send(to, subject, text, html)
    except Exception as exc:
        # Malformed headers raise ValueError before any SMTP traffic.
        logger.error("Email to %r failed: %s", to, exc)
        db.add_email_log(
            EmailLogRecord(to=to, subject=subject, status="FAILED", error=str(exc))
        )
        return False

    logger.info("Email sent to %s: %s", to, message_id)
    db.add_email_log(
        EmailLogRecord(to=to, subject=subject, status="SENT", message_id=message_id)
    )
    return True


def send_confirmation_email(
    db: DbClient, mailer: Mailer, to: str, event: EventRecord, tz_name: str
) -> bool:
    start = event_start(event, tz_name)
    when = format_event_datetime(start, tz_name) if start else "To be announced"
    venue = event.venue or "To be announced"
    subject = f"Registration Confirmed: {event.title}"
    text = (
        f"Hello,\n\nYou have successfully registered for {event.title}.\n\n"
        f"Date: {when}\nVenue: {venue}\n\nSee you there!"
    )
    html = (
        f"<p>Hello,</p><p>You have successfully registered for "
        f"<strong>{escape(event.title)}</strong>.</p>"
        f"<p><strong>Date:</strong> {escape(when)}<br>"
        f"<strong>Venue:</strong> {escape(venue)}</p><p>See you there!</p>"
    )
    return deliver_email(db, mailer, to, subject, text, html)

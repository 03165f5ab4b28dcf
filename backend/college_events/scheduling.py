"""
Time helpers shared by the HTTP handlers and the reminder pass.

Stored timestamps are ISO-8601 UTC strings with millisecond precision and a
trailing ``Z`` so that Firestore range queries and string sorts agree with
chronological order.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import TYPE_CHECKING, Optional
from zoneinfo import ZoneInfo

if TYPE_CHECKING:
    from college_events.db import EventRecord


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def now_iso() -> str:
    return to_iso(utc_now())


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored timestamp; naive values are taken as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def combine_local(date_str: str, time_str: str, tz_name: str) -> datetime:
    """
    Combine a calendar date and a wall-clock time entered in the event timezone.

    Raises:
        ValueError: If either part cannot be parsed.
    """
    day = date.fromisoformat(date_str.strip())
    clock = time.fromisoformat(time_str.strip())
    return datetime.combine(day, clock.replace(tzinfo=None), tzinfo=ZoneInfo(tz_name))


def event_start(event: "EventRecord", tz_name: str) -> Optional[datetime]:
    """Resolve when an event starts, or None when the stored fields are unusable."""
    start = parse_iso(event.date)
    if start:
        return start
    if event.date_only and event.from_time:
        try:
            return combine_local(event.date_only, event.from_time, tz_name)
        except ValueError:
            return None
    return None


def registration_closed(
    event: "EventRecord", now: datetime, cutoff_hours: int, tz_name: str
) -> bool:
    start = event_start(event, tz_name)
    if start is None:
        return False
    return now > start - timedelta(hours=cutoff_hours)


def reminder_window(now: datetime, lead_hours: int) -> tuple[datetime, datetime]:
    """Return the clock hour that starts ``lead_hours`` from ``now`` (inclusive bounds)."""
    target = now.astimezone(timezone.utc) + timedelta(hours=lead_hours)
    start = target.replace(minute=0, second=0, microsecond=0)
    end = start + timedelta(hours=1) - timedelta(milliseconds=1)
    return start, end


def day_bounds(date_str: str, tz_name: str) -> tuple[datetime, datetime]:
    """Return the first and last instant of a calendar day in the event timezone."""
    day = date.fromisoformat(date_str.strip())
    tz = ZoneInfo(tz_name)
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day, time.max, tzinfo=tz)
    return start, end


def to_local(value: datetime, tz_name: str) -> datetime:
    return value.astimezone(ZoneInfo(tz_name))


def format_event_datetime(value: datetime, tz_name: str) -> str:
    return to_local(value, tz_name).strftime("%d %b %Y, %I:%M %p")


def format_event_time(value: datetime, tz_name: str) -> str:
    return to_local(value, tz_name).strftime("%I:%M %p")

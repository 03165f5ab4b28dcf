import unittest
from datetime import datetime, timezone

from college_events.db import EventRecord
from college_events.scheduling import (
    combine_local,
    day_bounds,
    event_start,
    parse_iso,
    registration_closed,
    reminder_window,
    to_iso,
)


def _event(**fields):
    values = {"event_id": "e1", "title": "Talk", "date": None, "organizer_id": None}
    values.update(fields)
    return EventRecord(**values)


class SchedulingTests(unittest.TestCase):
    def test_to_iso_has_millisecond_precision(self):
        value = datetime(2030, 1, 15, 9, 5, 7, 123456, tzinfo=timezone.utc)
        self.assertEqual(to_iso(value), "2030-01-15T09:05:07.123Z")

    def test_parse_iso(self):
        self.assertEqual(
            parse_iso("2030-01-15T09:05:07.123Z"),
            datetime(2030, 1, 15, 9, 5, 7, 123000, tzinfo=timezone.utc),
        )
        self.assertIsNone(parse_iso("not a date"))
        self.assertIsNone(parse_iso(None))

    def test_combine_local(self):
        start = combine_local("2030-01-15", "10:00", "Asia/Kolkata")
        self.assertEqual(to_iso(start), "2030-01-15T04:30:00.000Z")
        with self.assertRaises(ValueError):
            combine_local("2030-13-40", "10:00", "UTC")

    def test_event_start_prefers_timestamp(self):
        event = _event(
            date="2030-01-15T09:00:00.000Z", date_only="2030-01-16", from_time="11:00"
        )
        self.assertEqual(to_iso(event_start(event, "UTC")), "2030-01-15T09:00:00.000Z")

    def test_event_start_falls_back_to_date_and_time(self):
        event = _event(date_only="2030-01-16", from_time="11:00")
        self.assertEqual(to_iso(event_start(event, "UTC")), "2030-01-16T11:00:00.000Z")
        self.assertIsNone(event_start(_event(date_only="2030-01-16"), "UTC"))

    def test_registration_cutoff(self):
        event = _event(date="2030-01-15T12:00:00.000Z")
        before = datetime(2030, 1, 15, 8, 0, tzinfo=timezone.utc)
        after = datetime(2030, 1, 15, 8, 0, 1, tzinfo=timezone.utc)
        self.assertFalse(registration_closed(event, before, 4, "UTC"))
        self.assertTrue(registration_closed(event, after, 4, "UTC"))

    def test_undated_event_never_closes(self):
        now = datetime(2030, 1, 15, tzinfo=timezone.utc)
        self.assertFalse(registration_closed(_event(), now, 4, "UTC"))

    def test_reminder_window(self):
        now = datetime(2030, 1, 14, 9, 59, 30, tzinfo=timezone.utc)
        start, end = reminder_window(now, 24)
        self.assertEqual(to_iso(start), "2030-01-15T09:00:00.000Z")
        self.assertEqual(to_iso(end), "2030-01-15T09:59:59.999Z")

    def test_day_bounds(self):
        start, end = day_bounds("2030-01-15", "Asia/Kolkata")
        self.assertEqual(to_iso(start), "2030-01-14T18:30:00.000Z")
        self.assertEqual(to_iso(end), "2030-01-15T18:29:59.999Z")


if __name__ == "__main__":
    unittest.main()

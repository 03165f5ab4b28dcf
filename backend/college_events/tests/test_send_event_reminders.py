import importlib.util
import io
import unittest
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch

from college_events.db import EventRecord, InMemoryDbClient, UserRecord
from college_events.mailer import InMemoryMailer
from college_events.tests.support import make_settings

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "send_event_reminders.py"


def _load_script():
    module_spec = importlib.util.spec_from_file_location("send_event_reminders", SCRIPT)
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)
    return module


class SendEventRemindersCliTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.script = _load_script()

    def setUp(self):
        self.db = InMemoryDbClient()
        self.mailer = InMemoryMailer()
        for name, value in (
            ("get_settings", make_settings()),
            ("get_db_client", self.db),
            ("get_mailer", self.mailer),
        ):
            patcher = patch.object(self.script, name, return_value=value)
            patcher.start()
            self.addCleanup(patcher.stop)

    def run_main(self, *args):
        with patch("sys.argv", ["send_event_reminders.py", *args]):
            return self.script.main()

    def test_single_pass_at_given_time(self):
        student = self.db.create_user(
            UserRecord(user_id="", name="Asha", role="STUDENT", email="asha@college.edu")
        )
        event = self.db.create_event(
            EventRecord(
                event_id="",
                title="Hackathon",
                date="2030-01-15T09:30:00.000Z",
                organizer_id=None,
            )
        )
        self.db.create_registration(student.user_id, event.event_id)

        with patch.object(self.script.time, "sleep") as sleep:
            code = self.run_main("--now", "2030-01-14T09:20:00Z")

        self.assertEqual(code, 0)
        sleep.assert_not_called()
        self.assertEqual(
            [m.subject for m in self.mailer.outbox], ["Reminder: Hackathon is tomorrow!"]
        )

    def test_passes_settings_and_time_through(self):
        with patch.object(self.script, "send_due_reminders") as send:
            self.assertEqual(self.run_main("--now", "2030-01-14T09:20:00Z"), 0)

        send.assert_called_once_with(
            self.db,
            self.mailer,
            tz_name="UTC",
            lead_hours=24,
            now=datetime(2030, 1, 14, 9, 20, tzinfo=timezone.utc),
        )

    def test_failed_pass_exits_non_zero(self):
        with patch.object(
            self.script, "send_due_reminders", side_effect=RuntimeError("db down")
        ):
            self.assertEqual(self.run_main(), 1)

    @patch("time.sleep", side_effect=[None, KeyboardInterrupt])
    def test_watch_repeats_until_interrupted(self, sleep):
        with patch.object(self.script, "send_due_reminders") as send:
            with self.assertRaises(KeyboardInterrupt):
                self.run_main("--watch", "--interval-seconds", "5")

        self.assertEqual(send.call_count, 2)
        sleep.assert_called_with(5)
        self.assertIsNone(send.call_args.kwargs["now"])

    @patch("time.sleep", side_effect=KeyboardInterrupt)
    def test_watch_keeps_going_after_failed_pass(self, sleep):
        with patch.object(
            self.script, "send_due_reminders", side_effect=RuntimeError("db down")
        ) as send:
            with self.assertRaises(KeyboardInterrupt):
                self.run_main("--watch")

        send.assert_called_once()
        sleep.assert_called_once_with(3600)

    @patch("sys.stderr", new_callable=io.StringIO)
    def test_now_with_watch_is_rejected(self, stderr):
        with patch.object(self.script, "send_due_reminders") as send:
            with self.assertRaises(SystemExit) as ctx:
                self.run_main("--watch", "--now", "2030-01-14T09:20:00Z")

        self.assertEqual(ctx.exception.code, 2)
        self.assertIn("--now cannot be combined with --watch", stderr.getvalue())
        send.assert_not_called()

    @patch("sys.stderr", new_callable=io.StringIO)
    def test_bad_now_is_rejected(self, stderr):
        with patch.object(self.script, "send_due_reminders") as send:
            with self.assertRaises(SystemExit) as ctx:
                self.run_main("--now", "yesterday")

        self.assertEqual(ctx.exception.code, 2)
        self.assertIn("not an ISO timestamp", stderr.getvalue())
        send.assert_not_called()


if __name__ == "__main__":
    unittest.main()

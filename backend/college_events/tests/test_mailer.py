import unittest
from unittest.mock import patch

from college_events.db import EventRecord, InMemoryDbClient
from college_events.mailer import (
    InMemoryMailer,
    SmtpMailer,
    deliver_email,
    send_confirmation_email,
)


class SmtpMailerTests(unittest.TestCase):
    @patch("college_events.mailer.smtplib.SMTP")
    def test_send_uses_starttls_and_login(self, mock_smtp):
        server = mock_smtp.return_value.__enter__.return_value
        server.has_extn.return_value = True
        mailer = SmtpMailer(
            host="smtp.example.com",
            port=587,
            username="mailer",
            password="pw",
            sender='"College Events" <noreply@collegeevents.com>',
        )

        message_id = mailer.send("asha@college.edu", "Hi", "plain", "<p>html</p>")

        mock_smtp.assert_called_once_with("smtp.example.com", 587, timeout=30)
        server.starttls.assert_called_once_with()
        server.login.assert_called_once_with("mailer", "pw")
        sent = server.send_message.call_args[0][0]
        self.assertEqual(sent["To"], "asha@college.edu")
        self.assertEqual(sent["Message-ID"], message_id)
        self.assertTrue(message_id.endswith("@collegeevents.com>"))

    @patch("college_events.mailer.smtplib.SMTP")
    def test_send_without_credentials(self, mock_smtp):
        server = mock_smtp.return_value.__enter__.return_value
        server.has_extn.return_value = False
        SmtpMailer("localhost", 25, None, None, "noreply@localhost").send(
            "asha@college.edu", "Hi", "plain"
        )
        server.starttls.assert_not_called()
        server.login.assert_not_called()
        server.send_message.assert_called_once()


class DeliverEmailTests(unittest.TestCase):
    def test_any_send_error_is_logged_as_failed(self):
        db = InMemoryDbClient()
        mailer = InMemoryMailer(fail_with=ValueError("bad header"))

        self.assertFalse(deliver_email(db, mailer, "a@c.edu", "Hi", "plain"))

        self.assertEqual(len(db.email_logs), 1)
        self.assertEqual(db.email_logs[0]["status"], "FAILED")
        self.assertEqual(db.email_logs[0]["error"], "bad header")
        self.assertNotIn("messageId", db.email_logs[0])


class ConfirmationEmailTests(unittest.TestCase):
    def test_confirmation_content_is_escaped(self):
        db = InMemoryDbClient()
        mailer = InMemoryMailer()
        event = EventRecord(
            event_id="e1",
            title="Rock & <Roll>",
            date="2030-01-15T10:00:00.000Z",
            organizer_id=None,
            venue="Main Hall",
        )

        self.assertTrue(
            send_confirmation_email(db, mailer, "asha@college.edu", event, "UTC")
        )

        sent = mailer.outbox[0]
        self.assertEqual(sent.subject, "Registration Confirmed: Rock & <Roll>")
        self.assertIn("15 Jan 2030, 10:00 AM", sent.text)
        self.assertIn("Rock &amp; &lt;Roll&gt;", sent.html)
        self.assertEqual(db.email_logs[0]["messageId"], sent.message_id)

    def test_undated_event(self):
        mailer = InMemoryMailer()
        event = EventRecord(event_id="e1", title="TBA", date=None, organizer_id=None)
        send_confirmation_email(InMemoryDbClient(), mailer, "a@c.edu", event, "UTC")
        self.assertIn("Date: To be announced", mailer.outbox[0].text)


if __name__ == "__main__":
    unittest.main()

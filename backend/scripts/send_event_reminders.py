"""
Send day-before reminders to attendees. Run from cron, or with --watch.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from college_events.config import get_settings
from college_events.dependencies import get_db_client, get_mailer
from college_events.reminders import send_due_reminders
from college_events.scheduling import parse_iso

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Event reminder sender")
    parser.add_argument(
        "--watch",
        action="store_true",
        help="Keep running, one pass every --interval-seconds",
    )
    parser.add_argument(
        "--interval-seconds",
        type=int,
        default=3600,
        help="Seconds between passes in --watch mode",
    )
    parser.add_argument(
        "--now",
        type=str,
        default=None,
        help="ISO timestamp to use as the current time (single pass only)",
    )
    args = parser.parse_args()

    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    now = None
    if args.now:
        now = parse_iso(args.now)
        if now is None:
            parser.error(f"--now is not an ISO timestamp: {args.now}")
        if args.watch:
            parser.error("--now cannot be combined with --watch")

    db = get_db_client()
    mailer = get_mailer()

    while True:
        logger.info("Running reminder check...")
        try:
            send_due_reminders(
                db,
                mailer,
                tz_name=settings.event_timezone,
                lead_hours=settings.reminder_lead_hours,
                now=now,
            )
        except Exception as exc:
            logger.exception("Reminder pass failed: %s", exc)
            if not args.watch:
                return 1

        if not args.watch:
            return 0

        logger.info("Sleeping for %ds", args.interval_seconds)
        time.sleep(args.interval_seconds)


if __name__ == "__main__":
    raise SystemExit(main())

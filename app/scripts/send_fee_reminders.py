"""
Send fee reminders for installments due in REMINDER_DAYS_BEFORE days or today.

Run once per day from cron, e.g. at 09:00:
    0 9 * * * cd /srv/fees && python -m app.scripts.send_fee_reminders
Usage: python -m app.scripts.send_fee_reminders [--date YYYY-MM-DD]
"""

import argparse
import asyncio
import sys
from datetime import date
from typing import Optional

# Ensure all models are loaded so ORM relationships resolve (e.g. User -> Tenant)
from app.core.models import Tenant  # noqa: F401
from app.auth.models import User  # noqa: F401
from app.core.logging import configure_logging
from app.db.session import AsyncSessionLocal
from app.services.notification_dispatcher import NotificationDispatcher
from app.services.reminder_job import ReminderJob, ReminderRunResult


async def send_fee_reminders(today: Optional[date] = None) -> ReminderRunResult:
    job = ReminderJob(AsyncSessionLocal, NotificationDispatcher())
    return await job.run(today)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Send fee payment reminders")
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Run as if today were this date (YYYY-MM-DD)",
    )
    args = parser.parse_args(argv)

    configure_logging()
    result = asyncio.run(send_fee_reminders(args.date))
    print(
        f"Done. Sent {result.reminders_sent} reminder(s) for {result.students_checked} student(s); "
        f"{result.undelivered} undelivered, {result.failures} failure(s)."
    )
    for error in result.errors:
        print(f"  FAILED: {error}", file=sys.stderr)
    return 1 if result.failures else 0


if __name__ == "__main__":
    sys.exit(main())

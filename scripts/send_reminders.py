#!/usr/bin/env python3
"""
Send SMS reminders for a day's scheduled appointments.

Run once a day from cron or any other external scheduler.

Usage:
    python scripts/send_reminders.py
    python scripts/send_reminders.py --date 2026-03-04
"""

import argparse
import asyncio
import sys
from datetime import date

import structlog

from clinic_scheduler.database import AsyncSessionLocal, engine
from clinic_scheduler.middleware.logging import configure_logging
from clinic_scheduler.schemas.sms import ReminderRunSummary
from clinic_scheduler.services.appointment_service import AppointmentService

logger = structlog.get_logger()


async def send_reminders(day: date | None = None) -> ReminderRunSummary:
    """Run one reminder pass; ``day`` defaults to tomorrow in clinic time."""
    try:
        async with AsyncSessionLocal() as session:
            return await AppointmentService(session).send_reminders(day)
    finally:
        await engine.dispose()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Send SMS reminders for scheduled appointments",
    )
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        help="Appointment date as YYYY-MM-DD (default: tomorrow)",
    )
    args = parser.parse_args()

    configure_logging()
    summary = asyncio.run(send_reminders(args.date))

    print(f"Reminders for {summary.date.isoformat()}")
    print(f"   Sent:   {summary.sent}")
    print(f"   Failed: {summary.failed}")
    if summary.failed:
        sys.exit(1)


if __name__ == "__main__":
    main()

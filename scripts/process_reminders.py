#!/usr/bin/env python3
"""
Deliver appointment reminders that are due.

Usage:
    python scripts/process_reminders.py
    python scripts/process_reminders.py --loop --interval 60

Run it from cron, or with ``--loop`` as a long-lived worker. Several
workers may run at once; due jobs are claimed with ``SKIP LOCKED``.
"""

import argparse
import asyncio

import dotenv

dotenv.load_dotenv()

import structlog  # noqa: E402

from app.config import settings  # noqa: E402
from app.core.firebase import initialize_firebase  # noqa: E402
from app.database import AsyncSessionLocal, engine  # noqa: E402
from app.middleware.logging import configure_logging  # noqa: E402
from app.services.email_service import build_email_service  # noqa: E402
from app.services.notification_service import NotificationService  # noqa: E402
from app.services.reminder_service import ReminderService  # noqa: E402

logger = structlog.get_logger("process_reminders")


async def run(loop: bool, interval: int) -> None:
    """Process due reminders once, or repeatedly every ``interval`` seconds."""
    # Push reminders need the default Firebase app; email and in-app still work without it
    try:
        initialize_firebase(settings.firebase_credentials_path, settings.firebase_config_json)
        logger.info("firebase_initialized")
    except Exception as e:
        logger.warning(
            "firebase_initialization_failed",
            error=str(e),
            note="Push reminders are disabled. Set FIREBASE_CREDENTIALS_PATH env var.",
        )

    notifier = NotificationService(AsyncSessionLocal, build_email_service(settings))
    service = ReminderService(AsyncSessionLocal, notifier)

    try:
        while True:
            processed = await service.process_due_reminders()
            logger.info("reminder_batch_finished", processed=processed)
            if not loop:
                break
            await asyncio.sleep(interval)
    finally:
        await engine.dispose()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Deliver due appointment reminders")
    parser.add_argument(
        "--loop",
        action="store_true",
        help="Keep running and poll for due reminders",
    )
    parser.add_argument(
        "--interval",
        type=int,
        default=60,
        help="Seconds between polls when --loop is set (default: 60)",
    )
    args = parser.parse_args()

    configure_logging()
    asyncio.run(run(args.loop, args.interval))


if __name__ == "__main__":
    main()

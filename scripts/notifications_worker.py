#!/usr/bin/env python3
"""
Notifications worker.

Delivers due notifications every DELIVERY_INTERVAL_SECONDS, scans for sessions
starting within the hour every SCHEDULING_INTERVAL_SECONDS and queues
day-before reminders every DAILY_SCHEDULING_INTERVAL_SECONDS. Stops on
SIGINT/SIGTERM.

    python scripts/notifications_worker.py
    python scripts/notifications_worker.py --once
"""
import argparse
import logging
import os
import signal
import sys
import threading
import time

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.config import settings
from app.core.database import database, session_scope
from app.services.dispatch_service import NotificationDispatcher

logger = logging.getLogger("notifications_worker")


def deliver_scheduled_notifications() -> None:
    try:
        with session_scope() as db:
            NotificationDispatcher(db).deliver_pending()
    except Exception:
        logger.exception("deliver_scheduled_notifications failed")


def queue_day_before_reminders() -> None:
    try:
        with session_scope() as db:
            NotificationDispatcher(db).run_daily_batch()
    except Exception:
        logger.exception("queue_day_before_reminders failed")


def queue_upcoming_reminders() -> None:
    try:
        with session_scope() as db:
            NotificationDispatcher(db).run_reminder_scan()
    except Exception:
        logger.exception("queue_upcoming_reminders failed")


def run_once() -> None:
    try:
        with session_scope() as db:
            dispatcher = NotificationDispatcher(db)
            dispatcher.run_hourly_scheduling()
            dispatcher.deliver_pending()
    except Exception:
        logger.exception("single worker pass failed")


def run(stop: threading.Event) -> None:
    jobs = [
        (deliver_scheduled_notifications, settings.DELIVERY_INTERVAL_SECONDS),
        (queue_day_before_reminders, settings.DAILY_SCHEDULING_INTERVAL_SECONDS),
        (queue_upcoming_reminders, settings.SCHEDULING_INTERVAL_SECONDS),
    ]
    # Every job runs once at startup
    next_run = [time.monotonic()] * len(jobs)

    logger.info("Notifications worker started")
    while not stop.is_set():
        for i, (job, interval) in enumerate(jobs):
            now = time.monotonic()
            if now >= next_run[i]:
                job()
                next_run[i] = now + interval
        stop.wait(max(0.0, min(next_run) - time.monotonic()))


def main() -> None:
    parser = argparse.ArgumentParser(description="Deliver scheduled notifications and queue reminders")
    parser.add_argument("--once", action="store_true", help="run one scheduling and one delivery pass, then exit")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    stop = threading.Event()

    def shutdown(signum, frame):
        logger.info("Received signal %s, stopping", signum)
        stop.set()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    try:
        if args.once:
            run_once()
        else:
            run(stop)
    finally:
        database.dispose()
        logger.info("Notifications worker stopped")


if __name__ == "__main__":
    main()

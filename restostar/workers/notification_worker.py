"""
Notification worker: sends queued coupon emails when they come due.

Usage:
    python -m restostar.workers.notification_worker           # poll forever
    python -m restostar.workers.notification_worker --once    # one batch, then exit
    python -m restostar.workers.notification_worker --retry-failed
"""
import argparse
import logging
import time

from restostar.core.config import get_settings
from restostar.db.session import SessionLocal
from restostar.services.notifications import NotificationProcessor

logger = logging.getLogger(__name__)


def run_once(batch_size: int) -> int:
    db = SessionLocal()
    try:
        return NotificationProcessor(db).process_due(limit=batch_size)
    finally:
        db.close()


def retry_failed() -> int:
    db = SessionLocal()
    try:
        return NotificationProcessor(db).retry_failed()
    finally:
        db.close()


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    parser = argparse.ArgumentParser(description="Send due coupon emails")
    parser.add_argument("--once", action="store_true", help="Process one batch and exit")
    parser.add_argument("--retry-failed", action="store_true", help="Requeue failed coupon emails and exit")
    args = parser.parse_args()

    if args.retry_failed:
        logger.info(f"Requeued {retry_failed()} failed job(s)")
        return

    if args.once:
        logger.info(f"Sent {run_once(settings.NOTIFICATION_BATCH_SIZE)} email(s)")
        return

    logger.info(f"Notification worker polling every {settings.NOTIFICATION_POLL_SECONDS}s")
    while True:
        try:
            run_once(settings.NOTIFICATION_BATCH_SIZE)
        except Exception as e:
            # Database hiccups should not kill the worker; the next poll retries the claim
            logger.error(f"Notification batch failed: {e}", exc_info=True)
        time.sleep(settings.NOTIFICATION_POLL_SECONDS)


if __name__ == "__main__":
    main()

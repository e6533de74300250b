"""
Execution of queued coupon emails.

A failed send is logged and the job marked failed; the review and the
coupon it belongs to are already committed and stay redeemable.
"""
from datetime import datetime, timedelta
from typing import List, Literal, Optional
from uuid import UUID
import logging

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.orm import Session

from restostar.core.clock import resolve_now
from restostar.core.config import get_settings
from restostar.models.customer_coupon import CustomerCoupon
from restostar.models.scheduled_job import ScheduledJob
from restostar.services.email_content import compose_coupon_email
from restostar.services.job_queue import (
    COUPON_EMAIL_JOB,
    claim_due_jobs,
    complete_job,
    fail_job,
    requeue_job,
    requeue_stale_jobs,
)
from restostar.services.mailer import SmtpMailer
from restostar.services.text_generation import TextGenerationClient

logger = logging.getLogger(__name__)


class CouponEmailPayload(BaseModel):
    """Snapshot taken when the coupon was issued."""
    customer_coupon_id: UUID
    to: str
    restaurant_name: str
    coupon_code: str
    sentiment_type: Literal["positive", "negative"]
    email_tone: Literal["assist", "manual"] = "manual"
    review_url: Optional[str] = None
    offer_title: Optional[str] = None
    offer_reward: Optional[str] = None
    customer_feedback: Optional[str] = None
    liked_categories: Optional[List[str]] = None


class NotificationProcessor:
    """Runs due jobs from the queue against the mailer and text generator."""

    def __init__(
        self,
        db: Session,
        mailer: Optional[SmtpMailer] = None,
        text_client: Optional[TextGenerationClient] = None,
        claim_timeout: Optional[timedelta] = None,
    ):
        self.db = db
        self.mailer = mailer or SmtpMailer()
        self.text_client = text_client or TextGenerationClient()
        self.claim_timeout = claim_timeout or timedelta(
            seconds=get_settings().NOTIFICATION_CLAIM_TIMEOUT_SECONDS
        )

    def send_coupon_email(self, payload: dict, now: Optional[datetime] = None) -> bool:
        """
        Send one coupon email and stamp `sent_at`.

        Returns False without sending when the coupon is gone or was already
        sent, so replaying the job never emails twice after a success.
        """
        data = CouponEmailPayload.model_validate(payload)

        coupon = self.db.get(CustomerCoupon, data.customer_coupon_id)
        if coupon is None:
            logger.info(f"Coupon {data.customer_coupon_id} no longer exists, skipping email")
            return False
        if coupon.sent_at is not None:
            logger.info(f"Coupon {data.coupon_code} email already sent at {coupon.sent_at}, skipping")
            return False

        message = compose_coupon_email(
            to=data.to,
            restaurant_name=data.restaurant_name,
            coupon_code=data.coupon_code,
            sentiment_type=data.sentiment_type,
            email_tone=data.email_tone,
            text_client=self.text_client,
            review_url=data.review_url,
            offer_title=data.offer_title,
            offer_reward=data.offer_reward,
            customer_feedback=data.customer_feedback,
            liked_categories=data.liked_categories,
        )
        self.mailer.send(message)

        coupon.sent_at = resolve_now(now)
        self.db.commit()
        return True

    def run_job(self, job: ScheduledJob, now: Optional[datetime] = None) -> bool:
        """Run a claimed job. Returns True when it completed."""
        now = resolve_now(now)
        try:
            if job.job_type == COUPON_EMAIL_JOB:
                self.send_coupon_email(job.payload, now=now)
            else:
                raise ValueError(f"Unknown job type: {job.job_type}")
        except Exception as e:
            self.db.rollback()
            logger.error(f"Job {job.id} ({job.job_type}) failed: {e}", exc_info=True)
            fail_job(self.db, job, str(e), now=now)
            return False

        complete_job(self.db, job, now=now)
        return True

    def process_due(self, now: Optional[datetime] = None, limit: int = 20) -> int:
        """
        Claim and run every due job, up to `limit`. Returns how many succeeded.

        Claims abandoned by a crashed worker are requeued first.
        """
        now = resolve_now(now)
        requeue_stale_jobs(self.db, now=now, timeout=self.claim_timeout)
        jobs = claim_due_jobs(self.db, now=now, limit=limit)
        if jobs:
            logger.info(f"Claimed {len(jobs)} due job(s)")
        return sum(1 for job in jobs if self.run_job(job, now=now))

    def retry_failed(self, now: Optional[datetime] = None) -> int:
        """Requeue failed coupon emails. Already-sent coupons are skipped when they run."""
        now = resolve_now(now)
        failed = self.db.execute(
            select(ScheduledJob).where(
                ScheduledJob.job_type == COUPON_EMAIL_JOB,
                ScheduledJob.status == "failed",
            )
        ).scalars().all()

        for job in failed:
            requeue_job(self.db, job, run_after=now)
        return len(failed)

"""
Database-backed job queue for delayed side effects.

`enqueue_job` only adds the row to the caller's session, so the job commits
or rolls back together with the change that scheduled it. Workers claim due
jobs with `claim_due_jobs` and finish them with `complete_job` / `fail_job`;
`requeue_stale_jobs` recovers claims abandoned by a crashed worker.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from restostar.core.clock import resolve_now
from restostar.models.scheduled_job import ScheduledJob

logger = logging.getLogger(__name__)

COUPON_EMAIL_JOB = "coupon_email"

# Errors longer than this are cut before being stored
MAX_ERROR_LENGTH = 2000

# A claimed job still running after this long belongs to a dead worker
STALE_CLAIM_TIMEOUT = timedelta(minutes=10)


def enqueue_job(
    db: Session,
    job_type: str,
    payload: Dict[str, Any],
    run_after: datetime,
    now: Optional[datetime] = None,
) -> ScheduledJob:
    job = ScheduledJob(
        job_type=job_type,
        payload=payload,
        run_after=run_after,
        status="pending",
        created_at=resolve_now(now),
    )
    db.add(job)
    return job


def claim_due_jobs(db: Session, now: Optional[datetime] = None, limit: int = 20) -> List[ScheduledJob]:
    """
    Mark up to `limit` due jobs as running and commit.

    Uses FOR UPDATE SKIP LOCKED so several workers never claim the same job;
    dialects without row locks simply ignore it.
    """
    now = resolve_now(now)

    jobs = db.execute(
        select(ScheduledJob)
        .where(
            ScheduledJob.status == "pending",
            ScheduledJob.run_after <= now,
        )
        .order_by(ScheduledJob.run_after)
        .limit(limit)
        .with_for_update(skip_locked=True)
    ).scalars().all()

    for job in jobs:
        job.status = "running"
        job.started_at = now
        job.attempts = (job.attempts or 0) + 1

    db.commit()
    return list(jobs)


def requeue_stale_jobs(db: Session, now: Optional[datetime] = None, timeout: timedelta = STALE_CLAIM_TIMEOUT) -> int:
    """
    Return jobs stuck in `running` for longer than `timeout` to the queue.

    A worker that dies between claiming and finishing leaves its jobs
    running; coupon emails skip themselves if they were already sent.
    """
    now = resolve_now(now)

    stale = db.execute(
        select(ScheduledJob)
        .where(
            ScheduledJob.status == "running",
            ScheduledJob.started_at < now - timeout,
        )
        .with_for_update(skip_locked=True)
    ).scalars().all()

    for job in stale:
        logger.warning(
            f"Job {job.id} ({job.job_type}) claimed at {job.started_at} never finished, requeueing"
        )
        job.status = "pending"
        job.run_after = now
        job.started_at = None

    db.commit()
    return len(stale)


def complete_job(db: Session, job: ScheduledJob, now: Optional[datetime] = None) -> None:
    job.status = "done"
    job.completed_at = resolve_now(now)
    job.last_error = None
    db.commit()


def fail_job(db: Session, job: ScheduledJob, error: str, now: Optional[datetime] = None) -> None:
    # No automatic retry: a failed job stays failed until someone requeues it
    job.status = "failed"
    job.completed_at = resolve_now(now)
    job.last_error = error[:MAX_ERROR_LENGTH]
    db.commit()


def requeue_job(db: Session, job: ScheduledJob, run_after: Optional[datetime] = None) -> None:
    """Put a failed job back in the queue. Safe for coupon emails, which skip if already sent."""
    job.status = "pending"
    job.run_after = resolve_now(run_after)
    job.completed_at = None
    db.commit()

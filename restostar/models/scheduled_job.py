"""
Durable queue of delayed side effects.

Jobs are written in the same transaction as the domain change that triggers
them and picked up later by the notification worker.
"""
import uuid
from sqlalchemy import Column, String, Text, Integer, DateTime, Index, JSON, Uuid

from restostar.core.clock import utcnow
from restostar.db.base import Base


class ScheduledJob(Base):
    __tablename__ = "scheduled_jobs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    job_type = Column(String(50), nullable=False)  # coupon_email
    payload = Column(JSON, nullable=False)
    run_after = Column(DateTime, nullable=False)
    status = Column(String(20), nullable=False, default="pending")  # pending, running, done, failed
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    started_at = Column(DateTime)
    completed_at = Column(DateTime)

    __table_args__ = (
        Index("idx_scheduled_jobs_status_run_after", "status", "run_after"),
    )

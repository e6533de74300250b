"""
Single source of "now" for services.

Each operation reads the clock once and threads the value through, so
persisted timestamps and scheduling math inside one call always agree.
"""
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def resolve_now(now: Optional[datetime] = None) -> datetime:
    return now if now is not None else utcnow()

import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, UniqueConstraint, JSON, Uuid
from sqlalchemy.orm import relationship

from restostar.core.clock import utcnow
from restostar.db.base import Base

TIME_RANGES = ("daily", "monthly", "all")


class Insight(Base):
    """Cached AI summary of recent feedback, overwritten on regeneration."""
    __tablename__ = "insights"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    restaurant_id = Column(Uuid(as_uuid=True), ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False)
    time_range = Column(String(20), nullable=False)  # daily, monthly, all
    sentiment_summary = Column(Text, nullable=False)
    key_complaints = Column(JSON, nullable=False, default=list)  # max 5
    suggestions = Column(JSON, nullable=False, default=list)  # max 5
    generated_at = Column(DateTime, nullable=False, default=utcnow)

    restaurant = relationship("Restaurant", back_populates="insights")

    __table_args__ = (
        UniqueConstraint("restaurant_id", "time_range", name="uq_insights_restaurant_time_range"),
    )

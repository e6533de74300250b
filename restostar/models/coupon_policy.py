"""
Owner-configured coupon templates, one per restaurant and sentiment.
"""
import uuid
from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from restostar.core.clock import utcnow
from restostar.db.base import Base

SENTIMENT_TYPES = ("positive", "negative")
SEND_DELAY_CHOICES = (0, 1, 2, 5)


class CouponPolicy(Base):
    """What a customer gets, and how long after submitting they get it."""
    __tablename__ = "coupon_policies"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    restaurant_id = Column(Uuid(as_uuid=True), ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False)
    sentiment_type = Column(String(20), nullable=False)  # positive, negative
    title = Column(String(255), nullable=False)
    description = Column(Text)
    reward = Column(String(255), nullable=False)  # e.g. "10% off", "Free dessert"
    is_single_use = Column(Boolean, nullable=False, default=True)
    # NULL on rows created before delays existed; those send immediately
    send_delay_minutes = Column(Integer)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    restaurant = relationship("Restaurant", back_populates="coupon_policies")

    __table_args__ = (
        UniqueConstraint("restaurant_id", "sentiment_type", name="uq_coupon_policies_restaurant_sentiment"),
    )

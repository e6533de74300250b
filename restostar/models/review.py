import uuid
from sqlalchemy import Column, Integer, Text, Boolean, DateTime, ForeignKey, Index, JSON, Uuid
from sqlalchemy.orm import relationship

from restostar.core.clock import utcnow
from restostar.db.base import Base

LIKED_CATEGORIES = ("Food", "Ambience", "Service", "Value")


class Review(Base):
    """A single QR funnel submission. Never updated after insert."""
    __tablename__ = "reviews"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    restaurant_id = Column(Uuid(as_uuid=True), ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False)
    stars = Column(Integer, nullable=False)  # 1-5
    feedback_text = Column(Text)
    liked_categories = Column(JSON)  # positive reviews only
    is_public = Column(Boolean, nullable=False)  # stars >= 4, routed to the public review site
    created_at = Column(DateTime, nullable=False, default=utcnow)

    restaurant = relationship("Restaurant", back_populates="reviews")

    __table_args__ = (
        Index("idx_reviews_restaurant_created", "restaurant_id", "created_at"),
    )

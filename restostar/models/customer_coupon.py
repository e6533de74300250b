"""
Redeemable coupons issued to customers.
"""
import uuid
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Index, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from restostar.core.clock import utcnow
from restostar.db.base import Base


class CustomerCoupon(Base):
    """
    One coupon per customer email per restaurant.

    Both uniqueness rules live in the table: `(restaurant_id, email)` makes
    issuance idempotent under double submission, `coupon_code` is unique
    across every restaurant.
    """
    __tablename__ = "customer_coupons"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    review_id = Column(Uuid(as_uuid=True), ForeignKey("reviews.id", ondelete="SET NULL"))
    restaurant_id = Column(Uuid(as_uuid=True), ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False)
    email = Column(String(320), nullable=False)  # trimmed, lowercase
    coupon_code = Column(String(16), nullable=False)
    is_redeemed = Column(Boolean, nullable=False, default=False)
    redeemed_at = Column(DateTime)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    scheduled_for = Column(DateTime)  # when the coupon email is due
    sent_at = Column(DateTime)  # set by the notification worker

    restaurant = relationship("Restaurant", back_populates="customer_coupons")
    review = relationship("Review")

    __table_args__ = (
        UniqueConstraint("coupon_code", name="uq_customer_coupons_code"),
        UniqueConstraint("restaurant_id", "email", name="uq_customer_coupons_restaurant_email"),
        Index("idx_customer_coupons_review", "review_id"),
    )

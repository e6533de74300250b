import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, Index, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from restostar.core.clock import utcnow
from restostar.db.base import Base

EMAIL_TONES = ("assist", "manual")


class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    public_id = Column(String(32), nullable=False, unique=True)
    slug = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    logo_url = Column(String(2048))
    review_url = Column(String(2048), nullable=False)  # Google Maps or other public review page
    email_tone = Column(String(20), nullable=False, default="assist")  # assist, manual
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    owner = relationship("User", back_populates="restaurants")
    coupon_policies = relationship("CouponPolicy", back_populates="restaurant", cascade="all, delete-orphan")
    reviews = relationship("Review", back_populates="restaurant", cascade="all, delete-orphan")
    customer_coupons = relationship("CustomerCoupon", back_populates="restaurant", cascade="all, delete-orphan")
    insights = relationship("Insight", back_populates="restaurant", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("owner_id", "slug", name="uq_restaurants_owner_slug"),
        Index("idx_restaurants_public_id_slug", "public_id", "slug"),
    )

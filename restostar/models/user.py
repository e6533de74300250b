import uuid
from sqlalchemy import Column, String, DateTime, Uuid
from sqlalchemy.orm import relationship

from restostar.core.clock import utcnow
from restostar.db.base import Base


class User(Base):
    """Restaurant owner, created lazily from an identity provider principal."""
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    external_id = Column(String(255), nullable=False, unique=True)  # provider `sub` claim
    name = Column(String(255))
    email = Column(String(255))
    created_at = Column(DateTime, nullable=False, default=utcnow)

    restaurants = relationship("Restaurant", back_populates="owner", cascade="all, delete-orphan")

"""
Review funnel schemas.
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class ReviewSubmit(BaseModel):
    """Public QR funnel submission. Stars outside 1-5 are clamped, not rejected."""
    public_id: str
    slug: str
    stars: float
    feedback_text: Optional[str] = None
    liked_categories: Optional[List[str]] = None
    email: Optional[str] = None


class ReviewSubmitResponse(BaseModel):
    review_id: UUID
    coupon_code: Optional[str] = None
    already_received_coupon: bool = False
    existing_coupon_code: Optional[str] = None


class ReviewResponse(BaseModel):
    id: UUID
    restaurant_id: UUID
    stars: int
    feedback_text: Optional[str] = None
    liked_categories: Optional[List[str]] = None
    is_public: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReviewListResponse(BaseModel):
    reviews: List[ReviewResponse]
    total: int


class ReviewPageResponse(BaseModel):
    reviews: List[ReviewResponse]
    next_cursor: Optional[int] = None
    is_done: bool

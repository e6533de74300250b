"""
Coupon policy and redemption schemas.
"""
from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

SentimentType = Literal["positive", "negative"]


class CouponPolicyUpsert(BaseModel):
    title: str
    description: Optional[str] = None
    reward: str
    is_single_use: bool = True
    send_delay_minutes: Literal[0, 1, 2, 5] = 1


class CouponPolicyResponse(BaseModel):
    id: UUID
    restaurant_id: UUID
    sentiment_type: str
    title: str
    description: Optional[str] = None
    reward: str
    is_single_use: bool
    send_delay_minutes: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CouponPolicyListResponse(BaseModel):
    policies: List[CouponPolicyResponse]
    total: int


class CouponCodeRequest(BaseModel):
    coupon_code: str


class RedemptionResponse(BaseModel):
    """Staff-facing result; offer details are null when the review or policy is gone."""
    status: Literal["redeemed", "already_redeemed"]
    redeemed_at: Optional[datetime] = None
    restaurant_name: Optional[str] = None
    sentiment_type: Optional[SentimentType] = None
    offer_title: Optional[str] = None
    offer_discount_value: Optional[str] = None


class VerificationResponse(BaseModel):
    status: Literal["invalid", "not_found", "unauthorized", "valid", "already_redeemed"]
    message: Optional[str] = None
    coupon_code: Optional[str] = None
    restaurant_name: Optional[str] = None
    customer_email: Optional[str] = None
    sentiment_type: Optional[SentimentType] = None
    offer_title: Optional[str] = None
    offer_discount_value: Optional[str] = None
    is_redeemed: Optional[bool] = None
    redeemed_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    review_stars: Optional[int] = None


class OwnerRedemptionResponse(BaseModel):
    success: bool = True
    redeemed_at: datetime


class CustomerCouponResponse(BaseModel):
    id: UUID
    review_id: Optional[UUID] = None
    email: str
    coupon_code: str
    is_redeemed: bool
    redeemed_at: Optional[datetime] = None
    created_at: datetime
    scheduled_for: Optional[datetime] = None
    sent_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CustomerCouponListResponse(BaseModel):
    coupons: List[CustomerCouponResponse]
    total: int

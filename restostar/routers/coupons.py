"""
Coupon endpoints: owner policy configuration, verification and redemption,
plus the unauthenticated staff redemption used at the counter.
"""
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from restostar.core.deps import get_current_user
from restostar.db.session import get_db
from restostar.models.user import User
from restostar.schemas.coupon import (
    CouponCodeRequest,
    CouponPolicyListResponse,
    CouponPolicyResponse,
    CouponPolicyUpsert,
    CustomerCouponListResponse,
    CustomerCouponResponse,
    OwnerRedemptionResponse,
    RedemptionResponse,
    SentimentType,
    VerificationResponse,
)
from restostar.services.coupon_policies import CouponPolicyService
from restostar.services.redemption import CouponRedemptionService

router = APIRouter(tags=["coupons"])


# ============ Coupon policies ============

@router.get("/restaurants/{restaurant_id}/coupon-policies", response_model=CouponPolicyListResponse)
def list_coupon_policies(
    restaurant_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    policies = CouponPolicyService(db).get_policies(current_user, restaurant_id)
    return CouponPolicyListResponse(
        policies=[CouponPolicyResponse.model_validate(p) for p in policies],
        total=len(policies),
    )


@router.put(
    "/restaurants/{restaurant_id}/coupon-policies/{sentiment_type}",
    response_model=CouponPolicyResponse,
)
def set_coupon_policy(
    restaurant_id: UUID,
    sentiment_type: SentimentType,
    policy: CouponPolicyUpsert,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Create or replace the coupon customers get for this sentiment.

    `send_delay_minutes` controls how long after the review the email goes out.
    """
    saved = CouponPolicyService(db).set_policy(
        owner=current_user,
        restaurant_id=restaurant_id,
        sentiment_type=sentiment_type,
        title=policy.title,
        description=policy.description,
        reward=policy.reward,
        single_use=policy.is_single_use,
        delay_minutes=policy.send_delay_minutes,
    )
    return CouponPolicyResponse.model_validate(saved)


# ============ Issued coupons ============

@router.get("/restaurants/{restaurant_id}/customer-coupons", response_model=CustomerCouponListResponse)
def list_customer_coupons(
    restaurant_id: UUID,
    limit: int = Query(50, description="Max coupons to return (1-200)"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    coupons = CouponRedemptionService(db).list_customer_coupons(current_user, restaurant_id, limit)
    return CustomerCouponListResponse(
        coupons=[CustomerCouponResponse.model_validate(c) for c in coupons],
        total=len(coupons),
    )


@router.post("/coupons/verify", response_model=VerificationResponse)
def verify_coupon(
    request: CouponCodeRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Check a code against the owner's restaurants without redeeming it.

    Always 200; the outcome is in `status`.
    """
    result = CouponRedemptionService(db).verify_for_owner(current_user, request.coupon_code)
    offer = result.offer
    return VerificationResponse(
        status=result.status,
        message=result.message,
        coupon_code=result.coupon_code,
        customer_email=result.customer_email,
        is_redeemed=result.is_redeemed,
        redeemed_at=result.redeemed_at,
        sent_at=result.sent_at,
        restaurant_name=offer.restaurant_name if offer else None,
        sentiment_type=offer.sentiment_type if offer else None,
        offer_title=offer.offer_title if offer else None,
        offer_discount_value=offer.offer_discount_value if offer else None,
        review_stars=offer.review_stars if offer else None,
    )


@router.post("/coupons/redeem", response_model=OwnerRedemptionResponse)
def redeem_coupon_as_owner(
    request: CouponCodeRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Redeem from the owner dashboard. 409 if the coupon was already used."""
    redeemed_at = CouponRedemptionService(db).redeem_as_owner(current_user, request.coupon_code)
    return OwnerRedemptionResponse(redeemed_at=redeemed_at)


@router.post("/public/coupons/redeem", response_model=RedemptionResponse)
def redeem_coupon(request: CouponCodeRequest, db: Session = Depends(get_db)):
    """
    Staff redemption at the point of sale. No login required.

    A second tap on the same code returns `already_redeemed` with the
    original timestamp instead of an error.
    """
    result = CouponRedemptionService(db).redeem_by_code(request.coupon_code)
    return RedemptionResponse(
        status=result.status,
        redeemed_at=result.redeemed_at,
        restaurant_name=result.offer.restaurant_name,
        sentiment_type=result.offer.sentiment_type,
        offer_title=result.offer.offer_title,
        offer_discount_value=result.offer.offer_discount_value,
    )

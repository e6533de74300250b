"""
Coupon verification and redemption.

Redemption is a single conditional UPDATE (`... WHERE is_redeemed = false`),
so concurrent taps at the counter produce exactly one `redeemed` and every
other attempt reads back the winner's timestamp.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from uuid import UUID
import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from restostar.core.clock import resolve_now
from restostar.core.errors import AlreadyRedeemed, Forbidden, NotFound
from restostar.core.strings import COUPON_CODE_PATTERN, normalize_coupon_code, sentiment_for_stars
from restostar.models.customer_coupon import CustomerCoupon
from restostar.models.restaurant import Restaurant
from restostar.models.review import Review
from restostar.models.user import User
from restostar.services.coupon_policies import find_policy
from restostar.services.restaurants import get_owned_restaurant

logger = logging.getLogger(__name__)

MAX_COUPON_LIST_LIMIT = 200


@dataclass
class CouponOffer:
    """Context joined back from the review and policy. Any field may be gone."""
    restaurant_name: Optional[str] = None
    sentiment_type: Optional[str] = None
    offer_title: Optional[str] = None
    offer_discount_value: Optional[str] = None
    review_stars: Optional[int] = None


@dataclass
class RedemptionResult:
    status: str  # redeemed, already_redeemed
    redeemed_at: Optional[datetime]
    offer: CouponOffer


@dataclass
class VerificationResult:
    status: str  # invalid, not_found, unauthorized, valid, already_redeemed
    message: Optional[str] = None
    coupon_code: Optional[str] = None
    customer_email: Optional[str] = None
    is_redeemed: Optional[bool] = None
    redeemed_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    offer: Optional[CouponOffer] = None


class CouponRedemptionService:

    def __init__(self, db: Session):
        self.db = db

    def _find_by_code(self, code: str) -> Optional[CustomerCoupon]:
        return self.db.execute(
            select(CustomerCoupon).where(CustomerCoupon.coupon_code == code)
        ).scalar_one_or_none()

    def _offer_for(self, coupon: CustomerCoupon, restaurant: Optional[Restaurant]) -> CouponOffer:
        review = self.db.get(Review, coupon.review_id) if coupon.review_id else None
        sentiment = sentiment_for_stars(review.stars) if review else None
        policy = find_policy(self.db, restaurant.id, sentiment) if sentiment and restaurant else None

        return CouponOffer(
            restaurant_name=restaurant.name if restaurant else None,
            sentiment_type=sentiment,
            offer_title=policy.title if policy else None,
            offer_discount_value=policy.reward if policy else None,
            review_stars=review.stars if review else None,
        )

    def _mark_redeemed(self, coupon: CustomerCoupon, now: datetime) -> bool:
        """Flip is_redeemed if nobody else has. Returns True for the single winner."""
        result = self.db.execute(
            update(CustomerCoupon)
            .where(
                CustomerCoupon.id == coupon.id,
                CustomerCoupon.is_redeemed == False,  # noqa: E712
            )
            .values(is_redeemed=True, redeemed_at=now)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        self.db.refresh(coupon)
        return result.rowcount == 1

    def redeem_by_code(self, code: str, now: Optional[datetime] = None) -> RedemptionResult:
        """
        Staff redemption at the point of sale; no login.

        Replaying a redeemed code is not an error: it reports
        `already_redeemed` with the original timestamp and changes nothing.
        """
        now = resolve_now(now)
        code = normalize_coupon_code(code)

        coupon = self._find_by_code(code)
        if coupon is None:
            raise NotFound("Coupon code not found")

        offer = self._offer_for(coupon, self.db.get(Restaurant, coupon.restaurant_id))

        if not coupon.is_redeemed and self._mark_redeemed(coupon, now):
            logger.info(f"Redeemed coupon {code}")
            return RedemptionResult(status="redeemed", redeemed_at=coupon.redeemed_at, offer=offer)

        return RedemptionResult(status="already_redeemed", redeemed_at=coupon.redeemed_at, offer=offer)

    def verify_for_owner(self, owner: User, code: str) -> VerificationResult:
        """
        Look a code up for the owner's verifier screen without redeeming it.

        Expected mismatches come back as a status, never as an exception.
        """
        code = (code or "").strip().upper()
        if not code:
            return VerificationResult(status="invalid", message="Please enter a coupon code")
        if not COUPON_CODE_PATTERN.match(code):
            return VerificationResult(status="invalid", message="Invalid coupon code format")

        coupon = self._find_by_code(code)
        if coupon is None:
            return VerificationResult(status="not_found", message="Coupon code not found in the system")

        restaurant = self.db.get(Restaurant, coupon.restaurant_id)
        if restaurant is None:
            return VerificationResult(status="invalid", message="Restaurant not found")
        if restaurant.owner_id != owner.id:
            return VerificationResult(status="unauthorized", message="This coupon is not for your restaurant")

        return VerificationResult(
            status="already_redeemed" if coupon.is_redeemed else "valid",
            coupon_code=code,
            customer_email=coupon.email,
            is_redeemed=coupon.is_redeemed,
            redeemed_at=coupon.redeemed_at,
            sent_at=coupon.sent_at,
            offer=self._offer_for(coupon, restaurant),
        )

    def redeem_as_owner(self, owner: User, code: str, now: Optional[datetime] = None) -> datetime:
        """
        Redeem from the owner dashboard. Returns the redemption time.

        Raises:
            InvalidCode, NotFound, Forbidden, AlreadyRedeemed
        """
        now = resolve_now(now)
        code = normalize_coupon_code(code)

        coupon = self._find_by_code(code)
        if coupon is None:
            raise NotFound("Coupon code not found")

        restaurant = self.db.get(Restaurant, coupon.restaurant_id)
        if restaurant is None or restaurant.owner_id != owner.id:
            raise Forbidden("This coupon is not for your restaurant")

        if coupon.is_redeemed or not self._mark_redeemed(coupon, now):
            raise AlreadyRedeemed("This coupon has already been redeemed")

        logger.info(f"Owner {owner.id} redeemed coupon {code}")
        return coupon.redeemed_at

    def list_customer_coupons(self, owner: User, restaurant_id: UUID, limit: int = 50) -> List[CustomerCoupon]:
        restaurant = get_owned_restaurant(self.db, owner, restaurant_id)
        limit = max(1, min(MAX_COUPON_LIST_LIMIT, limit))
        return list(
            self.db.execute(
                select(CustomerCoupon)
                .where(CustomerCoupon.restaurant_id == restaurant.id)
                .order_by(CustomerCoupon.created_at.desc())
                .limit(limit)
            ).scalars().all()
        )

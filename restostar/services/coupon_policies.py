"""
Per-restaurant coupon policies (one per sentiment).
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from restostar.core.clock import resolve_now
from restostar.core.errors import ValidationError
from restostar.models.coupon_policy import CouponPolicy, SENTIMENT_TYPES, SEND_DELAY_CHOICES
from restostar.models.user import User
from restostar.services.restaurants import get_owned_restaurant

# Delay used when the owner never configured a policy for the sentiment
DEFAULT_DELAY_WITHOUT_POLICY = 1
# Delay for policies saved before the delay setting existed
LEGACY_POLICY_DELAY = 0


def resolve_delay_minutes(policy: Optional[CouponPolicy]) -> int:
    """
    Minutes to wait before emailing a coupon.

    Policy rows saved before delays existed (delay NULL) send immediately;
    restaurants with no policy at all get the one-minute default.
    """
    if policy is None:
        return DEFAULT_DELAY_WITHOUT_POLICY
    if policy.send_delay_minutes is None:
        return LEGACY_POLICY_DELAY
    return policy.send_delay_minutes


def find_policy(db: Session, restaurant_id: UUID, sentiment_type: str) -> Optional[CouponPolicy]:
    return db.execute(
        select(CouponPolicy).where(
            CouponPolicy.restaurant_id == restaurant_id,
            CouponPolicy.sentiment_type == sentiment_type,
        )
    ).scalar_one_or_none()


class CouponPolicyService:

    def __init__(self, db: Session):
        self.db = db

    def get_policies(self, owner: User, restaurant_id: UUID) -> List[CouponPolicy]:
        restaurant = get_owned_restaurant(self.db, owner, restaurant_id)
        return list(
            self.db.execute(
                select(CouponPolicy)
                .where(CouponPolicy.restaurant_id == restaurant.id)
                .order_by(CouponPolicy.sentiment_type.desc())
            ).scalars().all()
        )

    def set_policy(
        self,
        owner: User,
        restaurant_id: UUID,
        sentiment_type: str,
        title: str,
        reward: str,
        single_use: bool = True,
        delay_minutes: int = DEFAULT_DELAY_WITHOUT_POLICY,
        description: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> CouponPolicy:
        """
        Create or replace the policy for a sentiment.

        An existing row keeps its id; only its settings change.
        """
        now = resolve_now(now)
        restaurant = get_owned_restaurant(self.db, owner, restaurant_id)

        if sentiment_type not in SENTIMENT_TYPES:
            raise ValidationError("sentimentType must be positive or negative")

        title = (title or "").strip()
        if not title:
            raise ValidationError("Coupon title is required")

        reward = (reward or "").strip()
        if not reward:
            raise ValidationError("Coupon reward is required")

        if delay_minutes not in SEND_DELAY_CHOICES:
            raise ValidationError(
                f"Send delay must be one of {', '.join(str(d) for d in SEND_DELAY_CHOICES)} minutes"
            )

        description = (description or "").strip() or None

        values = dict(
            title=title,
            description=description,
            reward=reward,
            is_single_use=single_use,
            send_delay_minutes=delay_minutes,
        )

        policy = find_policy(self.db, restaurant.id, sentiment_type)
        if policy is None:
            try:
                with self.db.begin_nested():
                    policy = CouponPolicy(
                        restaurant_id=restaurant.id,
                        sentiment_type=sentiment_type,
                        created_at=now,
                        updated_at=now,
                        **values,
                    )
                    self.db.add(policy)
            except IntegrityError:
                # Lost a race with another save for the same sentiment; update theirs
                policy = find_policy(self.db, restaurant.id, sentiment_type)
                if policy is None:
                    raise

        for field, value in values.items():
            setattr(policy, field, value)
        policy.updated_at = now

        self.db.commit()
        self.db.refresh(policy)
        return policy

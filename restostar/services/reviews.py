"""
Review intake and coupon issuance.

The public QR funnel posts here. A submission always records the review;
when the customer leaves an email it also issues (at most once per
restaurant) a coupon and queues the delayed coupon email.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Union
from uuid import UUID, uuid4
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from restostar.core.clock import resolve_now
from restostar.core.errors import CodeGenerationExhausted, NotFound
from restostar.core.strings import (
    clamp_stars,
    generate_coupon_code,
    normalize_email,
    sentiment_for_stars,
)
from restostar.models.customer_coupon import CustomerCoupon
from restostar.models.restaurant import Restaurant
from restostar.models.review import Review, LIKED_CATEGORIES
from restostar.models.user import User
from restostar.services.coupon_policies import find_policy, resolve_delay_minutes
from restostar.services.job_queue import COUPON_EMAIL_JOB, enqueue_job
from restostar.services.restaurants import RestaurantService, get_owned_restaurant

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 5
DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 200


@dataclass
class ReviewSubmissionResult:
    """Exactly one of coupon_code / existing_coupon_code is set when an email was given."""
    review_id: UUID
    coupon_code: Optional[str] = None
    already_received_coupon: bool = False
    existing_coupon_code: Optional[str] = None


@dataclass
class ReviewPage:
    reviews: List[Review]
    next_cursor: Optional[int]
    is_done: bool


def clean_liked_categories(categories: Optional[Sequence[str]]) -> Optional[List[str]]:
    """Keep known categories, first occurrence only, in the order given."""
    if not categories:
        return None
    known = []
    for category in categories:
        if category in LIKED_CATEGORIES and category not in known:
            known.append(category)
    return known or None


def _clamp_limit(limit: Optional[int]) -> int:
    return max(1, min(MAX_LIST_LIMIT, limit if limit is not None else DEFAULT_LIST_LIMIT))


class ReviewService:

    def __init__(self, db: Session):
        self.db = db

    def _find_coupon_for_email(self, restaurant_id: UUID, email: str) -> Optional[CustomerCoupon]:
        return self.db.execute(
            select(CustomerCoupon).where(
                CustomerCoupon.restaurant_id == restaurant_id,
                CustomerCoupon.email == email,
            )
        ).scalar_one_or_none()

    def _code_taken(self, code: str) -> bool:
        return self.db.execute(
            select(CustomerCoupon.id).where(CustomerCoupon.coupon_code == code)
        ).first() is not None

    def submit_review(
        self,
        public_id: str,
        slug: str,
        stars: Union[int, float],
        feedback_text: Optional[str] = None,
        liked_categories: Optional[Sequence[str]] = None,
        email: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ReviewSubmissionResult:
        """
        Record a QR funnel submission.

        Raises:
            NotFound: no restaurant for (public_id, slug)
            InvalidEmail: email given without an "@"; nothing is stored
            CodeGenerationExhausted: every coupon code candidate collided;
                the submission is rolled back
        """
        now = resolve_now(now)
        stars = clamp_stars(stars)
        sentiment = sentiment_for_stars(stars)

        restaurant = RestaurantService(self.db).find_by_public_key(public_id, slug)
        if restaurant is None:
            raise NotFound("Restaurant not found")

        # Blank email means the customer skipped the coupon step
        normalized_email = normalize_email(email) if email and email.strip() else None

        review = Review(
            restaurant_id=restaurant.id,
            stars=stars,
            feedback_text=(feedback_text or "").strip() or None,
            liked_categories=clean_liked_categories(liked_categories) if sentiment == "positive" else None,
            is_public=sentiment == "positive",
            created_at=now,
        )
        self.db.add(review)
        self.db.flush()

        if normalized_email is None:
            self.db.commit()
            return ReviewSubmissionResult(review_id=review.id)

        existing = self._find_coupon_for_email(restaurant.id, normalized_email)
        if existing is not None:
            self.db.commit()
            return ReviewSubmissionResult(
                review_id=review.id,
                already_received_coupon=True,
                existing_coupon_code=existing.coupon_code,
            )

        return self._issue_coupon(restaurant, review, sentiment, normalized_email, now)

    def _issue_coupon(
        self,
        restaurant: Restaurant,
        review: Review,
        sentiment: str,
        email: str,
        now: datetime,
    ) -> ReviewSubmissionResult:
        policy = find_policy(self.db, restaurant.id, sentiment)
        delay_minutes = resolve_delay_minutes(policy)
        scheduled_for = now + timedelta(minutes=delay_minutes)

        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_coupon_code()
            if self._code_taken(code):
                continue

            coupon_id = uuid4()
            try:
                with self.db.begin_nested():
                    self.db.add(CustomerCoupon(
                        id=coupon_id,
                        review_id=review.id,
                        restaurant_id=restaurant.id,
                        email=email,
                        coupon_code=code,
                        is_redeemed=False,
                        created_at=now,
                        scheduled_for=scheduled_for,
                    ))
                    enqueue_job(
                        self.db,
                        COUPON_EMAIL_JOB,
                        payload={
                            "customer_coupon_id": str(coupon_id),
                            "to": email,
                            "restaurant_name": restaurant.name,
                            "coupon_code": code,
                            "sentiment_type": sentiment,
                            "review_url": restaurant.review_url,
                            "offer_title": policy.title if policy else None,
                            "offer_reward": policy.reward if policy else None,
                            "email_tone": restaurant.email_tone,
                            "customer_feedback": review.feedback_text,
                            "liked_categories": review.liked_categories,
                        },
                        run_after=scheduled_for,
                        now=now,
                    )
            except IntegrityError:
                # A concurrent submission with the same email may have won
                existing = self._find_coupon_for_email(restaurant.id, email)
                if existing is not None:
                    self.db.commit()
                    return ReviewSubmissionResult(
                        review_id=review.id,
                        already_received_coupon=True,
                        existing_coupon_code=existing.coupon_code,
                    )
                continue

            self.db.commit()
            logger.info(
                f"Issued {sentiment} coupon {code} for restaurant {restaurant.id}, "
                f"email due in {delay_minutes} min"
            )
            return ReviewSubmissionResult(review_id=review.id, coupon_code=code)

        self.db.rollback()
        raise CodeGenerationExhausted("Failed to generate coupon code")

    def list_reviews(self, owner: User, restaurant_id: UUID, limit: Optional[int] = None) -> List[Review]:
        """Newest reviews first, at most 200."""
        restaurant = get_owned_restaurant(self.db, owner, restaurant_id)
        return list(
            self.db.execute(
                select(Review)
                .where(Review.restaurant_id == restaurant.id)
                .order_by(Review.created_at.desc(), Review.id.desc())
                .limit(_clamp_limit(limit))
            ).scalars().all()
        )

    def list_reviews_page(
        self,
        owner: User,
        restaurant_id: UUID,
        since: Optional[datetime] = None,
        cursor: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> ReviewPage:
        """
        One page of reviews, newest first, optionally only those created at or after `since`.

        The cursor is the offset of the next page, as returned in `next_cursor`.
        """
        restaurant = get_owned_restaurant(self.db, owner, restaurant_id)
        page_size = _clamp_limit(page_size)
        offset = max(0, cursor or 0)

        stmt = select(Review).where(Review.restaurant_id == restaurant.id)
        if since is not None:
            stmt = stmt.where(Review.created_at >= since)

        # Fetch one extra row to know whether another page exists
        rows = list(
            self.db.execute(
                stmt.order_by(Review.created_at.desc(), Review.id.desc())
                .offset(offset)
                .limit(page_size + 1)
            ).scalars().all()
        )

        is_done = len(rows) <= page_size
        return ReviewPage(
            reviews=rows[:page_size],
            next_cursor=None if is_done else offset + page_size,
            is_done=is_done,
        )

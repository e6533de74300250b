"""
Review endpoints: public QR funnel submission and owner feedback lists.
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from restostar.core.deps import get_current_user
from restostar.db.session import get_db
from restostar.models.user import User
from restostar.schemas.review import (
    ReviewListResponse,
    ReviewPageResponse,
    ReviewResponse,
    ReviewSubmit,
    ReviewSubmitResponse,
)
from restostar.services.reviews import ReviewService

router = APIRouter(tags=["reviews"])


@router.post("/public/reviews", response_model=ReviewSubmitResponse, status_code=status.HTTP_201_CREATED)
def submit_review(submission: ReviewSubmit, db: Session = Depends(get_db)):
    """
    Submit a review from the QR funnel.

    With an email, the first submission per restaurant gets a coupon code;
    later ones get `already_received_coupon=true` and the earlier code.
    """
    result = ReviewService(db).submit_review(
        public_id=submission.public_id,
        slug=submission.slug,
        stars=submission.stars,
        feedback_text=submission.feedback_text,
        liked_categories=submission.liked_categories,
        email=submission.email,
    )
    return ReviewSubmitResponse(
        review_id=result.review_id,
        coupon_code=result.coupon_code,
        already_received_coupon=result.already_received_coupon,
        existing_coupon_code=result.existing_coupon_code,
    )


@router.get("/restaurants/{restaurant_id}/reviews", response_model=ReviewListResponse)
def list_reviews(
    restaurant_id: UUID,
    limit: int = Query(50, description="Max reviews to return (1-200)"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Most recent reviews for a restaurant the caller owns."""
    reviews = ReviewService(db).list_reviews(current_user, restaurant_id, limit)
    return ReviewListResponse(
        reviews=[ReviewResponse.model_validate(r) for r in reviews],
        total=len(reviews),
    )


@router.get("/restaurants/{restaurant_id}/reviews/page", response_model=ReviewPageResponse)
def list_reviews_page(
    restaurant_id: UUID,
    since: Optional[datetime] = Query(None, description="Only reviews created at or after this time (UTC)"),
    cursor: Optional[int] = Query(None, description="next_cursor from the previous page"),
    page_size: int = Query(50, description="Reviews per page (1-200)"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    page = ReviewService(db).list_reviews_page(
        current_user,
        restaurant_id,
        since=since,
        cursor=cursor,
        page_size=page_size,
    )
    return ReviewPageResponse(
        reviews=[ReviewResponse.model_validate(r) for r in page.reviews],
        next_cursor=page.next_cursor,
        is_done=page.is_done,
    )

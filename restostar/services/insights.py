"""
AI feedback insights, cached per restaurant and time range.
"""
from datetime import datetime, timedelta
from typing import Any, List, Optional
from uuid import UUID
import logging

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from restostar.core.clock import resolve_now
from restostar.core.errors import UpstreamError, ValidationError
from restostar.models.insight import Insight, TIME_RANGES
from restostar.models.review import Review
from restostar.models.user import User
from restostar.services.restaurants import get_owned_restaurant
from restostar.services.text_generation import TextGenerationClient

logger = logging.getLogger(__name__)

RECENT_REVIEWS_LIMIT = 200
PROMPT_REVIEWS_LIMIT = 120
MAX_LIST_ITEMS = 5

TIME_RANGE_WINDOWS = {
    "daily": timedelta(hours=24),
    "monthly": timedelta(days=30),
    "all": None,
}


class InsightDraft(BaseModel):
    """
    Generated insight as parsed from the model's JSON.

    A blank or missing summary is fatal; list fields that are missing or not
    lists become empty lists.
    """
    sentimentSummary: str
    keyComplaints: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)

    @field_validator("sentimentSummary", mode="before")
    @classmethod
    def require_summary(cls, v: Any) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("sentimentSummary is required")
        return v.strip()

    @field_validator("keyComplaints", "suggestions", mode="before")
    @classmethod
    def coerce_list(cls, v: Any) -> List[str]:
        if not isinstance(v, list):
            return []
        return [str(item) for item in v][:MAX_LIST_ITEMS]


def build_insight_prompt(restaurant_name: str, time_range: str, reviews: List[Review]) -> str:
    review_lines = []
    for review in reviews[:PROMPT_REVIEWS_LIMIT]:
        line = f"{review.stars}★ {(review.feedback_text or '').strip()}".strip()
        if line:
            review_lines.append(line)

    return "\n".join([
        "You analyze restaurant customer feedback.",
        "Return JSON only (no markdown, no code fences) with keys:",
        "- sentimentSummary: string (short paragraph)",
        "- keyComplaints: string[] (max 5)",
        "- suggestions: string[] (max 5, actionable)",
        "",
        f"Restaurant: {restaurant_name}",
        f"Time range: {time_range}",
        "",
        "Reviews:",
        *review_lines,
    ])


class InsightService:

    def __init__(self, db: Session, text_client: Optional[TextGenerationClient] = None):
        self.db = db
        # Only generation needs a client; cached reads never call out
        self.text_client = text_client

    def _find(self, restaurant_id: UUID, time_range: str) -> Optional[Insight]:
        return self.db.execute(
            select(Insight).where(
                Insight.restaurant_id == restaurant_id,
                Insight.time_range == time_range,
            )
        ).scalar_one_or_none()

    def get_cached(self, owner: User, restaurant_id: UUID, time_range: str) -> Optional[Insight]:
        _check_time_range(time_range)
        restaurant = get_owned_restaurant(self.db, owner, restaurant_id)
        return self._find(restaurant.id, time_range)

    def generate(self, owner: User, restaurant_id: UUID, time_range: str, now: Optional[datetime] = None) -> Insight:
        """
        Summarize recent reviews and replace the cached insight.

        Raises:
            UpstreamError: generation failed or returned unusable JSON; the
                previously cached insight is left as it was
        """
        now = resolve_now(now)
        _check_time_range(time_range)
        restaurant = get_owned_restaurant(self.db, owner, restaurant_id)

        reviews = list(
            self.db.execute(
                select(Review)
                .where(Review.restaurant_id == restaurant.id)
                .order_by(Review.created_at.desc())
                .limit(RECENT_REVIEWS_LIMIT)
            ).scalars().all()
        )

        window = TIME_RANGE_WINDOWS[time_range]
        if window is not None:
            since = now - window
            reviews = [r for r in reviews if r.created_at >= since]

        prompt = build_insight_prompt(restaurant.name, time_range, reviews)
        text_client = self.text_client or TextGenerationClient()
        # Release the connection before the slow upstream call
        self.db.commit()
        raw = text_client.generate_json(prompt)

        try:
            draft = InsightDraft.model_validate(raw)
        except PydanticValidationError as e:
            logger.warning(f"Unusable insight response for restaurant {restaurant.id}: {e}")
            raise UpstreamError("Text generation response missing sentimentSummary")

        values = dict(
            sentiment_summary=draft.sentimentSummary,
            key_complaints=draft.keyComplaints,
            suggestions=draft.suggestions,
            generated_at=now,
        )

        insight = self._find(restaurant.id, time_range)
        if insight is None:
            try:
                with self.db.begin_nested():
                    insight = Insight(restaurant_id=restaurant.id, time_range=time_range, **values)
                    self.db.add(insight)
            except IntegrityError:
                insight = self._find(restaurant.id, time_range)
                if insight is None:
                    raise

        for field, value in values.items():
            setattr(insight, field, value)

        self.db.commit()
        self.db.refresh(insight)
        logger.info(f"Generated {time_range} insight for restaurant {restaurant.id} from {len(reviews)} reviews")
        return insight


def _check_time_range(time_range: str) -> None:
    if time_range not in TIME_RANGES:
        raise ValidationError("timeRange must be daily, monthly or all")

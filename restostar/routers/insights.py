"""
AI insight endpoints.
"""
from typing import Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from restostar.core.deps import get_current_user
from restostar.db.session import get_db
from restostar.models.user import User
from restostar.schemas.insight import InsightResponse
from restostar.services.insights import InsightService
from restostar.services.text_generation import TextGenerationClient

router = APIRouter(prefix="/restaurants/{restaurant_id}/insights", tags=["insights"])

TimeRange = Literal["daily", "monthly", "all"]


def get_text_client() -> TextGenerationClient:
    return TextGenerationClient()


@router.get("/{time_range}", response_model=Optional[InsightResponse])
def get_insight(
    restaurant_id: UUID,
    time_range: TimeRange,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Cached insight for the range, or null if never generated."""
    insight = InsightService(db).get_cached(current_user, restaurant_id, time_range)
    return InsightResponse.model_validate(insight) if insight else None


@router.post("/{time_range}", response_model=InsightResponse)
def generate_insight(
    restaurant_id: UUID,
    time_range: TimeRange,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    text_client: TextGenerationClient = Depends(get_text_client),
):
    """
    Summarize recent reviews with the text generator and cache the result.

    Returns 502 if generation fails; the previous insight is kept.
    """
    insight = InsightService(db, text_client=text_client).generate(current_user, restaurant_id, time_range)
    return InsightResponse.model_validate(insight)

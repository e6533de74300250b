"""
AI insight schemas.
"""
from datetime import datetime
from typing import List
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class InsightResponse(BaseModel):
    id: UUID
    restaurant_id: UUID
    time_range: str
    sentiment_summary: str
    key_complaints: List[str]
    suggestions: List[str]
    generated_at: datetime

    model_config = ConfigDict(from_attributes=True)

"""
Restaurant Pydantic schemas for API request/response models.
"""
from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

EmailTone = Literal["assist", "manual"]


class RestaurantCreate(BaseModel):
    name: str
    slug: str
    review_url: str
    email_tone: EmailTone = "assist"
    logo_url: Optional[str] = None


class RestaurantUpdate(BaseModel):
    """Partial update; only fields present in the request body change."""
    name: Optional[str] = None
    slug: Optional[str] = None
    review_url: Optional[str] = None
    email_tone: Optional[EmailTone] = None
    logo_url: Optional[str] = None


class RestaurantResponse(BaseModel):
    id: UUID
    public_id: str
    slug: str
    name: str
    logo_url: Optional[str] = None
    review_url: str
    email_tone: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RestaurantListResponse(BaseModel):
    restaurants: List[RestaurantResponse]
    total: int


class PublicRestaurantResponse(BaseModel):
    """Shown on the QR landing page."""
    public_id: str
    slug: str
    name: str
    logo_url: Optional[str] = None
    review_url: str

    model_config = ConfigDict(from_attributes=True)

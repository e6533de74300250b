"""
Restaurant endpoints: owner CRUD and the public QR landing lookup.
"""
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from restostar.core.deps import get_current_user
from restostar.core.errors import NotFound
from restostar.db.session import get_db
from restostar.models.user import User
from restostar.schemas.restaurant import (
    PublicRestaurantResponse,
    RestaurantCreate,
    RestaurantListResponse,
    RestaurantResponse,
    RestaurantUpdate,
)
from restostar.services.restaurants import RestaurantService

router = APIRouter(tags=["restaurants"])


@router.get("/restaurants", response_model=RestaurantListResponse)
def list_my_restaurants(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List restaurants owned by the current user (empty list if none)."""
    restaurants = RestaurantService(db).list_owned(current_user)
    return RestaurantListResponse(
        restaurants=[RestaurantResponse.model_validate(r) for r in restaurants],
        total=len(restaurants),
    )


@router.post("/restaurants", response_model=RestaurantResponse, status_code=status.HTTP_201_CREATED)
def create_restaurant(
    data: RestaurantCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Create a restaurant and allocate its public QR id.

    The slug is normalized ("Joe's Diner" -> "joes-diner") and must be
    unique among the owner's restaurants.
    """
    restaurant = RestaurantService(db).create_restaurant(
        owner=current_user,
        name=data.name,
        slug=data.slug,
        review_url=data.review_url,
        email_tone=data.email_tone,
        logo_url=data.logo_url,
    )
    return RestaurantResponse.model_validate(restaurant)


@router.get("/restaurants/{restaurant_id}", response_model=RestaurantResponse)
def get_restaurant(
    restaurant_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    restaurant = RestaurantService(db).get_owned(current_user, restaurant_id)
    return RestaurantResponse.model_validate(restaurant)


@router.patch("/restaurants/{restaurant_id}", response_model=RestaurantResponse)
def update_restaurant(
    restaurant_id: UUID,
    update_data: RestaurantUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update any subset of name, slug, review URL, email tone and logo."""
    restaurant = RestaurantService(db).update_restaurant(
        current_user,
        restaurant_id,
        update_data.model_dump(exclude_unset=True),
    )
    return RestaurantResponse.model_validate(restaurant)


@router.get("/public/restaurants/{public_id}/{slug}", response_model=PublicRestaurantResponse)
def get_public_restaurant(public_id: str, slug: str, db: Session = Depends(get_db)):
    """Anonymous lookup used by the QR landing page."""
    view = RestaurantService(db).get_public(public_id, slug)
    if view is None:
        raise NotFound("Restaurant not found")
    return PublicRestaurantResponse.model_validate(view)

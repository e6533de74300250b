"""
Restaurant registry: creation, public lookup and owner-scoped access.

Every other service goes through `get_owned_restaurant` / `assert_ownership`
before touching a restaurant's data.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from restostar.core.clock import resolve_now
from restostar.core.errors import (
    Forbidden,
    IdGenerationExhausted,
    InvalidSlug,
    NotFound,
    SlugConflict,
    ValidationError,
)
from restostar.core.strings import generate_public_id, normalize_slug
from restostar.models.restaurant import Restaurant, EMAIL_TONES
from restostar.models.user import User

logger = logging.getLogger(__name__)

MAX_PUBLIC_ID_ATTEMPTS = 5
UPDATABLE_FIELDS = {"name", "slug", "review_url", "email_tone", "logo_url"}


@dataclass(frozen=True)
class PublicRestaurantView:
    """What an anonymous QR visitor may see. No owner or internal ids."""
    public_id: str
    slug: str
    name: str
    logo_url: Optional[str]
    review_url: str


def assert_ownership(user: User, restaurant: Optional[Restaurant]) -> Restaurant:
    if restaurant is None:
        raise NotFound("Restaurant not found")
    if restaurant.owner_id != user.id:
        raise Forbidden("Unauthorized")
    return restaurant


def get_owned_restaurant(db: Session, user: User, restaurant_id: UUID) -> Restaurant:
    """Load a restaurant the user owns, raising NotFound / Forbidden otherwise."""
    return assert_ownership(user, db.get(Restaurant, restaurant_id))


def _clean_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Restaurant name is required")
    return name


def _clean_review_url(url: str) -> str:
    url = (url or "").strip()
    if not url:
        raise ValidationError("Review URL is required")
    if not (url.startswith("http://") or url.startswith("https://")):
        raise ValidationError("Review URL must start with http(s)://")
    return url


def _clean_slug(slug: str) -> str:
    normalized = normalize_slug(slug or "")
    if not normalized:
        raise InvalidSlug("Invalid slug")
    return normalized


def _clean_email_tone(email_tone: str) -> str:
    if email_tone not in EMAIL_TONES:
        raise ValidationError(f"emailTone must be one of {', '.join(EMAIL_TONES)}")
    return email_tone


def _clean_logo_url(logo_url: Optional[str]) -> Optional[str]:
    if logo_url is None:
        return None
    return logo_url.strip() or None


class RestaurantService:
    """Owner-facing restaurant CRUD plus the anonymous QR lookup."""

    def __init__(self, db: Session):
        self.db = db

    def _slug_taken(self, owner_id: UUID, slug: str, exclude_id: Optional[UUID] = None) -> bool:
        stmt = select(Restaurant.id).where(
            Restaurant.owner_id == owner_id,
            Restaurant.slug == slug,
        )
        if exclude_id is not None:
            stmt = stmt.where(Restaurant.id != exclude_id)
        return self.db.execute(stmt).first() is not None

    def _public_id_taken(self, public_id: str) -> bool:
        return self.db.execute(
            select(Restaurant.id).where(Restaurant.public_id == public_id)
        ).first() is not None

    def create_restaurant(
        self,
        owner: User,
        name: str,
        slug: str,
        review_url: str,
        email_tone: str = "assist",
        logo_url: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Restaurant:
        """
        Create a restaurant with a fresh public id.

        Raises:
            ValidationError: empty name, bad review URL, unknown tone
            InvalidSlug: slug normalizes to nothing
            SlugConflict: the owner already uses this slug
            IdGenerationExhausted: every public id candidate collided
        """
        now = resolve_now(now)
        name = _clean_name(name)
        review_url = _clean_review_url(review_url)
        slug = _clean_slug(slug)
        email_tone = _clean_email_tone(email_tone)
        logo_url = _clean_logo_url(logo_url)

        if self._slug_taken(owner.id, slug):
            raise SlugConflict("Slug already in use")

        for _ in range(MAX_PUBLIC_ID_ATTEMPTS):
            public_id = generate_public_id()
            if self._public_id_taken(public_id):
                continue

            restaurant = Restaurant(
                owner_id=owner.id,
                public_id=public_id,
                slug=slug,
                name=name,
                logo_url=logo_url,
                review_url=review_url,
                email_tone=email_tone,
                created_at=now,
                updated_at=now,
            )
            try:
                with self.db.begin_nested():
                    self.db.add(restaurant)
            except IntegrityError:
                # Either a concurrent create took the slug, or the public id collided
                if self._slug_taken(owner.id, slug):
                    raise SlugConflict("Slug already in use")
                continue

            self.db.commit()
            self.db.refresh(restaurant)
            logger.info(f"Created restaurant {restaurant.id} ({restaurant.public_id}/{restaurant.slug})")
            return restaurant

        raise IdGenerationExhausted("Failed to generate public id")

    def update_restaurant(self, owner: User, restaurant_id: UUID, changes: Dict[str, Any]) -> Restaurant:
        """Apply a partial update. Keys left out of `changes` are untouched."""
        restaurant = get_owned_restaurant(self.db, owner, restaurant_id)

        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        patch: Dict[str, Any] = {}
        if "name" in changes:
            patch["name"] = _clean_name(changes["name"])
        if "review_url" in changes:
            patch["review_url"] = _clean_review_url(changes["review_url"])
        if "email_tone" in changes:
            patch["email_tone"] = _clean_email_tone(changes["email_tone"])
        if "logo_url" in changes:
            patch["logo_url"] = _clean_logo_url(changes["logo_url"])
        if "slug" in changes:
            slug = _clean_slug(changes["slug"])
            if self._slug_taken(owner.id, slug, exclude_id=restaurant.id):
                raise SlugConflict("Slug already in use")
            patch["slug"] = slug

        try:
            with self.db.begin_nested():
                for field, value in patch.items():
                    setattr(restaurant, field, value)
        except IntegrityError:
            raise SlugConflict("Slug already in use")

        self.db.commit()
        self.db.refresh(restaurant)
        return restaurant

    def find_by_public_key(self, public_id: str, slug: str) -> Optional[Restaurant]:
        return self.db.execute(
            select(Restaurant).where(
                Restaurant.public_id == public_id,
                Restaurant.slug == normalize_slug(slug or ""),
            )
        ).scalar_one_or_none()

    def get_public(self, public_id: str, slug: str) -> Optional[PublicRestaurantView]:
        restaurant = self.find_by_public_key(public_id, slug)
        if restaurant is None:
            return None

        return PublicRestaurantView(
            public_id=restaurant.public_id,
            slug=restaurant.slug,
            name=restaurant.name,
            logo_url=restaurant.logo_url,
            review_url=restaurant.review_url,
        )

    def list_owned(self, owner: User) -> List[Restaurant]:
        return list(
            self.db.execute(
                select(Restaurant)
                .where(Restaurant.owner_id == owner.id)
                .order_by(Restaurant.created_at.desc())
            ).scalars().all()
        )

    def get_owned(self, owner: User, restaurant_id: UUID) -> Restaurant:
        return get_owned_restaurant(self.db, owner, restaurant_id)

"""
Seed the demo restaurant used to try the QR review flow.

    python -m restostar.scripts.seed_demo

The demo funnel lives at /r/demo/demo.
"""
from typing import Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from restostar.core.clock import utcnow
from restostar.db.session import SessionLocal
from restostar.models.restaurant import Restaurant
from restostar.models.user import User

DEMO_EXTERNAL_ID = "demo_system_user"
DEMO_PUBLIC_ID = "demo"
DEMO_SLUG = "demo"


def seed(db: Session) -> Tuple[Restaurant, bool]:
    """Create the demo owner and restaurant if missing. Returns (restaurant, created)."""
    existing = db.execute(
        select(Restaurant).where(
            Restaurant.public_id == DEMO_PUBLIC_ID,
            Restaurant.slug == DEMO_SLUG,
        )
    ).scalar_one_or_none()
    if existing:
        return existing, False

    user = db.execute(
        select(User).where(User.external_id == DEMO_EXTERNAL_ID)
    ).scalar_one_or_none()
    if not user:
        user = User(
            external_id=DEMO_EXTERNAL_ID,
            name="Demo User",
            email="demo@restostar.local",
        )
        db.add(user)
        db.flush()

    now = utcnow()
    restaurant = Restaurant(
        owner_id=user.id,
        public_id=DEMO_PUBLIC_ID,
        slug=DEMO_SLUG,
        name="Restostar",
        review_url="https://maps.google.com/?cid=demo",
        email_tone="assist",
        created_at=now,
        updated_at=now,
    )
    db.add(restaurant)
    db.commit()
    db.refresh(restaurant)
    return restaurant, True


if __name__ == "__main__":
    session = SessionLocal()
    try:
        restaurant, created = seed(session)
        if created:
            print(f"Demo restaurant created: {restaurant.id}")
        else:
            print(f"Demo restaurant already exists: {restaurant.id}")
    finally:
        session.close()

"""
Maps identity provider principals to owner rows.
"""
from typing import Optional
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from restostar.core.errors import Unauthenticated
from restostar.core.security import ExternalIdentity
from restostar.models.user import User

logger = logging.getLogger(__name__)


def get_user_by_external_id(db: Session, external_id: str) -> Optional[User]:
    return db.execute(
        select(User).where(User.external_id == external_id)
    ).scalar_one_or_none()


def resolve_or_create_user(
    db: Session,
    identity: Optional[ExternalIdentity],
    name: Optional[str] = None,
    email: Optional[str] = None,
) -> User:
    """
    Look up the owner for an identity, inserting the row on first sight.

    Explicit name/email override the token claims. Two first requests racing
    each other both end up with the same row: the loser's insert hits the
    unique external_id and re-reads the winner's.
    """
    if identity is None:
        raise Unauthenticated("Not authenticated")

    name = name or identity.name
    email = email or identity.email

    user = get_user_by_external_id(db, identity.subject)
    if user is not None:
        changed = False
        if name and user.name != name:
            user.name = name
            changed = True
        if email and user.email != email:
            user.email = email
            changed = True
        if changed:
            db.commit()
            db.refresh(user)
        return user

    try:
        with db.begin_nested():
            user = User(external_id=identity.subject, name=name, email=email)
            db.add(user)
    except IntegrityError:
        user = get_user_by_external_id(db, identity.subject)
        if user is None:
            raise
        return user

    db.commit()
    db.refresh(user)
    logger.info(f"Created owner {user.id} for external identity")
    return user

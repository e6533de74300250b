"""
Owner identity endpoints.

Sign-in itself happens at the identity provider; these endpoints resolve the
provider's principal to an owner row.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from restostar.core.deps import get_current_identity, get_current_user
from restostar.core.security import ExternalIdentity
from restostar.db.session import get_db
from restostar.models.user import User
from restostar.schemas.auth import UserResponse, UserUpdate
from restostar.services.identity import resolve_or_create_user

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)) -> User:
    """
    Get the current owner's profile, creating it on first sign-in.
    """
    return current_user


@router.post("/me", response_model=UserResponse)
def upsert_me(
    update: UserUpdate,
    identity: ExternalIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> User:
    """
    Create or refresh the owner's profile, optionally overriding the
    name/email the identity provider supplied.
    """
    return resolve_or_create_user(db, identity, name=update.name, email=update.email)

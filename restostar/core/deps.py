"""
FastAPI dependencies for authenticated owner routes.
"""
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from restostar.core.errors import Unauthenticated
from restostar.core.security import ExternalIdentity, decode_identity_token
from restostar.db.session import get_db
from restostar.models.user import User
from restostar.services.identity import resolve_or_create_user

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> ExternalIdentity:
    """Identity from the bearer token. Raises Unauthenticated if absent or invalid."""
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("Not authenticated")

    identity = decode_identity_token(credentials.credentials)
    if identity is None:
        raise Unauthenticated("Invalid or expired token")
    return identity


def get_current_user(
    identity: ExternalIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> User:
    """Owner row for the caller, created on first request."""
    return resolve_or_create_user(db, identity)

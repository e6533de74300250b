"""
Identity token verification.

Owners sign in with the external identity provider; the API only verifies the
bearer tokens it issues and reads the identity claims out of them.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
import logging

from jose import jwt, JWTError

from restostar.core.config import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExternalIdentity:
    """Authenticated principal as asserted by the identity provider."""
    subject: str
    name: Optional[str] = None
    email: Optional[str] = None


def decode_identity_token(token: str) -> Optional[ExternalIdentity]:
    """Verify a provider token. Returns the identity or None if invalid."""
    settings = get_settings()

    options = {"verify_aud": settings.AUTH_JWT_AUDIENCE is not None}
    try:
        payload = jwt.decode(
            token,
            settings.AUTH_JWT_SECRET,
            algorithms=[settings.AUTH_JWT_ALGORITHM],
            audience=settings.AUTH_JWT_AUDIENCE,
            issuer=settings.AUTH_JWT_ISSUER,
            options=options,
        )
    except JWTError as e:
        logger.info(f"Rejected identity token: {e}")
        return None

    subject = payload.get("sub")
    if not subject:
        return None

    return ExternalIdentity(
        subject=str(subject),
        name=payload.get("name") or None,
        email=payload.get("email") or None,
    )


def create_identity_token(
    subject: str,
    name: Optional[str] = None,
    email: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
    **extra_claims: Any,
) -> str:
    """
    Sign a token the way the identity provider does.

    Used by the test suite and for local development against a fake
    provider; production tokens come from the provider itself.
    """
    settings = get_settings()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=30))

    to_encode = {"sub": subject, "exp": expire, **extra_claims}
    if name:
        to_encode["name"] = name
    if email:
        to_encode["email"] = email
    if settings.AUTH_JWT_ISSUER:
        to_encode.setdefault("iss", settings.AUTH_JWT_ISSUER)
    if settings.AUTH_JWT_AUDIENCE:
        to_encode.setdefault("aud", settings.AUTH_JWT_AUDIENCE)

    return jwt.encode(to_encode, settings.AUTH_JWT_SECRET, algorithm=settings.AUTH_JWT_ALGORITHM)

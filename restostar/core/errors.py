"""
Domain errors raised by services and mapped to HTTP responses in main.py.
"""
from fastapi import status


class RestostarError(Exception):
    """Base class for expected, caller-visible failures."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class Unauthenticated(RestostarError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error = "unauthenticated"


class NotFound(RestostarError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "not_found"


class Forbidden(RestostarError):
    status_code = status.HTTP_403_FORBIDDEN
    error = "forbidden"


class ValidationError(RestostarError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error = "validation_error"


class InvalidEmail(ValidationError):
    error = "invalid_email"


class InvalidCode(ValidationError):
    error = "invalid_code"


class InvalidSlug(ValidationError):
    error = "invalid_slug"


class ConflictError(RestostarError):
    status_code = status.HTTP_409_CONFLICT
    error = "conflict"


class SlugConflict(ConflictError):
    error = "slug_conflict"


class IdGenerationExhausted(ConflictError):
    error = "id_generation_exhausted"


class CodeGenerationExhausted(ConflictError):
    error = "code_generation_exhausted"


class UpstreamError(RestostarError):
    status_code = status.HTTP_502_BAD_GATEWAY
    error = "upstream_error"


class AlreadyRedeemed(RestostarError):
    """Redeeming a coupon that was already used. Expected by staff, not a generic conflict."""

    status_code = status.HTTP_409_CONFLICT
    error = "already_redeemed"

"""
Identifier, slug and input normalization helpers shared by every service.
"""
import math
import re
import secrets
from typing import Literal, Union

from restostar.core.errors import InvalidCode, InvalidEmail

Sentiment = Literal["positive", "negative"]

# Lowercase, no 0/1/i/l/o: easy to read back from a printed QR URL
PUBLIC_ID_ALPHABET = "abcdefghjkmnpqrstuvwxyz23456789"
PUBLIC_ID_LENGTH = 10

# Uppercase, no 0/1/I/O: staff type these in at the counter
COUPON_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
COUPON_CODE_LENGTH = 8

# Accepted at the redemption boundary, wider than what we generate
COUPON_CODE_PATTERN = re.compile(r"^[A-Z0-9]{6,12}$")

MIN_STARS = 1
MAX_STARS = 5
POSITIVE_STARS_THRESHOLD = 4

_APOSTROPHES = re.compile(r"['’]")
_NON_SLUG_RUN = re.compile(r"[^a-z0-9]+")


def normalize_slug(value: str) -> str:
    """
    Normalize free text into a URL slug.

    "Joe's Diner & Bar " -> "joes-diner-bar". Applying it twice changes nothing.
    """
    slug = value.lower().strip()
    slug = _APOSTROPHES.sub("", slug)
    slug = _NON_SLUG_RUN.sub("-", slug)
    return slug.strip("-")


def _random_chars(alphabet: str, length: int) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_public_id() -> str:
    return _random_chars(PUBLIC_ID_ALPHABET, PUBLIC_ID_LENGTH)


def generate_coupon_code() -> str:
    return _random_chars(COUPON_CODE_ALPHABET, COUPON_CODE_LENGTH)


def normalize_email(value: str) -> str:
    email = value.strip().lower()
    if "@" not in email:
        raise InvalidEmail("Invalid email")
    return email


def normalize_coupon_code(value: str) -> str:
    """Uppercase and validate a coupon code typed by staff or an owner."""
    code = (value or "").strip().upper()
    if not COUPON_CODE_PATTERN.match(code):
        raise InvalidCode("Invalid coupon code format")
    return code


def clamp_stars(value: Union[int, float]) -> int:
    """
    Clamp into [1, 5], then floor: 5.9 -> 5, 0 -> 1, -3 -> 1.

    Infinities clamp to the nearest bound and NaN counts as the lowest rating.
    """
    if math.isnan(value):
        return MIN_STARS
    return math.floor(max(MIN_STARS, min(MAX_STARS, value)))


def sentiment_for_stars(stars: int) -> Sentiment:
    return "positive" if stars >= POSITIVE_STARS_THRESHOLD else "negative"

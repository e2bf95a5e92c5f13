from __future__ import annotations

import math
from collections.abc import Callable
from datetime import UTC, datetime

from tubeheads_backend.errors import ValidationError

Clock = Callable[[], datetime]

MIN_RATING = 0.0
MAX_RATING = 5.0
MIN_PERSONAL_RATING = 1
MAX_PERSONAL_RATING = 5


def utc_now() -> datetime:
    return datetime.now(UTC)


def iso_timestamp(clock: Clock) -> str:
    # Fixed precision keeps stored timestamps lexically sortable.
    return clock().astimezone(UTC).isoformat(timespec="microseconds")


def require_id(value: object, name: str) -> str:
    text = str(value if value is not None else "").strip()
    if not text:
        raise ValidationError(f"{name} is required")
    return text


def membership_key(owner_id: str, item_id: str) -> str:
    return f"{owner_id}:{item_id}"


def validate_rating(value: object) -> float:
    """Public star rating: any number in [0, 5]."""

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"rating must be a number, got {value!r}")
    rating = float(value)
    if math.isnan(rating) or not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(f"rating must be between {MIN_RATING:g} and {MAX_RATING:g}, got {value!r}")
    return rating


def validate_personal_rating(value: object) -> int:
    """Watched-set rating: whole stars in [1, 5]."""

    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"personal rating must be a whole number, got {value!r}")
    if not MIN_PERSONAL_RATING <= value <= MAX_PERSONAL_RATING:
        raise ValidationError(
            f"personal rating must be between {MIN_PERSONAL_RATING} and {MAX_PERSONAL_RATING}, got {value!r}"
        )
    return value

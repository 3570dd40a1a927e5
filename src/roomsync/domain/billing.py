"""Stay billing: flat per-night rate times the number of nights.

A night is any started 24h period, so a datetime stay of 49 hours bills
three nights. Whole-day stays bill (check_out - check_in).days.
"""

from __future__ import annotations

from datetime import datetime

from roomsync.domain.errors import ValidationError
from roomsync.domain.models import StayPoint

SECONDS_PER_NIGHT = 86400


def count_nights(check_in: StayPoint, check_out: StayPoint) -> int:
    """Return ceil((check_out - check_in) / 1 day).

    Raises:
        ValidationError: If the points mix date and datetime, or the range
            is empty or reversed.
    """
    if isinstance(check_in, datetime) != isinstance(check_out, datetime):
        raise ValidationError("check_in and check_out must both be dates or both datetimes")

    if check_out <= check_in:
        raise ValidationError("check_out must be after check_in", code="invalid_dates")

    if not isinstance(check_in, datetime):
        return (check_out - check_in).days

    seconds = (check_out - check_in).total_seconds()
    # Integer ceiling; avoids float rounding for long stays.
    whole = int(seconds) // SECONDS_PER_NIGHT
    return whole + (1 if seconds > whole * SECONDS_PER_NIGHT else 0)


def compute_amount(check_in: StayPoint, check_out: StayPoint, price_per_night_cents: int) -> int:
    """Total stay cost in cents: nights x price_per_night_cents."""
    if price_per_night_cents < 0:
        raise ValidationError("price_per_night_cents must be >= 0")
    return count_nights(check_in, check_out) * price_per_night_cents

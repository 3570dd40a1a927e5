"""Clock helpers. Every stamp the domain writes is timezone-aware UTC."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)

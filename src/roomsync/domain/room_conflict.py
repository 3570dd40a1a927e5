"""Room conflict detection.

Overlap formula:  (existing.check_in < new.check_out) AND (existing.check_out > new.check_in)
Strict inequality on both sides: a check-out on the same day (or instant)
as another stay's check-in is not a conflict.

Only blocking statuses (confirmed, checked_in) can conflict. The caller
loads the room's blocking reservations inside its room-scoped unit; the
functions here never touch storage.
"""

from __future__ import annotations

from typing import Iterable

from roomsync.domain.errors import Conflict
from roomsync.domain.models import Reservation, StayPoint
from roomsync.observability.logging import get_logger
from roomsync.observability.redaction import safe_log_context

logger = get_logger(__name__)


class RoomConflictError(Conflict):
    """Raised when a room has an overlapping reservation."""

    code = "room_conflict"

    def __init__(
        self,
        room_id: str,
        conflicting_reservation_id: str,
        existing_check_in: StayPoint,
        existing_check_out: StayPoint,
    ) -> None:
        self.room_id = room_id
        self.conflicting_reservation_id = conflicting_reservation_id
        self.existing_check_in = existing_check_in
        self.existing_check_out = existing_check_out
        super().__init__(
            f"Room {room_id} has a conflicting reservation "
            f"({existing_check_in} to {existing_check_out})"
        )


def overlaps(a_start: StayPoint, a_end: StayPoint, b_start: StayPoint, b_end: StayPoint) -> bool:
    """True iff half-open [a_start, a_end) and [b_start, b_end) intersect."""
    return a_start < b_end and b_start < a_end


def _candidates(
    room_id: str,
    reservations: Iterable[Reservation],
    exclude_id: str | None,
) -> list[Reservation]:
    return [
        r for r in reservations
        if r.room_id == room_id and r.is_blocking and r.id != exclude_id
    ]


def find_conflict(
    room_id: str,
    candidate_start: StayPoint,
    candidate_end: StayPoint,
    blocking_reservations: Iterable[Reservation],
    exclude_id: str | None = None,
) -> Reservation | None:
    """Return the earliest reservation overlapping the candidate, or None.

    Args:
        room_id: Physical room identifier.
        candidate_start: Desired check-in (inclusive).
        candidate_end: Desired check-out (exclusive).
        blocking_reservations: The room's reservations; entries for other
            rooms or in non-blocking statuses are ignored.
        exclude_id: Reservation to ignore (re-checking an existing stay).
    """
    hits = [
        r for r in _candidates(room_id, blocking_reservations, exclude_id)
        if overlaps(r.check_in, r.check_out, candidate_start, candidate_end)
    ]
    if not hits:
        return None

    first = min(hits, key=lambda r: r.check_in)
    logger.warning(
        "room conflict detected",
        extra={
            "extra_fields": safe_log_context(
                room_id=room_id,
                requested_check_in=candidate_start,
                requested_check_out=candidate_end,
                conflicting_reservation_id=first.id,
                existing_check_in=first.check_in,
                existing_check_out=first.check_out,
            )
        },
    )
    return first


def has_conflict(
    room_id: str,
    candidate_start: StayPoint,
    candidate_end: StayPoint,
    blocking_reservations: Iterable[Reservation],
    exclude_id: str | None = None,
) -> bool:
    return any(
        overlaps(r.check_in, r.check_out, candidate_start, candidate_end)
        for r in _candidates(room_id, blocking_reservations, exclude_id)
    )


def assert_no_room_conflict(
    room_id: str,
    candidate_start: StayPoint,
    candidate_end: StayPoint,
    blocking_reservations: Iterable[Reservation],
    exclude_id: str | None = None,
) -> None:
    """Raise RoomConflictError if the candidate overlaps a blocking stay."""
    conflicting = find_conflict(
        room_id,
        candidate_start,
        candidate_end,
        blocking_reservations,
        exclude_id=exclude_id,
    )
    if conflicting is not None:
        raise RoomConflictError(
            room_id=room_id,
            conflicting_reservation_id=conflicting.id,
            existing_check_in=conflicting.check_in,
            existing_check_out=conflicting.check_out,
        )

"""Room status synchronizer: the only writer of Room.status.

The three workflows never set a status. They emit a RoomEvent inside
their room-scoped unit and this module derives the new status from the
transition table below.

Terminal events (CleaningDone, IssueResolved, RoomReleased) are guarded:
they only act on the status they are meant to clear, so a late or stale
one is a no-op. The primary chain (RoomClaimed, RoomOccupied,
RoomVacated) is unguarded and relies on every emitter holding the room
lock, which applies it in commit order.
"""

from __future__ import annotations

from enum import Enum

from roomsync.domain.errors import NotFound
from roomsync.domain.models import OutboxRecord, RoomStatus
from roomsync.domain.store import Session
from roomsync.infra.time import utc_now
from roomsync.observability.correlation import get_correlation_id
from roomsync.observability.logging import get_logger
from roomsync.observability.redaction import safe_log_context

logger = get_logger(__name__)


class RoomEvent(str, Enum):
    ROOM_CLAIMED = "RoomClaimed"
    ROOM_OCCUPIED = "RoomOccupied"
    ROOM_VACATED = "RoomVacated"
    ROOM_RELEASED = "RoomReleased"
    CLEANING_DONE = "CleaningDone"
    URGENT_ISSUE_OPENED = "UrgentIssueOpened"
    ISSUE_RESOLVED = "IssueResolved"


# event -> (required current status or None for "any", new status)
TRANSITIONS: dict[RoomEvent, tuple[RoomStatus | None, RoomStatus]] = {
    RoomEvent.ROOM_CLAIMED: (None, RoomStatus.RESERVED),
    RoomEvent.ROOM_OCCUPIED: (None, RoomStatus.OCCUPIED),
    RoomEvent.ROOM_VACATED: (None, RoomStatus.CLEANING),
    RoomEvent.ROOM_RELEASED: (RoomStatus.RESERVED, RoomStatus.AVAILABLE),
    RoomEvent.CLEANING_DONE: (RoomStatus.CLEANING, RoomStatus.AVAILABLE),
    RoomEvent.URGENT_ISSUE_OPENED: (None, RoomStatus.MAINTENANCE),
    RoomEvent.ISSUE_RESOLVED: (RoomStatus.MAINTENANCE, RoomStatus.AVAILABLE),
}


def next_status(current: RoomStatus, event: RoomEvent) -> RoomStatus | None:
    """New status after `event`, or None when the event is a no-op."""
    required, target = TRANSITIONS[event]
    if required is not None and current != required:
        return None
    return target


def apply_room_event(session: Session, room_id: str, event: RoomEvent) -> RoomStatus:
    """Apply `event` to the room and persist the derived status.

    Must run inside the room's unit. Returns the room's status afterwards.

    Raises:
        NotFound: If the room does not exist.
        VersionConflict: If the room changed underneath the unit.
    """
    room = session.load_room(room_id)
    if room is None:
        raise NotFound(f"Room {room_id} not found", code="room_not_found")

    previous = room.status
    target = next_status(previous, event)

    if target is None:
        logger.info(
            "room event ignored",
            extra={
                "extra_fields": safe_log_context(
                    room_id=room_id, room_event=event, status=previous,
                )
            },
        )
        return previous

    expected_version = room.version
    room.status = target
    room.last_event = event.value
    room.status_changed_at = utc_now()
    session.save_room(room, expected_version)

    session.emit_event(
        OutboxRecord(
            event_type="room.status_changed",
            aggregate_type="room",
            aggregate_id=room_id,
            payload={
                "room_event": event.value,
                "from_status": previous.value,
                "to_status": target.value,
            },
            correlation_id=get_correlation_id() or None,
        )
    )

    logger.info(
        "room status changed",
        extra={
            "extra_fields": safe_log_context(
                room_id=room_id, room_event=event, from_status=previous, to_status=target,
            )
        },
    )
    return target

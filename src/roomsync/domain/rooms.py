"""Read access to the room inventory.

Rooms are created by inventory setup outside this package and their
status is derived by roomsync.domain.room_status; nothing here writes.
"""

from __future__ import annotations

from roomsync.domain.errors import NotFound
from roomsync.domain.models import Room, RoomStatus, parse_enum
from roomsync.domain.store import Store


def get_room(store: Store, room_id: str) -> Room:
    with store.read() as session:
        room = session.load_room(room_id)
    if room is None:
        raise NotFound(f"Room {room_id} not found", code="room_not_found")
    return room


def list_rooms(store: Store, status: str | None = None) -> list[Room]:
    if status is not None:
        status = parse_enum(RoomStatus, status, "status").value
    with store.read() as session:
        return session.list_rooms(status)

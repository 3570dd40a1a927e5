"""Rooms repository - room inventory and the versioned status columns.

Uses raw SQL with psycopg2 (no ORM).
"""

from psycopg2.extensions import cursor as PgCursor

from roomsync.domain.models import Room, RoomStatus
from roomsync.infra.db import fetchall, fetchone, for_update

ROOM_COLUMNS = (
    "id, number, room_type, max_occupancy, price_per_night_cents, "
    "status, version, last_event, status_changed_at"
)


def row_to_room(row: tuple) -> Room:
    return Room(
        id=str(row[0]),
        number=row[1],
        room_type=row[2],
        max_occupancy=row[3],
        price_per_night_cents=row[4],
        status=RoomStatus(row[5]),
        version=row[6],
        last_event=row[7],
        status_changed_at=row[8],
    )


def get_room(cur: PgCursor, room_id: str, *, lock: bool = False) -> Room | None:
    """Fetch a room; with lock=True the row stays locked until commit."""
    query = f"SELECT {ROOM_COLUMNS} FROM rooms WHERE id = %s"
    row = for_update(cur, query, (room_id,)) if lock else fetchone(cur, query, (room_id,))
    return row_to_room(row) if row else None


def list_rooms(cur: PgCursor, status: str | None = None) -> list[Room]:
    if status is None:
        rows = fetchall(cur, f"SELECT {ROOM_COLUMNS} FROM rooms ORDER BY number")
    else:
        rows = fetchall(
            cur,
            f"SELECT {ROOM_COLUMNS} FROM rooms WHERE status = %s ORDER BY number",
            (status,),
        )
    return [row_to_room(row) for row in rows]


def update_room_status(cur: PgCursor, room: Room, expected_version: int) -> Room | None:
    """Write status fields if the stored version still matches.

    Returns:
        The stored room with its bumped version, or None if the version
        moved on.
    """
    cur.execute(
        f"""
        UPDATE rooms
        SET status = %s,
            last_event = %s,
            status_changed_at = %s,
            version = version + 1
        WHERE id = %s AND version = %s
        RETURNING {ROOM_COLUMNS}
        """,
        (
            room.status.value,
            room.last_event,
            room.status_changed_at,
            room.id,
            expected_version,
        ),
    )
    row = cur.fetchone()
    return row_to_room(row) if row else None

"""Reservations repository - persistence for reservation records.

Uses raw SQL with psycopg2 (no ORM).
"""

from psycopg2.extensions import cursor as PgCursor

from roomsync.domain.models import Reservation, ReservationStatus

RESERVATION_COLUMNS = (
    "id, guest_id, room_id, check_in, check_out, number_of_guests, total_cents, "
    "confirmation_number, status, special_requests, booking_source, cancelled_by, "
    "created_at, updated_at, version"
)

# filter name -> SQL predicate
_FILTERS = {
    "status": "status = %s",
    "guest_id": "guest_id = %s",
    "room_id": "room_id = %s",
    "check_in_from": "check_in >= %s",
    "check_out_until": "check_out <= %s",
}


def row_to_reservation(row: tuple) -> Reservation:
    return Reservation(
        id=str(row[0]),
        guest_id=str(row[1]),
        room_id=str(row[2]),
        check_in=row[3],
        check_out=row[4],
        number_of_guests=row[5],
        total_cents=row[6],
        confirmation_number=row[7],
        status=ReservationStatus(row[8]),
        special_requests=row[9],
        booking_source=row[10],
        cancelled_by=str(row[11]) if row[11] else None,
        created_at=row[12],
        updated_at=row[13],
        version=row[14],
    )


def get_reservation(cur: PgCursor, reservation_id: str) -> Reservation | None:
    cur.execute(
        f"SELECT {RESERVATION_COLUMNS} FROM reservations WHERE id = %s",
        (reservation_id,),
    )
    row = cur.fetchone()
    return row_to_reservation(row) if row else None


def list_blocking_for_room(cur: PgCursor, room_id: str) -> list[Reservation]:
    """Confirmed and checked-in reservations on a room, by check-in."""
    cur.execute(
        f"""
        SELECT {RESERVATION_COLUMNS}
        FROM reservations
        WHERE room_id = %s
          AND status IN ('confirmed', 'checked_in')
        ORDER BY check_in
        """,
        (room_id,),
    )
    return [row_to_reservation(row) for row in cur.fetchall()]


def confirmation_number_exists(cur: PgCursor, confirmation_number: str) -> bool:
    cur.execute(
        "SELECT 1 FROM reservations WHERE confirmation_number = %s",
        (confirmation_number,),
    )
    return cur.fetchone() is not None


def insert_reservation(cur: PgCursor, reservation: Reservation) -> Reservation:
    """Insert a new reservation.

    The no_room_overlap exclusion constraint backs up the in-unit
    conflict check; a violation surfaces as psycopg2 ExclusionViolation.
    """
    cur.execute(
        f"""
        INSERT INTO reservations (
            id, guest_id, room_id, check_in, check_out, number_of_guests,
            total_cents, confirmation_number, status, special_requests,
            booking_source, created_at, updated_at, version
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        RETURNING {RESERVATION_COLUMNS}
        """,
        (
            reservation.id,
            reservation.guest_id,
            reservation.room_id,
            reservation.check_in,
            reservation.check_out,
            reservation.number_of_guests,
            reservation.total_cents,
            reservation.confirmation_number,
            reservation.status.value,
            reservation.special_requests,
            reservation.booking_source,
            reservation.created_at,
            reservation.updated_at,
            reservation.version,
        ),
    )
    return row_to_reservation(cur.fetchone())


def update_reservation(
    cur: PgCursor,
    reservation: Reservation,
    expected_version: int,
) -> Reservation | None:
    """Write mutable fields if the stored version still matches.

    Returns:
        The stored reservation, or None if the version moved on.
    """
    cur.execute(
        f"""
        UPDATE reservations
        SET status = %s,
            special_requests = %s,
            cancelled_by = %s,
            updated_at = %s,
            version = version + 1
        WHERE id = %s AND version = %s
        RETURNING {RESERVATION_COLUMNS}
        """,
        (
            reservation.status.value,
            reservation.special_requests,
            reservation.cancelled_by,
            reservation.updated_at,
            reservation.id,
            expected_version,
        ),
    )
    row = cur.fetchone()
    return row_to_reservation(row) if row else None


def list_reservations(cur: PgCursor, filters: dict) -> list[Reservation]:
    """Reservations matching `filters`, newest first. Unknown keys are ignored."""
    clauses = []
    params = []
    for key, predicate in _FILTERS.items():
        if key in filters:
            clauses.append(predicate)
            params.append(filters[key])
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    cur.execute(
        f"SELECT {RESERVATION_COLUMNS} FROM reservations {where} ORDER BY created_at DESC",
        tuple(params),
    )
    return [row_to_reservation(row) for row in cur.fetchall()]

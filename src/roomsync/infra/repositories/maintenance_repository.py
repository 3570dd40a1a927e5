"""Maintenance requests repository.

Uses raw SQL with psycopg2 (no ORM).
"""

from psycopg2.extensions import cursor as PgCursor

from roomsync.domain.models import IssueType, MaintenanceRequest, Priority, RequestStatus

REQUEST_COLUMNS = (
    "id, room_id, reported_by, issue_type, description, status, priority, "
    "assigned_to, estimated_cost_cents, actual_cost_cents, notes, reported_at, resolved_at"
)

_FILTERS = ("status", "issue_type", "room_id", "priority", "reported_by")


def row_to_request(row: tuple) -> MaintenanceRequest:
    return MaintenanceRequest(
        id=str(row[0]),
        room_id=str(row[1]),
        reported_by=str(row[2]),
        issue_type=IssueType(row[3]),
        description=row[4],
        status=RequestStatus(row[5]),
        priority=Priority(row[6]),
        assigned_to=str(row[7]) if row[7] else None,
        estimated_cost_cents=row[8],
        actual_cost_cents=row[9],
        notes=row[10],
        reported_at=row[11],
        resolved_at=row[12],
    )


def get_request(cur: PgCursor, request_id: str) -> MaintenanceRequest | None:
    cur.execute(
        f"SELECT {REQUEST_COLUMNS} FROM maintenance_requests WHERE id = %s",
        (request_id,),
    )
    row = cur.fetchone()
    return row_to_request(row) if row else None


def insert_request(cur: PgCursor, request: MaintenanceRequest) -> MaintenanceRequest:
    cur.execute(
        f"""
        INSERT INTO maintenance_requests (
            id, room_id, reported_by, issue_type, description,
            status, priority, reported_at
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
        RETURNING {REQUEST_COLUMNS}
        """,
        (
            request.id,
            request.room_id,
            request.reported_by,
            request.issue_type.value,
            request.description,
            request.status.value,
            request.priority.value,
            request.reported_at,
        ),
    )
    return row_to_request(cur.fetchone())


def update_request(cur: PgCursor, request: MaintenanceRequest) -> MaintenanceRequest | None:
    cur.execute(
        f"""
        UPDATE maintenance_requests
        SET status = %s,
            priority = %s,
            assigned_to = %s,
            estimated_cost_cents = %s,
            actual_cost_cents = %s,
            notes = %s,
            resolved_at = %s
        WHERE id = %s
        RETURNING {REQUEST_COLUMNS}
        """,
        (
            request.status.value,
            request.priority.value,
            request.assigned_to,
            request.estimated_cost_cents,
            request.actual_cost_cents,
            request.notes,
            request.resolved_at,
            request.id,
        ),
    )
    row = cur.fetchone()
    return row_to_request(row) if row else None


def delete_request(cur: PgCursor, request_id: str) -> bool:
    cur.execute("DELETE FROM maintenance_requests WHERE id = %s RETURNING id", (request_id,))
    return cur.fetchone() is not None


def list_requests(cur: PgCursor, filters: dict) -> list[MaintenanceRequest]:
    clauses = [f"{key} = %s" for key in _FILTERS if key in filters]
    params = tuple(filters[key] for key in _FILTERS if key in filters)
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    cur.execute(
        f"SELECT {REQUEST_COLUMNS} FROM maintenance_requests {where} ORDER BY reported_at DESC",
        params,
    )
    return [row_to_request(row) for row in cur.fetchall()]

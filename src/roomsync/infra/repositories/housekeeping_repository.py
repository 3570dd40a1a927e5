"""Housekeeping tasks repository.

Uses raw SQL with psycopg2 (no ORM).
"""

from psycopg2.extensions import cursor as PgCursor

from roomsync.domain.models import HousekeepingTask, Priority, TaskStatus, TaskType

TASK_COLUMNS = (
    "id, room_id, task_type, scheduled_date, status, assigned_to, priority, "
    "notes, completed_date, created_at, updated_at"
)

_FILTERS = ("status", "task_type", "assigned_to", "room_id", "priority")


def row_to_task(row: tuple) -> HousekeepingTask:
    return HousekeepingTask(
        id=str(row[0]),
        room_id=str(row[1]),
        task_type=TaskType(row[2]),
        scheduled_date=row[3],
        status=TaskStatus(row[4]),
        assigned_to=str(row[5]) if row[5] else None,
        priority=Priority(row[6]),
        notes=row[7],
        completed_date=row[8],
        created_at=row[9],
        updated_at=row[10],
    )


def get_task(cur: PgCursor, task_id: str) -> HousekeepingTask | None:
    cur.execute(f"SELECT {TASK_COLUMNS} FROM housekeeping_tasks WHERE id = %s", (task_id,))
    row = cur.fetchone()
    return row_to_task(row) if row else None


def insert_task(cur: PgCursor, task: HousekeepingTask) -> HousekeepingTask:
    cur.execute(
        f"""
        INSERT INTO housekeeping_tasks (
            id, room_id, task_type, scheduled_date, status, assigned_to,
            priority, notes, created_at, updated_at
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        RETURNING {TASK_COLUMNS}
        """,
        (
            task.id,
            task.room_id,
            task.task_type.value,
            task.scheduled_date,
            task.status.value,
            task.assigned_to,
            task.priority.value,
            task.notes,
            task.created_at,
            task.updated_at,
        ),
    )
    return row_to_task(cur.fetchone())


def update_task(cur: PgCursor, task: HousekeepingTask) -> HousekeepingTask | None:
    cur.execute(
        f"""
        UPDATE housekeeping_tasks
        SET task_type = %s,
            scheduled_date = %s,
            status = %s,
            assigned_to = %s,
            priority = %s,
            notes = %s,
            completed_date = %s,
            updated_at = %s
        WHERE id = %s
        RETURNING {TASK_COLUMNS}
        """,
        (
            task.task_type.value,
            task.scheduled_date,
            task.status.value,
            task.assigned_to,
            task.priority.value,
            task.notes,
            task.completed_date,
            task.updated_at,
            task.id,
        ),
    )
    row = cur.fetchone()
    return row_to_task(row) if row else None


def delete_task(cur: PgCursor, task_id: str) -> bool:
    cur.execute("DELETE FROM housekeeping_tasks WHERE id = %s RETURNING id", (task_id,))
    return cur.fetchone() is not None


def list_tasks(cur: PgCursor, filters: dict) -> list[HousekeepingTask]:
    clauses = [f"{key} = %s" for key in _FILTERS if key in filters]
    params = tuple(filters[key] for key in _FILTERS if key in filters)
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    cur.execute(
        f"SELECT {TASK_COLUMNS} FROM housekeeping_tasks {where} ORDER BY scheduled_date, id",
        params,
    )
    return [row_to_task(row) for row in cur.fetchall()]

"""Notifications repository - in-app notifications for users.

Uses raw SQL with psycopg2 (no ORM).
"""

from psycopg2.extensions import cursor as PgCursor


def insert_notification(
    cur: PgCursor,
    *,
    user_id: str,
    category: str,
    title: str,
    body: str,
    related_id: str | None = None,
    related_type: str | None = None,
    dedupe_key: str | None = None,
) -> bool:
    """Insert one notification row.

    Idempotent on (user_id, dedupe_key) so a redelivered task does not
    notify twice.

    Returns:
        True if a row was inserted, False if it already existed.
    """
    cur.execute(
        """
        INSERT INTO notifications (
            user_id, category, title, body, related_id, related_type, dedupe_key
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s)
        ON CONFLICT (user_id, dedupe_key) DO NOTHING
        RETURNING id
        """,
        (user_id, category, title, body, related_id, related_type, dedupe_key),
    )
    return cur.fetchone() is not None


def list_admin_user_ids(cur: PgCursor) -> list[str]:
    """Users who receive staff-wide notifications (admins and managers)."""
    cur.execute(
        """
        SELECT id FROM users
        WHERE role IN ('admin', 'manager') AND is_active
        ORDER BY id
        """
    )
    return [str(row[0]) for row in cur.fetchall()]

"""Outbox repository - append-only event log written inside each unit.

Uses raw SQL with psycopg2 (no ORM).
"""

import json

from psycopg2.extensions import cursor as PgCursor


def emit_event(
    cur: PgCursor,
    *,
    event_type: str,
    aggregate_type: str,
    aggregate_id: str,
    payload: dict | None = None,
    correlation_id: str | None = None,
) -> int:
    """Emit an event to the outbox.

    Args:
        cur: Database cursor (within transaction).
        event_type: Event type (e.g., reservation.created).
        aggregate_type: Aggregate type (e.g., reservation).
        aggregate_id: Aggregate ID.
        payload: Optional JSON payload (ids and statuses, no PII).
        correlation_id: Optional correlation ID for tracing.

    Returns:
        The generated event ID.
    """
    payload_json = json.dumps(payload) if payload else None

    cur.execute(
        """
        INSERT INTO outbox_events (
            event_type, aggregate_type, aggregate_id, payload, correlation_id
        )
        VALUES (%s, %s, %s, %s, %s)
        RETURNING id
        """,
        (event_type, aggregate_type, aggregate_id, payload_json, correlation_id),
    )
    return cur.fetchone()[0]

"""Delivery of in-app notifications and the booking confirmation email.

Runs in the worker. Every sender is idempotent on the dedupe key carried
by the task, so a redelivered task does not notify twice.
"""

from __future__ import annotations

from typing import Any

import psycopg2
import requests

from roomsync.domain.models import Reservation, Room
from roomsync.infra.db import txn
from roomsync.infra.repositories import notifications_repository, reservations_repository, rooms_repository
from roomsync.observability.logging import get_logger
from roomsync.observability.redaction import safe_log_context
from roomsync.settings import EmailSettings, load_email_settings

logger = get_logger(__name__)


def notify(
    *,
    user_id: str,
    category: str,
    title: str,
    body: str,
    related_id: str | None = None,
    related_type: str | None = None,
    dedupe_key: str | None = None,
) -> bool:
    """Store a notification for one user. Returns False on a repeat."""
    with txn() as cur:
        created = notifications_repository.insert_notification(
            cur,
            user_id=user_id,
            category=category,
            title=title,
            body=body,
            related_id=related_id,
            related_type=related_type,
            dedupe_key=dedupe_key,
        )
    logger.info(
        "notification stored",
        extra={
            "extra_fields": safe_log_context(
                user_id=user_id, category=category, related_id=related_id, created=created,
            )
        },
    )
    return created


def notify_admins(
    *,
    category: str,
    title: str,
    body: str,
    related_id: str | None = None,
    related_type: str | None = None,
    dedupe_key: str | None = None,
) -> int:
    """Store the notification for every admin and manager. Returns rows created."""
    created = 0
    with txn() as cur:
        for admin_id in notifications_repository.list_admin_user_ids(cur):
            if notifications_repository.insert_notification(
                cur,
                user_id=admin_id,
                category=category,
                title=title,
                body=body,
                related_id=related_id,
                related_type=related_type,
                dedupe_key=dedupe_key,
            ):
                created += 1
    logger.info(
        "admin notification stored",
        extra={"extra_fields": safe_log_context(category=category, related_id=related_id, created=created)},
    )
    return created


def _get_guest_contact(guest_id: str) -> tuple[str | None, str | None]:
    """(email, name) for a user id; (None, None) if unknown."""
    with txn() as cur:
        cur.execute("SELECT email, name FROM users WHERE id = %s", (guest_id,))
        row = cur.fetchone()
    if row is None:
        return None, None
    return row[0], row[1]


def load_confirmation_context(reservation_id: str) -> tuple[Reservation, Room] | None:
    """Reservation and its room for the confirmation email, or None."""
    with txn() as cur:
        reservation = reservations_repository.get_reservation(cur, reservation_id)
        if reservation is None:
            return None
        room = rooms_repository.get_room(cur, reservation.room_id)
    if room is None:
        return None
    return reservation, room


def _confirmation_message(reservation: Reservation, room: Room, guest_name: str | None) -> dict[str, Any]:
    greeting = f"Dear {guest_name}," if guest_name else "Dear guest,"
    total = f"{reservation.total_cents // 100}.{reservation.total_cents % 100:02d}"
    return {
        "subject": f"Reservation Confirmed - #{reservation.confirmation_number}",
        "text": "\n".join([
            greeting,
            "",
            f"Your reservation #{reservation.confirmation_number} has been confirmed.",
            f"Room: {room.number} ({room.room_type})",
            f"Check-in: {reservation.check_in.isoformat()}",
            f"Check-out: {reservation.check_out.isoformat()}",
            f"Guests: {reservation.number_of_guests}",
            f"Total: {total}",
        ]),
    }


def send_reservation_confirmation(
    reservation: Reservation,
    room: Room,
    guest_id: str,
    *,
    settings: EmailSettings | None = None,
) -> dict[str, Any]:
    """Send the booking confirmation email through EMAIL_API_URL.

    Never raises: the result reports {"success": bool, "error": str | None}.
    """
    settings = settings or load_email_settings()
    if not settings.api_url:
        return {"success": False, "error": "email_not_configured"}

    try:
        email, name = _get_guest_contact(guest_id)
    except (psycopg2.Error, RuntimeError) as e:
        logger.error(
            "guest lookup for confirmation email failed",
            extra={
                "extra_fields": safe_log_context(
                    reservation_id=reservation.id, error_type=type(e).__name__,
                )
            },
        )
        return {"success": False, "error": "guest_lookup_failed"}
    if not email:
        return {"success": False, "error": "guest_email_missing"}

    message = _confirmation_message(reservation, room, name)
    headers = {"Content-Type": "application/json"}
    if settings.api_key:
        headers["Authorization"] = f"Bearer {settings.api_key}"

    try:
        response = requests.post(
            settings.api_url,
            json={"from": settings.sender, "to": email, **message},
            headers=headers,
            timeout=settings.timeout,
        )
        response.raise_for_status()
    except requests.RequestException as e:
        logger.error(
            "confirmation email failed",
            extra={
                "extra_fields": safe_log_context(
                    reservation_id=reservation.id, error_type=type(e).__name__,
                )
            },
        )
        return {"success": False, "error": str(e)}

    logger.info(
        "confirmation email sent",
        extra={"extra_fields": safe_log_context(reservation_id=reservation.id)},
    )
    return {"success": True, "error": None}

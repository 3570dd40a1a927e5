"""Side-effect intents returned alongside committed results.

Lifecycle operations never send anything. They describe what should be
sent and hand the list back with the committed entity; delivery runs
after commit (see roomsync.services.dispatch) and its failures never
reach the operation's caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, Literal, TypeVar

from roomsync.domain.models import Reservation, Room

T = TypeVar("T")

SideEffectKind = Literal["notify_user", "notify_admins", "reservation_confirmation_email"]


@dataclass(frozen=True)
class SideEffect:
    """One deliverable intent. Payload holds ids and display text only."""

    kind: SideEffectKind
    dedupe_key: str
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "dedupe_key": self.dedupe_key, "payload": self.payload}


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Committed entity plus the side effects to deliver for it."""

    entity: T
    side_effects: tuple[SideEffect, ...] = ()


def _notification(
    kind: SideEffectKind,
    dedupe_key: str,
    *,
    category: str,
    title: str,
    body: str,
    related_id: str,
    related_type: str,
    user_id: str | None = None,
) -> SideEffect:
    payload: dict[str, Any] = {
        "category": category,
        "title": title,
        "body": body,
        "related_id": related_id,
        "related_type": related_type,
    }
    if user_id is not None:
        payload["user_id"] = user_id
    return SideEffect(kind=kind, dedupe_key=dedupe_key, payload=payload)


def reservation_created_effects(
    reservation: Reservation,
    room: Room,
    *,
    booked_by_guest: bool,
) -> tuple[SideEffect, ...]:
    effects = [
        SideEffect(
            kind="reservation_confirmation_email",
            dedupe_key=f"email:confirmation:{reservation.id}",
            payload={"reservation_id": reservation.id, "guest_id": reservation.guest_id},
        ),
        _notification(
            "notify_user",
            f"notify:booking:{reservation.id}",
            user_id=reservation.guest_id,
            category="booking",
            title="Reservation Confirmed",
            body=(
                f"Your reservation #{reservation.confirmation_number} has been confirmed. "
                f"Check-in: {reservation.check_in.isoformat()}"
            ),
            related_id=reservation.id,
            related_type="reservation",
        ),
    ]
    if booked_by_guest:
        effects.append(
            _notification(
                "notify_admins",
                f"notify-admins:booking:{reservation.id}",
                category="booking",
                title="New Reservation Received",
                body=(
                    f"New reservation #{reservation.confirmation_number} "
                    f"for Room {room.number} ({room.room_type})"
                ),
                related_id=reservation.id,
                related_type="reservation",
            )
        )
    return tuple(effects)


def checked_in_effects(reservation: Reservation, room: Room) -> tuple[SideEffect, ...]:
    return (
        _notification(
            "notify_admins",
            f"notify-admins:checkin:{reservation.id}",
            category="checkin",
            title="Guest Checked In",
            body=(
                f"Guest checked in to Room {room.number} "
                f"(Reservation #{reservation.confirmation_number})"
            ),
            related_id=reservation.id,
            related_type="reservation",
        ),
    )


def checked_out_effects(reservation: Reservation, room: Room) -> tuple[SideEffect, ...]:
    return (
        _notification(
            "notify_admins",
            f"notify-admins:checkout:{reservation.id}",
            category="checkout",
            title="Guest Checked Out",
            body=(
                f"Guest checked out from Room {room.number} "
                f"(Reservation #{reservation.confirmation_number}). Room needs cleaning."
            ),
            related_id=reservation.id,
            related_type="reservation",
        ),
    )

"""Reservation lifecycle.

    confirmed --check_in--> checked_in --check_out--> checked_out
        |
        +--cancel--> cancelled

checked_out and cancelled are terminal; a checked-in stay cannot be
cancelled. Every mutation runs inside the room's unit so the reservation
write and the room status it implies commit together.
"""

from __future__ import annotations

import secrets
from datetime import datetime
from uuid import uuid4

from roomsync.domain.actors import STAFF_ROLES, Actor, require_role
from roomsync.domain.billing import compute_amount, count_nights
from roomsync.domain.errors import (
    Conflict,
    InternalError,
    InvalidTransition,
    NotFound,
    OccupancyExceeded,
    Unauthorized,
    ValidationError,
)
from roomsync.domain.models import (
    OutboxRecord,
    Reservation,
    ReservationStatus,
    Room,
    StayPoint,
    parse_enum,
    to_instant,
)
from roomsync.domain.room_conflict import assert_no_room_conflict
from roomsync.domain.room_status import RoomEvent, apply_room_event
from roomsync.domain.side_effects import (
    OperationResult,
    SideEffect,
    checked_in_effects,
    checked_out_effects,
    reservation_created_effects,
)
from roomsync.domain.store import Session, Store, run_room_unit
from roomsync.infra.time import utc_now
from roomsync.observability.correlation import get_correlation_id
from roomsync.observability.logging import get_logger
from roomsync.observability.redaction import safe_log_context

logger = get_logger(__name__)

TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.CONFIRMED: frozenset({ReservationStatus.CHECKED_IN, ReservationStatus.CANCELLED}),
    ReservationStatus.CHECKED_IN: frozenset({ReservationStatus.CHECKED_OUT}),
    ReservationStatus.CHECKED_OUT: frozenset(),
    ReservationStatus.CANCELLED: frozenset(),
}

_CONFIRMATION_ATTEMPTS = 5

LIST_FILTERS = frozenset({"status", "guest_id", "room_id", "check_in_from", "check_out_until"})


def _require_transition(reservation: Reservation, target: ReservationStatus) -> None:
    if target not in TRANSITIONS[reservation.status]:
        raise InvalidTransition("reservation", reservation.status.value, target.value)


def _validate_stay(check_in: datetime, check_out: datetime, number_of_guests: int) -> None:
    # Raises on empty or reversed ranges.
    count_nights(check_in, check_out)
    if number_of_guests < 1:
        raise ValidationError("number_of_guests must be at least 1")


def _new_confirmation_number(session: Session) -> str:
    stamp = utc_now().strftime("%Y%m%d")
    for _ in range(_CONFIRMATION_ATTEMPTS):
        candidate = f"RS{stamp}-{secrets.token_hex(3).upper()}"
        if not session.confirmation_number_exists(candidate):
            return candidate
    raise InternalError("could not allocate a unique confirmation number")


def _record(session: Session, event_type: str, reservation: Reservation, payload: dict) -> None:
    session.emit_event(
        OutboxRecord(
            event_type=event_type,
            aggregate_type="reservation",
            aggregate_id=reservation.id,
            payload=payload,
            correlation_id=get_correlation_id() or None,
        )
    )


def _record_side_effects(session: Session, reservation: Reservation, effects: tuple[SideEffect, ...]) -> None:
    for effect in effects:
        _record(session, f"side_effect.{effect.kind}", reservation, effect.to_dict())


def _room_of(store: Store, reservation_id: str) -> str:
    """Room id of a reservation. A reservation never changes room."""
    with store.read() as session:
        reservation = session.load_reservation(reservation_id)
    if reservation is None:
        raise NotFound(f"Reservation {reservation_id} not found", code="reservation_not_found")
    return reservation.room_id


def _load_for_update(session: Session, reservation_id: str) -> Reservation:
    reservation = session.load_reservation(reservation_id)
    if reservation is None:
        raise NotFound(f"Reservation {reservation_id} not found", code="reservation_not_found")
    return reservation


def _load_room(session: Session, room_id: str) -> Room:
    room = session.load_room(room_id)
    if room is None:
        raise NotFound(f"Room {room_id} not found", code="room_not_found")
    return room


def create_reservation(
    store: Store,
    actor: Actor,
    *,
    room_id: str,
    check_in: StayPoint,
    check_out: StayPoint,
    number_of_guests: int,
    guest_id: str | None = None,
    special_requests: str | None = None,
    booking_source: str = "online",
) -> OperationResult[Reservation]:
    """Book `room_id` for [check_in, check_out).

    Guests always book for themselves; staff may book for any guest and
    default to themselves.

    Raises:
        ValidationError: Missing room, bad dates or guest count.
        Unauthorized: Actor may not book, or a guest books for someone else.
        NotFound: Room does not exist.
        OccupancyExceeded: number_of_guests above the room's max occupancy.
        RoomConflictError: The interval overlaps a blocking reservation.
    """
    if not room_id:
        raise ValidationError("room_id is required")
    check_in = to_instant(check_in, "check_in")
    check_out = to_instant(check_out, "check_out")
    _validate_stay(check_in, check_out, number_of_guests)

    if actor.is_guest:
        if guest_id is not None and guest_id != actor.id:
            raise Unauthorized("guests can only book for themselves")
        owner = actor.id
    else:
        require_role(actor, STAFF_ROLES, "create reservations")
        owner = guest_id or actor.id

    def work(session: Session) -> tuple[Reservation, tuple[SideEffect, ...]]:
        room = _load_room(session, room_id)
        if number_of_guests > room.max_occupancy:
            raise OccupancyExceeded(
                f"Room can only accommodate {room.max_occupancy} guests"
            )

        assert_no_room_conflict(
            room_id, check_in, check_out, session.load_blocking_reservations(room_id),
        )

        now = utc_now()
        reservation = session.insert_reservation(
            Reservation(
                id=str(uuid4()),
                guest_id=owner,
                room_id=room_id,
                check_in=check_in,
                check_out=check_out,
                number_of_guests=number_of_guests,
                total_cents=compute_amount(check_in, check_out, room.price_per_night_cents),
                confirmation_number=_new_confirmation_number(session),
                special_requests=special_requests,
                booking_source=booking_source or "online",
                created_at=now,
                updated_at=now,
            )
        )
        apply_room_event(session, room_id, RoomEvent.ROOM_CLAIMED)
        _record(session, "reservation.created", reservation, {
            "room_id": room_id,
            "check_in": reservation.check_in.isoformat(),
            "check_out": reservation.check_out.isoformat(),
            "total_cents": reservation.total_cents,
            "created_by": actor.id,
        })
        effects = reservation_created_effects(reservation, room, booked_by_guest=actor.is_guest)
        _record_side_effects(session, reservation, effects)
        return reservation, effects

    reservation, effects = run_room_unit(store, room_id, work)

    logger.info(
        "reservation created",
        extra={
            "extra_fields": safe_log_context(
                reservation_id=reservation.id,
                room_id=room_id,
                nights=count_nights(check_in, check_out),
                total_cents=reservation.total_cents,
                actor_role=actor.role,
            )
        },
    )
    return OperationResult(reservation, effects)


def _move(
    store: Store,
    actor: Actor,
    reservation_id: str,
    target: ReservationStatus,
    room_event: RoomEvent,
) -> tuple[Reservation, Room]:
    room_id = _room_of(store, reservation_id)

    def work(session: Session) -> tuple[Reservation, Room]:
        reservation = _load_for_update(session, reservation_id)
        _require_transition(reservation, target)

        expected_version = reservation.version
        reservation.status = target
        reservation.updated_at = utc_now()
        reservation = session.update_reservation(reservation, expected_version)

        apply_room_event(session, room_id, room_event)
        _record(session, f"reservation.{target.value}", reservation, {"changed_by": actor.id})
        return reservation, _load_room(session, room_id)

    reservation, room = run_room_unit(store, room_id, work)

    logger.info(
        "reservation status changed",
        extra={
            "extra_fields": safe_log_context(
                reservation_id=reservation_id,
                room_id=room_id,
                status=target,
                room_status=room.status,
            )
        },
    )
    return reservation, room


def check_in(store: Store, actor: Actor, reservation_id: str) -> OperationResult[Reservation]:
    """confirmed -> checked_in; the room becomes occupied."""
    require_role(actor, STAFF_ROLES, "check guests in")
    reservation, room = _move(
        store, actor, reservation_id, ReservationStatus.CHECKED_IN, RoomEvent.ROOM_OCCUPIED,
    )
    return OperationResult(reservation, checked_in_effects(reservation, room))


def check_out(store: Store, actor: Actor, reservation_id: str) -> OperationResult[Reservation]:
    """checked_in -> checked_out; the room goes to cleaning."""
    require_role(actor, STAFF_ROLES, "check guests out")
    reservation, room = _move(
        store, actor, reservation_id, ReservationStatus.CHECKED_OUT, RoomEvent.ROOM_VACATED,
    )
    return OperationResult(reservation, checked_out_effects(reservation, room))


def cancel_reservation(store: Store, actor: Actor, reservation_id: str) -> OperationResult[Reservation]:
    """confirmed -> cancelled.

    Guests may cancel only their own reservations. When no other blocking
    reservation remains on the room, RoomReleased lets a Reserved room go
    back to available.
    """
    if not (actor.is_guest or actor.is_staff):
        raise Unauthorized(f"role '{actor.role}' may not cancel reservations")

    room_id = _room_of(store, reservation_id)

    def work(session: Session) -> Reservation:
        reservation = _load_for_update(session, reservation_id)
        if actor.is_guest and reservation.guest_id != actor.id:
            raise Unauthorized("Not authorized to cancel this reservation")
        _require_transition(reservation, ReservationStatus.CANCELLED)

        expected_version = reservation.version
        reservation.status = ReservationStatus.CANCELLED
        reservation.cancelled_by = actor.id
        reservation.updated_at = utc_now()
        reservation = session.update_reservation(reservation, expected_version)

        still_held = [
            r for r in session.load_blocking_reservations(room_id) if r.id != reservation.id
        ]
        if not still_held:
            apply_room_event(session, room_id, RoomEvent.ROOM_RELEASED)

        _record(session, "reservation.cancelled", reservation, {"cancelled_by": actor.id})
        return reservation

    reservation = run_room_unit(store, room_id, work)

    logger.info(
        "reservation cancelled",
        extra={
            "extra_fields": safe_log_context(
                reservation_id=reservation_id, room_id=room_id, actor_role=actor.role,
            )
        },
    )
    return OperationResult(reservation)


def update_special_requests(
    store: Store,
    actor: Actor,
    reservation_id: str,
    special_requests: str | None,
) -> OperationResult[Reservation]:
    """Staff-only edit of special requests on a non-terminal reservation."""
    require_role(actor, STAFF_ROLES, "edit special requests")
    room_id = _room_of(store, reservation_id)

    def work(session: Session) -> Reservation:
        reservation = _load_for_update(session, reservation_id)
        if not TRANSITIONS[reservation.status]:
            raise Conflict(
                f"Reservation is {reservation.status.value} and can no longer be edited",
                code="reservation_closed",
            )
        expected_version = reservation.version
        reservation.special_requests = special_requests
        reservation.updated_at = utc_now()
        return session.update_reservation(reservation, expected_version)

    return OperationResult(run_room_unit(store, room_id, work))


def get_reservation(store: Store, actor: Actor, reservation_id: str) -> Reservation:
    with store.read() as session:
        reservation = session.load_reservation(reservation_id)
    if reservation is None:
        raise NotFound(f"Reservation {reservation_id} not found", code="reservation_not_found")
    if actor.is_guest and reservation.guest_id != actor.id:
        raise Unauthorized("Not authorized")
    return reservation


def list_reservations(store: Store, actor: Actor, **filters) -> list[Reservation]:
    """Reservations matching `filters`, newest first. Guests only see their own."""
    unknown = set(filters) - LIST_FILTERS
    if unknown:
        raise ValidationError(f"unknown filters: {', '.join(sorted(unknown))}")
    query = {k: v for k, v in filters.items() if v is not None}
    for bound in ("check_in_from", "check_out_until"):
        if bound in query:
            query[bound] = to_instant(query[bound], bound)
    if "status" in query:
        query["status"] = parse_enum(ReservationStatus, query["status"], "status").value
    if actor.is_guest:
        query["guest_id"] = actor.id
    with store.read() as session:
        return session.list_reservations(query)

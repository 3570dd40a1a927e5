"""Reservation endpoints.

Thin adapters: parse the body, call the lifecycle, dispatch the returned
side effects after commit, serialize the result.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Annotated, Any, Union

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel, Field, WrapValidator

from roomsync.api.auth import get_current_actor
from roomsync.api.deps import get_store, get_tasks_client
from roomsync.domain import reservations as lifecycle
from roomsync.domain.actors import Actor
from roomsync.domain.models import Reservation
from roomsync.domain.side_effects import OperationResult
from roomsync.domain.store import Store
from roomsync.services.dispatch import dispatch_side_effects
from roomsync.tasks.client import TasksClient

_DATE_ONLY = re.compile(r"\d{4}-\d{2}-\d{2}")


def _stay_point(value: Any, handler: Any) -> Any:
    if isinstance(value, date):
        return value
    if isinstance(value, str) and _DATE_ONLY.fullmatch(value.strip()):
        return date.fromisoformat(value.strip())
    return handler(value)


# Only a bare YYYY-MM-DD is a date (midnight UTC). Anything else is parsed
# as a datetime so its offset is kept; naive datetimes are rejected later.
StayInput = Annotated[
    Union[datetime, date],
    Field(union_mode="left_to_right"),
    WrapValidator(_stay_point),
]


class CreateReservationRequest(BaseModel):
    room_id: str
    check_in: StayInput
    check_out: StayInput
    number_of_guests: int
    guest_id: str | None = None
    special_requests: str | None = None
    booking_source: str = "online"


class UpdateReservationRequest(BaseModel):
    special_requests: str | None


router = APIRouter(prefix="/reservations", tags=["reservations"])


def reservation_to_dict(reservation: Reservation) -> dict:
    return {
        "id": reservation.id,
        "confirmation_number": reservation.confirmation_number,
        "guest_id": reservation.guest_id,
        "room_id": reservation.room_id,
        "check_in": reservation.check_in.isoformat(),
        "check_out": reservation.check_out.isoformat(),
        "number_of_guests": reservation.number_of_guests,
        "total_cents": reservation.total_cents,
        "status": reservation.status.value,
        "special_requests": reservation.special_requests,
        "booking_source": reservation.booking_source,
        "cancelled_by": reservation.cancelled_by,
        "created_at": reservation.created_at.isoformat() if reservation.created_at else None,
        "updated_at": reservation.updated_at.isoformat() if reservation.updated_at else None,
    }


def _respond(result: OperationResult[Reservation], tasks_client: TasksClient) -> dict:
    dispatch_side_effects(result.side_effects, tasks_client)
    return reservation_to_dict(result.entity)


@router.get("")
def list_reservations(
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store),
    status: str | None = Query(None),
    room_id: str | None = Query(None),
    guest_id: str | None = Query(None),
    check_in_from: date | None = Query(None),
    check_out_until: date | None = Query(None),
) -> dict:
    """Reservations visible to the caller; guests only get their own."""
    found = lifecycle.list_reservations(
        store,
        actor,
        status=status,
        room_id=room_id,
        guest_id=guest_id,
        check_in_from=check_in_from,
        check_out_until=check_out_until,
    )
    return {"reservations": [reservation_to_dict(r) for r in found]}


@router.get("/{reservation_id}")
def get_reservation(
    reservation_id: str = Path(...),
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store),
) -> dict:
    return reservation_to_dict(lifecycle.get_reservation(store, actor, reservation_id))


@router.post("", status_code=201)
def create_reservation(
    body: CreateReservationRequest,
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store),
    tasks_client: TasksClient = Depends(get_tasks_client),
) -> dict:
    result = lifecycle.create_reservation(
        store,
        actor,
        room_id=body.room_id,
        check_in=body.check_in,
        check_out=body.check_out,
        number_of_guests=body.number_of_guests,
        guest_id=body.guest_id,
        special_requests=body.special_requests,
        booking_source=body.booking_source,
    )
    return _respond(result, tasks_client)


@router.patch("/{reservation_id}")
def update_reservation(
    body: UpdateReservationRequest,
    reservation_id: str = Path(...),
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store),
    tasks_client: TasksClient = Depends(get_tasks_client),
) -> dict:
    result = lifecycle.update_special_requests(store, actor, reservation_id, body.special_requests)
    return _respond(result, tasks_client)


@router.post("/{reservation_id}/actions/check-in")
def check_in(
    reservation_id: str = Path(...),
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store),
    tasks_client: TasksClient = Depends(get_tasks_client),
) -> dict:
    return _respond(lifecycle.check_in(store, actor, reservation_id), tasks_client)


@router.post("/{reservation_id}/actions/check-out")
def check_out(
    reservation_id: str = Path(...),
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store),
    tasks_client: TasksClient = Depends(get_tasks_client),
) -> dict:
    return _respond(lifecycle.check_out(store, actor, reservation_id), tasks_client)


@router.post("/{reservation_id}/actions/cancel")
def cancel(
    reservation_id: str = Path(...),
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store),
    tasks_client: TasksClient = Depends(get_tasks_client),
) -> dict:
    return _respond(lifecycle.cancel_reservation(store, actor, reservation_id), tasks_client)

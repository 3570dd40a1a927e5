"""Read-only room endpoints. Status is derived, never set through the API."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Query

from roomsync.api.deps import get_store
from roomsync.api.rbac import require_roles
from roomsync.domain import rooms as inventory
from roomsync.domain.actors import ROLES, Actor
from roomsync.domain.models import Room
from roomsync.domain.store import Store

router = APIRouter(prefix="/rooms", tags=["rooms"])


def room_to_dict(room: Room) -> dict:
    return {
        "id": room.id,
        "number": room.number,
        "room_type": room.room_type,
        "max_occupancy": room.max_occupancy,
        "price_per_night_cents": room.price_per_night_cents,
        "status": room.status.value,
        "last_event": room.last_event,
        "status_changed_at": room.status_changed_at.isoformat() if room.status_changed_at else None,
    }


@router.get("")
def list_rooms(
    actor: Actor = Depends(require_roles(ROLES)),
    store: Store = Depends(get_store),
    status: str | None = Query(None),
) -> dict:
    return {"rooms": [room_to_dict(r) for r in inventory.list_rooms(store, status)]}


@router.get("/{room_id}")
def get_room(
    room_id: str = Path(...),
    actor: Actor = Depends(require_roles(ROLES)),
    store: Store = Depends(get_store),
) -> dict:
    return room_to_dict(inventory.get_room(store, room_id))

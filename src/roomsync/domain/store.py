"""Persistence port and the room-scoped unit of work.

A room-scoped unit is the smallest group of reads and writes that must
commit or fail together for one room: e.g. conflict check, reservation
insert and room status update. `Store.room_unit(room_id)` opens one,
holding an exclusive per-room lock until it exits; leaving the block
with an exception discards every write made inside it.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Callable, Protocol, TypeVar

from roomsync.domain.errors import VersionConflict
from roomsync.domain.models import (
    HousekeepingTask,
    MaintenanceRequest,
    OutboxRecord,
    Reservation,
    Room,
)
from roomsync.observability.logging import get_logger
from roomsync.observability.redaction import safe_log_context

logger = get_logger(__name__)

T = TypeVar("T")

# One automatic retry with fresh state, then the conflict is surfaced.
VERSION_CONFLICT_RETRIES = 1


class Session(Protocol):
    """Reads and writes available inside a unit of work."""

    def load_room(self, room_id: str) -> Room | None: ...

    def list_rooms(self, status: str | None = None) -> list[Room]: ...

    def save_room(self, room: Room, expected_version: int) -> Room:
        """Persist `room` if the stored version still equals `expected_version`.

        Raises:
            VersionConflict: If the stored version moved on.
        """
        ...

    def load_blocking_reservations(self, room_id: str) -> list[Reservation]: ...

    def load_reservation(self, reservation_id: str) -> Reservation | None: ...

    def confirmation_number_exists(self, confirmation_number: str) -> bool: ...

    def insert_reservation(self, reservation: Reservation) -> Reservation: ...

    def update_reservation(self, reservation: Reservation, expected_version: int) -> Reservation: ...

    def list_reservations(self, filters: dict) -> list[Reservation]: ...

    def load_task(self, task_id: str) -> HousekeepingTask | None: ...

    def insert_task(self, task: HousekeepingTask) -> HousekeepingTask: ...

    def update_task(self, task: HousekeepingTask) -> HousekeepingTask: ...

    def delete_task(self, task: HousekeepingTask) -> None: ...

    def list_tasks(self, filters: dict) -> list[HousekeepingTask]: ...

    def load_request(self, request_id: str) -> MaintenanceRequest | None: ...

    def insert_request(self, request: MaintenanceRequest) -> MaintenanceRequest: ...

    def update_request(self, request: MaintenanceRequest) -> MaintenanceRequest: ...

    def delete_request(self, request: MaintenanceRequest) -> None: ...

    def list_requests(self, filters: dict) -> list[MaintenanceRequest]: ...

    def emit_event(self, record: OutboxRecord) -> int:
        """Append an outbox row in the current unit. Returns its id."""
        ...


class Store(Protocol):
    def room_unit(self, room_id: str) -> AbstractContextManager[Session]:
        """Exclusive unit of work for one room. Commits on clean exit."""
        ...

    def read(self) -> AbstractContextManager[Session]:
        """Unlocked, read-only session."""
        ...


def run_room_unit(store: Store, room_id: str, work: Callable[[Session], T]) -> T:
    """Run `work` inside a room-scoped unit, retrying once on VersionConflict.

    `work` must re-read everything it needs from the session it is given:
    on retry it runs again from scratch against fresh state.
    """
    attempt = 0
    while True:
        try:
            with store.room_unit(room_id) as session:
                return work(session)
        except VersionConflict:
            if attempt >= VERSION_CONFLICT_RETRIES:
                logger.warning(
                    "room unit lost version race, giving up",
                    extra={"extra_fields": safe_log_context(room_id=room_id, attempts=attempt + 1)},
                )
                raise
            attempt += 1
            logger.info(
                "room unit lost version race, retrying",
                extra={"extra_fields": safe_log_context(room_id=room_id, attempt=attempt)},
            )

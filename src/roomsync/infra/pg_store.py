"""PostgreSQL store backend.

A room unit is one transaction that starts by locking the room row
(SELECT ... FOR UPDATE). Every writer of a room's reservations, tasks,
requests or status goes through that lock, so units on the same room
serialize while units on different rooms run in parallel. Version
columns on rooms and reservations catch anything that slips past it.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import psycopg2
from psycopg2 import errors as pg_errors
from psycopg2.extensions import cursor as PgCursor

from roomsync.domain.errors import Conflict, DomainError, InternalError, VersionConflict
from roomsync.domain.models import (
    HousekeepingTask,
    MaintenanceRequest,
    OutboxRecord,
    Reservation,
    Room,
)
from roomsync.infra.db import txn
from roomsync.infra.repositories import (
    housekeeping_repository,
    maintenance_repository,
    outbox_repository,
    reservations_repository,
    rooms_repository,
)
from roomsync.observability.logging import get_logger
from roomsync.observability.redaction import safe_log_context

logger = get_logger(__name__)

_RETRYABLE = (pg_errors.SerializationFailure, pg_errors.DeadlockDetected, pg_errors.LockNotAvailable)
CONFIRMATION_NUMBER_CONSTRAINT = "reservations_confirmation_number_key"


def translate_db_error(exc: psycopg2.Error, *, room_id: str | None) -> DomainError:
    """Map a driver error onto the domain taxonomy."""
    if isinstance(exc, _RETRYABLE):
        return VersionConflict(f"concurrent update on room {room_id}")
    if isinstance(exc, pg_errors.ExclusionViolation):
        return Conflict("Room is already booked for the selected dates", code="room_conflict")
    if isinstance(exc, pg_errors.UniqueViolation):
        if getattr(exc.diag, "constraint_name", None) == CONFIRMATION_NUMBER_CONSTRAINT:
            return VersionConflict("confirmation number taken concurrently")
        return Conflict("Duplicate record", code="duplicate")
    return InternalError("database error")


class PgSession:
    """Session over one psycopg2 cursor. Not shared across threads."""

    def __init__(self, cur: PgCursor, *, room_id: str | None) -> None:
        self.cur = cur
        self.room_id = room_id

    def _writable(self, room_id: str) -> None:
        if self.room_id is None:
            raise InternalError("read-only session cannot write")
        if room_id != self.room_id:
            raise InternalError(f"unit for room {self.room_id} cannot write to room {room_id}")

    # rooms

    def load_room(self, room_id: str) -> Room | None:
        return rooms_repository.get_room(self.cur, room_id)

    def list_rooms(self, status: str | None = None) -> list[Room]:
        return rooms_repository.list_rooms(self.cur, status)

    def save_room(self, room: Room, expected_version: int) -> Room:
        self._writable(room.id)
        saved = rooms_repository.update_room_status(self.cur, room, expected_version)
        if saved is None:
            raise VersionConflict(f"room {room.id} changed concurrently")
        return saved

    # reservations

    def load_blocking_reservations(self, room_id: str) -> list[Reservation]:
        return reservations_repository.list_blocking_for_room(self.cur, room_id)

    def load_reservation(self, reservation_id: str) -> Reservation | None:
        return reservations_repository.get_reservation(self.cur, reservation_id)

    def confirmation_number_exists(self, confirmation_number: str) -> bool:
        return reservations_repository.confirmation_number_exists(self.cur, confirmation_number)

    def insert_reservation(self, reservation: Reservation) -> Reservation:
        self._writable(reservation.room_id)
        return reservations_repository.insert_reservation(self.cur, reservation)

    def update_reservation(self, reservation: Reservation, expected_version: int) -> Reservation:
        self._writable(reservation.room_id)
        saved = reservations_repository.update_reservation(self.cur, reservation, expected_version)
        if saved is None:
            raise VersionConflict(f"reservation {reservation.id} changed concurrently")
        return saved

    def list_reservations(self, filters: dict) -> list[Reservation]:
        return reservations_repository.list_reservations(self.cur, filters)

    # housekeeping

    def load_task(self, task_id: str) -> HousekeepingTask | None:
        return housekeeping_repository.get_task(self.cur, task_id)

    def insert_task(self, task: HousekeepingTask) -> HousekeepingTask:
        self._writable(task.room_id)
        return housekeeping_repository.insert_task(self.cur, task)

    def update_task(self, task: HousekeepingTask) -> HousekeepingTask:
        self._writable(task.room_id)
        saved = housekeeping_repository.update_task(self.cur, task)
        if saved is None:
            raise InternalError(f"task {task.id} disappeared during update")
        return saved

    def delete_task(self, task: HousekeepingTask) -> None:
        self._writable(task.room_id)
        if not housekeeping_repository.delete_task(self.cur, task.id):
            raise InternalError(f"task {task.id} disappeared during delete")

    def list_tasks(self, filters: dict) -> list[HousekeepingTask]:
        return housekeeping_repository.list_tasks(self.cur, filters)

    # maintenance

    def load_request(self, request_id: str) -> MaintenanceRequest | None:
        return maintenance_repository.get_request(self.cur, request_id)

    def insert_request(self, request: MaintenanceRequest) -> MaintenanceRequest:
        self._writable(request.room_id)
        return maintenance_repository.insert_request(self.cur, request)

    def update_request(self, request: MaintenanceRequest) -> MaintenanceRequest:
        self._writable(request.room_id)
        saved = maintenance_repository.update_request(self.cur, request)
        if saved is None:
            raise InternalError(f"maintenance request {request.id} disappeared during update")
        return saved

    def delete_request(self, request: MaintenanceRequest) -> None:
        self._writable(request.room_id)
        if not maintenance_repository.delete_request(self.cur, request.id):
            raise InternalError(f"maintenance request {request.id} disappeared during delete")

    def list_requests(self, filters: dict) -> list[MaintenanceRequest]:
        return maintenance_repository.list_requests(self.cur, filters)

    # outbox

    def emit_event(self, record: OutboxRecord) -> int:
        if self.room_id is None:
            raise InternalError("read-only session cannot write")
        return outbox_repository.emit_event(
            self.cur,
            event_type=record.event_type,
            aggregate_type=record.aggregate_type,
            aggregate_id=record.aggregate_id,
            payload=record.payload,
            correlation_id=record.correlation_id,
        )


class PgStore:
    """Store backed by DATABASE_URL. Opens one connection per unit."""

    @contextmanager
    def room_unit(self, room_id: str) -> Iterator[PgSession]:
        try:
            with txn() as cur:
                rooms_repository.get_room(cur, room_id, lock=True)
                yield PgSession(cur, room_id=room_id)
        except psycopg2.Error as exc:
            logger.warning(
                "room unit rolled back on database error",
                extra={
                    "extra_fields": safe_log_context(
                        room_id=room_id,
                        pgcode=getattr(exc, "pgcode", None),
                        error_type=type(exc).__name__,
                    )
                },
            )
            raise translate_db_error(exc, room_id=room_id) from exc

    @contextmanager
    def read(self) -> Iterator[PgSession]:
        try:
            with txn() as cur:
                yield PgSession(cur, room_id=None)
        except psycopg2.Error as exc:
            logger.warning(
                "read session failed",
                extra={"extra_fields": safe_log_context(error_type=type(exc).__name__)},
            )
            raise translate_db_error(exc, room_id=None) from exc

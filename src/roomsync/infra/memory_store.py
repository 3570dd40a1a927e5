"""In-process store backend.

Used for local runs (STORE_BACKEND=memory) and by the test suite. Each
room has its own lock; a unit stages its writes on a private copy and
publishes them only when the block exits cleanly, so a failed unit
leaves no trace.
"""

from __future__ import annotations

import copy
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterator

from roomsync.domain.errors import InternalError, VersionConflict
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

_MIN_UTC = datetime.min.replace(tzinfo=timezone.utc)


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _matches(entity: Any, filters: dict, ranges: dict[str, tuple[str, str]] | None = None) -> bool:
    """Equality match on attributes; `ranges` maps a filter to (attribute, op)."""
    ranges = ranges or {}
    for key, wanted in filters.items():
        if key in ranges:
            attr, op = ranges[key]
            actual = getattr(entity, attr)
            if op == ">=" and not actual >= wanted:
                return False
            if op == "<=" and not actual <= wanted:
                return False
            continue
        if _plain(getattr(entity, key)) != _plain(wanted):
            return False
    return True


def _publish(committed: dict, staged: dict) -> None:
    for key, value in staged.items():
        if value is None:
            committed.pop(key, None)
        else:
            committed[key] = value


_RESERVATION_RANGES = {
    "check_in_from": ("check_in", ">="),
    "check_out_until": ("check_out", "<="),
}


class MemoryStore:
    """Dict-backed store with per-room locks."""

    def __init__(self) -> None:
        self._data_lock = threading.Lock()
        self._locks_guard = threading.Lock()
        self._room_locks: dict[str, threading.Lock] = {}
        self.rooms: dict[str, Room] = {}
        self.reservations: dict[str, Reservation] = {}
        self.tasks: dict[str, HousekeepingTask] = {}
        self.requests: dict[str, MaintenanceRequest] = {}
        self.events: list[OutboxRecord] = []

    def add_room(self, room: Room) -> Room:
        """Register inventory. Rooms are created outside the workflows."""
        with self._data_lock:
            self.rooms[room.id] = copy.deepcopy(room)
        return room

    def outbox(self) -> list[OutboxRecord]:
        with self._data_lock:
            return list(self.events)

    def _lock_for(self, room_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._room_locks.get(room_id)
            if lock is None:
                lock = threading.Lock()
                self._room_locks[room_id] = lock
            return lock

    @contextmanager
    def room_unit(self, room_id: str) -> Iterator["MemorySession"]:
        lock = self._lock_for(room_id)
        with lock:
            session = MemorySession(self, room_id=room_id)
            yield session
            session.commit()

    @contextmanager
    def read(self) -> Iterator["MemorySession"]:
        yield MemorySession(self, room_id=None)


class MemorySession:
    """Staged view over a MemoryStore.

    Reads see committed data overlaid with this session's own writes.
    Writes are only allowed inside a room unit and only for the unit's
    room.
    """

    def __init__(self, store: MemoryStore, *, room_id: str | None) -> None:
        self._store = store
        self._room_id = room_id
        self._rooms: dict[str, Room] = {}
        self._reservations: dict[str, Reservation] = {}
        # A staged None marks a deletion.
        self._tasks: dict[str, HousekeepingTask | None] = {}
        self._requests: dict[str, MaintenanceRequest | None] = {}
        self._events: list[OutboxRecord] = []

    # -- helpers -----------------------------------------------------------

    def _writable(self, room_id: str) -> None:
        if self._room_id is None:
            raise InternalError("read-only session cannot write")
        if room_id != self._room_id:
            raise InternalError(
                f"unit for room {self._room_id} cannot write to room {room_id}"
            )

    def _get(self, committed: dict, staged: dict, key: str) -> Any:
        if key in staged:
            return copy.deepcopy(staged[key])
        with self._store._data_lock:
            value = committed.get(key)
            return copy.deepcopy(value) if value is not None else None

    def _all(self, committed: dict, staged: dict) -> list:
        with self._store._data_lock:
            merged = {k: copy.deepcopy(v) for k, v in committed.items()}
        merged.update({k: copy.deepcopy(v) for k, v in staged.items()})
        return [v for v in merged.values() if v is not None]

    def _check_confirmation_numbers(self) -> None:
        """Caller holds the data lock. Units on other rooms may race for a number."""
        taken = {
            r.confirmation_number: r.id for r in self._store.reservations.values()
        }
        for reservation in self._reservations.values():
            owner = taken.get(reservation.confirmation_number)
            if owner is not None and owner != reservation.id:
                raise VersionConflict(
                    f"confirmation number {reservation.confirmation_number} taken concurrently"
                )

    def commit(self) -> None:
        store = self._store
        with store._data_lock:
            self._check_confirmation_numbers()
            store.rooms.update(self._rooms)
            store.reservations.update(self._reservations)
            _publish(store.tasks, self._tasks)
            _publish(store.requests, self._requests)
            store.events.extend(self._events)
        if self._events:
            logger.debug(
                "memory unit committed",
                extra={"extra_fields": safe_log_context(room_id=self._room_id, events=len(self._events))},
            )

    # -- rooms -------------------------------------------------------------

    def load_room(self, room_id: str) -> Room | None:
        return self._get(self._store.rooms, self._rooms, room_id)

    def list_rooms(self, status: str | None = None) -> list[Room]:
        rooms = self._all(self._store.rooms, self._rooms)
        if status is not None:
            rooms = [r for r in rooms if _plain(r.status) == _plain(status)]
        return sorted(rooms, key=lambda r: r.number)

    def save_room(self, room: Room, expected_version: int) -> Room:
        self._writable(room.id)
        current = self.load_room(room.id)
        if current is None or current.version != expected_version:
            raise VersionConflict(f"room {room.id} changed concurrently")
        saved = copy.deepcopy(room)
        saved.version = expected_version + 1
        self._rooms[room.id] = saved
        return copy.deepcopy(saved)

    # -- reservations ------------------------------------------------------

    def load_blocking_reservations(self, room_id: str) -> list[Reservation]:
        return sorted(
            (
                r
                for r in self._all(self._store.reservations, self._reservations)
                if r.room_id == room_id and r.is_blocking
            ),
            key=lambda r: r.check_in,
        )

    def load_reservation(self, reservation_id: str) -> Reservation | None:
        return self._get(self._store.reservations, self._reservations, reservation_id)

    def confirmation_number_exists(self, confirmation_number: str) -> bool:
        return any(
            r.confirmation_number == confirmation_number
            for r in self._all(self._store.reservations, self._reservations)
        )

    def insert_reservation(self, reservation: Reservation) -> Reservation:
        self._writable(reservation.room_id)
        if self.load_reservation(reservation.id) is not None:
            raise InternalError(f"reservation {reservation.id} already exists")
        self._reservations[reservation.id] = copy.deepcopy(reservation)
        return copy.deepcopy(reservation)

    def update_reservation(self, reservation: Reservation, expected_version: int) -> Reservation:
        self._writable(reservation.room_id)
        current = self.load_reservation(reservation.id)
        if current is None or current.version != expected_version:
            raise VersionConflict(f"reservation {reservation.id} changed concurrently")
        saved = copy.deepcopy(reservation)
        saved.version = expected_version + 1
        self._reservations[reservation.id] = saved
        return copy.deepcopy(saved)

    def list_reservations(self, filters: dict) -> list[Reservation]:
        found = [
            r
            for r in self._all(self._store.reservations, self._reservations)
            if _matches(r, filters, _RESERVATION_RANGES)
        ]
        return sorted(found, key=lambda r: r.created_at or _MIN_UTC, reverse=True)

    # -- housekeeping ------------------------------------------------------

    def load_task(self, task_id: str) -> HousekeepingTask | None:
        return self._get(self._store.tasks, self._tasks, task_id)

    def insert_task(self, task: HousekeepingTask) -> HousekeepingTask:
        self._writable(task.room_id)
        self._tasks[task.id] = copy.deepcopy(task)
        return copy.deepcopy(task)

    def update_task(self, task: HousekeepingTask) -> HousekeepingTask:
        self._writable(task.room_id)
        if self.load_task(task.id) is None:
            raise InternalError(f"task {task.id} does not exist")
        self._tasks[task.id] = copy.deepcopy(task)
        return copy.deepcopy(task)

    def delete_task(self, task: HousekeepingTask) -> None:
        self._writable(task.room_id)
        if self.load_task(task.id) is None:
            raise InternalError(f"task {task.id} does not exist")
        self._tasks[task.id] = None

    def list_tasks(self, filters: dict) -> list[HousekeepingTask]:
        found = [t for t in self._all(self._store.tasks, self._tasks) if _matches(t, filters)]
        return sorted(found, key=lambda t: (t.scheduled_date, t.id))

    # -- maintenance -------------------------------------------------------

    def load_request(self, request_id: str) -> MaintenanceRequest | None:
        return self._get(self._store.requests, self._requests, request_id)

    def insert_request(self, request: MaintenanceRequest) -> MaintenanceRequest:
        self._writable(request.room_id)
        self._requests[request.id] = copy.deepcopy(request)
        return copy.deepcopy(request)

    def update_request(self, request: MaintenanceRequest) -> MaintenanceRequest:
        self._writable(request.room_id)
        if self.load_request(request.id) is None:
            raise InternalError(f"maintenance request {request.id} does not exist")
        self._requests[request.id] = copy.deepcopy(request)
        return copy.deepcopy(request)

    def delete_request(self, request: MaintenanceRequest) -> None:
        self._writable(request.room_id)
        if self.load_request(request.id) is None:
            raise InternalError(f"maintenance request {request.id} does not exist")
        self._requests[request.id] = None

    def list_requests(self, filters: dict) -> list[MaintenanceRequest]:
        found = [r for r in self._all(self._store.requests, self._requests) if _matches(r, filters)]
        return sorted(found, key=lambda r: r.reported_at or _MIN_UTC, reverse=True)

    # -- outbox ------------------------------------------------------------

    def emit_event(self, record: OutboxRecord) -> int:
        if self._room_id is None:
            raise InternalError("read-only session cannot write")
        self._events.append(record)
        with self._store._data_lock:
            return len(self._store.events) + len(self._events)

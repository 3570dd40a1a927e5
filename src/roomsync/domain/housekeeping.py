"""Housekeeping task lifecycle.

    pending --> in_progress --> completed
       |             |
       +-------------+--> cancelled

A cleaning task reaching completed emits CleaningDone, which frees a
room that is still in cleaning and is ignored otherwise.

Housekeeping staff may only touch status and notes, and only on tasks
assigned to them. Managers and admins may edit every whitelisted field.
"""

from __future__ import annotations

from datetime import date, datetime
from uuid import uuid4

from roomsync.domain.actors import (
    SUPERVISOR_ROLES,
    TASK_CREATOR_ROLES,
    Actor,
    check_fields,
    require_role,
)
from roomsync.domain.errors import InvalidTransition, NotFound, Unauthorized, ValidationError
from roomsync.domain.models import (
    HousekeepingTask,
    OutboxRecord,
    Priority,
    TaskStatus,
    TaskType,
    parse_enum,
)
from roomsync.domain.room_status import RoomEvent, apply_room_event
from roomsync.domain.side_effects import OperationResult
from roomsync.domain.store import Session, Store, run_room_unit
from roomsync.infra.time import utc_now
from roomsync.observability.correlation import get_correlation_id
from roomsync.observability.logging import get_logger
from roomsync.observability.redaction import safe_log_context

logger = get_logger(__name__)

TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.IN_PROGRESS, TaskStatus.CANCELLED}),
    TaskStatus.IN_PROGRESS: frozenset({TaskStatus.COMPLETED, TaskStatus.CANCELLED}),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.CANCELLED: frozenset(),
}

WORKER_FIELDS = frozenset({"status", "notes"})
SUPERVISOR_FIELDS = frozenset({"status", "notes", "assigned_to", "task_type", "scheduled_date", "priority"})

LIST_FILTERS = frozenset({"status", "task_type", "assigned_to", "room_id", "priority"})


def _scheduled(value: object) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            pass
    raise ValidationError("scheduled_date must be an ISO date")


def _record(session: Session, event_type: str, task: HousekeepingTask, payload: dict) -> None:
    session.emit_event(
        OutboxRecord(
            event_type=event_type,
            aggregate_type="housekeeping_task",
            aggregate_id=task.id,
            payload=payload,
            correlation_id=get_correlation_id() or None,
        )
    )


def create_task(
    store: Store,
    actor: Actor,
    *,
    room_id: str,
    task_type: str | TaskType,
    scheduled_date: date | str,
    priority: str | Priority = Priority.MEDIUM,
    notes: str | None = None,
    assigned_to: str | None = None,
) -> OperationResult[HousekeepingTask]:
    require_role(actor, TASK_CREATOR_ROLES, "create housekeeping tasks")
    if not room_id:
        raise ValidationError("room_id is required")

    task = HousekeepingTask(
        id=str(uuid4()),
        room_id=room_id,
        task_type=parse_enum(TaskType, task_type, "task_type"),
        scheduled_date=_scheduled(scheduled_date),
        priority=parse_enum(Priority, priority, "priority"),
        notes=notes,
        assigned_to=assigned_to,
    )

    def work(session: Session) -> HousekeepingTask:
        if session.load_room(room_id) is None:
            raise NotFound(f"Room {room_id} not found", code="room_not_found")
        now = utc_now()
        task.created_at = now
        task.updated_at = now
        created = session.insert_task(task)
        _record(session, "housekeeping.task_created", created, {
            "room_id": room_id,
            "task_type": created.task_type.value,
            "created_by": actor.id,
        })
        return created

    created = run_room_unit(store, room_id, work)

    logger.info(
        "housekeeping task created",
        extra={
            "extra_fields": safe_log_context(
                task_id=created.id, room_id=room_id, task_type=created.task_type,
            )
        },
    )
    return OperationResult(created)


def _allowed_fields(actor: Actor, task: HousekeepingTask) -> frozenset[str]:
    if actor.role in SUPERVISOR_ROLES:
        return SUPERVISOR_FIELDS
    if actor.role == "housekeeping":
        if task.assigned_to != actor.id:
            raise Unauthorized("Not authorized to update this task")
        return WORKER_FIELDS
    raise Unauthorized(f"role '{actor.role}' may not update housekeeping tasks")


def _apply(task: HousekeepingTask, changes: dict) -> bool:
    """Apply whitelisted `changes` in place. Returns True if the task just completed."""
    if "task_type" in changes:
        task.task_type = parse_enum(TaskType, changes["task_type"], "task_type")
    if "priority" in changes:
        task.priority = parse_enum(Priority, changes["priority"], "priority")
    if "scheduled_date" in changes:
        task.scheduled_date = _scheduled(changes["scheduled_date"])
    if "assigned_to" in changes:
        task.assigned_to = changes["assigned_to"]
    if "notes" in changes:
        task.notes = changes["notes"]

    completed_now = False
    if "status" in changes:
        target = parse_enum(TaskStatus, changes["status"], "status")
        if target != task.status:
            if target not in TRANSITIONS[task.status]:
                raise InvalidTransition("housekeeping task", task.status.value, target.value)
            task.status = target
            completed_now = target == TaskStatus.COMPLETED
    if task.status == TaskStatus.COMPLETED and task.completed_date is None:
        task.completed_date = utc_now()
    return completed_now


def update_task(
    store: Store,
    actor: Actor,
    task_id: str,
    changes: dict,
) -> OperationResult[HousekeepingTask]:
    """Apply `changes` to a task under the actor's field whitelist.

    Raises:
        NotFound: Unknown task.
        Unauthorized: Actor may not edit this task or one of the fields.
        InvalidTransition: Status change not in the task's table.
        ValidationError: Bad enum or date values.
    """
    if not changes:
        raise ValidationError("No fields to update")

    with store.read() as session:
        located = session.load_task(task_id)
    if located is None:
        raise NotFound(f"Task {task_id} not found", code="task_not_found")
    room_id = located.room_id

    def work(session: Session) -> HousekeepingTask:
        task = session.load_task(task_id)
        if task is None:
            raise NotFound(f"Task {task_id} not found", code="task_not_found")
        check_fields(changes, _allowed_fields(actor, task), "update")

        previous = task.status
        completed_now = _apply(task, changes)
        task.updated_at = utc_now()
        task = session.update_task(task)

        if completed_now and task.task_type == TaskType.CLEANING:
            apply_room_event(session, room_id, RoomEvent.CLEANING_DONE)

        if task.status != previous:
            _record(session, f"housekeeping.task_{task.status.value}", task, {
                "room_id": room_id,
                "from_status": previous.value,
                "changed_by": actor.id,
            })
        return task

    task = run_room_unit(store, room_id, work)

    logger.info(
        "housekeeping task updated",
        extra={
            "extra_fields": safe_log_context(
                task_id=task_id,
                room_id=room_id,
                status=task.status,
                fields=sorted(changes),
                actor_role=actor.role,
            )
        },
    )
    return OperationResult(task)


def complete_task(
    store: Store,
    actor: Actor,
    task_id: str,
    notes: str | None = None,
) -> OperationResult[HousekeepingTask]:
    changes: dict = {"status": TaskStatus.COMPLETED.value}
    if notes is not None:
        changes["notes"] = notes
    return update_task(store, actor, task_id, changes)


def delete_task(store: Store, actor: Actor, task_id: str) -> OperationResult[HousekeepingTask]:
    """Remove a task. Managers and admins only; room status is untouched."""
    if actor.role not in SUPERVISOR_ROLES:
        raise Unauthorized("Only admin/manager can delete housekeeping tasks")

    with store.read() as session:
        located = session.load_task(task_id)
    if located is None:
        raise NotFound(f"Task {task_id} not found", code="task_not_found")
    room_id = located.room_id

    def work(session: Session) -> HousekeepingTask:
        task = session.load_task(task_id)
        if task is None:
            raise NotFound(f"Task {task_id} not found", code="task_not_found")
        session.delete_task(task)
        _record(session, "housekeeping.task_deleted", task, {
            "room_id": room_id,
            "status": task.status.value,
            "deleted_by": actor.id,
        })
        return task

    task = run_room_unit(store, room_id, work)

    logger.info(
        "housekeeping task deleted",
        extra={"extra_fields": safe_log_context(task_id=task_id, room_id=room_id)},
    )
    return OperationResult(task)


def get_task(store: Store, actor: Actor, task_id: str) -> HousekeepingTask:
    with store.read() as session:
        task = session.load_task(task_id)
    if task is None:
        raise NotFound(f"Task {task_id} not found", code="task_not_found")
    if actor.is_guest:
        raise Unauthorized("Not authorized")
    return task


def list_tasks(store: Store, actor: Actor, **filters) -> list[HousekeepingTask]:
    """Tasks ordered by scheduled date. Housekeeping staff only see their own."""
    if actor.is_guest:
        raise Unauthorized("Not authorized")
    unknown = set(filters) - LIST_FILTERS
    if unknown:
        raise ValidationError(f"unknown filters: {', '.join(sorted(unknown))}")
    query = {k: v for k, v in filters.items() if v is not None}
    for name, enum_cls in (("status", TaskStatus), ("task_type", TaskType), ("priority", Priority)):
        if name in query:
            query[name] = parse_enum(enum_cls, query[name], name).value
    if actor.role == "housekeeping":
        query["assigned_to"] = actor.id
    with store.read() as session:
        return session.list_tasks(query)

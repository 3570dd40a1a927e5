"""Maintenance request lifecycle.

    reported --> assigned --> in_progress --> resolved
    (any non-terminal state) --> cancelled

Anyone may report an issue. Only managers and admins may change a
request afterwards; everyone else can read (guests only their own).

An urgent report takes the room out of service immediately
(UrgentIssueOpened). Resolving any request emits IssueResolved, as does
cancelling or deleting an open urgent one; the synchronizer only acts on
it while the room is in maintenance.
"""

from __future__ import annotations

from uuid import uuid4

from roomsync.domain.actors import ROLES, SUPERVISOR_ROLES, Actor, check_fields, require_role
from roomsync.domain.errors import InvalidTransition, NotFound, Unauthorized, ValidationError
from roomsync.domain.models import (
    IssueType,
    MaintenanceRequest,
    OutboxRecord,
    Priority,
    RequestStatus,
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

TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.REPORTED: frozenset({RequestStatus.ASSIGNED, RequestStatus.CANCELLED}),
    RequestStatus.ASSIGNED: frozenset({RequestStatus.IN_PROGRESS, RequestStatus.CANCELLED}),
    RequestStatus.IN_PROGRESS: frozenset({RequestStatus.RESOLVED, RequestStatus.CANCELLED}),
    RequestStatus.RESOLVED: frozenset(),
    RequestStatus.CANCELLED: frozenset(),
}

OPEN_STATUSES = frozenset({RequestStatus.REPORTED, RequestStatus.ASSIGNED, RequestStatus.IN_PROGRESS})

UPDATABLE_FIELDS = frozenset({
    "status", "assigned_to", "priority", "estimated_cost_cents", "actual_cost_cents", "notes",
})

LIST_FILTERS = frozenset({"status", "issue_type", "room_id", "priority", "reported_by"})


def _record(session: Session, event_type: str, request: MaintenanceRequest, payload: dict) -> None:
    session.emit_event(
        OutboxRecord(
            event_type=event_type,
            aggregate_type="maintenance_request",
            aggregate_id=request.id,
            payload=payload,
            correlation_id=get_correlation_id() or None,
        )
    )


def _cost(value: object, field_name: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{field_name} must be a non-negative integer (cents)")
    return value


def create_request(
    store: Store,
    actor: Actor,
    *,
    room_id: str,
    issue_type: str | IssueType,
    description: str,
    priority: str | Priority = Priority.MEDIUM,
) -> OperationResult[MaintenanceRequest]:
    """Report an issue on a room. Urgent reports block the room at once."""
    require_role(actor, ROLES, "report maintenance issues")
    if not room_id:
        raise ValidationError("room_id is required")
    if not description or not description.strip():
        raise ValidationError("description is required")

    request = MaintenanceRequest(
        id=str(uuid4()),
        room_id=room_id,
        reported_by=actor.id,
        issue_type=parse_enum(IssueType, issue_type, "issue_type"),
        description=description.strip(),
        priority=parse_enum(Priority, priority, "priority"),
    )

    def work(session: Session) -> MaintenanceRequest:
        if session.load_room(room_id) is None:
            raise NotFound(f"Room {room_id} not found", code="room_not_found")
        request.reported_at = utc_now()
        created = session.insert_request(request)
        if created.priority == Priority.URGENT:
            apply_room_event(session, room_id, RoomEvent.URGENT_ISSUE_OPENED)
        _record(session, "maintenance.reported", created, {
            "room_id": room_id,
            "issue_type": created.issue_type.value,
            "priority": created.priority.value,
        })
        return created

    created = run_room_unit(store, room_id, work)

    logger.info(
        "maintenance request reported",
        extra={
            "extra_fields": safe_log_context(
                request_id=created.id,
                room_id=room_id,
                issue_type=created.issue_type,
                priority=created.priority,
                actor_role=actor.role,
            )
        },
    )
    return OperationResult(created)


def update_request(
    store: Store,
    actor: Actor,
    request_id: str,
    changes: dict,
) -> OperationResult[MaintenanceRequest]:
    """Apply `changes` to a maintenance request. Managers and admins only.

    Raises:
        NotFound: Unknown request.
        Unauthorized: Actor is not a manager/admin, or a field is not updatable.
        InvalidTransition: Status change not in the request's table.
        ValidationError: Bad enum or cost values.
    """
    if not changes:
        raise ValidationError("No fields to update")
    if actor.role not in SUPERVISOR_ROLES:
        raise Unauthorized("Only admin/manager can update maintenance requests")
    check_fields(changes, UPDATABLE_FIELDS, "update")

    with store.read() as session:
        located = session.load_request(request_id)
    if located is None:
        raise NotFound(f"Maintenance request {request_id} not found", code="request_not_found")
    room_id = located.room_id

    def work(session: Session) -> MaintenanceRequest:
        request = session.load_request(request_id)
        if request is None:
            raise NotFound(f"Maintenance request {request_id} not found", code="request_not_found")

        if "assigned_to" in changes:
            request.assigned_to = changes["assigned_to"]
        if "priority" in changes:
            request.priority = parse_enum(Priority, changes["priority"], "priority")
        if "estimated_cost_cents" in changes:
            request.estimated_cost_cents = _cost(changes["estimated_cost_cents"], "estimated_cost_cents")
        if "actual_cost_cents" in changes:
            request.actual_cost_cents = _cost(changes["actual_cost_cents"], "actual_cost_cents")
        if "notes" in changes:
            request.notes = changes["notes"]

        previous = request.status
        if "status" in changes:
            target = parse_enum(RequestStatus, changes["status"], "status")
            if target != previous:
                if target not in TRANSITIONS[previous]:
                    raise InvalidTransition("maintenance request", previous.value, target.value)
                request.status = target
                if target == RequestStatus.RESOLVED:
                    request.resolved_at = utc_now()

        request = session.update_request(request)

        frees_room = request.status == RequestStatus.RESOLVED or (
            request.status == RequestStatus.CANCELLED and request.priority == Priority.URGENT
        )
        if request.status != previous and frees_room:
            apply_room_event(session, room_id, RoomEvent.ISSUE_RESOLVED)

        if request.status != previous:
            _record(session, f"maintenance.{request.status.value}", request, {
                "room_id": room_id,
                "from_status": previous.value,
                "changed_by": actor.id,
            })
        return request

    request = run_room_unit(store, room_id, work)

    logger.info(
        "maintenance request updated",
        extra={
            "extra_fields": safe_log_context(
                request_id=request_id,
                room_id=room_id,
                status=request.status,
                fields=sorted(changes),
            )
        },
    )
    return OperationResult(request)


def resolve_request(
    store: Store,
    actor: Actor,
    request_id: str,
    *,
    actual_cost_cents: int | None = None,
    notes: str | None = None,
) -> OperationResult[MaintenanceRequest]:
    changes: dict = {"status": RequestStatus.RESOLVED.value}
    if actual_cost_cents is not None:
        changes["actual_cost_cents"] = actual_cost_cents
    if notes is not None:
        changes["notes"] = notes
    return update_request(store, actor, request_id, changes)


def delete_request(store: Store, actor: Actor, request_id: str) -> OperationResult[MaintenanceRequest]:
    """Remove a request. Managers and admins only.

    Deleting an open urgent request frees the room like cancelling it.
    """
    if actor.role not in SUPERVISOR_ROLES:
        raise Unauthorized("Only admin/manager can delete maintenance requests")

    with store.read() as session:
        located = session.load_request(request_id)
    if located is None:
        raise NotFound(f"Maintenance request {request_id} not found", code="request_not_found")
    room_id = located.room_id

    def work(session: Session) -> MaintenanceRequest:
        request = session.load_request(request_id)
        if request is None:
            raise NotFound(f"Maintenance request {request_id} not found", code="request_not_found")
        session.delete_request(request)
        if request.status in OPEN_STATUSES and request.priority == Priority.URGENT:
            apply_room_event(session, room_id, RoomEvent.ISSUE_RESOLVED)
        _record(session, "maintenance.deleted", request, {
            "room_id": room_id,
            "status": request.status.value,
            "deleted_by": actor.id,
        })
        return request

    request = run_room_unit(store, room_id, work)

    logger.info(
        "maintenance request deleted",
        extra={"extra_fields": safe_log_context(request_id=request_id, room_id=room_id, status=request.status)},
    )
    return OperationResult(request)


def get_request(store: Store, actor: Actor, request_id: str) -> MaintenanceRequest:
    with store.read() as session:
        request = session.load_request(request_id)
    if request is None:
        raise NotFound(f"Maintenance request {request_id} not found", code="request_not_found")
    if actor.is_guest and request.reported_by != actor.id:
        raise Unauthorized("Not authorized")
    return request


def list_requests(store: Store, actor: Actor, **filters) -> list[MaintenanceRequest]:
    """Requests, most recently reported first. Guests only see their own reports."""
    unknown = set(filters) - LIST_FILTERS
    if unknown:
        raise ValidationError(f"unknown filters: {', '.join(sorted(unknown))}")
    query = {k: v for k, v in filters.items() if v is not None}
    for name, enum_cls in (("status", RequestStatus), ("issue_type", IssueType), ("priority", Priority)):
        if name in query:
            query[name] = parse_enum(enum_cls, query[name], name).value
    if actor.is_guest:
        query["reported_by"] = actor.id
    with store.read() as session:
        return session.list_requests(query)

"""Maintenance request endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel

from roomsync.api.auth import get_current_actor
from roomsync.api.deps import get_store
from roomsync.api.rbac import require_roles
from roomsync.domain import maintenance as lifecycle
from roomsync.domain.actors import SUPERVISOR_ROLES, Actor
from roomsync.domain.models import MaintenanceRequest, Priority
from roomsync.domain.store import Store


class ReportIssueRequest(BaseModel):
    room_id: str
    issue_type: str
    description: str
    priority: str = Priority.MEDIUM.value


router = APIRouter(prefix="/maintenance", tags=["maintenance"])


def request_to_dict(request: MaintenanceRequest) -> dict:
    return {
        "id": request.id,
        "room_id": request.room_id,
        "reported_by": request.reported_by,
        "issue_type": request.issue_type.value,
        "description": request.description,
        "status": request.status.value,
        "priority": request.priority.value,
        "assigned_to": request.assigned_to,
        "estimated_cost_cents": request.estimated_cost_cents,
        "actual_cost_cents": request.actual_cost_cents,
        "notes": request.notes,
        "reported_at": request.reported_at.isoformat() if request.reported_at else None,
        "resolved_at": request.resolved_at.isoformat() if request.resolved_at else None,
    }


@router.get("")
def list_requests(
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store),
    status: str | None = Query(None),
    issue_type: str | None = Query(None),
    room_id: str | None = Query(None),
    priority: str | None = Query(None),
) -> dict:
    found = lifecycle.list_requests(
        store,
        actor,
        status=status,
        issue_type=issue_type,
        room_id=room_id,
        priority=priority,
    )
    return {"requests": [request_to_dict(r) for r in found]}


@router.get("/{request_id}")
def get_request(
    request_id: str = Path(...),
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store),
) -> dict:
    return request_to_dict(lifecycle.get_request(store, actor, request_id))


@router.post("", status_code=201)
def report_issue(
    body: ReportIssueRequest,
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store),
) -> dict:
    result = lifecycle.create_request(
        store,
        actor,
        room_id=body.room_id,
        issue_type=body.issue_type,
        description=body.description,
        priority=body.priority,
    )
    return request_to_dict(result.entity)


@router.patch("/{request_id}")
def update_request(
    changes: dict,
    request_id: str = Path(...),
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store),
) -> dict:
    return request_to_dict(lifecycle.update_request(store, actor, request_id, changes).entity)


@router.delete("/{request_id}", status_code=204)
def delete_request(
    request_id: str = Path(...),
    actor: Actor = Depends(require_roles(SUPERVISOR_ROLES)),
    store: Store = Depends(get_store),
) -> None:
    lifecycle.delete_request(store, actor, request_id)

"""Housekeeping task endpoints."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel

from roomsync.api.auth import get_current_actor
from roomsync.api.deps import get_store
from roomsync.api.rbac import require_roles
from roomsync.domain import housekeeping as lifecycle
from roomsync.domain.actors import SUPERVISOR_ROLES, TASK_CREATOR_ROLES, Actor
from roomsync.domain.models import HousekeepingTask, Priority
from roomsync.domain.store import Store


class CreateTaskRequest(BaseModel):
    room_id: str
    task_type: str
    scheduled_date: date
    priority: str = Priority.MEDIUM.value
    notes: str | None = None
    assigned_to: str | None = None


router = APIRouter(prefix="/housekeeping", tags=["housekeeping"])


def task_to_dict(task: HousekeepingTask) -> dict:
    return {
        "id": task.id,
        "room_id": task.room_id,
        "task_type": task.task_type.value,
        "scheduled_date": task.scheduled_date.isoformat(),
        "status": task.status.value,
        "assigned_to": task.assigned_to,
        "priority": task.priority.value,
        "notes": task.notes,
        "completed_date": task.completed_date.isoformat() if task.completed_date else None,
    }


@router.get("")
def list_tasks(
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store),
    status: str | None = Query(None),
    task_type: str | None = Query(None),
    assigned_to: str | None = Query(None),
    room_id: str | None = Query(None),
    priority: str | None = Query(None),
) -> dict:
    tasks = lifecycle.list_tasks(
        store,
        actor,
        status=status,
        task_type=task_type,
        assigned_to=assigned_to,
        room_id=room_id,
        priority=priority,
    )
    return {"tasks": [task_to_dict(t) for t in tasks]}


@router.get("/{task_id}")
def get_task(
    task_id: str = Path(...),
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store),
) -> dict:
    return task_to_dict(lifecycle.get_task(store, actor, task_id))


@router.post("", status_code=201)
def create_task(
    body: CreateTaskRequest,
    actor: Actor = Depends(require_roles(TASK_CREATOR_ROLES)),
    store: Store = Depends(get_store),
) -> dict:
    result = lifecycle.create_task(
        store,
        actor,
        room_id=body.room_id,
        task_type=body.task_type,
        scheduled_date=body.scheduled_date,
        priority=body.priority,
        notes=body.notes,
        assigned_to=body.assigned_to,
    )
    return task_to_dict(result.entity)


@router.patch("/{task_id}")
def update_task(
    changes: dict,
    task_id: str = Path(...),
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store),
) -> dict:
    """Partial update. Unknown or forbidden fields are rejected, not ignored."""
    return task_to_dict(lifecycle.update_task(store, actor, task_id, changes).entity)


@router.delete("/{task_id}", status_code=204)
def delete_task(
    task_id: str = Path(...),
    actor: Actor = Depends(require_roles(SUPERVISOR_ROLES)),
    store: Store = Depends(get_store),
) -> None:
    lifecycle.delete_task(store, actor, task_id)

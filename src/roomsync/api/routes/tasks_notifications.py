"""Worker route delivering in-app notifications.

POST /tasks/notifications/deliver accepts a TaskEnvelopeV1 whose
task_name is notify_user or notify_admins. The task_id doubles as the
notification dedupe key, so redelivery is harmless.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request, Response

from roomsync.api.task_auth import verify_task_auth
from roomsync.notifications import senders
from roomsync.observability.correlation import get_correlation_id
from roomsync.observability.logging import get_logger
from roomsync.observability.redaction import safe_log_context
from roomsync.tasks.contracts import TaskEnvelopeV1

router = APIRouter(prefix="/tasks/notifications", tags=["tasks"])

logger = get_logger(__name__)

_REQUIRED = ("category", "title", "body")


@router.post("/deliver")
async def deliver_notification(request: Request) -> Response:
    correlation_id = get_correlation_id()

    if not verify_task_auth(request):
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        data: dict[str, Any] = await request.json()
        envelope = TaskEnvelopeV1.from_dict(data)
    except ValueError:
        logger.warning(
            "invalid notification task body",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )
        return Response(status_code=400, content="invalid task body")

    payload = envelope.payload
    if any(not payload.get(key) for key in _REQUIRED):
        return Response(status_code=400, content="missing required fields")

    fields = {
        "category": payload["category"],
        "title": payload["title"],
        "body": payload["body"],
        "related_id": payload.get("related_id"),
        "related_type": payload.get("related_type"),
        "dedupe_key": envelope.task_id,
    }

    if envelope.task_name == "notify_user":
        user_id = payload.get("user_id")
        if not user_id:
            return Response(status_code=400, content="missing user_id")
        delivered = 1 if senders.notify(user_id=user_id, **fields) else 0
    elif envelope.task_name == "notify_admins":
        delivered = senders.notify_admins(**fields)
    else:
        return Response(status_code=400, content="unknown task_name")

    logger.info(
        "notification task completed",
        extra={
            "extra_fields": safe_log_context(
                correlationId=correlation_id,
                task_name=envelope.task_name,
                task_id=envelope.task_id,
                delivered=delivered,
            )
        },
    )
    return Response(status_code=200, content='{"ok": true}', media_type="application/json")

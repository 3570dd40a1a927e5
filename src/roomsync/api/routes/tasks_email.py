"""Worker route sending the booking confirmation email.

Delivery is best-effort: a failed send is logged and reported in the
response body, and the task is not retried.
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, HTTPException, Request, Response

from roomsync.api.task_auth import verify_task_auth
from roomsync.notifications import senders
from roomsync.observability.correlation import get_correlation_id
from roomsync.observability.logging import get_logger
from roomsync.observability.redaction import safe_log_context
from roomsync.settings import load_notification_settings
from roomsync.tasks.contracts import TaskEnvelopeV1

router = APIRouter(prefix="/tasks/email", tags=["tasks"])

logger = get_logger(__name__)


def _json(status_code: int, body: dict) -> Response:
    return Response(status_code=status_code, content=json.dumps(body), media_type="application/json")


@router.post("/reservation-confirmation")
async def send_reservation_confirmation(request: Request) -> Response:
    correlation_id = get_correlation_id()

    if not verify_task_auth(request):
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        data: dict[str, Any] = await request.json()
        envelope = TaskEnvelopeV1.from_dict(data)
    except ValueError:
        return Response(status_code=400, content="invalid task body")

    reservation_id = envelope.payload.get("reservation_id")
    guest_id = envelope.payload.get("guest_id")
    if not reservation_id or not guest_id:
        return Response(status_code=400, content="missing required fields")

    # Settings may have changed between enqueue and delivery
    if not load_notification_settings().booking_email_enabled:
        return _json(200, {"ok": True, "skipped": "disabled"})

    context = senders.load_confirmation_context(reservation_id)
    if context is None:
        logger.warning(
            "confirmation email skipped: reservation not found",
            extra={"extra_fields": safe_log_context(reservation_id=reservation_id)},
        )
        return _json(200, {"ok": True, "skipped": "not_found"})

    reservation, room = context
    result = senders.send_reservation_confirmation(reservation, room, guest_id)

    logger.info(
        "confirmation email task completed",
        extra={
            "extra_fields": safe_log_context(
                correlationId=correlation_id,
                reservation_id=reservation_id,
                success=result["success"],
            )
        },
    )
    return _json(200, {"ok": result["success"], "error": result.get("error")})

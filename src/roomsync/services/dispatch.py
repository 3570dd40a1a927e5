"""After-commit delivery of side-effect intents.

Each intent becomes one worker task keyed by its dedupe key. Dispatch is
best-effort: a failure is logged and the remaining intents still go out,
and nothing is ever raised back to the operation's caller.
"""

from __future__ import annotations

from typing import Iterable

from roomsync.domain.side_effects import SideEffect
from roomsync.observability.correlation import get_correlation_id
from roomsync.observability.logging import get_logger
from roomsync.observability.redaction import safe_log_context
from roomsync.settings import NotificationSettings, load_notification_settings
from roomsync.tasks.client import TasksClient
from roomsync.tasks.contracts import TaskEnvelopeV1

logger = get_logger(__name__)

WORKER_PATHS = {
    "notify_user": "/tasks/notifications/deliver",
    "notify_admins": "/tasks/notifications/deliver",
    "reservation_confirmation_email": "/tasks/email/reservation-confirmation",
}


def _enabled(effect: SideEffect, settings: NotificationSettings) -> bool:
    if effect.kind == "reservation_confirmation_email":
        return settings.booking_email_enabled
    return True


def dispatch_side_effects(
    effects: Iterable[SideEffect],
    tasks_client: TasksClient,
    settings: NotificationSettings | None = None,
) -> int:
    """Enqueue every enabled effect. Returns how many were accepted."""
    settings = settings or load_notification_settings()
    correlation_id = get_correlation_id() or None
    accepted = 0

    for effect in effects:
        if not _enabled(effect, settings):
            logger.info(
                "side effect disabled by settings",
                extra={"extra_fields": safe_log_context(kind=effect.kind, dedupe_key=effect.dedupe_key)},
            )
            continue

        envelope = TaskEnvelopeV1(task_name=effect.kind, payload=effect.payload, task_id=effect.dedupe_key)
        try:
            if tasks_client.enqueue_http(
                task_id=effect.dedupe_key,
                url_path=WORKER_PATHS[effect.kind],
                payload=envelope.to_dict(),
                correlation_id=correlation_id,
            ):
                accepted += 1
        except Exception:
            logger.exception(
                "side effect dispatch failed",
                extra={"extra_fields": safe_log_context(kind=effect.kind, dedupe_key=effect.dedupe_key)},
            )

    return accepted

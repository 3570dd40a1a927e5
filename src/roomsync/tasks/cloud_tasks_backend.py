"""Cloud Tasks backend for GCP deployment."""

import json
import os

from google.api_core import exceptions as gcp_exceptions
from google.cloud import tasks_v2

from roomsync.observability.logging import get_logger

logger = get_logger(__name__)


def enqueue_cloud_task(
    task_id: str,
    url_path: str,
    payload: dict,
    correlation_id: str | None = None,
) -> bool:
    """Enqueue a task via Google Cloud Tasks.

    The task is named after task_id, so Cloud Tasks itself rejects a
    second enqueue of the same side effect.

    Raises:
        RuntimeError: If required env vars are not set.
    """
    project = os.environ.get("GOOGLE_CLOUD_PROJECT") or os.environ.get("GCP_PROJECT_ID")
    location = os.environ.get("GCP_LOCATION", "us-central1")
    queue = os.environ.get("GCP_TASKS_QUEUE", "roomsync-default")
    worker_url = os.environ.get("WORKER_BASE_URL")
    oidc_service_account = os.environ.get("TASKS_OIDC_SERVICE_ACCOUNT")
    audience = os.environ.get("TASKS_OIDC_AUDIENCE")

    if not project:
        raise RuntimeError("GOOGLE_CLOUD_PROJECT or GCP_PROJECT_ID required")
    if not worker_url:
        raise RuntimeError("WORKER_BASE_URL required for Cloud Tasks")
    if not oidc_service_account:
        raise RuntimeError("TASKS_OIDC_SERVICE_ACCOUNT required for Cloud Tasks")
    if not audience:
        raise RuntimeError("TASKS_OIDC_AUDIENCE required for Cloud Tasks")

    client = tasks_v2.CloudTasksClient()
    parent = client.queue_path(project, location, queue)

    headers = {"Content-Type": "application/json"}
    if correlation_id:
        headers["X-Correlation-ID"] = correlation_id

    safe_task_id = task_id.replace(":", "-").replace("/", "-")
    task = {
        "name": f"{parent}/tasks/{safe_task_id}",
        "http_request": {
            "http_method": tasks_v2.HttpMethod.POST,
            "url": f"{worker_url.rstrip('/')}{url_path}",
            "headers": headers,
            "body": json.dumps(payload).encode(),
            "oidc_token": {
                "service_account_email": oidc_service_account,
                "audience": audience,
            },
        },
    }

    try:
        response = client.create_task(parent=parent, task=task)
    except gcp_exceptions.AlreadyExists:
        logger.info(
            "cloud task already exists (dedupe)",
            extra={"extra_fields": {"task_id": task_id, "correlationId": correlation_id}},
        )
        return True

    logger.info(
        "cloud task enqueued",
        extra={
            "extra_fields": {
                "task_name": response.name,
                "url_path": url_path,
                "correlationId": correlation_id,
            }
        },
    )
    return True

"""HTTP backend for tasks - sends tasks to the worker via HTTP POST.

Used in local/staging environments where api and worker run as separate
containers on the same network.
"""

import os

import requests
from google.auth.transport.requests import Request as GoogleRequest
from google.oauth2.id_token import fetch_id_token

from roomsync.observability.logging import get_logger

logger = get_logger(__name__)

HTTP_TIMEOUT = int(os.environ.get("TASKS_HTTP_TIMEOUT", "30"))

# Must match task_auth.LOCAL_DEV_AUDIENCE
LOCAL_DEV_AUDIENCE = "roomsync-tasks-local"


def _worker_base_url() -> str:
    return os.environ.get("WORKER_BASE_URL", "http://worker:8000").rstrip("/")


def _fetch_oidc_token(audience: str) -> str | None:
    """Fetch a GCP ID token for `audience` from ADC or the metadata server."""
    try:
        return fetch_id_token(GoogleRequest(), audience)
    except Exception as e:
        logger.error(
            "failed to fetch OIDC ID token",
            extra={"extra_fields": {"audience": audience, "error_type": type(e).__name__}},
        )
        return None


def enqueue_http(
    task_id: str,
    url_path: str,
    payload: dict,
    correlation_id: str | None = None,
) -> bool:
    """POST the task to WORKER_BASE_URL + url_path.

    Returns:
        True if the worker answered 2xx, False otherwise.
    """
    base_url = _worker_base_url()
    url = f"{base_url}{url_path}"
    headers = {
        "Content-Type": "application/json",
        "X-Correlation-ID": correlation_id or "",
        "X-Task-Id": task_id,
    }

    # Shared secret for local dev, real OIDC token elsewhere
    audience = os.environ.get("TASKS_OIDC_AUDIENCE", "")
    if audience == LOCAL_DEV_AUDIENCE:
        secret = os.environ.get("INTERNAL_TASK_SECRET", "")
        if secret:
            headers["X-Internal-Task-Secret"] = secret
    else:
        token = _fetch_oidc_token(audience or base_url)
        if not token:
            logger.error(
                "HTTP task enqueue aborted: OIDC token unavailable",
                extra={"extra_fields": {"task_id": task_id, "url_path": url_path}},
            )
            return False
        headers["Authorization"] = f"Bearer {token}"

    try:
        response = requests.post(url, json=payload, headers=headers, timeout=HTTP_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.error(
            "HTTP task enqueue failed",
            extra={"extra_fields": {"task_id": task_id, "url_path": url_path, "error": str(e)}},
        )
        return False

    logger.info(
        "HTTP task enqueued",
        extra={"extra_fields": {"task_id": task_id, "url_path": url_path}},
    )
    return True

"""Tasks client with idempotent enqueue.

Backends, selected via the TASKS_BACKEND env var:
- inline (default): records the task without sending it (dev/tests)
- http: POSTs the task to the worker service
- cloud_tasks: creates a Google Cloud Task targeting the worker
"""

import os
import threading


class TasksClient:
    """Enqueues worker tasks, at most once per task_id per process.

    The dedupe set only guards against double enqueue from one process;
    worker handlers are idempotent on their dedupe keys as well.
    """

    def __init__(self, backend: str | None = None) -> None:
        self._backend = backend or os.environ.get("TASKS_BACKEND", "inline")
        self._lock = threading.Lock()
        self._seen_ids: set[str] = set()
        self._recorded: list[dict] = []

    @property
    def backend(self) -> str:
        return self._backend

    def enqueue_http(
        self,
        task_id: str,
        url_path: str,
        payload: dict,
        correlation_id: str | None = None,
    ) -> bool:
        """Send a task to the worker endpoint at `url_path`.

        Args:
            task_id: Unique identifier for idempotency.
            url_path: Worker endpoint path (e.g., "/tasks/notifications/deliver").
            payload: Task data (ids and display text, no credentials).
            correlation_id: Optional correlation ID for tracing.

        Returns:
            True if the backend accepted the task.
            False if the task_id was already seen or the backend refused it.

        Raises:
            ValueError: If TASKS_BACKEND is unknown.
        """
        with self._lock:
            if task_id in self._seen_ids:
                return False
            self._seen_ids.add(task_id)

        if self._backend == "inline":
            with self._lock:
                self._recorded.append({
                    "task_id": task_id,
                    "url_path": url_path,
                    "payload": payload,
                    "correlation_id": correlation_id,
                })
            return True

        if self._backend == "http":
            from roomsync.tasks.http_backend import enqueue_http

            return enqueue_http(task_id, url_path, payload, correlation_id)

        if self._backend == "cloud_tasks":
            from roomsync.tasks.cloud_tasks_backend import enqueue_cloud_task

            return enqueue_cloud_task(task_id, url_path, payload, correlation_id)

        raise ValueError(f"Unknown TASKS_BACKEND: {self._backend}")

    def was_enqueued(self, task_id: str) -> bool:
        with self._lock:
            return task_id in self._seen_ids

    def get_recorded_tasks(self) -> list[dict]:
        """Tasks captured by the inline backend."""
        with self._lock:
            return list(self._recorded)

    def clear(self) -> None:
        with self._lock:
            self._seen_ids.clear()
            self._recorded.clear()

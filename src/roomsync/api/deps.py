"""Shared request dependencies (overridable in tests)."""

from roomsync.domain.store import Store
from roomsync.infra.store_factory import get_store as _get_store
from roomsync.tasks.client import TasksClient

_tasks_client = TasksClient()


def get_store() -> Store:
    return _get_store()


def get_tasks_client() -> TasksClient:
    return _tasks_client

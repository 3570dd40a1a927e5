"""Store selection.

STORE_BACKEND=postgres (default) uses DATABASE_URL; STORE_BACKEND=memory
keeps everything in process, for local runs and tests.
"""

import os
import threading

from roomsync.domain.store import Store
from roomsync.observability.logging import get_logger

logger = get_logger(__name__)

_store: Store | None = None
_lock = threading.Lock()


def build_store(backend: str | None = None) -> Store:
    backend = (backend or os.environ.get("STORE_BACKEND", "postgres")).lower()
    if backend == "memory":
        from roomsync.infra.memory_store import MemoryStore

        return MemoryStore()
    if backend == "postgres":
        from roomsync.infra.pg_store import PgStore

        return PgStore()
    raise ValueError(f"Unknown STORE_BACKEND: {backend}")


def get_store() -> Store:
    """Process-wide store, built on first use."""
    global _store
    with _lock:
        if _store is None:
            _store = build_store()
            logger.info(
                "store initialised",
                extra={"extra_fields": {"backend": type(_store).__name__}},
            )
        return _store


def reset_store() -> None:
    """Drop the cached store (tests)."""
    global _store
    with _lock:
        _store = None

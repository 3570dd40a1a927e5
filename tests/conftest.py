"""Shared pytest fixtures for RoomSync tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402

from tests.helpers import make_room  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_oidc_jwks_cache():
    """The JWKS cache is module-level; keys from one test must not leak into the next."""
    import roomsync.api.auth as auth_module

    auth_module._jwks_cache = None
    auth_module._jwks_cache_time = 0
    yield
    auth_module._jwks_cache = None
    auth_module._jwks_cache_time = 0


@pytest.fixture
def store():
    """Memory store with two rooms: 101 (2 guests, 100.00) and 102 (4 guests, 180.00)."""
    from roomsync.infra.memory_store import MemoryStore

    memory = MemoryStore()
    memory.add_room(make_room("room-101", number="101", max_occupancy=2, price_per_night_cents=10000))
    memory.add_room(make_room("room-102", number="102", max_occupancy=4, price_per_night_cents=18000))
    return memory

"""Shared test helpers (plain functions, not fixtures)."""

from __future__ import annotations

import base64
import time
from datetime import date

import jwt
from cryptography.hazmat.primitives.asymmetric import rsa

from roomsync.domain.actors import Actor
from roomsync.domain.models import Room, RoomStatus

ADMIN = Actor(id="admin-1", role="admin")
MANAGER = Actor(id="manager-1", role="manager")
RECEPTIONIST = Actor(id="reception-1", role="receptionist")
HOUSEKEEPER = Actor(id="hk-1", role="housekeeping")
OTHER_HOUSEKEEPER = Actor(id="hk-2", role="housekeeping")
GUEST = Actor(id="guest-1", role="guest")
OTHER_GUEST = Actor(id="guest-2", role="guest")


def make_room(
    room_id: str = "room-101",
    *,
    number: str = "101",
    room_type: str = "double",
    max_occupancy: int = 2,
    price_per_night_cents: int = 10000,
    status: RoomStatus = RoomStatus.AVAILABLE,
) -> Room:
    return Room(
        id=room_id,
        number=number,
        room_type=room_type,
        max_occupancy=max_occupancy,
        price_per_night_cents=price_per_night_cents,
        status=status,
    )


def room_status(store, room_id: str = "room-101") -> RoomStatus:
    with store.read() as session:
        return session.load_room(room_id).status


def book(store, actor=GUEST, *, room_id="room-101", check_in=date(2024, 3, 10), check_out=date(2024, 3, 13), guests=1):
    """Create a reservation and return the committed entity."""
    from roomsync.domain.reservations import create_reservation

    return create_reservation(
        store,
        actor,
        room_id=room_id,
        check_in=check_in,
        check_out=check_out,
        number_of_guests=guests,
    ).entity


# ---------------------------------------------------------------------------
# JWT helpers
# ---------------------------------------------------------------------------


def generate_rsa_keypair():
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return private_key, private_key.public_key()


def create_jwks(public_key, kid: str = "test-key-1") -> dict:
    numbers = public_key.public_numbers()

    def b64(n: int) -> str:
        return base64.urlsafe_b64encode(n.to_bytes((n.bit_length() + 7) // 8, "big")).rstrip(b"=").decode()

    return {"keys": [{"kty": "RSA", "use": "sig", "alg": "RS256", "kid": kid, "n": b64(numbers.n), "e": b64(numbers.e)}]}


def create_token(
    private_key,
    kid: str = "test-key-1",
    sub: str = "user-123",
    iss: str = "https://auth.example.com",
    aud: str = "roomsync-api",
    exp: int | None = None,
) -> str:
    now = int(time.time())
    payload = {"sub": sub, "iss": iss, "aud": aud, "exp": exp if exp is not None else now + 3600, "iat": now}
    return jwt.encode(payload, private_key, algorithm="RS256", headers={"kid": kid})

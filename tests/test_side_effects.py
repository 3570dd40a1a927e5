"""Tests for the side-effect intents built by the reservation lifecycle."""

from datetime import datetime, timezone

from roomsync.domain.models import Reservation, Room
from roomsync.domain.side_effects import (
    checked_in_effects,
    checked_out_effects,
    reservation_created_effects,
)

RESERVATION = Reservation(
    id="res-1", guest_id="guest-1", room_id="room-101",
    check_in=datetime(2024, 3, 10, tzinfo=timezone.utc), check_out=datetime(2024, 3, 12, tzinfo=timezone.utc),
    number_of_guests=1, total_cents=20000, confirmation_number="RS20240301-ABC123",
)
ROOM = Room(id="room-101", number="101", room_type="double", max_occupancy=2, price_per_night_cents=10000)


def test_dedupe_keys_are_stable_per_reservation():
    first = reservation_created_effects(RESERVATION, ROOM, booked_by_guest=True)
    second = reservation_created_effects(RESERVATION, ROOM, booked_by_guest=True)
    assert [e.dedupe_key for e in first] == [e.dedupe_key for e in second]
    assert len({e.dedupe_key for e in first}) == 3


def test_staff_booking_skips_admin_notice():
    effects = reservation_created_effects(RESERVATION, ROOM, booked_by_guest=False)
    assert [e.kind for e in effects] == ["reservation_confirmation_email", "notify_user"]


def test_payloads_carry_no_contact_details():
    effects = reservation_created_effects(RESERVATION, ROOM, booked_by_guest=True)
    email = effects[0]
    assert email.payload == {"reservation_id": "res-1", "guest_id": "guest-1"}
    assert email.to_dict()["kind"] == "reservation_confirmation_email"


def test_front_desk_notices():
    (check_in,) = checked_in_effects(RESERVATION, ROOM)
    (check_out,) = checked_out_effects(RESERVATION, ROOM)
    assert check_in.payload["category"] == "checkin"
    assert check_in.dedupe_key == "notify-admins:checkin:res-1"
    assert check_out.payload["title"] == "Guest Checked Out"
    assert "user_id" not in check_out.payload

"""Tests for the maintenance request lifecycle and its room effects."""

import pytest

from roomsync.domain import maintenance
from roomsync.domain.errors import InvalidTransition, NotFound, Unauthorized, ValidationError
from roomsync.domain.models import Priority, RequestStatus, RoomStatus
from tests.helpers import ADMIN, GUEST, HOUSEKEEPER, MANAGER, OTHER_GUEST, RECEPTIONIST, room_status


def _report(store, actor=GUEST, *, priority="medium", room_id="room-101", issue_type="plumbing"):
    return maintenance.create_request(
        store, actor, room_id=room_id, issue_type=issue_type,
        description="  Leaking tap  ", priority=priority,
    ).entity


def _advance(store, request_id, *statuses):
    for status in statuses:
        maintenance.update_request(store, MANAGER, request_id, {"status": status})


class TestCreateRequest:
    def test_anyone_can_report(self, store):
        req = _report(store, HOUSEKEEPER)
        assert req.status == RequestStatus.REPORTED
        assert req.reported_by == HOUSEKEEPER.id
        assert req.description == "Leaking tap"
        assert req.reported_at is not None
        assert room_status(store) == RoomStatus.AVAILABLE

    def test_urgent_blocks_room(self, store):
        _report(store, priority="urgent")
        assert room_status(store) == RoomStatus.MAINTENANCE
        event_types = [e.event_type for e in store.outbox()]
        assert event_types == ["room.status_changed", "maintenance.reported"]

    @pytest.mark.parametrize("issue_type", ["roof", ""])
    def test_bad_issue_type(self, store, issue_type):
        with pytest.raises(ValidationError):
            _report(store, issue_type=issue_type)

    def test_blank_description(self, store):
        with pytest.raises(ValidationError):
            maintenance.create_request(
                store, GUEST, room_id="room-101", issue_type="hvac", description="   ",
            )

    def test_unknown_room(self, store):
        with pytest.raises(NotFound):
            _report(store, room_id="room-999")


class TestUpdateRequest:
    def test_full_path_to_resolved(self, store):
        req = _report(store, priority="urgent")
        _advance(store, req.id, "assigned", "in_progress")
        resolved = maintenance.resolve_request(store, ADMIN, req.id, actual_cost_cents=4500, notes="washer").entity

        assert resolved.status == RequestStatus.RESOLVED
        assert resolved.resolved_at is not None
        assert resolved.actual_cost_cents == 4500
        assert room_status(store) == RoomStatus.AVAILABLE

    def test_resolving_any_request_frees_room(self, store):
        _report(store, priority="urgent")
        minor = _report(store, priority="low", issue_type="furniture")

        _advance(store, minor.id, "assigned", "in_progress", "resolved")
        assert room_status(store) == RoomStatus.AVAILABLE

    def test_resolving_first_of_two_urgent_frees_room(self, store):
        first = _report(store, priority="urgent")
        _report(store, priority="urgent", issue_type="electrical")

        _advance(store, first.id, "assigned", "in_progress", "resolved")
        assert room_status(store) == RoomStatus.AVAILABLE

    def test_cancelling_urgent_frees_room(self, store):
        req = _report(store, priority="urgent")
        _advance(store, req.id, "cancelled")
        assert room_status(store) == RoomStatus.AVAILABLE

    def test_cancelling_non_urgent_keeps_maintenance(self, store):
        _report(store, priority="urgent")
        minor = _report(store, priority="low")
        _advance(store, minor.id, "cancelled")
        assert room_status(store) == RoomStatus.MAINTENANCE

    def test_resolving_non_urgent_on_available_room_is_noop(self, store):
        req = _report(store)
        _advance(store, req.id, "assigned", "in_progress", "resolved")
        assert room_status(store) == RoomStatus.AVAILABLE
        assert "room.status_changed" not in [e.event_type for e in store.outbox()]

    def test_escalation_does_not_block_room(self, store):
        req = _report(store, priority="low")
        updated = maintenance.update_request(store, MANAGER, req.id, {"priority": "urgent"}).entity
        assert updated.priority == Priority.URGENT
        assert room_status(store) == RoomStatus.AVAILABLE

    def test_skipping_states_is_invalid(self, store):
        req = _report(store)
        with pytest.raises(InvalidTransition):
            maintenance.resolve_request(store, MANAGER, req.id)

    def test_resolved_is_terminal(self, store):
        req = _report(store)
        _advance(store, req.id, "assigned", "in_progress", "resolved")
        with pytest.raises(InvalidTransition):
            _advance(store, req.id, "cancelled")

    @pytest.mark.parametrize("actor", [RECEPTIONIST, HOUSEKEEPER, GUEST])
    def test_only_supervisors_update(self, store, actor):
        req = _report(store)
        with pytest.raises(Unauthorized):
            maintenance.update_request(store, actor, req.id, {"notes": "x"})

    def test_description_not_updatable(self, store):
        req = _report(store)
        with pytest.raises(Unauthorized) as exc_info:
            maintenance.update_request(store, ADMIN, req.id, {"description": "other"})
        assert exc_info.value.code == "field_not_allowed"

    @pytest.mark.parametrize("cost", [-1, 12.5, "100", True])
    def test_bad_cost(self, store, cost):
        req = _report(store)
        with pytest.raises(ValidationError):
            maintenance.update_request(store, ADMIN, req.id, {"estimated_cost_cents": cost})

    def test_assignment_and_estimate(self, store):
        req = _report(store)
        updated = maintenance.update_request(store, MANAGER, req.id, {
            "status": "assigned", "assigned_to": "tech-7", "estimated_cost_cents": 12000,
        }).entity
        assert updated.status == RequestStatus.ASSIGNED
        assert updated.assigned_to == "tech-7"
        assert updated.estimated_cost_cents == 12000

    def test_unknown_request(self, store):
        with pytest.raises(NotFound):
            maintenance.update_request(store, MANAGER, "missing", {"notes": "x"})


class TestDeleteRequest:
    def test_supervisor_deletes(self, store):
        req = _report(store)
        deleted = maintenance.delete_request(store, ADMIN, req.id).entity
        assert deleted.id == req.id
        with pytest.raises(NotFound):
            maintenance.get_request(store, ADMIN, req.id)
        assert store.outbox()[-1].event_type == "maintenance.deleted"

    @pytest.mark.parametrize("actor", [RECEPTIONIST, HOUSEKEEPER, GUEST])
    def test_only_supervisors_delete(self, store, actor):
        req = _report(store, actor)
        with pytest.raises(Unauthorized):
            maintenance.delete_request(store, actor, req.id)
        assert maintenance.get_request(store, MANAGER, req.id).id == req.id

    def test_deleting_open_urgent_frees_room(self, store):
        req = _report(store, priority="urgent")
        maintenance.delete_request(store, MANAGER, req.id)
        assert room_status(store) == RoomStatus.AVAILABLE

    def test_deleting_non_urgent_keeps_maintenance(self, store):
        _report(store, priority="urgent")
        minor = _report(store, priority="low")
        maintenance.delete_request(store, MANAGER, minor.id)
        assert room_status(store) == RoomStatus.MAINTENANCE

    def test_unknown_request(self, store):
        with pytest.raises(NotFound):
            maintenance.delete_request(store, MANAGER, "missing")


class TestReadRequests:
    def test_guest_sees_own_reports(self, store):
        mine = _report(store)
        _report(store, OTHER_GUEST, room_id="room-102")
        assert [r.id for r in maintenance.list_requests(store, GUEST)] == [mine.id]
        assert len(maintenance.list_requests(store, MANAGER)) == 2

    def test_guest_cannot_read_others(self, store):
        theirs = _report(store, OTHER_GUEST)
        with pytest.raises(Unauthorized):
            maintenance.get_request(store, GUEST, theirs.id)
        assert maintenance.get_request(store, HOUSEKEEPER, theirs.id).id == theirs.id

    def test_filters(self, store):
        _report(store)
        urgent = _report(store, priority="urgent", issue_type="electrical")
        assert [r.id for r in maintenance.list_requests(store, ADMIN, priority="urgent")] == [urgent.id]
        assert [r.id for r in maintenance.list_requests(store, ADMIN, issue_type="electrical")] == [urgent.id]
        with pytest.raises(ValidationError):
            maintenance.list_requests(store, ADMIN, status="broken")

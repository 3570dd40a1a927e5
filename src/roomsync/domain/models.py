"""Entities and closed enumerations for rooms and the three workflows."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import TypeVar, Union

from roomsync.domain.errors import ValidationError

# Billing and overlap checks accept whole days or instants (never mixed).
# Stored reservations always hold timezone-aware UTC instants.
StayPoint = Union[date, datetime]


class RoomStatus(str, Enum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    OCCUPIED = "occupied"
    CLEANING = "cleaning"
    MAINTENANCE = "maintenance"


class ReservationStatus(str, Enum):
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"
    CANCELLED = "cancelled"


# Statuses that hold a room for their interval.
BLOCKING_STATUSES = frozenset({ReservationStatus.CONFIRMED, ReservationStatus.CHECKED_IN})


class TaskType(str, Enum):
    CLEANING = "cleaning"
    MAINTENANCE = "maintenance"
    INSPECTION = "inspection"
    DEEP_CLEANING = "deep_cleaning"


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class IssueType(str, Enum):
    PLUMBING = "plumbing"
    ELECTRICAL = "electrical"
    HVAC = "hvac"
    FURNITURE = "furniture"
    APPLIANCE = "appliance"
    OTHER = "other"


class RequestStatus(str, Enum):
    REPORTED = "reported"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


@dataclass
class Room:
    """A physical room. `status` is written only by the room status synchronizer."""

    id: str
    number: str
    room_type: str
    max_occupancy: int
    price_per_night_cents: int
    status: RoomStatus = RoomStatus.AVAILABLE
    version: int = 1
    last_event: str | None = None
    status_changed_at: datetime | None = None


@dataclass
class Reservation:
    id: str
    guest_id: str
    room_id: str
    check_in: datetime
    check_out: datetime
    number_of_guests: int
    total_cents: int
    confirmation_number: str
    status: ReservationStatus = ReservationStatus.CONFIRMED
    special_requests: str | None = None
    booking_source: str = "online"
    cancelled_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    version: int = 1

    @property
    def is_blocking(self) -> bool:
        return self.status in BLOCKING_STATUSES


@dataclass
class HousekeepingTask:
    id: str
    room_id: str
    task_type: TaskType
    scheduled_date: date
    status: TaskStatus = TaskStatus.PENDING
    assigned_to: str | None = None
    priority: Priority = Priority.MEDIUM
    notes: str | None = None
    completed_date: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class MaintenanceRequest:
    id: str
    room_id: str
    reported_by: str
    issue_type: IssueType
    description: str
    status: RequestStatus = RequestStatus.REPORTED
    priority: Priority = Priority.MEDIUM
    assigned_to: str | None = None
    estimated_cost_cents: int | None = None
    actual_cost_cents: int | None = None
    notes: str | None = None
    reported_at: datetime | None = None
    resolved_at: datetime | None = None


@dataclass(frozen=True)
class OutboxRecord:
    """Audit/outbox row emitted inside a unit of work."""

    event_type: str
    aggregate_type: str
    aggregate_id: str
    payload: dict = field(default_factory=dict)
    correlation_id: str | None = None


E = TypeVar("E", bound=Enum)


def parse_enum(enum_cls: type[E], value: object, field_name: str) -> E:
    """Coerce `value` into `enum_cls`, raising ValidationError on unknown values."""
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"{field_name} must be one of: {allowed}") from None


def to_instant(value: object, field_name: str) -> datetime:
    """Normalise a stay point to an aware UTC datetime (dates map to midnight UTC)."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            raise ValidationError(f"{field_name} must be timezone-aware", code="invalid_dates")
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    raise ValidationError(f"{field_name} is required", code="invalid_dates")

"""Domain error taxonomy.

Every failure a caller-facing operation can report is one of these.
The API layer maps each class to a status code; nothing else needs to
know about HTTP.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base class for typed domain failures."""

    code = "domain_error"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code


class ValidationError(DomainError):
    """Malformed or missing input (e.g. non-chronological dates)."""

    code = "validation_error"


class NotFound(DomainError):
    """Unknown room, reservation, task or request id."""

    code = "not_found"


class Conflict(DomainError):
    """Client-correctable conflict. Never retried automatically."""

    code = "conflict"


class OccupancyExceeded(Conflict):
    """Requested guest count is above the room's max occupancy."""

    code = "occupancy_exceeded"


class InvalidTransition(Conflict):
    """Requested status change is not in the entity's transition table."""

    code = "invalid_transition"

    def __init__(self, entity: str, current: str, target: str) -> None:
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(f"{entity} cannot move from '{current}' to '{target}'")


class Unauthorized(DomainError):
    """Actor lacks permission for the requested mutation."""

    code = "unauthorized"


class VersionConflict(DomainError):
    """Lost a concurrent race on a versioned record."""

    code = "version_conflict"


class InternalError(DomainError):
    """Persistence or unexpected failure. The unit was rolled back."""

    code = "internal_error"

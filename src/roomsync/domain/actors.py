"""Actors and the privilege rules the lifecycles enforce.

Roles are flat, not a hierarchy: each operation names the set of roles
it accepts. Field whitelists are keyed by privilege level and checked
before any mutation is applied.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from roomsync.domain.errors import Unauthorized

ROLES = ("admin", "manager", "receptionist", "housekeeping", "guest")

# Front-desk staff: may book for others, check guests in and out.
STAFF_ROLES = frozenset({"admin", "manager", "receptionist"})

# May change maintenance status and edit any housekeeping field.
SUPERVISOR_ROLES = frozenset({"admin", "manager"})

# May open housekeeping tasks.
TASK_CREATOR_ROLES = frozenset({"admin", "manager", "receptionist"})


@dataclass(frozen=True)
class Actor:
    """Who is asking. Resolved by the authentication layer."""

    id: str
    role: str

    @property
    def is_guest(self) -> bool:
        return self.role == "guest"

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def is_supervisor(self) -> bool:
        return self.role in SUPERVISOR_ROLES


def require_role(actor: Actor, allowed: Iterable[str], action: str) -> None:
    """Raise Unauthorized unless actor.role is one of `allowed`."""
    if actor.role not in allowed:
        raise Unauthorized(f"role '{actor.role}' may not {action}")


def check_fields(changes: dict, allowed: frozenset[str], action: str) -> None:
    """Reject any key in `changes` outside the caller's whitelist."""
    forbidden = sorted(set(changes) - allowed)
    if forbidden:
        raise Unauthorized(
            f"not allowed to {action}: {', '.join(forbidden)}",
            code="field_not_allowed",
        )

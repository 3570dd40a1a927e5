"""Route-level role guards.

The lifecycles enforce their own permissions; these guards only reject
roles that can never reach an endpoint, before any store access.
"""

from __future__ import annotations

from typing import Callable, Iterable

from fastapi import Depends, HTTPException

from roomsync.api.auth import get_current_actor
from roomsync.domain.actors import ROLES, Actor


def require_roles(allowed: Iterable[str]) -> Callable[..., Actor]:
    """Dependency that lets through only actors whose role is in `allowed`.

    Usage:
        @router.get("/something")
        def endpoint(actor: Actor = Depends(require_roles(STAFF_ROLES))):
            ...
    """
    allowed = frozenset(allowed)
    unknown = allowed - set(ROLES)
    if unknown:
        raise ValueError(f"Invalid roles: {sorted(unknown)}")

    def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in allowed:
            raise HTTPException(status_code=403, detail="Insufficient role")
        return actor

    return dependency

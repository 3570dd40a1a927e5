"""Bearer-token authentication against the identity provider's JWKS.

Provides:
- verify_token(): validates an RS256 JWT and returns its subject
- get_current_user(): FastAPI dependency resolving the user row
- get_current_actor(): the (id, role) pair the domain works with
"""

from __future__ import annotations

import os
import threading
import time
from dataclasses import dataclass
from typing import Any

import jwt
import requests
from fastapi import Depends, HTTPException, Request

from roomsync.domain.actors import ROLES, Actor
from roomsync.observability.logging import get_logger
from roomsync.observability.redaction import safe_log_context

logger = get_logger(__name__)

_jwks_cache: dict[str, Any] | None = None
_jwks_cache_time: float = 0
_jwks_cache_lock = threading.Lock()
_JWKS_CACHE_TTL = 600  # seconds


@dataclass
class CurrentUser:
    id: str
    external_subject: str
    email: str | None
    name: str | None
    role: str

    def as_actor(self) -> Actor:
        return Actor(id=self.id, role=self.role)


def _oidc_settings() -> tuple[str | None, str | None, str | None]:
    return (
        os.environ.get("OIDC_ISSUER"),
        os.environ.get("OIDC_AUDIENCE"),
        os.environ.get("OIDC_JWKS_URL"),
    )


def _fetch_jwks(jwks_url: str) -> dict[str, Any]:
    resp = requests.get(jwks_url, timeout=10)
    resp.raise_for_status()
    return resp.json()


def _get_jwks(jwks_url: str, force_refresh: bool = False) -> dict[str, Any]:
    """JWKS document, cached for _JWKS_CACHE_TTL seconds."""
    global _jwks_cache, _jwks_cache_time

    with _jwks_cache_lock:
        now = time.time()
        fresh = _jwks_cache is not None and (now - _jwks_cache_time) < _JWKS_CACHE_TTL
        if fresh and not force_refresh:
            return _jwks_cache

        try:
            _jwks_cache = _fetch_jwks(jwks_url)
        except requests.RequestException:
            raise HTTPException(status_code=503, detail="Auth temporarily unavailable")
        _jwks_cache_time = now
        return _jwks_cache


def _find_key(jwks: dict[str, Any], kid: str) -> dict[str, Any] | None:
    return next((key for key in jwks.get("keys", []) if key.get("kid") == kid), None)


def verify_token(token: str) -> str:
    """Verify an RS256 JWT and return its `sub` claim.

    An unknown kid triggers one JWKS refresh, to pick up rotated keys.

    Raises:
        HTTPException: 401 for any invalid token, 503 if JWKS is unreachable.
    """
    issuer, audience, jwks_url = _oidc_settings()
    if not issuer or not audience or not jwks_url:
        raise HTTPException(status_code=401, detail="OIDC not configured")

    try:
        kid = jwt.get_unverified_header(token).get("kid")
    except jwt.exceptions.DecodeError:
        raise HTTPException(status_code=401, detail="Invalid token")
    if not kid:
        raise HTTPException(status_code=401, detail="Invalid token")

    key_data = _find_key(_get_jwks(jwks_url), kid)
    if key_data is None:
        key_data = _find_key(_get_jwks(jwks_url, force_refresh=True), kid)
    if key_data is None:
        raise HTTPException(status_code=401, detail="Invalid token")

    try:
        public_key = jwt.algorithms.RSAAlgorithm.from_jwk(key_data)
        payload = jwt.decode(
            token,
            public_key,
            algorithms=["RS256"],
            issuer=issuer,
            audience=audience,
            options={"require": ["exp", "iss", "aud", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except (jwt.InvalidTokenError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token")

    sub = payload.get("sub")
    if not sub:
        raise HTTPException(status_code=401, detail="Invalid token")
    return sub


def _extract_bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise HTTPException(status_code=401, detail="Missing authorization header")

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid authorization header")
    return parts[1]


def _get_user_from_db(external_subject: str) -> CurrentUser | None:
    from roomsync.infra.db import txn

    with txn() as cur:
        cur.execute(
            """
            SELECT id, external_subject, email, name, role
            FROM users
            WHERE external_subject = %s AND is_active
            """,
            (external_subject,),
        )
        row = cur.fetchone()
    if row is None:
        return None
    return CurrentUser(
        id=str(row[0]),
        external_subject=row[1],
        email=row[2],
        name=row[3],
        role=row[4],
    )


def get_current_user(request: Request) -> CurrentUser:
    """FastAPI dependency: the authenticated, active user.

    Raises:
        HTTPException: 401 if the token is missing or invalid, 403 if no
            active user matches it or the stored role is unknown.
    """
    sub = verify_token(_extract_bearer_token(request))

    user = _get_user_from_db(sub)
    if user is None:
        raise HTTPException(status_code=403, detail="User not found")
    if user.role not in ROLES:
        logger.warning(
            "user has unknown role",
            extra={"extra_fields": safe_log_context(user_id=user.id, role=user.role)},
        )
        raise HTTPException(status_code=403, detail="Unknown role")
    return user


def get_current_actor(user: CurrentUser = Depends(get_current_user)) -> Actor:
    return user.as_actor()

"""Tests for bearer-token authentication."""

from __future__ import annotations

import os
import time
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from roomsync.api import deps
from roomsync.api.auth import CurrentUser
from roomsync.api.factory import create_app
from tests.helpers import create_jwks, create_token, generate_rsa_keypair

OIDC_ENV = {
    "OIDC_ISSUER": "https://auth.example.com",
    "OIDC_AUDIENCE": "roomsync-api",
    "OIDC_JWKS_URL": "https://auth.example.com/.well-known/jwks.json",
}


@pytest.fixture
def rsa_keypair():
    return generate_rsa_keypair()


@pytest.fixture
def mock_jwks_fetch(rsa_keypair):
    _, public_key = rsa_keypair
    with patch("roomsync.api.auth._fetch_jwks", return_value=create_jwks(public_key)) as mock:
        yield mock


@pytest.fixture
def mock_db_user():
    def lookup(external_subject: str):
        if external_subject == "user-123":
            return CurrentUser(id="u-1", external_subject="user-123", email="desk@example.com",
                               name="Desk", role="receptionist")
        if external_subject == "weird-role":
            return CurrentUser(id="u-2", external_subject="weird-role", email=None, name=None, role="owner")
        return None

    with patch("roomsync.api.auth._get_user_from_db", side_effect=lookup) as mock:
        yield mock


@pytest.fixture
def client(store):
    app = create_app(role="public")
    app.dependency_overrides[deps.get_store] = lambda: store
    with patch.dict(os.environ, OIDC_ENV):
        yield TestClient(app)


def _get(client, token: str | None = None, header: str | None = None):
    headers = {}
    if header is not None:
        headers["Authorization"] = header
    elif token is not None:
        headers["Authorization"] = f"Bearer {token}"
    return client.get("/rooms", headers=headers)


class TestAuthentication:
    def test_valid_token(self, client, rsa_keypair, mock_jwks_fetch, mock_db_user):
        private_key, _ = rsa_keypair
        response = _get(client, create_token(private_key))
        assert response.status_code == 200
        assert [r["number"] for r in response.json()["rooms"]] == ["101", "102"]

    def test_missing_header(self, client):
        response = _get(client)
        assert response.status_code == 401
        assert response.json()["detail"] == "Missing authorization header"

    def test_malformed_header(self, client):
        assert _get(client, header="Token abc").status_code == 401

    def test_garbage_token(self, client, mock_jwks_fetch):
        assert _get(client, "not-a-jwt").status_code == 401

    def test_expired_token(self, client, rsa_keypair, mock_jwks_fetch):
        private_key, _ = rsa_keypair
        response = _get(client, create_token(private_key, exp=int(time.time()) - 60))
        assert response.status_code == 401
        assert response.json()["detail"] == "Token expired"

    @pytest.mark.parametrize(
        "overrides",
        [{"iss": "https://evil.example.com"}, {"aud": "other-api"}],
    )
    def test_wrong_issuer_or_audience(self, client, rsa_keypair, mock_jwks_fetch, overrides):
        private_key, _ = rsa_keypair
        assert _get(client, create_token(private_key, **overrides)).status_code == 401

    def test_token_signed_by_other_key(self, client, mock_jwks_fetch):
        other_private, _ = generate_rsa_keypair()
        assert _get(client, create_token(other_private)).status_code == 401

    def test_unknown_kid_refreshes_jwks_once(self, client, rsa_keypair, mock_jwks_fetch):
        private_key, _ = rsa_keypair
        response = _get(client, create_token(private_key, kid="rotated-key"))
        assert response.status_code == 401
        assert mock_jwks_fetch.call_count == 2

    def test_jwks_cached(self, client, rsa_keypair, mock_jwks_fetch, mock_db_user):
        private_key, _ = rsa_keypair
        token = create_token(private_key)
        _get(client, token)
        _get(client, token)
        assert mock_jwks_fetch.call_count == 1

    def test_unknown_user(self, client, rsa_keypair, mock_jwks_fetch, mock_db_user):
        private_key, _ = rsa_keypair
        response = _get(client, create_token(private_key, sub="nobody"))
        assert response.status_code == 403

    def test_unknown_role(self, client, rsa_keypair, mock_jwks_fetch, mock_db_user):
        private_key, _ = rsa_keypair
        response = _get(client, create_token(private_key, sub="weird-role"))
        assert response.status_code == 403
        assert response.json()["detail"] == "Unknown role"

    def test_not_configured(self, store, rsa_keypair):
        app = create_app(role="public")
        app.dependency_overrides[deps.get_store] = lambda: store
        private_key, _ = rsa_keypair
        with patch.dict(os.environ, {}, clear=True):
            response = TestClient(app).get(
                "/rooms", headers={"Authorization": f"Bearer {create_token(private_key)}"},
            )
        assert response.status_code == 401
        assert response.json()["detail"] == "OIDC not configured"

    def test_jwks_unreachable(self, client, rsa_keypair):
        import requests

        private_key, _ = rsa_keypair
        with patch("roomsync.api.auth._fetch_jwks", side_effect=requests.ConnectionError("down")):
            response = _get(client, create_token(private_key))
        assert response.status_code == 503

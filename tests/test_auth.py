"""
Tests for identity token verification and owner resolution.
"""
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from restostar.core.errors import Unauthenticated
from restostar.core.security import ExternalIdentity, create_identity_token, decode_identity_token
from restostar.models.user import User
from restostar.services.identity import resolve_or_create_user

from conftest import headers_for


class TestIdentityTokens:
    """Tests for provider token decoding."""

    def test_round_trip_claims(self):
        token = create_identity_token("idp|abc", name="Ana", email="ana@example.com")

        identity = decode_identity_token(token)

        assert identity == ExternalIdentity(subject="idp|abc", name="Ana", email="ana@example.com")

    def test_expired_token_rejected(self):
        token = create_identity_token("idp|abc", expires_delta=timedelta(minutes=-1))

        assert decode_identity_token(token) is None

    def test_garbage_rejected(self):
        assert decode_identity_token("not-a-jwt") is None

    def test_missing_subject_rejected(self):
        token = create_identity_token("")

        assert decode_identity_token(token) is None


class TestResolveOrCreateUser:
    """Tests for mapping identities to owner rows."""

    def test_creates_on_first_sight(self, db):
        user = resolve_or_create_user(db, ExternalIdentity("idp|new", name="New", email="new@example.com"))

        assert user.id is not None
        assert user.external_id == "idp|new"
        assert user.name == "New"

    def test_second_call_returns_same_row(self, db):
        first = resolve_or_create_user(db, ExternalIdentity("idp|same"))
        second = resolve_or_create_user(db, ExternalIdentity("idp|same"))

        assert first.id == second.id
        count = db.execute(select(func.count()).select_from(User)).scalar_one()
        assert count == 1

    def test_refreshes_profile(self, db, owner):
        user = resolve_or_create_user(db, ExternalIdentity(owner.external_id, email="new-address@example.com"))

        assert user.id == owner.id
        assert user.email == "new-address@example.com"
        assert user.name == "Olive Owner"

    def test_explicit_values_override_claims(self, db):
        user = resolve_or_create_user(
            db,
            ExternalIdentity("idp|x", name="Claim Name"),
            name="Chosen Name",
        )

        assert user.name == "Chosen Name"

    def test_no_identity(self, db):
        with pytest.raises(Unauthenticated):
            resolve_or_create_user(db, None)


class TestAuthRouter:
    """Tests for /api/auth/me."""

    def test_me_requires_token(self, client):
        response = client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.json()["error"] == "unauthenticated"

    def test_me_rejects_bad_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer nonsense"})

        assert response.status_code == 401

    def test_me_creates_owner(self, client, db):
        response = client.get("/api/auth/me", headers=headers_for("idp|fresh", name="Fresh"))

        assert response.status_code == 200
        data = response.json()
        assert data["external_id"] == "idp|fresh"
        assert data["name"] == "Fresh"

    def test_post_me_overrides_email(self, client, owner, auth_headers):
        response = client.post(
            "/api/auth/me",
            headers=auth_headers,
            json={"email": "olive@bistro.example.com"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == str(owner.id)
        assert data["email"] == "olive@bistro.example.com"

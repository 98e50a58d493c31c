"""Tests for authentication: hashing, tokens, login and tenant binding."""

import pytest
from datetime import timedelta

from tabpos.core.rbac import UserRole
from tabpos.core.security import (
    create_access_token,
    decode_access_token,
    get_password_hash,
    get_pin_hash,
    verify_password,
    verify_pin,
)
from tabpos.models.user import User


# ============== Password hashing ==============

class TestPasswordHashing:
    def test_hash_and_verify(self):
        h = get_password_hash("secret123")
        assert verify_password("secret123", h)

    def test_wrong_password_rejected(self):
        h = get_password_hash("secret123")
        assert not verify_password("wrong", h)

    def test_hash_is_unique(self):
        h1 = get_password_hash("same")
        h2 = get_password_hash("same")
        assert h1 != h2  # different salts

    def test_invalid_hash_returns_false(self):
        assert not verify_password("test", "not-a-hash")


# ============== PIN hashing ==============

class TestPinHashing:
    def test_hash_and_verify(self):
        h = get_pin_hash("1234")
        assert verify_pin("1234", h)

    def test_wrong_pin_rejected(self):
        h = get_pin_hash("1234")
        assert not verify_pin("5678", h)

    def test_invalid_hash_returns_false(self):
        assert not verify_pin("1234", "bad-hash")


# ============== JWT tokens ==============

class TestJWTTokens:
    def test_create_and_decode(self):
        token = create_access_token(data={"sub": "42", "role": "staff", "tenant_id": 3, "name": "Ayse"})
        payload = decode_access_token(token)
        assert payload is not None
        assert payload["sub"] == "42"
        assert payload["tenant_id"] == 3
        assert payload["role"] == "staff"

    def test_token_has_expiry_and_id(self):
        payload = decode_access_token(create_access_token(data={"sub": "1"}))
        assert "exp" in payload
        assert "iat" in payload
        assert payload["jti"]

    def test_expired_token_rejected(self):
        token = create_access_token(
            data={"sub": "1"},
            expires_delta=timedelta(seconds=-10),
        )
        assert decode_access_token(token) is None

    def test_invalid_token_rejected(self):
        assert decode_access_token("not.a.token") is None

    def test_tampered_token_rejected(self):
        token = create_access_token(data={"sub": "1"})
        tampered = token[:-5] + "XXXXX"
        assert decode_access_token(tampered) is None


# ============== Login endpoint ==============

class TestLoginEndpoint:
    def test_token_carries_tenant(self, client, tenant, admin_user):
        res = client.post("/api/v1/auth/login", json={
            "username": "admin",
            "password": "testpass123",
        })
        assert res.status_code == 200
        payload = decode_access_token(res.json()["access_token"])
        assert payload["tenant_id"] == tenant.id
        assert payload["sub"] == str(admin_user.id)

    def test_inactive_user_rejected(self, client, db_session, tenant):
        db_session.add(User(
            tenant_id=tenant.id,
            username="gone",
            password_hash=get_password_hash("pass123"),
            role=UserRole.STAFF,
            name="Gone",
            is_active=False,
        ))
        db_session.commit()
        res = client.post("/api/v1/auth/login", json={"username": "gone", "password": "pass123"})
        assert res.status_code == 401

    def test_same_username_in_two_businesses(self, client, db_session, tenant, other_tenant, admin_user):
        db_session.add(User(
            tenant_id=other_tenant.id,
            username="admin",
            password_hash=get_password_hash("kebap123"),
            role=UserRole.ADMIN,
            name="Kebap Admin",
        ))
        db_session.commit()
        res = client.post(
            "/api/v1/auth/login", params={"tenant": "kebapci"},
            json={"username": "admin", "password": "kebap123"},
        )
        assert res.status_code == 200
        assert decode_access_token(res.json()["access_token"])["tenant_id"] == other_tenant.id

    @pytest.mark.parametrize("body", [{"name": "   ", "table_num": 3}, {"name": "Deniz", "table_num": 0}])
    def test_bad_guest_registration(self, client, tenant, body):
        assert client.post("/api/v1/auth/guest", json=body).status_code == 422

"""Integration tests for the auth flow (SQLite primary store, see conftest)."""

import uuid

from httpx import AsyncClient

from src.et_gateway.auth.jwt_handler import create_access_token
from tests.integration.helpers import RegisterUser, bearer, unique_user


class TestRegister:
    async def test_register_success(self, client: AsyncClient) -> None:
        user = unique_user()
        resp = await client.post("/api/auth/register", json={**user, "firstName": "Alice"})
        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        assert body["requestId"] == resp.headers["X-Request-ID"]
        data = body["data"]
        assert data["tokenType"] == "Bearer"
        assert data["expiresIn"] == 900
        assert data["accessToken"] and data["refreshToken"]
        assert data["user"]["username"] == user["username"]
        assert data["user"]["email"] == user["email"]
        assert data["user"]["firstName"] == "Alice"
        assert data["user"]["currency"] == "USD"
        assert "password" not in data["user"]
        assert "passwordHash" not in data["user"]

    async def test_register_duplicate_username(self, client: AsyncClient) -> None:
        user = unique_user()
        await client.post("/api/auth/register", json=user)
        resp = await client.post(
            "/api/auth/register", json={**user, "email": "other@example.com"}
        )
        assert resp.status_code == 409
        assert resp.json()["code"] == 1001

    async def test_register_duplicate_email(self, client: AsyncClient) -> None:
        user = unique_user()
        await client.post("/api/auth/register", json=user)
        resp = await client.post(
            "/api/auth/register",
            json={**user, "username": f"other_{uuid.uuid4().hex[:6]}"},
        )
        assert resp.status_code == 409
        assert resp.json()["code"] == 1002

    async def test_register_short_password(self, client: AsyncClient) -> None:
        resp = await client.post("/api/auth/register", json={**unique_user(), "password": "12345"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["code"] == 9000
        assert any(e.startswith("password") for e in body["errors"])


class TestLogin:
    async def test_login_success(self, client: AsyncClient, register_user: RegisterUser) -> None:
        auth = await register_user()
        resp = await client.post(
            "/api/auth/login",
            json={"email": auth["user"]["email"], "password": auth["password"]},
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["user"]["lastLoginAt"] is not None
        assert data["refreshToken"] != auth["refreshToken"]

    async def test_login_email_is_case_insensitive(
        self, client: AsyncClient, register_user: RegisterUser
    ) -> None:
        auth = await register_user()
        resp = await client.post(
            "/api/auth/login",
            json={"email": auth["user"]["email"].upper(), "password": auth["password"]},
        )
        assert resp.status_code == 200

    async def test_login_wrong_password(
        self, client: AsyncClient, register_user: RegisterUser
    ) -> None:
        auth = await register_user()
        resp = await client.post(
            "/api/auth/login", json={"email": auth["user"]["email"], "password": "wrong-pass"}
        )
        assert resp.status_code == 401
        assert resp.json()["code"] == 1003

    async def test_login_unknown_user(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/auth/login", json={"email": "nobody@example.com", "password": "secret123"}
        )
        assert resp.status_code == 401
        assert resp.json()["code"] == 1003


class TestRefresh:
    async def test_refresh_rotates_token(
        self, client: AsyncClient, register_user: RegisterUser
    ) -> None:
        auth = await register_user()

        first = await client.post("/api/auth/refresh", json={"refreshToken": auth["refreshToken"]})
        assert first.status_code == 200
        rotated = first.json()["data"]["refreshToken"]
        assert rotated != auth["refreshToken"]

        # The replaced token is dead, the new one works
        replay = await client.post("/api/auth/refresh", json={"refreshToken": auth["refreshToken"]})
        assert replay.status_code == 401
        assert replay.json()["code"] == 1005

        second = await client.post("/api/auth/refresh", json={"refreshToken": rotated})
        assert second.status_code == 200

    async def test_new_access_token_is_usable(
        self, client: AsyncClient, register_user: RegisterUser
    ) -> None:
        auth = await register_user()
        resp = await client.post("/api/auth/refresh", json={"refreshToken": auth["refreshToken"]})
        access = resp.json()["data"]["accessToken"]

        profile = await client.get("/api/auth/profile", headers=bearer(access))
        assert profile.status_code == 200
        assert profile.json()["data"]["id"] == auth["user"]["id"]

    async def test_refresh_with_access_token_fails(
        self, client: AsyncClient, register_user: RegisterUser
    ) -> None:
        auth = await register_user()
        resp = await client.post("/api/auth/refresh", json={"refreshToken": auth["accessToken"]})
        assert resp.status_code == 401
        assert resp.json()["code"] == 1005

    async def test_refresh_with_garbage_token_fails(self, client: AsyncClient) -> None:
        resp = await client.post("/api/auth/refresh", json={"refreshToken": "not.a.real.token"})
        assert resp.status_code == 401
        assert resp.json()["code"] == 1005

    async def test_logout_revokes_refresh_token(
        self, client: AsyncClient, register_user: RegisterUser
    ) -> None:
        auth = await register_user()
        resp = await client.post("/api/auth/logout", headers=auth["headers"])
        assert resp.status_code == 200

        refreshed = await client.post("/api/auth/refresh", json={"refreshToken": auth["refreshToken"]})
        assert refreshed.status_code == 401


class TestProtectedRoute:
    async def test_access_without_token_fails(self, client: AsyncClient) -> None:
        resp = await client.get("/api/auth/profile")
        assert resp.status_code == 401
        assert resp.json()["success"] is False
        assert resp.headers["WWW-Authenticate"] == "Bearer"

    async def test_access_with_garbage_token_fails(self, client: AsyncClient) -> None:
        resp = await client.get("/api/expenses", headers=bearer("garbage"))
        assert resp.status_code == 401

    async def test_token_for_unknown_user_fails(self, client: AsyncClient) -> None:
        token = create_access_token(str(uuid.uuid4()))
        resp = await client.get("/api/auth/me", headers=bearer(token))
        assert resp.status_code == 401

    async def test_health_is_public(self, client: AsyncClient) -> None:
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestProfile:
    async def test_get_profile_and_me(self, client: AsyncClient, auth: dict, headers: dict) -> None:
        profile = await client.get("/api/auth/profile", headers=headers)
        me = await client.get("/api/auth/me", headers=headers)
        assert profile.status_code == me.status_code == 200
        assert profile.json()["data"] == me.json()["data"]
        assert profile.json()["data"]["email"] == auth["user"]["email"]

    async def test_update_profile(self, client: AsyncClient, headers: dict) -> None:
        resp = await client.put(
            "/api/auth/profile",
            json={"firstName": "Alice", "lastName": "Liddell", "currency": "eur"},
            headers=headers,
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert (data["firstName"], data["lastName"], data["currency"]) == ("Alice", "Liddell", "EUR")

        again = await client.get("/api/auth/profile", headers=headers)
        assert again.json()["data"]["currency"] == "EUR"

    async def test_update_profile_rejects_other_fields(
        self, client: AsyncClient, auth: dict, headers: dict
    ) -> None:
        resp = await client.put(
            "/api/auth/profile",
            json={"firstName": "Alice", "email": "hijack@example.com"},
            headers=headers,
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == 9000

        profile = await client.get("/api/auth/profile", headers=headers)
        assert profile.json()["data"]["email"] == auth["user"]["email"]

    async def test_update_profile_rejects_empty_body(self, client: AsyncClient, headers: dict) -> None:
        resp = await client.put("/api/auth/profile", json={}, headers=headers)
        assert resp.status_code == 400

    async def test_update_profile_rejects_null_currency(
        self, client: AsyncClient, headers: dict
    ) -> None:
        resp = await client.put("/api/auth/profile", json={"currency": None}, headers=headers)
        assert resp.status_code == 400
        assert resp.json()["code"] == 9000

        profile = await client.get("/api/auth/profile", headers=headers)
        assert profile.json()["data"]["currency"] == "USD"

    async def test_update_profile_clears_names(self, client: AsyncClient, headers: dict) -> None:
        await client.put("/api/auth/profile", json={"firstName": "Ada"}, headers=headers)
        resp = await client.put("/api/auth/profile", json={"firstName": None}, headers=headers)
        assert resp.status_code == 200
        assert resp.json()["data"].get("firstName") is None


class TestChangePassword:
    async def test_wrong_current_password(self, client: AsyncClient, headers: dict) -> None:
        resp = await client.put(
            "/api/auth/password",
            json={"currentPassword": "not-it", "newPassword": "newsecret1"},
            headers=headers,
        )
        assert resp.status_code == 401
        assert resp.json()["code"] == 1006

    async def test_change_password_requires_new_login(
        self, client: AsyncClient, register_user: RegisterUser
    ) -> None:
        auth = await register_user()
        resp = await client.put(
            "/api/auth/password",
            json={"currentPassword": auth["password"], "newPassword": "newsecret1"},
            headers=auth["headers"],
        )
        assert resp.status_code == 200

        email = auth["user"]["email"]
        refreshed = await client.post("/api/auth/refresh", json={"refreshToken": auth["refreshToken"]})
        assert refreshed.status_code == 401
        old = await client.post("/api/auth/login", json={"email": email, "password": auth["password"]})
        assert old.status_code == 401
        new = await client.post("/api/auth/login", json={"email": email, "password": "newsecret1"})
        assert new.status_code == 200


class TestListUsers:
    async def test_paginated(self, client: AsyncClient, register_user: RegisterUser) -> None:
        first = await register_user()
        await register_user()
        await register_user()

        resp = await client.get("/api/auth/users?page=1&limit=2", headers=first["headers"])

        assert resp.status_code == 200
        body = resp.json()
        assert len(body["data"]) == 2
        assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}

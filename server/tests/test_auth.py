"""Tests for registration, login, tokens and role checks."""

import pytest

from tunevault.db.init_collections import promote_user
from tunevault.http_api.auth import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)


def register(client, email="ada@example.com", password="secret123", name="Ada"):
    return client.post("/api/auth/register", json={"name": name, "email": email, "password": password})


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


class TestPasswords:
    def test_round_trip(self) -> None:
        hashed = hash_password("secret123")
        assert hashed != "secret123"
        assert verify_password("secret123", hashed)
        assert not verify_password("wrong", hashed)

    def test_overlong_password_never_matches(self) -> None:
        hashed = hash_password("secret123")
        assert verify_password("p" * 80, hashed) is False


class TestTokens:
    def test_access_token(self) -> None:
        assert decode_token(create_access_token("u1")) == "u1"

    def test_refresh_token_is_not_an_access_token(self) -> None:
        refresh = create_refresh_token("u1")
        assert decode_token(refresh) is None
        assert decode_token(refresh, token_type="refresh") == "u1"

    def test_garbage(self) -> None:
        assert decode_token("not-a-jwt") is None


class TestRegister:
    def test_creates_user_with_tokens(self, client, db) -> None:
        response = register(client, email="Ada@Example.com", name="  Ada  ")

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        user = body["data"]["user"]
        assert user["email"] == "ada@example.com"
        assert user["name"] == "Ada"
        assert user["role"] == "user"
        assert "password_hash" not in user
        assert body["data"]["access_token"]
        assert body["data"]["refresh_token"]

    def test_duplicate_email(self, client) -> None:
        register(client)
        response = register(client)

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Email already registered"}

    @pytest.mark.parametrize("payload", [
        {"name": "Ada", "email": "ada@example.com", "password": "123"},
        {"name": "A", "email": "ada@example.com", "password": "secret123"},
        {"name": "Ada", "email": "not-an-email", "password": "secret123"},
    ])
    def test_invalid_input(self, client, payload) -> None:
        response = client.post("/api/auth/register", json=payload)

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_password_over_bcrypt_limit(self, client, db) -> None:
        response = register(client, password="p" * 80)

        assert response.status_code == 400
        assert response.json()["error"].startswith("password:")
        assert db.users.count_documents({}) == 0

    def test_multibyte_password_counts_bytes(self, client) -> None:
        assert register(client, password="\u00e9" * 40).status_code == 400


class TestLogin:
    def test_valid_credentials(self, client) -> None:
        register(client)
        response = client.post("/api/auth/login", json={"email": "ADA@example.com", "password": "secret123"})

        assert response.status_code == 200
        assert response.json()["data"]["user"]["email"] == "ada@example.com"

    def test_wrong_password(self, client) -> None:
        register(client)
        response = client.post("/api/auth/login", json={"email": "ada@example.com", "password": "nope-nope"})

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid email or password"

    def test_unknown_email(self, client) -> None:
        response = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "secret123"})
        assert response.status_code == 401

    def test_overlong_password(self, client) -> None:
        register(client)
        response = client.post("/api/auth/login", json={"email": "ada@example.com", "password": "p" * 80})

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid email or password"


class TestSession:
    def test_profile_requires_token(self, client) -> None:
        response = client.get("/api/auth/profile")

        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Not authenticated"}

    def test_profile(self, client, listener) -> None:
        response = client.get("/api/auth/profile", headers=listener["headers"])

        assert response.status_code == 200
        assert response.json()["data"]["user"]["id"] == listener["id"]

    def test_refresh_token_rejected_as_bearer(self, client, listener) -> None:
        response = client.get("/api/auth/profile", headers=bearer(create_refresh_token(listener["id"])))
        assert response.status_code == 401

    def test_deactivated_user(self, client, make_user) -> None:
        user = make_user("gone", is_active=False)
        assert client.get("/api/auth/profile", headers=user["headers"]).status_code == 401

    def test_refresh(self, client, listener) -> None:
        response = client.post("/api/auth/refresh", json={"refresh_token": create_refresh_token(listener["id"])})

        assert response.status_code == 200
        assert decode_token(response.json()["data"]["access_token"]) == listener["id"]

    def test_refresh_with_access_token(self, client, listener) -> None:
        response = client.post("/api/auth/refresh", json={"refresh_token": create_access_token(listener["id"])})
        assert response.status_code == 401

    def test_logout(self, client, listener) -> None:
        response = client.post("/api/auth/logout", headers=listener["headers"])
        assert response.json() == {"success": True, "message": "Logged out successfully"}

    def test_update_profile(self, client, listener) -> None:
        response = client.put("/api/auth/profile", json={"name": "Renamed"}, headers=listener["headers"])

        assert response.status_code == 200
        assert response.json()["data"]["user"]["name"] == "Renamed"
        assert "password_hash" not in response.json()["data"]["user"]


class TestChangePassword:
    def test_change_and_login(self, client) -> None:
        token = register(client).json()["data"]["access_token"]

        response = client.put(
            "/api/auth/change-password",
            json={"current_password": "secret123", "new_password": "fresh-secret"},
            headers=bearer(token),
        )
        assert response.status_code == 200

        login = client.post("/api/auth/login", json={"email": "ada@example.com", "password": "fresh-secret"})
        assert login.status_code == 200

    def test_wrong_current_password(self, client) -> None:
        token = register(client).json()["data"]["access_token"]

        response = client.put(
            "/api/auth/change-password",
            json={"current_password": "guess-what", "new_password": "fresh-secret"},
            headers=bearer(token),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Current password is incorrect"

    def test_new_password_over_bcrypt_limit(self, client) -> None:
        token = register(client).json()["data"]["access_token"]

        response = client.put(
            "/api/auth/change-password",
            json={"current_password": "secret123", "new_password": "p" * 80},
            headers=bearer(token),
        )
        assert response.status_code == 400
        assert response.json()["error"].startswith("new_password:")


class TestRoles:
    def test_admin_route_rejects_users(self, client, listener) -> None:
        response = client.post("/api/genres", json={"name": "Jazz"}, headers=listener["headers"])

        assert response.status_code == 403
        assert response.json() == {"success": False, "error": "Admin access required"}

    def test_admin_route_rejects_anonymous(self, client) -> None:
        assert client.post("/api/genres", json={"name": "Jazz"}).status_code == 401

    def test_promoted_user_gets_admin_routes(self, client, db) -> None:
        token = register(client).json()["data"]["access_token"]

        promoted = promote_user("ADA@example.com", db=db)

        assert promoted["role"] == "admin"
        assert "password_hash" not in promoted
        response = client.post("/api/genres", json={"name": "Jazz"}, headers=bearer(token))
        assert response.status_code == 201

    def test_promote_unknown_email(self, db) -> None:
        assert promote_user("ghost@example.com", db=db) is None

"""HTTP tests for /api/auth."""

import pytest


def register(client, email="alice@mail.com", username="alice", password="secret123"):
    return client.post("/api/auth/register", json={
        "email": email, "username": username, "password": password
    })


class TestAuthApi:

    def test_register_issues_tokens(self, client):
        response = register(client)

        assert response.status_code == 201
        body = response.json()
        assert body["user"]["email"] == "alice@mail.com"
        assert body["user"]["role"] == "user"
        assert body["accessToken"]
        assert body["refreshToken"]

    def test_duplicate_registration_conflicts(self, client):
        register(client)
        response = register(client, email="other@mail.com")

        assert response.status_code == 409

    @pytest.mark.parametrize("payload", [
        {"email": "not-an-email", "username": "bob", "password": "secret123"},
        {"email": "bob@mail.com", "username": "bo", "password": "secret123"},
        {"email": "bob@mail.com", "username": "bob", "password": "short"},
    ])
    def test_register_validation(self, client, payload):
        response = client.post("/api/auth/register", json=payload)

        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"

    def test_login(self, client):
        register(client)

        ok = client.post("/api/auth/login", json={"email": "ALICE@mail.com", "password": "secret123"})
        bad = client.post("/api/auth/login", json={"email": "alice@mail.com", "password": "wrong-pass"})

        assert ok.status_code == 200
        assert ok.json()["accessToken"]
        assert bad.status_code == 401

    def test_me_requires_token(self, client):
        assert client.get("/api/auth/me").status_code == 401

        invalid = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
        assert invalid.status_code == 403

    def test_me_returns_profile(self, client):
        token = register(client).json()["accessToken"]

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json()["user"]["username"] == "alice"

    def test_refresh_token_cannot_be_used_as_access_token(self, client):
        refresh_token = register(client).json()["refreshToken"]

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {refresh_token}"})

        assert response.status_code == 403

    def test_refresh_then_logout_revokes(self, client):
        tokens = register(client).json()

        refreshed = client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
        assert refreshed.status_code == 200
        assert refreshed.json()["accessToken"]

        logout = client.post("/api/auth/logout",
                             headers={"Authorization": f"Bearer {tokens['accessToken']}"})
        assert logout.status_code == 200

        revoked = client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
        assert revoked.status_code == 401

    def test_refresh_requires_token(self, client):
        assert client.post("/api/auth/refresh", json={}).status_code == 401

    def test_items_are_public(self, client):
        assert client.get("/api/items").status_code == 200

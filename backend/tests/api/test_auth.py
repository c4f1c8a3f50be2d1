"""Tests for the auth endpoints and the authentication dependency."""

import asyncio


class TestLogin:
    def test_login_returns_tokens_and_profile(self, client, identity, device_headers, device):
        id_token = identity.issue_id_token("uid-a", "asha@campus.edu", name="Asha")

        response = client.post(
            "/api/auth/login", json={"id_token": id_token}, headers=device_headers(device)
        )

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["id"] == "uid-a"
        assert data["user"]["role"] == "user"
        assert data["tokens"]["token_type"] == "bearer"
        assert data["tokens"]["session_id"] == "uid-a"

    def test_invalid_id_token(self, client):
        response = client.post("/api/auth/login", json={"id_token": "forged"})

        assert response.status_code == 401
        assert response.json()["error"] == "invalid_token"
        assert response.headers["www-authenticate"] == "Bearer"

    def test_empty_id_token_is_a_validation_error(self, client):
        response = client.post("/api/auth/login", json={"id_token": ""})
        assert response.status_code == 422


class TestRegister:
    def test_register(self, client, device_headers, device):
        response = client.post(
            "/api/auth/register",
            json={"email": "ravi@campus.edu", "password": "hunter22", "name": "Ravi"},
            headers=device_headers(device),
        )

        assert response.status_code == 201
        assert response.json()["user"]["email"] == "ravi@campus.edu"

    def test_duplicate_email(self, client, device_headers, device):
        body = {"email": "ravi@campus.edu", "password": "hunter22", "name": "Ravi"}
        client.post("/api/auth/register", json=body, headers=device_headers(device))

        response = client.post("/api/auth/register", json=body, headers=device_headers(device))

        assert response.status_code == 409
        assert response.json()["error"] == "email_in_use"


class TestAuthenticatedRequests:
    def test_session_endpoint(self, client, sign_in):
        headers, _ = sign_in("uid-a")

        response = client.get("/api/auth/session", headers=headers)

        assert response.status_code == 200
        assert response.json()["session_id"] == "uid-a"

    def test_no_token(self, client):
        response = client.get("/api/auth/session")

        assert response.status_code == 401
        assert response.json()["error"] == "no_token"

    def test_unknown_token(self, client, device_headers, device):
        headers = {**device_headers(device), "Authorization": "Bearer not-a-real-token"}

        response = client.get("/api/auth/session", headers=headers)

        assert response.status_code == 401
        assert response.json()["error"] == "invalid_token"

    def test_token_used_from_another_device(self, client, sign_in, device_headers, other_device):
        headers, tokens = sign_in("uid-a")
        stolen = {
            **device_headers(other_device),
            "Authorization": f"Bearer {tokens['access_token']}",
        }

        response = client.get("/api/auth/session", headers=stolen)

        assert response.status_code == 401
        assert response.json()["error"] == "session_mismatch"
        assert client.get("/api/auth/session", headers=headers).status_code == 200

    def test_disabled_account(self, client, sign_in, container):
        headers, _ = sign_in("uid-a")
        asyncio.run(container.users.set_disabled("uid-a", True))

        response = client.get("/api/auth/session", headers=headers)

        assert response.status_code == 401
        assert response.json()["error"] == "account_disabled"


class TestRefresh:
    def test_rotation_and_replay(self, client, sign_in, device_headers, device):
        _, tokens = sign_in("uid-a")
        body = {"refresh_token": tokens["refresh_token"]}

        first = client.post("/api/auth/refresh", json=body, headers=device_headers(device))
        replay = client.post("/api/auth/refresh", json=body, headers=device_headers(device))

        assert first.status_code == 200
        assert first.json()["refresh_token"] != tokens["refresh_token"]
        assert replay.status_code == 401
        assert replay.json()["error"] == "invalid_refresh_token"

    def test_stolen_refresh_token(self, client, sign_in, device_headers, device, other_device, container):
        _, tokens = sign_in("uid-a")
        body = {"refresh_token": tokens["refresh_token"]}

        stolen = client.post("/api/auth/refresh", json=body, headers=device_headers(other_device))
        legitimate = client.post("/api/auth/refresh", json=body, headers=device_headers(device))

        assert stolen.status_code == 401
        assert stolen.json()["error"] == "security_violation"
        assert legitimate.status_code == 401

        sign_in("uid-a")
        sessions = asyncio.run(container.store.query("sessions"))
        assert [doc.key for doc in sessions] == ["uid-a"]


class TestLogout:
    def test_logout(self, client, sign_in):
        headers, tokens = sign_in("uid-a")

        response = client.post(
            "/api/auth/logout", json={"refresh_token": tokens["refresh_token"]}, headers=headers
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "revoked_tokens": 1}
        after = client.get("/api/auth/session", headers=headers)
        assert after.status_code == 401
        assert after.json()["error"] == "session_invalid"

    def test_logout_without_body(self, client, sign_in):
        headers, _ = sign_in("uid-a")

        response = client.post("/api/auth/logout", headers=headers)

        assert response.status_code == 200
        assert response.json()["revoked_tokens"] == 1

    def test_logout_all(self, client, sign_in, other_device):
        sign_in("uid-a")
        headers, _ = sign_in("uid-a", with_device=other_device)

        response = client.post("/api/auth/logout-all", headers=headers)

        assert response.status_code == 200
        assert response.json()["revoked_tokens"] == 2

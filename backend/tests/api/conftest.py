"""Fixtures for HTTP-level tests."""

import pytest


@pytest.fixture
def sign_in(client, identity, device, device_headers):
    """Log a user in through the API and return (headers, tokens)."""

    def _sign_in(user_id: str, with_device=None, email=None):
        headers = device_headers(with_device or device)
        id_token = identity.issue_id_token(user_id, email or f"{user_id}@campus.edu", name=user_id)
        response = client.post("/api/auth/login", json={"id_token": id_token}, headers=headers)
        assert response.status_code == 200, response.text
        tokens = response.json()["tokens"]
        return {**headers, "Authorization": f"Bearer {tokens['access_token']}"}, tokens

    return _sign_in

"""Tests for bearer-token authentication.

Tests cover:
- Token round trip and rejection of expired or foreign tokens
- Missing token, unconfigured secret and dev user override on a real route
"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from runlog.api.dependencies.auth import create_access_token, decode_access_token
from runlog.config.settings import settings
from runlog.main import app


@pytest.fixture
def secret(monkeypatch) -> str:
    monkeypatch.setattr(settings, "auth_secret_key", "test-secret")
    monkeypatch.setattr(settings, "dev_user_id", "")
    return "test-secret"


@pytest.fixture
def anonymous_client(db_session):
    app.dependency_overrides.clear()
    return TestClient(app)


class TestTokens:
    def test_round_trip(self, secret):
        assert decode_access_token(create_access_token("user-1")) == "user-1"

    def test_expired(self, secret):
        token = create_access_token("user-1", expires_in=timedelta(seconds=-10))

        with pytest.raises(ValueError, match="expired"):
            decode_access_token(token)

    def test_wrong_secret(self, secret, monkeypatch):
        token = create_access_token("user-1")
        monkeypatch.setattr(settings, "auth_secret_key", "other-secret")

        with pytest.raises(ValueError, match="Invalid token"):
            decode_access_token(token)

    def test_empty_user_id(self, secret):
        with pytest.raises(ValueError):
            create_access_token("")


class TestCurrentUser:
    def test_missing_token(self, secret, anonymous_client):
        response = anonymous_client.get("/sessions/types")

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_valid_token(self, secret, anonymous_client):
        token = create_access_token("user-1")

        response = anonymous_client.get("/sessions/types", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json() == {"types": []}

    def test_garbage_token(self, secret, anonymous_client):
        response = anonymous_client.get("/sessions/types", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_secret_not_configured(self, anonymous_client, monkeypatch):
        monkeypatch.setattr(settings, "auth_secret_key", "")
        monkeypatch.setattr(settings, "dev_user_id", "")

        response = anonymous_client.get("/sessions/types", headers={"Authorization": "Bearer abc"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Authentication is not configured"

    def test_dev_user_override(self, anonymous_client, monkeypatch):
        monkeypatch.setattr(settings, "dev_user_id", "dev-user")

        assert anonymous_client.get("/sessions/types").status_code == 200

"""Unit tests for authentication system."""
import string
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import jwt
import pytest
from fastapi import Response

from kiosk.api import auth
from kiosk.core.config import settings


class TestSessionToken:
    """Test session token generation."""

    def test_create_session_token(self):
        """Test that session token is URL-safe and long enough."""
        token = auth.create_session_token()

        assert len(token) >= 40
        url_safe_chars = string.ascii_letters + string.digits + "-_"
        assert all(c in url_safe_chars for c in token)

    def test_unique_tokens(self):
        """Test that each call generates unique token."""
        tokens = {auth.create_session_token() for _ in range(3)}

        assert len(tokens) == 3


class TestSessionManagement:
    """Test session creation and verification."""

    def test_create_session(self, clean_auth_sessions):
        """Test that session is created with the configured lifetime."""
        response = Mock(spec=Response)
        response.set_cookie = Mock()

        token = auth.create_session(response)

        session = auth._sessions[token]
        assert session["authenticated"] is True
        time_diff = session["expires_at"] - datetime.utcnow()
        ttl = timedelta(hours=settings.session_ttl_hours)
        assert ttl - timedelta(minutes=1) < time_diff <= ttl
        assert response.set_cookie.call_args.kwargs["httponly"] is True

    def test_verify_session_invalid_token(self, clean_auth_sessions):
        """Test that unknown or missing tokens are rejected."""
        assert auth.verify_session("invalid_token_12345") is False
        assert auth.verify_session(None) is False

    def test_verify_session_expired(self, clean_auth_sessions):
        """Test that expired session returns False and is cleaned up."""
        response = Mock(spec=Response)
        response.set_cookie = Mock()
        token = auth.create_session(response)

        auth._sessions[token]["expires_at"] = datetime.utcnow() - timedelta(hours=1)

        assert auth.verify_session(token) is False
        assert token not in auth._sessions


class TestAuthAPIEndpoints:
    """Test authentication API endpoints."""

    def test_login_success(self, test_client, memory_backend):
        """Test successful login with correct password."""
        response = test_client.post("/api/auth/login", json={"password": settings.dashboard_password})

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Login successful"
        assert "session_token" in response.cookies
        assert response.cookies["session_token"] in auth._sessions
        events = [row["event_type"] for row in memory_backend.tables["security_audit_log"]]
        assert events == ["login_success"]

    def test_login_failure(self, test_client, memory_backend):
        """Test login failure with wrong password."""
        response = test_client.post("/api/auth/login", json={"password": "wrongpassword"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid password"
        assert len(auth._sessions) == 0
        assert memory_backend.tables["security_audit_log"][0]["severity"] == "warning"

    def test_login_rate_limited(self, test_client, memory_backend):
        """Repeated failures block the client, even with the right password."""
        for _ in range(settings.login_max_attempts):
            assert test_client.post("/api/auth/login", json={"password": "nope"}).status_code == 401

        response = test_client.post("/api/auth/login", json={"password": settings.dashboard_password})

        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) > 0
        events = [row["event_type"] for row in memory_backend.tables["security_audit_log"]]
        assert events[-1] == "login_rate_limited"

    def test_success_resets_attempts(self, test_client):
        """A successful login clears earlier failures."""
        for _ in range(settings.login_max_attempts - 1):
            test_client.post("/api/auth/login", json={"password": "nope"})
        assert test_client.post("/api/auth/login", json={"password": settings.dashboard_password}).status_code == 200

        for _ in range(settings.login_max_attempts - 1):
            assert test_client.post("/api/auth/login", json={"password": "nope"}).status_code == 401

    def test_logout(self, authenticated_client):
        """Test logout clears session."""
        response = authenticated_client.post("/api/auth/logout")

        assert response.status_code == 200
        assert response.json()["message"] == "Logged out"
        set_cookie = response.headers.get("set-cookie", "")
        assert "max-age=0" in set_cookie.lower()
        assert len(auth._sessions) == 0

    def test_get_session_status_authenticated(self, authenticated_client):
        """Test session status endpoint with valid session."""
        response = authenticated_client.get("/api/auth/session")

        assert response.status_code == 200
        data = response.json()
        assert data["authenticated"] is True
        assert data["expires_at"]

    def test_get_session_status_unauthenticated(self, test_client):
        """Test session status endpoint without session."""
        response = test_client.get("/api/auth/session")

        assert response.status_code == 200
        assert response.json()["authenticated"] is False


class TestTokenStatus:
    """Test the bearer token status endpoint."""

    def test_valid_bearer_token(self, test_client):
        """A fresh token is reported valid."""
        exp = datetime.now(timezone.utc) + timedelta(hours=1)
        token = jwt.encode({"exp": exp}, "kiosk-test-signing-key-0123456789abcdef", algorithm="HS256")

        response = test_client.get("/api/auth/token", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is True
        assert data["needs_refresh"] is False

    def test_missing_token(self, test_client):
        response = test_client.get("/api/auth/token")

        assert response.json()["reason"] == "missing"


class TestRequireAuthDependency:
    """Test require_auth FastAPI dependency."""

    def test_require_auth_authenticated(self, authenticated_client):
        """Test that authenticated requests are allowed."""
        response = authenticated_client.get("/api/restaurants/bistro/orders")

        assert response.status_code == 200
        assert response.json() == []

    def test_require_auth_unauthenticated(self, test_client):
        """Test that unauthenticated requests are blocked."""
        response = test_client.get("/api/restaurants/bistro/orders")

        assert response.status_code == 401
        assert response.json()["detail"] == "Authentication required"

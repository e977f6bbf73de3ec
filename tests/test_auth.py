"""Tests for authentication endpoints and flows."""

from fastapi.testclient import TestClient


class TestRegistration:
    """Tests for user registration."""

    def test_register_api_success(self, client: TestClient):
        """Register a new user via API."""
        response = client.post(
            "/api/v1/auth/register",
            json={"email": "new@example.com", "password": "password123", "display_name": "New User"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["email"] == "new@example.com"
        assert data["display_name"] == "New User"
        assert "token" in data

    def test_register_api_duplicate_email(self, client: TestClient, test_user: dict):
        """Reject duplicate email registration."""
        response = client.post(
            "/api/v1/auth/register",
            json={"email": "TEST@example.com", "password": "password123", "display_name": "Another User"},
        )
        assert response.status_code == 400
        assert "already registered" in response.json()["detail"]

    def test_register_short_password(self, client: TestClient):
        response = client.post(
            "/api/v1/auth/register",
            json={"email": "short@example.com", "password": "abc", "display_name": "Short"},
        )
        assert response.status_code == 422


class TestLogin:
    """Tests for user login."""

    def test_login_api_success(self, client: TestClient, test_user: dict):
        """Login via API with valid credentials."""
        response = client.post(
            "/api/v1/auth/login",
            json={"email": "test@example.com", "password": "password123"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["email"] == "test@example.com"
        assert "token" in data

    def test_login_api_wrong_password(self, client: TestClient, test_user: dict):
        """Reject login with wrong password."""
        response = client.post(
            "/api/v1/auth/login",
            json={"email": "test@example.com", "password": "wrongpassword"},
        )
        assert response.status_code == 401
        assert "Invalid" in response.json()["detail"]

    def test_login_api_nonexistent_email(self, client: TestClient):
        """Reject login with unknown email."""
        response = client.post(
            "/api/v1/auth/login",
            json={"email": "nobody@example.com", "password": "password123"},
        )
        assert response.status_code == 401

    def test_login_case_insensitive(self, client: TestClient, test_user: dict):
        """Login works regardless of email case."""
        response = client.post(
            "/api/v1/auth/login",
            json={"email": "TEST@EXAMPLE.COM", "password": "password123"},
        )
        assert response.status_code == 200


class TestTokenVerification:
    """Tests for token verification."""

    def test_verify_valid_token(self, client: TestClient, test_user: dict):
        """Verify a valid token returns payload."""
        response = client.get(f"/api/v1/auth/verify?token={test_user['token']}")
        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is True
        assert data["email"] == "test@example.com"
        assert data["display_name"] == "Test User"

    def test_verify_invalid_token(self, client: TestClient):
        """Reject an invalid token."""
        response = client.get("/api/v1/auth/verify?token=invalid.token.here")
        assert response.status_code == 401


class TestProtectedRoutes:
    """Tests for bearer-protected API routes."""

    def test_projects_require_auth(self, client: TestClient):
        response = client.get("/api/v1/projects/")
        assert response.status_code == 401
        assert response.json()["detail"] == "Not authenticated"

    def test_projects_reject_bad_token(self, client: TestClient):
        response = client.get("/api/v1/projects/", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_clone_voice_requires_auth(self, client: TestClient):
        response = client.post("/api/v1/functions/clone-voice", json={"projectId": "abc"})
        assert response.status_code == 401


class TestHealthCheck:
    """Tests for health check endpoint."""

    def test_health_check(self, client: TestClient):
        """Health check returns ok status."""
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["app"] == "voice-clone-studio"

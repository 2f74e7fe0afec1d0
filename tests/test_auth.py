"""
Tests for authentication endpoints (signup and login).

These tests verify:
  - Signup creates a user, a default project and returns a JWT
  - Duplicate email signup is rejected (409 Conflict)
  - Login returns a working JWT
  - Wrong password and unknown email get the same 401 (anti-enumeration)
  - Malformed bodies are rejected (422)
  - Missing or tampered tokens are rejected (401)
"""

import uuid
from datetime import timedelta

from finledger.security import create_access_token


# ---------------------------------------------------------------------------
# Signup Tests
# ---------------------------------------------------------------------------

class TestSignup:
    """Tests for POST /auth/signup."""

    async def test_signup_success(self, client):
        """A valid signup returns 201 with user, project and token."""
        response = await client.post(
            "/auth/signup",
            json={
                "email": "newuser@example.com",
                "password": "StrongPass99!",
                "display_name": "Jane",
            },
        )
        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "newuser@example.com"
        assert data["user_type"] == "member"
        assert data["token_type"] == "bearer"
        assert "token" in data
        assert "user_id" in data
        assert "project_id" in data

    async def test_signup_creates_accessible_default_project(self, client):
        """The new user is an accepted member (owner) of the default project."""
        response = await client.post(
            "/auth/signup",
            json={"email": "owner@example.com", "password": "StrongPass99!"},
        )
        data = response.json()
        client.headers["Authorization"] = f"Bearer {data['token']}"

        projects = await client.get("/projects")
        assert projects.status_code == 200
        assert len(projects.json()) == 1
        project = projects.json()[0]
        assert project["id"] == data["project_id"]
        assert project["owner_id"] == data["user_id"]
        assert project["name"] == "Personal"

    async def test_signup_custom_project_name(self, client):
        response = await client.post(
            "/auth/signup",
            json={
                "email": "household@example.com",
                "password": "StrongPass99!",
                "project_name": "Household",
            },
        )
        assert response.status_code == 201
        client.headers["Authorization"] = f"Bearer {response.json()['token']}"
        projects = await client.get("/projects")
        assert projects.json()[0]["name"] == "Household"

    async def test_signup_duplicate_email(self, client):
        """Signing up with an already-registered email returns 409."""
        signup_data = {"email": "duplicate@example.com", "password": "StrongPass99!"}
        response1 = await client.post("/auth/signup", json=signup_data)
        assert response1.status_code == 201

        response2 = await client.post("/auth/signup", json=signup_data)
        assert response2.status_code == 409
        assert "already registered" in response2.json()["detail"]
        assert response2.json()["error_type"] == "duplicate_email"

    async def test_signup_short_password(self, client):
        """Passwords shorter than 8 characters are rejected."""
        response = await client.post(
            "/auth/signup",
            json={"email": "short@example.com", "password": "short"},
        )
        assert response.status_code == 422

    async def test_signup_invalid_email(self, client):
        response = await client.post(
            "/auth/signup",
            json={"email": "not-an-email", "password": "StrongPass99!"},
        )
        assert response.status_code == 422

    async def test_signup_missing_fields(self, client):
        response = await client.post("/auth/signup", json={})
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Login Tests
# ---------------------------------------------------------------------------

class TestLogin:
    """Tests for POST /auth/login."""

    async def test_login_success(self, client):
        await client.post(
            "/auth/signup",
            json={"email": "login@example.com", "password": "LoginPass99!"},
        )
        response = await client.post(
            "/auth/login",
            json={"email": "login@example.com", "password": "LoginPass99!"},
        )
        assert response.status_code == 200
        data = response.json()
        assert "token" in data
        assert data["token_type"] == "bearer"

    async def test_login_wrong_password(self, client):
        await client.post(
            "/auth/signup",
            json={"email": "wrongpw@example.com", "password": "CorrectPass99!"},
        )
        response = await client.post(
            "/auth/login",
            json={"email": "wrongpw@example.com", "password": "WrongPass99!"},
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"

    async def test_login_nonexistent_email(self, client):
        """Unknown email gets the same error as a wrong password."""
        response = await client.post(
            "/auth/login",
            json={"email": "nobody@example.com", "password": "Whatever99!"},
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"

    async def test_login_token_works_for_protected_endpoint(self, client):
        await client.post(
            "/auth/signup",
            json={"email": "flow@example.com", "password": "FlowPass99!"},
        )
        login = await client.post(
            "/auth/login",
            json={"email": "flow@example.com", "password": "FlowPass99!"},
        )
        token = login.json()["token"]

        response = await client.get(
            "/accounts",
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 200
        assert response.json() == []


# ---------------------------------------------------------------------------
# Token validation
# ---------------------------------------------------------------------------

class TestTokenValidation:
    """Protected endpoints reject missing or bad tokens."""

    async def test_no_token_returns_401(self, client):
        response = await client.get("/accounts")
        assert response.status_code == 401

    async def test_invalid_token_returns_401(self, client):
        response = await client.get(
            "/accounts",
            headers={"Authorization": "Bearer not.a.real.token"},
        )
        assert response.status_code == 401

    async def test_project_scoped_route_requires_token(self, client):
        response = await client.get(
            "/projects/00000000-0000-0000-0000-000000000000/transactions"
        )
        assert response.status_code == 401

    async def test_health_is_public(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    async def test_expired_token_returns_401(self, client):
        signup = await client.post(
            "/auth/signup",
            json={"email": "expired@example.com", "password": "ExpiredPass99!"},
        )
        token = create_access_token(
            uuid.UUID(signup.json()["user_id"]), expires_delta=timedelta(seconds=-1)
        )
        response = await client.get("/accounts", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    async def test_token_for_unknown_user_returns_401(self, client):
        token = create_access_token(uuid.uuid4())
        response = await client.get("/accounts", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401


class TestEmailNormalization:
    """Emails are matched case-insensitively."""

    async def test_login_ignores_email_case(self, client):
        await client.post(
            "/auth/signup",
            json={"email": "Mixed.Case@Example.com", "password": "MixedPass99!"},
        )
        response = await client.post(
            "/auth/login",
            json={"email": "mixed.case@example.com", "password": "MixedPass99!"},
        )
        assert response.status_code == 200

    async def test_duplicate_detection_ignores_case(self, client):
        await client.post(
            "/auth/signup",
            json={"email": "dup@example.com", "password": "DupPass99!"},
        )
        response = await client.post(
            "/auth/signup",
            json={"email": "DUP@example.com", "password": "DupPass99!"},
        )
        assert response.status_code == 409


class TestCurrentUser:
    """GET /auth/me."""

    async def test_me_returns_token_owner(self, authenticated_client):
        response = await authenticated_client.get("/auth/me")
        assert response.status_code == 200
        data = response.json()
        assert data["email"] == "testuser@example.com"
        assert data["display_name"] == "Test User"
        assert data["user_type"] == "member"

    async def test_me_requires_token(self, client):
        response = await client.get("/auth/me")
        assert response.status_code == 401

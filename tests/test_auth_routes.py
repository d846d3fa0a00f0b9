"""
Tests for the authentication routes.

Covers registration, login, refresh rotation, logout, /me, cookie auth and
the Google OAuth flow (Google calls mocked).
"""

from datetime import timedelta
from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs, urlparse

from cloudcode.auth.google import GoogleOAuthError, build_google_auth_url
from cloudcode.core.security import create_access_token
from cloudcode.db import get_sqlite_connection

EMAIL = "dev@example.com"
PASSWORD = "Sup3rSecret!"


def login(client, email=EMAIL, password=PASSWORD):
    return client.post("/api/v1/auth/login", json={"email": email, "password": password})


class TestRegister:
    """Test account creation"""

    def test_register_returns_tokens_and_sets_cookies(self, client):
        response = client.post("/api/v1/auth/register", json={
            "email": "New@Example.com",
            "password": PASSWORD,
            "name": "New",
        })

        assert response.status_code == 201
        data = response.json()
        assert data["user"]["email"] == "new@example.com"
        assert data["user"]["name"] == "New"
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == 15 * 60
        assert "access_token" in response.cookies
        assert "refresh_token" in response.cookies

    def test_register_creates_welcome_project(self, client, auth_headers):
        projects = client.get("/api/v1/projects", headers=auth_headers).json()["projects"]

        assert len(projects) == 1
        assert projects[0]["name"] == "My First Project"
        assert projects[0]["description"] == "Welcome to Cloud Code Editor!"
        assert projects[0]["file_count"] == 3

    def test_duplicate_email(self, client, registered):
        response = client.post("/api/v1/auth/register", json={"email": EMAIL, "password": PASSWORD})

        assert response.status_code == 409
        assert response.json()["error_code"] == "RESOURCE_CONFLICT"

    def test_weak_password(self, client):
        response = client.post("/api/v1/auth/register", json={"email": "a@example.com", "password": "weakpassword"})

        assert response.status_code == 400
        body = response.json()
        assert body["error_code"] == "VALIDATION_ERROR"
        assert body["details"]["field"] == "password"

    def test_invalid_email(self, client):
        response = client.post("/api/v1/auth/register", json={"email": "not-an-email", "password": PASSWORD})

        assert response.status_code == 400
        fields = [error["field"] for error in response.json()["details"]["errors"]]
        assert "email" in fields


class TestLogin:
    """Test credential login"""

    def test_login(self, client, registered):
        response = login(client, email="DEV@example.com")

        assert response.status_code == 200
        assert response.json()["user"]["id"] == registered["user"]["id"]

    def test_wrong_password(self, client, registered):
        response = login(client, password="Wrong-passw0rd")

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_unknown_email_looks_the_same(self, client, registered):
        response = login(client, email="ghost@example.com")

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    def test_deactivated_account(self, client, settings, registered):
        conn = get_sqlite_connection(settings.database_path)
        conn.execute("UPDATE users SET is_active = 0 WHERE id = ?", (registered["user"]["id"],))
        conn.commit()
        conn.close()

        response = login(client)

        assert response.status_code == 403
        assert response.json()["error_code"] == "AUTHORIZATION_ERROR"


class TestCurrentUser:
    """Test /me and the token lookup order"""

    def test_me_with_bearer(self, client, auth_headers):
        response = client.get("/api/v1/auth/me", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["email"] == EMAIL
        assert response.json()["project_count"] == 1

    def test_me_requires_auth(self, client, registered):
        response = client.get("/api/v1/auth/me")

        assert response.status_code == 401
        assert response.json()["error_code"] == "AUTHENTICATION_ERROR"

    def test_expired_access_token(self, client, settings, registered):
        token = create_access_token(
            settings, registered["user"]["id"], EMAIL, expires_delta=timedelta(seconds=-10)
        )

        response = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["message"] == "Token has expired"

    def test_garbage_token(self, client, registered):
        response = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not.a.jwt"})
        assert response.status_code == 401

    def test_access_cookie(self, client, registered):
        login(client)

        assert client.get("/api/v1/auth/me").status_code == 200

    def test_refresh_cookie_alone_authenticates(self, client, registered):
        """With the access cookie gone, the refresh cookie still identifies the user"""
        login(client)
        client.cookies.delete("access_token")

        response = client.get("/api/v1/auth/me")

        assert response.status_code == 200
        assert response.json()["id"] == registered["user"]["id"]


class TestRefreshAndLogout:
    """Test token rotation and revocation"""

    def test_refresh_rotates(self, client, registered):
        old = registered["refresh_token"]

        response = client.post("/api/v1/auth/refresh", json={"refresh_token": old})

        assert response.status_code == 200
        assert response.json()["refresh_token"] != old
        client.cookies.clear()

        reused = client.post("/api/v1/auth/refresh", json={"refresh_token": old})
        assert reused.status_code == 401
        assert reused.json()["message"] == "Refresh token has been revoked"

    def test_refresh_from_cookie(self, client, registered):
        login(client)

        response = client.post("/api/v1/auth/refresh")

        assert response.status_code == 200

    def test_refresh_requires_token(self, client, registered):
        response = client.post("/api/v1/auth/refresh")

        assert response.status_code == 401
        assert response.json()["message"] == "Refresh token required"

    def test_access_token_is_not_a_refresh_token(self, client, registered):
        response = client.post("/api/v1/auth/refresh", json={"refresh_token": registered["access_token"]})
        assert response.status_code == 401

    def test_logout_revokes_refresh_token(self, client, registered):
        token = registered["refresh_token"]

        response = client.post("/api/v1/auth/logout", json={"refresh_token": token})

        assert response.status_code == 200
        assert response.json() == {"message": "Logged out successfully"}
        assert client.post("/api/v1/auth/refresh", json={"refresh_token": token}).status_code == 401

    def test_logout_without_token_still_succeeds(self, client):
        assert client.post("/api/v1/auth/logout").status_code == 200


GOOGLE_PROFILE = {"id": "g-123", "email": "g@example.com", "name": "G User", "picture": "https://img/g.png"}


class TestGoogleOAuth:
    """Test the Google sign-in flow"""

    def configure(self, settings):
        settings.google_client_id = "client-id"
        settings.google_client_secret = "client-secret"

    def test_not_configured(self, client):
        response = client.get("/api/v1/auth/google", follow_redirects=False)

        assert response.status_code == 501
        assert response.json()["error_code"] == "OAUTH_NOT_CONFIGURED"

    def test_redirects_to_google(self, client, settings):
        self.configure(settings)

        response = client.get("/api/v1/auth/google", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"].startswith("https://accounts.google.com/")

    def test_auth_url(self, settings):
        self.configure(settings)

        query = parse_qs(urlparse(build_google_auth_url(settings, state="xyz")).query)

        assert query["client_id"] == ["client-id"]
        assert query["response_type"] == ["code"]
        assert query["redirect_uri"] == [settings.google_redirect_uri]
        assert query["state"] == ["xyz"]

    def test_callback_error_param(self, client):
        response = client.get("/api/v1/auth/google/callback?error=access_denied", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == "/login?error=google_auth_failed"

    def test_callback_without_code(self, client):
        response = client.get("/api/v1/auth/google/callback", follow_redirects=False)
        assert response.headers["location"] == "/login?error=no_code"

    def test_callback_exchange_failure(self, client, settings):
        self.configure(settings)
        failing = AsyncMock(side_effect=GoogleOAuthError("bad code"))

        with patch("cloudcode.auth.routes.fetch_google_user", failing):
            response = client.get("/api/v1/auth/google/callback?code=abc", follow_redirects=False)

        assert response.headers["location"] == "/login?error=auth_failed"

    def test_callback_creates_user_and_welcome_project(self, client, settings):
        self.configure(settings)

        with patch("cloudcode.auth.routes.fetch_google_user", AsyncMock(return_value=GOOGLE_PROFILE)):
            response = client.get("/api/v1/auth/google/callback?code=abc", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == "/editor"
        me = client.get("/api/v1/auth/me").json()
        assert me["email"] == "g@example.com"
        assert me["avatar"] == "https://img/g.png"
        assert me["project_count"] == 1

    def test_callback_links_existing_account(self, client, settings, registered):
        """Same email: the password account is linked, no second welcome project"""
        self.configure(settings)
        profile = {**GOOGLE_PROFILE, "email": EMAIL}

        with patch("cloudcode.auth.routes.fetch_google_user", AsyncMock(return_value=profile)):
            client.get("/api/v1/auth/google/callback?code=abc", follow_redirects=False)

        me = client.get("/api/v1/auth/me").json()
        assert me["id"] == registered["user"]["id"]
        assert me["project_count"] == 1
        assert login(client).status_code == 200

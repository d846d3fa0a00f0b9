"""
Authentication Routes for the Cloud Code API

Module structure:
- types.py: Request/response models
- service.py: users, sessions, tokens
- google.py: Google OAuth client
- routes.py: API endpoints (this file)
"""

import logging
import sqlite3
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import RedirectResponse

from cloudcode.auth.google import GoogleOAuthError, build_google_auth_url, fetch_google_user
from cloudcode.auth.middleware import ACCESS_COOKIE, REFRESH_COOKIE, get_current_user
from cloudcode.auth.service import (
    authenticate_user,
    create_user,
    find_or_create_google_user,
    issue_tokens,
    public_user,
    revoke_refresh_token,
    rotate_refresh_token,
)
from cloudcode.auth.types import (
    AuthResponse,
    LoginRequest,
    LogoutRequest,
    RefreshRequest,
    RegisterRequest,
    UserResponse,
)
from cloudcode.config import CloudCodeSettings
from cloudcode.core.exceptions import AuthenticationError, CloudCodeException
from cloudcode.deps import get_app_settings, get_db
from cloudcode.rate_limiter import RateLimit, get_client_ip
from cloudcode.services.projects.db_projects import count_projects, create_project

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["authentication"])

WELCOME_PROJECT_NAME = "My First Project"
WELCOME_PROJECT_DESCRIPTION = "Welcome to Cloud Code Editor!"


def set_auth_cookies(
    response: Response,
    settings: CloudCodeSettings,
    access_token: str,
    refresh_token: str
) -> None:
    """httpOnly cookies for browser clients; API clients use the body tokens"""
    cookie_options = {
        "httponly": True,
        "secure": settings.is_production,
        "samesite": "lax",
        "path": "/",
    }
    response.set_cookie(
        ACCESS_COOKIE, access_token,
        max_age=int(settings.access_token_lifetime.total_seconds()),
        **cookie_options
    )
    response.set_cookie(
        REFRESH_COOKIE, refresh_token,
        max_age=int(settings.refresh_token_lifetime.total_seconds()),
        **cookie_options
    )


def clear_auth_cookies(response: Response) -> None:
    response.delete_cookie(ACCESS_COOKIE, path="/")
    response.delete_cookie(REFRESH_COOKIE, path="/")


def _auth_response(user: Dict[str, Any], tokens: Dict[str, Any]) -> AuthResponse:
    return AuthResponse(
        user=UserResponse(**public_user(user)),
        access_token=tokens["access_token"],
        refresh_token=tokens["refresh_token"],
        expires_in=tokens["expires_in"],
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: Request,
    response: Response,
    body: RegisterRequest,
    _: None = Depends(RateLimit("auth")),
    settings: CloudCodeSettings = Depends(get_app_settings),
    conn: sqlite3.Connection = Depends(get_db),
) -> AuthResponse:
    """
    Register a new account

    Creates a welcome project with starter files and signs the user in.
    """
    user = create_user(conn, body.email, body.password, body.name)
    create_project(
        conn, settings, user["id"], WELCOME_PROJECT_NAME,
        description=WELCOME_PROJECT_DESCRIPTION, language="javascript"
    )

    tokens = issue_tokens(conn, settings, user, request.headers.get("user-agent"), get_client_ip(request))
    set_auth_cookies(response, settings, tokens["access_token"], tokens["refresh_token"])
    return _auth_response(user, tokens)


@router.post("/login", response_model=AuthResponse)
async def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    _: None = Depends(RateLimit("auth")),
    settings: CloudCodeSettings = Depends(get_app_settings),
    conn: sqlite3.Connection = Depends(get_db),
) -> AuthResponse:
    """
    Login and receive an access token + refresh token

    Rate limited per IP to slow down brute force attempts.
    """
    user = authenticate_user(conn, body.email, body.password)
    tokens = issue_tokens(conn, settings, user, request.headers.get("user-agent"), get_client_ip(request))
    set_auth_cookies(response, settings, tokens["access_token"], tokens["refresh_token"])

    logger.info(f"User {user['id']} logged in")
    return _auth_response(user, tokens)


@router.post("/refresh", response_model=AuthResponse)
async def refresh_token(
    request: Request,
    response: Response,
    body: Optional[RefreshRequest] = None,
    _: None = Depends(RateLimit("auth")),
    settings: CloudCodeSettings = Depends(get_app_settings),
    conn: sqlite3.Connection = Depends(get_db),
) -> AuthResponse:
    """
    Exchange a refresh token (body or cookie) for a new token pair

    The presented refresh token is revoked; use the returned one next time.
    """
    token = (body.refresh_token if body else None) or request.cookies.get(REFRESH_COOKIE)
    if not token:
        raise AuthenticationError("Refresh token required")

    result = rotate_refresh_token(
        conn, settings, token, request.headers.get("user-agent"), get_client_ip(request)
    )
    tokens = result["tokens"]
    set_auth_cookies(response, settings, tokens["access_token"], tokens["refresh_token"])
    return _auth_response(result["user"], tokens)


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    body: Optional[LogoutRequest] = None,
    settings: CloudCodeSettings = Depends(get_app_settings),
    conn: sqlite3.Connection = Depends(get_db),
) -> Dict[str, str]:
    """
    Logout - works even with expired access tokens

    Revokes the presented refresh token (body or cookie) and clears cookies.
    """
    token = (body.refresh_token if body else None) or request.cookies.get(REFRESH_COOKIE)
    if token and revoke_refresh_token(conn, settings, token):
        logger.info("Refresh session revoked on logout")

    clear_auth_cookies(response)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    user: Dict[str, Any] = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
) -> UserResponse:
    """
    Get current user information
    """
    return UserResponse(**public_user(user), project_count=count_projects(conn, user["id"]))


@router.get("/google")
async def google_login(settings: CloudCodeSettings = Depends(get_app_settings)) -> RedirectResponse:
    """Redirect to the Google consent screen"""
    if not settings.google_oauth_configured:
        raise CloudCodeException(
            message="Google OAuth is not configured",
            code="OAUTH_NOT_CONFIGURED",
            status_code=status.HTTP_501_NOT_IMPLEMENTED
        )
    return RedirectResponse(build_google_auth_url(settings), status_code=status.HTTP_302_FOUND)


def _login_redirect(error: str) -> RedirectResponse:
    return RedirectResponse(f"/login?error={error}", status_code=status.HTTP_302_FOUND)


@router.get("/google/callback")
async def google_callback(
    request: Request,
    code: Optional[str] = None,
    error: Optional[str] = None,
    settings: CloudCodeSettings = Depends(get_app_settings),
    conn: sqlite3.Connection = Depends(get_db),
) -> RedirectResponse:
    """
    Handle the Google OAuth callback

    Links or creates the account, sets auth cookies and redirects to the editor.
    Every failure redirects back to the login page with an error code.
    """
    if error:
        logger.warning(f"Google OAuth error: {error}")
        return _login_redirect("google_auth_failed")
    if not code:
        return _login_redirect("no_code")

    try:
        profile = await fetch_google_user(settings, code)
    except GoogleOAuthError as e:
        logger.error(f"Google OAuth callback failed: {e}")
        return _login_redirect("auth_failed")

    is_new = not conn.execute(
        "SELECT 1 FROM users WHERE google_id = ? OR email = ?",
        (profile["id"], profile["email"].lower())
    ).fetchone()

    user = find_or_create_google_user(
        conn, profile["id"], profile["email"], profile.get("name"), profile.get("picture")
    )
    if not user["is_active"]:
        return _login_redirect("account_deactivated")

    if is_new:
        create_project(
            conn, settings, user["id"], WELCOME_PROJECT_NAME,
            description=WELCOME_PROJECT_DESCRIPTION, language="javascript"
        )

    tokens = issue_tokens(conn, settings, user, request.headers.get("user-agent"), get_client_ip(request))
    redirect = RedirectResponse("/editor", status_code=status.HTTP_302_FOUND)
    set_auth_cookies(redirect, settings, tokens["access_token"], tokens["refresh_token"])
    return redirect

"""
Authentication dependency for FastAPI routes.

Token lookup order:
1. Authorization: Bearer <access token>
2. access_token cookie
3. refresh_token cookie (silent re-authentication when the access token is gone)
"""

import logging
import sqlite3
from typing import Any, Dict, Optional

from fastapi import Depends, Request

from cloudcode.auth.service import authenticate_refresh_token, require_active_user
from cloudcode.config import CloudCodeSettings
from cloudcode.core.exceptions import AuthenticationError
from cloudcode.core.security import decode_access_token
from cloudcode.deps import get_app_settings, get_db

logger = logging.getLogger(__name__)

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"


def extract_bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        token = auth_header[len("Bearer "):].strip()
        return token or None
    return None


async def get_current_user(
    request: Request,
    settings: CloudCodeSettings = Depends(get_app_settings),
    conn: sqlite3.Connection = Depends(get_db),
) -> Dict[str, Any]:
    """
    Resolve the authenticated user.

    Records the user id on request.state for rate limiting and error logs.

    Raises:
        AuthenticationError: no usable token, or token invalid/expired
        AuthorizationError: account deactivated
    """
    token = extract_bearer_token(request) or request.cookies.get(ACCESS_COOKIE)

    if token:
        payload = decode_access_token(settings, token)
        user = require_active_user(conn, payload["user_id"])
    else:
        refresh_token = request.cookies.get(REFRESH_COOKIE)
        if not refresh_token:
            raise AuthenticationError("Authentication required")
        user = authenticate_refresh_token(conn, settings, refresh_token)
        logger.debug(f"Authenticated user {user['id']} from refresh cookie")

    request.state.user_id = user["id"]
    return user

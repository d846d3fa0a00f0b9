"""
Authentication service: users, refresh sessions and token issuance.

All functions take an open SQLite connection so the routes, the local record
source and the tests can share one transaction model.
"""

import logging
import sqlite3
from datetime import datetime, UTC
from typing import Any, Dict, Optional

from cloudcode.config import CloudCodeSettings
from cloudcode.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    InvalidCredentialsError,
)
from cloudcode.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    generate_token_id,
    hash_password,
    validate_password_strength,
    verify_password,
)
from cloudcode.db.utils import new_id, row_to_dict, utc_now

logger = logging.getLogger(__name__)


# ============================================================================
# USERS
# ============================================================================

def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    """Strip credentials before a user row leaves the service."""
    return {
        "id": user["id"],
        "email": user["email"],
        "name": user.get("name"),
        "avatar": user.get("avatar"),
        "created_at": user["created_at"],
    }


def get_user_by_id(conn: sqlite3.Connection, user_id: str) -> Optional[Dict[str, Any]]:
    row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    return row_to_dict(row)


def get_user_by_email(conn: sqlite3.Connection, email: str) -> Optional[Dict[str, Any]]:
    row = conn.execute("SELECT * FROM users WHERE email = ?", (email.lower(),)).fetchone()
    return row_to_dict(row)


def create_user(
    conn: sqlite3.Connection,
    email: str,
    password: str,
    name: Optional[str] = None
) -> Dict[str, Any]:
    """
    Create a password account.

    Raises:
        ValidationError: password breaks the policy
        ConflictError: email already registered
    """
    validate_password_strength(password)
    email = email.strip().lower()

    if get_user_by_email(conn, email):
        raise ConflictError("User with this email already exists", details={"field": "email"})

    now = utc_now()
    user_id = new_id()
    conn.execute(
        """
        INSERT INTO users (id, email, password_hash, name, is_active, created_at, updated_at)
        VALUES (?, ?, ?, ?, 1, ?, ?)
        """,
        (user_id, email, hash_password(password), name, now, now)
    )
    conn.commit()

    logger.info(f"Registered user {user_id}")
    return get_user_by_id(conn, user_id)


def authenticate_user(conn: sqlite3.Connection, email: str, password: str) -> Dict[str, Any]:
    """
    Check credentials.

    Raises:
        InvalidCredentialsError: unknown email or wrong password (indistinguishable)
        AuthorizationError: account deactivated
    """
    user = get_user_by_email(conn, email)
    if not user or not verify_password(password, user["password_hash"]):
        raise InvalidCredentialsError()
    if not user["is_active"]:
        raise AuthorizationError("Account is deactivated")
    return user


def find_or_create_google_user(
    conn: sqlite3.Connection,
    google_id: str,
    email: str,
    name: Optional[str] = None,
    avatar: Optional[str] = None
) -> Dict[str, Any]:
    """
    Resolve a Google identity to a user.

    Known google_id wins; otherwise an existing account with the same email is
    linked; otherwise a password-less account is created.
    """
    row = conn.execute("SELECT * FROM users WHERE google_id = ?", (google_id,)).fetchone()
    if row:
        return row_to_dict(row)

    email = email.strip().lower()
    now = utc_now()
    existing = get_user_by_email(conn, email)
    if existing:
        conn.execute(
            "UPDATE users SET google_id = ?, avatar = COALESCE(avatar, ?), updated_at = ? WHERE id = ?",
            (google_id, avatar, now, existing["id"])
        )
        conn.commit()
        logger.info(f"Linked Google account to user {existing['id']}")
        return get_user_by_id(conn, existing["id"])

    user_id = new_id()
    conn.execute(
        """
        INSERT INTO users (id, email, password_hash, name, avatar, google_id, is_active, created_at, updated_at)
        VALUES (?, ?, NULL, ?, ?, ?, 1, ?, ?)
        """,
        (user_id, email, name, avatar, google_id, now, now)
    )
    conn.commit()
    logger.info(f"Created user {user_id} from Google sign-in")
    return get_user_by_id(conn, user_id)


def require_active_user(conn: sqlite3.Connection, user_id: str) -> Dict[str, Any]:
    user = get_user_by_id(conn, user_id)
    if not user:
        raise AuthenticationError("User not found")
    if not user["is_active"]:
        raise AuthorizationError("Account is deactivated")
    return user


# ============================================================================
# SESSIONS & TOKENS
# ============================================================================

def issue_tokens(
    conn: sqlite3.Connection,
    settings: CloudCodeSettings,
    user: Dict[str, Any],
    user_agent: Optional[str] = None,
    ip_address: Optional[str] = None
) -> Dict[str, Any]:
    """Create an access token and a persisted refresh session."""
    token_id = generate_token_id()
    access_token = create_access_token(settings, user["id"], user["email"])
    refresh_token = create_refresh_token(settings, user["id"], token_id)
    expires_at = datetime.now(UTC) + settings.refresh_token_lifetime

    conn.execute(
        """
        INSERT INTO refresh_sessions (id, user_id, token, user_agent, ip_address, expires_at, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (token_id, user["id"], refresh_token, user_agent, ip_address, expires_at.isoformat(), utc_now())
    )
    conn.commit()

    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "expires_in": int(settings.access_token_lifetime.total_seconds()),
    }


def _load_session(conn: sqlite3.Connection, payload: Dict[str, Any], token: str) -> Dict[str, Any]:
    row = conn.execute(
        "SELECT * FROM refresh_sessions WHERE id = ? AND token = ?",
        (payload["token_id"], token)
    ).fetchone()
    if not row:
        raise AuthenticationError("Refresh token has been revoked")

    session = row_to_dict(row)
    if datetime.fromisoformat(session["expires_at"]) <= datetime.now(UTC):
        conn.execute("DELETE FROM refresh_sessions WHERE id = ?", (session["id"],))
        conn.commit()
        raise AuthenticationError("Refresh token has expired")
    return session


def authenticate_refresh_token(
    conn: sqlite3.Connection,
    settings: CloudCodeSettings,
    refresh_token: str
) -> Dict[str, Any]:
    """Return the active user a refresh token belongs to, without rotating it."""
    payload = decode_refresh_token(settings, refresh_token)
    session = _load_session(conn, payload, refresh_token)
    return require_active_user(conn, session["user_id"])


def rotate_refresh_token(
    conn: sqlite3.Connection,
    settings: CloudCodeSettings,
    refresh_token: str,
    user_agent: Optional[str] = None,
    ip_address: Optional[str] = None
) -> Dict[str, Any]:
    """
    Exchange a refresh token for a new token pair.

    The presented session is deleted, so each refresh token works once.

    Returns:
        {"user": <user row>, "tokens": <issue_tokens result>}
    """
    payload = decode_refresh_token(settings, refresh_token)
    session = _load_session(conn, payload, refresh_token)
    user = require_active_user(conn, session["user_id"])

    conn.execute("DELETE FROM refresh_sessions WHERE id = ?", (session["id"],))
    conn.commit()

    tokens = issue_tokens(conn, settings, user, user_agent, ip_address)
    logger.debug(f"Rotated refresh session for user {user['id']}")
    return {"user": user, "tokens": tokens}


def revoke_refresh_token(conn: sqlite3.Connection, settings: CloudCodeSettings, refresh_token: str) -> bool:
    """Delete the session behind a refresh token. Invalid tokens count as already revoked."""
    try:
        payload = decode_refresh_token(settings, refresh_token)
    except AuthenticationError:
        return False

    cursor = conn.execute("DELETE FROM refresh_sessions WHERE id = ?", (payload["token_id"],))
    conn.commit()
    return cursor.rowcount > 0

"""
Security utilities: JWT handling, password hashing, token validation.

Provides:
- Password hashing with bcrypt and the password policy
- Access / refresh JWT creation and validation
- Secure token generation
"""

import re
import secrets
from datetime import datetime, timedelta, UTC
from typing import Optional, Dict, Any

import jwt
from passlib.context import CryptContext

from cloudcode.config import CloudCodeSettings
from cloudcode.core.exceptions import AuthenticationError, TokenExpiredError, ValidationError

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 100

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


# Password utilities
def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a password against its hash. Accounts without a password never match."""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def validate_password_strength(password: str) -> None:
    """
    Enforce the password policy.

    8-100 characters with at least one lowercase letter, one uppercase
    letter and one digit.

    Raises:
        ValidationError: naming the first rule the password breaks
    """
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(
            f"Password must be at least {PASSWORD_MIN_LENGTH} characters", field="password"
        )
    if len(password) > PASSWORD_MAX_LENGTH:
        raise ValidationError(
            f"Password must be at most {PASSWORD_MAX_LENGTH} characters", field="password"
        )
    if not re.search(r"[a-z]", password):
        raise ValidationError("Password must contain a lowercase letter", field="password")
    if not re.search(r"[A-Z]", password):
        raise ValidationError("Password must contain an uppercase letter", field="password")
    if not re.search(r"\d", password):
        raise ValidationError("Password must contain a number", field="password")


def generate_token_id() -> str:
    """Random identifier for a refresh session."""
    return secrets.token_urlsafe(24)


# JWT utilities
def create_access_token(
    settings: CloudCodeSettings,
    user_id: str,
    email: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token.

    Args:
        settings: Application settings (secret, algorithm, lifetime)
        user_id: Subject user id
        email: User email, carried for convenience
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    now = datetime.now(UTC)
    expire = now + (expires_delta or settings.access_token_lifetime)

    payload = {
        "user_id": user_id,
        "email": email,
        "type": ACCESS_TOKEN_TYPE,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_refresh_token(
    settings: CloudCodeSettings,
    user_id: str,
    token_id: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT refresh token signed with the refresh secret.

    The token_id ties the token to its row in refresh_sessions so it can be
    revoked.
    """
    now = datetime.now(UTC)
    expire = now + (expires_delta or settings.refresh_token_lifetime)

    payload = {
        "user_id": user_id,
        "token_id": token_id,
        "type": REFRESH_TOKEN_TYPE,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, settings.jwt_refresh_secret_key, algorithm=settings.jwt_algorithm)


def _decode(token: str, secret: str, algorithm: str, expected_type: str) -> Dict[str, Any]:
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError()
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token")

    if payload.get("type") != expected_type:
        raise AuthenticationError("Invalid token type")
    if not payload.get("user_id"):
        raise AuthenticationError("Invalid token payload")

    return payload


def decode_access_token(settings: CloudCodeSettings, token: str) -> Dict[str, Any]:
    """
    Decode and validate an access token.

    Raises:
        TokenExpiredError: If the token has expired
        AuthenticationError: If the token is malformed, forged or not an access token
    """
    return _decode(token, settings.jwt_secret_key, settings.jwt_algorithm, ACCESS_TOKEN_TYPE)


def decode_refresh_token(settings: CloudCodeSettings, token: str) -> Dict[str, Any]:
    """Decode and validate a refresh token (same errors as decode_access_token)."""
    payload = _decode(token, settings.jwt_refresh_secret_key, settings.jwt_algorithm, REFRESH_TOKEN_TYPE)
    if not payload.get("token_id"):
        raise AuthenticationError("Invalid token payload")
    return payload

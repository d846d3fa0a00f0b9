"""
Auth Types - Request/response models for authentication

Contains:
- RegisterRequest (user registration)
- LoginRequest (authentication)
- RefreshRequest (token refresh, body optional - cookie fallback)
- AuthResponse, UserResponse
"""

import re
from typing import Optional

from pydantic import BaseModel, Field, field_validator

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(value: str) -> str:
    email = value.strip().lower()
    if not EMAIL_RE.match(email):
        raise ValueError("Invalid email address")
    return email


# ===== Request Models =====

class RegisterRequest(BaseModel):
    """User registration request"""
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=8, max_length=100)
    name: Optional[str] = Field(None, max_length=100)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)


class LoginRequest(BaseModel):
    """User login request"""
    email: str
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)


class RefreshRequest(BaseModel):
    """Token refresh request"""
    refresh_token: Optional[str] = Field(None, description="Refresh token; falls back to the cookie")


class LogoutRequest(BaseModel):
    refresh_token: Optional[str] = None


# ===== Response Models =====

class UserResponse(BaseModel):
    """User information response"""
    id: str
    email: str
    name: Optional[str] = None
    avatar: Optional[str] = None
    created_at: str
    project_count: Optional[int] = None


class AuthResponse(BaseModel):
    """Login/register/refresh response; tokens are also set as cookies"""
    user: UserResponse
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Access token lifetime in seconds")


__all__ = [
    "RegisterRequest",
    "LoginRequest",
    "RefreshRequest",
    "LogoutRequest",
    "UserResponse",
    "AuthResponse",
    "normalize_email",
]

"""
Custom exceptions for the Cloud Code Editor API.

Provides structured error handling with consistent error codes and messages.
The same classes are raised by the HTTP routes and by the client-side
editor session, so a failure reads the same on both sides.
"""

from typing import Optional, Dict, Any
from fastapi import HTTPException, status


class CloudCodeException(Exception):
    """Base exception for all Cloud Code errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        self.headers = headers
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": True,
            "error_code": self.code,
            "message": self.message,
            "details": self.details,
        }

    def to_http_exception(self) -> HTTPException:
        """Convert to FastAPI HTTPException."""
        return HTTPException(
            status_code=self.status_code,
            detail={
                "code": self.code,
                "message": self.message,
                "details": self.details
            },
            headers=self.headers
        )


# Authentication & Authorization Exceptions
class AuthenticationError(CloudCodeException):
    """Raised when authentication fails."""

    def __init__(self, message: str = "Authentication required", details: Optional[Dict] = None):
        super().__init__(
            message=message,
            code="AUTHENTICATION_ERROR",
            status_code=status.HTTP_401_UNAUTHORIZED,
            details=details,
            headers={"WWW-Authenticate": "Bearer"}
        )


class AuthorizationError(CloudCodeException):
    """Raised when user lacks access to a resource."""

    def __init__(self, message: str = "Access denied", details: Optional[Dict] = None):
        super().__init__(
            message=message,
            code="AUTHORIZATION_ERROR",
            status_code=status.HTTP_403_FORBIDDEN,
            details=details
        )


class InvalidCredentialsError(AuthenticationError):
    """Raised when credentials are invalid."""

    def __init__(self):
        super().__init__(message="Invalid email or password")


class TokenExpiredError(AuthenticationError):
    """Raised when JWT token has expired."""

    def __init__(self):
        super().__init__(
            message="Token has expired",
            details={"hint": "Refresh the session or log in again"}
        )


# Resource Exceptions
class NotFoundError(CloudCodeException):
    """Raised when a requested record doesn't exist."""

    def __init__(self, resource_type: str, resource_id: Optional[str] = None):
        details = {"resource_type": resource_type}
        if resource_id is not None:
            details["id"] = resource_id

        super().__init__(
            message=f"{resource_type} not found",
            code="RESOURCE_NOT_FOUND",
            status_code=status.HTTP_404_NOT_FOUND,
            details=details
        )


class ConflictError(CloudCodeException):
    """Raised when attempting to create a duplicate resource."""

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(
            message=message,
            code="RESOURCE_CONFLICT",
            status_code=status.HTTP_409_CONFLICT,
            details=details
        )


# Validation Exceptions
class ValidationError(CloudCodeException):
    """Raised for a disallowed name, extension, size or payload."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict] = None):
        error_details = details or {}
        if field:
            error_details["field"] = field

        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=error_details
        )


class QuotaExceededError(CloudCodeException):
    """Raised when a per-user or per-project limit is reached."""

    def __init__(self, message: str, limit: int):
        super().__init__(
            message=message,
            code="QUOTA_EXCEEDED",
            status_code=status.HTTP_403_FORBIDDEN,
            details={"limit": limit}
        )


# Storage Exceptions
class PersistenceError(CloudCodeException):
    """Raised when a save, create or delete could not be persisted."""

    def __init__(self, message: str = "Failed to persist changes", details: Optional[Dict] = None):
        super().__init__(
            message=message,
            code="PERSISTENCE_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details
        )


class FetchError(CloudCodeException):
    """Raised when a record could not be loaded."""

    def __init__(self, message: str = "Failed to load file", details: Optional[Dict] = None):
        super().__init__(
            message=message,
            code="FETCH_ERROR",
            status_code=status.HTTP_502_BAD_GATEWAY,
            details=details
        )


# Rate Limiting
class RateLimitExceededError(CloudCodeException):
    """Raised when rate limit is exceeded."""

    def __init__(self, retry_after: int, reset_at: Optional[str] = None):
        headers = {
            "Retry-After": str(retry_after),
            "X-RateLimit-Remaining": "0",
        }
        if reset_at:
            headers["X-RateLimit-Reset"] = reset_at

        super().__init__(
            message="Rate limit exceeded. Please try again later.",
            code="RATE_LIMIT_EXCEEDED",
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            details={"retry_after_seconds": retry_after},
            headers=headers
        )


# AI Assistant
class AINotConfiguredError(CloudCodeException):
    """Raised when no AI provider credentials are configured."""

    def __init__(self):
        super().__init__(
            message="AI assistant is not configured",
            code="AI_NOT_CONFIGURED",
            status_code=status.HTTP_501_NOT_IMPLEMENTED
        )


class AIServiceError(CloudCodeException):
    """Raised when the upstream completion API fails."""

    def __init__(self, message: str = "Failed to process AI request", details: Optional[Dict] = None):
        super().__init__(
            message=message,
            code="AI_SERVICE_ERROR",
            status_code=status.HTTP_502_BAD_GATEWAY,
            details=details
        )


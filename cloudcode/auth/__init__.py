"""
Auth Package - Authentication and session management

Provides:
- Email/password accounts with bcrypt hashes
- JWT access tokens and rotating refresh sessions
- Google OAuth sign-in
- get_current_user dependency (bearer header or cookies)

Structure:
- types.py: Pydantic request/response models
- service.py: users, sessions, tokens
- google.py: Google OAuth client
- middleware.py: FastAPI dependency
- routes.py: API endpoints
"""

from cloudcode.auth.middleware import get_current_user
from cloudcode.auth.routes import router

__all__ = [
    "get_current_user",
    "router",
]

"""
CORS middleware configuration.

Origins come from CLOUDCODE_CORS_ORIGINS. Credentials are allowed because the
editor frontend authenticates with httpOnly cookies as well as bearer tokens.
"""

from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware


def configure_cors(app: FastAPI, allowed_origins: List[str]) -> None:
    """
    Apply CORS settings to the app.

    Args:
        app: FastAPI application instance
        allowed_origins: Trusted frontend origins
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in allowed_origins if origin.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After", "X-RateLimit-Limit", "X-RateLimit-Remaining"],
        max_age=3600,
    )

"""
Google OAuth helpers (authorization-code flow) over httpx.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from cloudcode.config import CloudCodeSettings

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"

GOOGLE_SCOPES = "openid email profile"


class GoogleOAuthError(Exception):
    """Code exchange or profile lookup failed."""


def build_google_auth_url(settings: CloudCodeSettings, state: Optional[str] = None) -> str:
    params = {
        "client_id": settings.google_client_id,
        "redirect_uri": settings.google_redirect_uri,
        "response_type": "code",
        "scope": GOOGLE_SCOPES,
        "access_type": "offline",
        "prompt": "consent",
    }
    if state:
        params["state"] = state
    return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"


async def fetch_google_user(
    settings: CloudCodeSettings,
    code: str,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> Dict[str, Any]:
    """
    Exchange an authorization code and return the Google profile.

    Returns:
        {"id", "email", "name", "picture"} as reported by Google

    Raises:
        GoogleOAuthError: token exchange or userinfo request failed
    """
    async with httpx.AsyncClient(timeout=15.0, transport=transport) as client:
        try:
            token_response = await client.post(GOOGLE_TOKEN_URL, data={
                "code": code,
                "client_id": settings.google_client_id,
                "client_secret": settings.google_client_secret,
                "redirect_uri": settings.google_redirect_uri,
                "grant_type": "authorization_code",
            })
            token_response.raise_for_status()
            access_token = token_response.json().get("access_token")
            if not access_token:
                raise GoogleOAuthError("Token response had no access_token")

            profile_response = await client.get(
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"}
            )
            profile_response.raise_for_status()
        except httpx.HTTPError as e:
            raise GoogleOAuthError(f"Google OAuth request failed: {e}") from e

    profile = profile_response.json()
    if not profile.get("id") or not profile.get("email"):
        raise GoogleOAuthError("Google profile is missing id or email")
    return profile

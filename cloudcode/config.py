"""
Unified Configuration Management for Cloud Code Editor

Consolidates all configuration into a single source of truth using Pydantic BaseSettings.
All settings can be overridden via environment variables with CLOUDCODE_ prefix.

Usage:
    from cloudcode.config import get_settings

    settings = get_settings()
    print(settings.jwt_secret_key)
    print(settings.ai_provider)
"""

import re
import secrets
import warnings
from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DURATION = timedelta(minutes=15)

_DURATION_RE = re.compile(r"^(\d+)([smhd])$")
_DURATION_UNITS = {
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
}

INSECURE_SECRETS = {
    "",
    "secret",
    "changeme",
    "fallback-secret-change-in-production",
    "fallback-refresh-secret",
}


def parse_duration(value: str) -> timedelta:
    """
    Parse a duration string such as "15m", "7d" or "30s".

    Malformed values fall back to 15 minutes.
    """
    match = _DURATION_RE.match(value.strip()) if value else None
    if not match:
        return DEFAULT_DURATION

    amount, unit = match.groups()
    return timedelta(**{_DURATION_UNITS[unit]: int(amount)})


class CloudCodeSettings(BaseSettings):
    """
    Unified configuration for the Cloud Code Editor backend

    All settings can be overridden via environment variables with CLOUDCODE_ prefix.
    Example: CLOUDCODE_JWT_SECRET_KEY=mysecret
    """

    model_config = SettingsConfigDict(
        env_prefix="CLOUDCODE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ============================================
    # SYSTEM SETTINGS
    # ============================================

    environment: Literal["development", "production", "testing"] = Field(
        default="development",
        description="Application environment"
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode (exposes technical error details)"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # ============================================
    # API SERVER SETTINGS
    # ============================================

    api_host: str = Field(default="localhost", description="API server host")

    api_port: int = Field(default=8000, description="API server port")

    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"],
        description="Allowed CORS origins"
    )

    # ============================================
    # PATH CONFIGURATION
    # ============================================

    data_dir: Path = Field(
        default_factory=lambda: Path.cwd() / ".cloudcode_data",
        description="Base data directory (database lives here)"
    )

    database_name: str = Field(default="cloudcode.db", description="SQLite database file name")

    # ============================================
    # SECURITY SETTINGS
    # ============================================

    jwt_secret_key: str = Field(
        default="",
        description="Access token signing secret (REQUIRED in production)"
    )

    jwt_refresh_secret_key: str = Field(
        default="",
        description="Refresh token signing secret (REQUIRED in production)"
    )

    jwt_algorithm: Literal["HS256", "HS384", "HS512"] = Field(
        default="HS256",
        description="JWT signing algorithm (only HMAC algorithms allowed)"
    )

    jwt_access_token_expires: str = Field(default="15m", description="Access token lifetime")

    jwt_refresh_token_expires: str = Field(default="7d", description="Refresh token lifetime")

    # ============================================
    # PROJECT / FILE LIMITS
    # ============================================

    allowed_extensions: List[str] = Field(
        default=[".html", ".css", ".js", ".json", ".md", ".ts", ".tsx", ".py", ".jsx"],
        description="File extensions that may be created"
    )

    max_file_size: int = Field(default=5 * 1024 * 1024, description="Maximum file size in bytes")

    max_files_per_project: int = Field(default=100)

    max_projects_per_user: int = Field(default=20)

    # ============================================
    # RATE LIMITING
    # ============================================

    rate_limit_window_seconds: int = Field(default=60)
    rate_limit_max_requests: int = Field(default=100)

    ai_rate_limit_window_seconds: int = Field(default=60)
    ai_rate_limit_max_requests: int = Field(default=20)

    auth_rate_limit_window_seconds: int = Field(default=300)
    auth_rate_limit_max_requests: int = Field(default=10)

    # ============================================
    # AI ASSISTANT
    # ============================================

    ai_provider: Literal["openai", "groq", "local"] = Field(default="openai")

    openai_api_key: str = Field(default="")
    openai_model: str = Field(default="gpt-4-turbo-preview")
    openai_base_url: str = Field(default="https://api.openai.com/v1")

    groq_api_key: str = Field(default="")
    groq_model: str = Field(default="mixtral-8x7b-32768")
    groq_base_url: str = Field(default="https://api.groq.com/openai/v1")

    local_ai_url: str = Field(default="http://localhost:11434/v1")
    local_ai_model: str = Field(default="codellama")

    ai_temperature: float = Field(default=0.7)
    ai_max_tokens: int = Field(default=2000)
    ai_timeout_seconds: float = Field(default=60.0)

    # ============================================
    # GOOGLE OAUTH
    # ============================================

    google_client_id: str = Field(default="")
    google_client_secret: str = Field(default="")
    google_redirect_uri: str = Field(default="http://localhost:3000/api/v1/auth/google/callback")

    # ============================================
    # VALIDATORS
    # ============================================

    @field_validator("data_dir", mode="after")
    @classmethod
    def ensure_data_dir_exists(cls, v: Path) -> Path:
        """Ensure data directory exists"""
        v.mkdir(parents=True, exist_ok=True)
        return v

    @field_validator("allowed_extensions", mode="after")
    @classmethod
    def normalize_extensions(cls, v: List[str]) -> List[str]:
        return [ext.strip().lower() for ext in v if ext.strip()]

    @model_validator(mode="after")
    def validate_jwt_secrets(self) -> "CloudCodeSettings":
        """Validate JWT secrets are properly configured"""
        for field_name in ("jwt_secret_key", "jwt_refresh_secret_key"):
            value = getattr(self, field_name)

            if value.lower() in INSECURE_SECRETS:
                if self.environment == "production":
                    raise ValueError(
                        f"{field_name.upper()} must be set in production! "
                        f"Set CLOUDCODE_{field_name.upper()} to a secure random string (at least 32 chars)"
                    )
                object.__setattr__(self, field_name, secrets.token_urlsafe(32))
                warnings.warn(
                    f"{field_name.upper()} not set - using auto-generated secret. "
                    "Tokens will be invalidated on restart.",
                    UserWarning,
                    stacklevel=2
                )
            elif len(value) < 32 and self.environment == "production":
                raise ValueError(
                    f"{field_name.upper()} is too short ({len(value)} chars). "
                    "Must be at least 32 characters."
                )

        return self

    # ============================================
    # DERIVED VALUES
    # ============================================

    @property
    def database_path(self) -> Path:
        return self.data_dir / self.database_name

    @property
    def access_token_lifetime(self) -> timedelta:
        return parse_duration(self.jwt_access_token_expires)

    @property
    def refresh_token_lifetime(self) -> timedelta:
        return parse_duration(self.jwt_refresh_token_expires)

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def google_oauth_configured(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret)


@lru_cache()
def get_settings(data_dir: Optional[str] = None) -> CloudCodeSettings:
    """
    Get cached settings instance

    Args:
        data_dir: Optional override of the data directory (tests use this)
    """
    if data_dir:
        return CloudCodeSettings(data_dir=Path(data_dir))
    return CloudCodeSettings()

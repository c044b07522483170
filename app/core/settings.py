"""Application settings using Pydantic Settings for typed configuration.

This module centralizes all configuration and provides type-safe access to settings.
Settings are loaded from environment variables (or `.env`) once per process.
Missing secrets fail at startup, never on a single request.
"""

from datetime import timedelta
from functools import lru_cache
from typing import Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application-wide settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    env_name: str = Field(default="development", alias="ENV_NAME")

    # Database
    database_url: str = Field(alias="DATABASE_URL")

    # Session tokens (also used by the operator console session middleware)
    session_secret_key: str = Field(alias="SESSION_SECRET_KEY", min_length=32)
    user_session_days: int = Field(default=7, alias="USER_SESSION_DAYS", ge=1, le=30)
    admin_session_hours: int = Field(
        default=24, alias="ADMIN_SESSION_HOURS", ge=1, le=168
    )

    # Cookies
    session_cookie_name: str = Field(default="session", alias="SESSION_COOKIE_NAME")
    admin_cookie_name: str = Field(default="admin_session", alias="ADMIN_COOKIE_NAME")
    cookie_domain: str | None = Field(default=None, alias="COOKIE_DOMAIN")
    cookie_samesite: Literal["lax", "strict", "none"] = Field(
        default="lax", alias="COOKIE_SAMESITE"
    )

    # Operator credentials (administrators are not accounts)
    admin_username: str = Field(alias="ADMIN_USERNAME", min_length=1)
    admin_password: str = Field(alias="ADMIN_PASSWORD", min_length=1)
    admin_login_max_attempts: int = Field(
        default=5, alias="ADMIN_LOGIN_MAX_ATTEMPTS", ge=1
    )
    admin_login_window_seconds: int = Field(
        default=900, alias="ADMIN_LOGIN_WINDOW_SECONDS", ge=1
    )

    # CORS
    cors_origins: str = Field(default="", alias="CORS_ORIGINS")
    user_frontend_url: str | None = Field(default=None, alias="USER_FRONTEND_URL")
    admin_frontend_url: str | None = Field(default=None, alias="ADMIN_FRONTEND_URL")

    # Email (Resend)
    resend_api_key: str | None = Field(default=None, alias="RESEND_API_KEY")
    app_domain: str = Field(default="resend.dev", alias="APP_DOMAIN")
    client_url: str = Field(default="http://localhost:3000", alias="CLIENT_URL")

    # Identity provider (Firebase)
    firebase_project_id: str | None = Field(default=None, alias="FIREBASE_PROJECT_ID")
    identity_verify_timeout: float = Field(
        default=10.0, alias="IDENTITY_VERIFY_TIMEOUT", gt=0
    )

    # Credentials
    bcrypt_rounds: int = Field(default=10, alias="BCRYPT_ROUNDS", ge=4, le=16)
    reset_token_ttl_minutes: int = Field(
        default=60, alias="RESET_TOKEN_TTL_MINUTES", ge=1
    )

    @computed_field
    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS and the frontend URLs into a list."""
        origins = []
        candidates = self.cors_origins.split(",") + [
            self.user_frontend_url or "",
            self.admin_frontend_url or "",
        ]
        for o in candidates:
            trimmed = o.strip()
            if trimmed and trimmed not in origins:
                origins.append(trimmed)
        return origins

    @computed_field
    @property
    def is_secure_cookie(self) -> bool:
        """Determine if cookies should be set with Secure flag."""
        return self.env_name.lower() not in {"dev", "development", "local", "test"}

    @computed_field
    @property
    def user_session_ttl(self) -> timedelta:
        return timedelta(days=self.user_session_days)

    @computed_field
    @property
    def admin_session_ttl(self) -> timedelta:
        return timedelta(hours=self.admin_session_hours)

    @computed_field
    @property
    def reset_token_ttl(self) -> timedelta:
        return timedelta(minutes=self.reset_token_ttl_minutes)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()

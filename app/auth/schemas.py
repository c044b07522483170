"""Auth domain schemas.

Request and response schemas for login, logout and identity lookups.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from app.account.schemas import AccountPublic
from app.auth.tokens import Role


class LoginRequest(BaseModel):
    """Identity provider assertion (Firebase ID token)."""

    token: str = Field(min_length=1)


class LoginResponse(BaseModel):
    """Login result. The token is also set as an http-only cookie."""

    account: AccountPublic
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime


class AdminLoginRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class AdminLoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime


class IdentityRead(BaseModel):
    """The caller's verified session claims."""

    subject_id: uuid.UUID | None
    role: Role
    issued_at: datetime
    expires_at: datetime


class AuthLogout(BaseModel):
    """Response schema for logout."""

    message: str

"""Account domain schemas.

Request and response schemas for account and verification operations.

Security notes:
- external_login_id and every hash column are internal-only, never exposed
- AccountPublic contains only fields safe for API responses
"""

import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, EmailStr, Field, field_serializer
from sqlmodel import SQLModel

from app.account.models import (
    HANDLE_MAX_LENGTH,
    SUBMISSION_MAX_LENGTH,
    VerificationStatus,
)


def _format_utc(value: datetime) -> str:
    """Format datetime as ISO 8601 in UTC with a Z suffix (e.g. 2026-01-19T12:34:56Z)."""
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    else:
        # Naive datetime - stored as UTC
        value = value.replace(tzinfo=UTC)
    return value.replace(microsecond=0).isoformat().replace("+00:00", "Z")


class AccountPublic(SQLModel):
    """Account as seen by its owner.

    The verification token is included: the owner has to paste it into
    their public submission.
    """

    id: uuid.UUID
    email: EmailStr
    display_name: str
    verification_status: VerificationStatus
    external_handle: str | None
    verification_token: str | None
    submission_reference: str | None
    credential_set: bool
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    def serialize_datetime(self, value: datetime) -> str:
        return _format_utc(value)


class AccountAdminRead(AccountPublic):
    """Account as seen by an administrator. Same fields, separate contract."""


class AccountList(BaseModel):
    accounts: list[AccountAdminRead]
    count: int


class AccountStats(BaseModel):
    total: int
    by_status: dict[VerificationStatus, int]
    with_credential: int


class ClaimHandleRequest(BaseModel):
    handle: str = Field(min_length=1, max_length=HANDLE_MAX_LENGTH)


class SubmitSolutionRequest(BaseModel):
    submission_reference: str = Field(min_length=1, max_length=SUBMISSION_MAX_LENGTH)


class SetPasswordRequest(BaseModel):
    password: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    email: EmailStr
    token: str = Field(min_length=1)
    new_password: str


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str


class AccountMessage(BaseModel):
    """Message plus the account's state after the operation."""

    message: str
    account: AccountPublic

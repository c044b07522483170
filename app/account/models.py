"""Account domain models.

SQLModel table definition for Account, the persisted principal record.
"""

import uuid
from datetime import UTC, datetime
from enum import Enum

from pydantic import EmailStr
from sqlalchemy import Index, text
from sqlmodel import Field, SQLModel

HANDLE_MAX_LENGTH = 64
SUBMISSION_MAX_LENGTH = 128


def utc_now() -> datetime:
    """Return current UTC time without microseconds."""
    return datetime.now(UTC).replace(microsecond=0)


class VerificationStatus(str, Enum):
    """Lifecycle of an account's external handle claim.

    - UNLINKED: no handle claimed
    - CLAIMED: handle chosen, verification token issued
    - SUBMITTED: proof submission recorded, waiting for an administrator
    - APPROVED: administrator confirmed the proof
    - REJECTED: administrator rejected the proof or revoked an approval
    """

    UNLINKED = "UNLINKED"
    CLAIMED = "CLAIMED"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Account(SQLModel, table=True):
    """Account database model.

    Note: external_login_id and every hash column are internal-only and
    must never be exposed in API responses.
    """

    __tablename__: str = "accounts"
    __table_args__ = (
        # At most one APPROVED account per handle. Claims are not unique;
        # competing claimants are settled when an administrator approves.
        Index(
            "uq_accounts_approved_handle",
            "external_handle",
            unique=True,
            sqlite_where=text("verification_status = 'APPROVED'"),
            postgresql_where=text("verification_status = 'APPROVED'"),
        ),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    external_login_id: str = Field(index=True, unique=True, max_length=255)
    email: EmailStr = Field(index=True, max_length=255)
    display_name: str = Field(default="", max_length=255)

    verification_status: VerificationStatus = Field(
        default=VerificationStatus.UNLINKED, index=True
    )
    external_handle: str | None = Field(
        default=None, index=True, max_length=HANDLE_MAX_LENGTH
    )
    verification_token: str | None = Field(default=None, max_length=64)
    submission_reference: str | None = Field(
        default=None, max_length=SUBMISSION_MAX_LENGTH
    )

    credential_hash: str | None = Field(default=None, max_length=255)
    credential_set: bool = Field(default=False)
    reset_token_hash: str | None = Field(default=None, max_length=255)
    reset_token_expires_at: datetime | None = Field(default=None)

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column_kwargs={"server_default": text("CURRENT_TIMESTAMP")},
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column_kwargs={
            "server_default": text("CURRENT_TIMESTAMP"),
            "onupdate": utc_now,
        },
    )

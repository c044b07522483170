"""Password reset for verified accounts.

Only a bcrypt hash of the reset secret is stored. Completing a reset is a
conditional update that also matches the stored hash, so each secret can be
used at most once.
"""

import logging
import secrets
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Protocol

from app.account.models import VerificationStatus, utc_now
from app.account.repository import AccountStore
from app.auth.exceptions import (
    InvalidResetError,
    MustBeVerifiedError,
    ResetExpiredError,
)
from app.auth.hashing import CredentialHasher, check_password_policy
from app.core.email import send_password_reset_email

logger = logging.getLogger(__name__)

RESET_REQUESTED_MESSAGE = (
    "If an account with that email exists, a password reset link has been sent"
)


class ResetDelivery(Protocol):
    """Hands a raw reset secret to the account owner."""

    def deliver(self, email: str, reset_token: str) -> None: ...


class EmailResetDelivery:
    """Delivers reset links by email through Resend."""

    def deliver(self, email: str, reset_token: str) -> None:
        send_password_reset_email(email, reset_token)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes.
    return value if value.tzinfo else value.replace(tzinfo=UTC)


class PasswordResetService:
    def __init__(
        self,
        store: AccountStore,
        hasher: CredentialHasher,
        delivery: ResetDelivery,
        ttl: timedelta = timedelta(hours=1),
        clock: Callable[[], datetime] = utc_now,
    ):
        self._store = store
        self._hasher = hasher
        self._delivery = delivery
        self._ttl = ttl
        self._clock = clock

    def request_reset(self, email: str) -> str:
        """Open a reset window and send the secret to the account's email.

        Returns the same message whether or not an account exists.

        Raises:
            MustBeVerifiedError: If the account has not been APPROVED
        """
        account = self._store.find_by_email(email)
        if account is None:
            logger.info("Password reset requested for unknown email")
            return RESET_REQUESTED_MESSAGE

        if account.verification_status != VerificationStatus.APPROVED:
            raise MustBeVerifiedError()

        raw = secrets.token_hex(32)
        updated = self._store.conditional_update(
            account.id,
            VerificationStatus.APPROVED,
            {
                "reset_token_hash": self._hasher.hash(raw),
                "reset_token_expires_at": self._clock() + self._ttl,
            },
        )
        if updated is None:
            raise MustBeVerifiedError()

        try:
            self._delivery.deliver(updated.email, raw)
        except Exception as e:
            # The response must not reveal whether delivery worked.
            logger.warning(
                "Password reset delivery failed: %s",
                type(e).__name__,
                extra={"account_id": account.id},
            )
        else:
            logger.info("Password reset issued", extra={"account_id": account.id})

        return RESET_REQUESTED_MESSAGE

    def complete_reset(self, email: str, reset_token: str, new_password: str) -> None:
        """Set a new password using a reset secret.

        Raises:
            InvalidResetError: If the account or secret does not match, or the
                secret was already used
            ResetExpiredError: If no window is open or it has elapsed
            PasswordPolicyError: If the new password is not acceptable
        """
        account = self._store.find_by_email(email)
        if account is None:
            raise InvalidResetError()
        if not account.reset_token_hash or account.reset_token_expires_at is None:
            raise ResetExpiredError()
        if _as_utc(account.reset_token_expires_at) <= self._clock():
            raise ResetExpiredError()
        if not self._hasher.verify(reset_token, account.reset_token_hash):
            raise InvalidResetError()
        check_password_policy(new_password)

        updated = self._store.conditional_update(
            account.id,
            account.verification_status,
            {
                "credential_hash": self._hasher.hash(new_password),
                "credential_set": True,
                "reset_token_hash": None,
                "reset_token_expires_at": None,
            },
            reset_token_hash=account.reset_token_hash,
        )
        if updated is None:
            raise InvalidResetError()
        logger.info("Password reset completed", extra={"account_id": account.id})

"""Handle verification state machine.

Every trigger is declared once in TRANSITIONS with the exact statuses it may
fire from, the status it lands in, whether only an administrator may fire it,
and the fields it clears. Pairs missing from the table are illegal.

Each transition is written with a single conditional update keyed on the
status the account was read in, so two racing triggers cannot both apply.
"""

import logging
import secrets
import uuid
from dataclasses import dataclass
from typing import Any

from app.account.exceptions import (
    AccountNotFoundError,
    HandleConflictError,
    InvalidStateError,
)
from app.account.models import (
    HANDLE_MAX_LENGTH,
    SUBMISSION_MAX_LENGTH,
    Account,
    VerificationStatus,
)
from app.account.repository import AccountStore
from app.auth.exceptions import ForbiddenError, InvalidCredentialsError
from app.auth.hashing import CredentialHasher, check_password_policy
from app.auth.tokens import Role
from app.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

S = VerificationStatus

_CLAIM_FIELDS = ("external_handle", "verification_token", "submission_reference")


@dataclass(frozen=True)
class Transition:
    name: str
    sources: frozenset[VerificationStatus]
    target: VerificationStatus
    admin_only: bool = False
    clears: tuple[str, ...] = ()


TRANSITIONS: dict[str, Transition] = {
    t.name: t
    for t in (
        Transition("claim", frozenset({S.UNLINKED}), S.CLAIMED),
        Transition("submit", frozenset({S.CLAIMED}), S.SUBMITTED),
        Transition("approve", frozenset({S.SUBMITTED}), S.APPROVED, admin_only=True),
        Transition("reject", frozenset({S.SUBMITTED}), S.REJECTED, admin_only=True),
        Transition(
            "revoke",
            frozenset({S.APPROVED}),
            S.REJECTED,
            admin_only=True,
            clears=_CLAIM_FIELDS,
        ),
        Transition(
            "reset_verification",
            frozenset({S.REJECTED}),
            S.UNLINKED,
            clears=_CLAIM_FIELDS,
        ),
        Transition(
            "delink",
            frozenset({S.UNLINKED, S.CLAIMED, S.SUBMITTED, S.REJECTED}),
            S.UNLINKED,
            clears=_CLAIM_FIELDS,
        ),
        Transition("set_credential", frozenset({S.APPROVED}), S.APPROVED),
        Transition("change_credential", frozenset({S.APPROVED}), S.APPROVED),
    )
}


def new_verification_token() -> str:
    """32 hex characters from a CSPRNG."""
    return secrets.token_hex(16)


def _require_text(value: str, field: str, max_length: int) -> str:
    cleaned = value.strip() if value else ""
    if not cleaned:
        raise ValidationError(f"{field} is required")
    if len(cleaned) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return cleaned


class VerificationStateMachine:
    """Applies verification triggers to accounts held in an AccountStore."""

    def __init__(self, store: AccountStore, hasher: CredentialHasher):
        self._store = store
        self._hasher = hasher

    # --- User triggers (act on the caller's own account) ---

    def claim(self, account_id: uuid.UUID, handle: str) -> Account:
        """Claim an external handle and issue a fresh verification token.

        Raises:
            ValidationError: If the handle is empty after trimming
            HandleConflictError: If another account already has it APPROVED
            InvalidStateError: If the account is not UNLINKED
        """
        handle = _require_text(handle, "Handle", HANDLE_MAX_LENGTH)
        account = self._load(account_id)
        self._check(account, TRANSITIONS["claim"], Role.USER)
        if self._store.find_by_handle(handle, S.APPROVED, exclude_id=account.id):
            raise HandleConflictError()
        return self._fire(
            account,
            TRANSITIONS["claim"],
            {
                "external_handle": handle,
                "verification_token": new_verification_token(),
                "submission_reference": None,
            },
        )

    def submit(self, account_id: uuid.UUID, reference: str) -> Account:
        """Record the public submission that embeds the verification token."""
        reference = _require_text(
            reference, "Submission reference", SUBMISSION_MAX_LENGTH
        )
        account = self._load(account_id)
        return self._fire(
            account,
            TRANSITIONS["submit"],
            {"submission_reference": reference},
            role=Role.USER,
        )

    def reset_verification(self, account_id: uuid.UUID) -> Account:
        """Start over after a rejection."""
        account = self._load(account_id)
        return self._fire(account, TRANSITIONS["reset_verification"], role=Role.USER)

    def delink(self, account_id: uuid.UUID) -> Account:
        """Drop an unapproved claim. Approved handles stay linked."""
        account = self._load(account_id)
        return self._fire(account, TRANSITIONS["delink"], role=Role.USER)

    def set_credential(self, account_id: uuid.UUID, secret: str) -> Account:
        """Set or replace the local password on an approved account.

        Raises:
            PasswordPolicyError: If the password is too short or too long
            InvalidStateError: If the account is not APPROVED
        """
        account = self._load(account_id)
        transition = TRANSITIONS["set_credential"]
        self._check(account, transition, Role.USER)
        check_password_policy(secret)
        return self._fire(
            account,
            transition,
            {"credential_hash": self._hasher.hash(secret), "credential_set": True},
        )

    def change_credential(
        self, account_id: uuid.UUID, current: str, new: str
    ) -> Account:
        """Replace an existing local password after checking the current one.

        Raises:
            InvalidStateError: If the account is not APPROVED or has no password
            InvalidCredentialsError: If `current` does not match
            PasswordPolicyError: If `new` is not acceptable
        """
        account = self._load(account_id)
        transition = TRANSITIONS["change_credential"]
        self._check(account, transition, Role.USER)
        if not account.credential_set or not account.credential_hash:
            raise InvalidStateError("No password is set for this account")
        if not self._hasher.verify(current, account.credential_hash):
            raise InvalidCredentialsError("Current password is incorrect")
        check_password_policy(new)
        return self._fire(
            account,
            transition,
            {"credential_hash": self._hasher.hash(new), "credential_set": True},
            guards={"credential_hash": account.credential_hash},
        )

    # --- Administrator triggers (act on a target account) ---

    def approve(self, account_id: uuid.UUID, *, by: Role) -> Account:
        """Approve a submitted claim.

        Raises:
            HandleConflictError: If another account holds the handle as APPROVED,
                found either up front or by the unique index at write time
        """
        account = self._load(account_id)
        transition = TRANSITIONS["approve"]
        self._check(account, transition, by)
        if account.external_handle and self._store.find_by_handle(
            account.external_handle, S.APPROVED, exclude_id=account.id
        ):
            raise HandleConflictError()
        return self._fire(account, transition)

    def reject(self, account_id: uuid.UUID, *, by: Role) -> Account:
        account = self._load(account_id)
        return self._fire(account, TRANSITIONS["reject"], role=by)

    def revoke(self, account_id: uuid.UUID, *, by: Role) -> Account:
        """Withdraw an approval; the claim is cleared and the account becomes REJECTED."""
        account = self._load(account_id)
        return self._fire(account, TRANSITIONS["revoke"], role=by)

    def delete(self, account_id: uuid.UUID, *, by: Role) -> None:
        """Delete an account that is not APPROVED.

        Raises:
            ForbiddenError: If `by` is not an administrator
            AccountNotFoundError: If the account does not exist
            InvalidStateError: If the account is APPROVED
        """
        if not by.satisfies(Role.ADMIN):
            raise ForbiddenError()
        account = self._load(account_id)
        if account.verification_status == S.APPROVED:
            raise InvalidStateError("Cannot delete a verified account")
        # The instance is detached once the row is gone
        from_status = account.verification_status
        if not self._store.delete_unless(account_id, S.APPROVED):
            current = self._load(account_id)
            raise InvalidStateError(
                f"Cannot delete account while {current.verification_status.value}"
            )
        logger.info(
            "Account deleted",
            extra={
                "account_id": account_id,
                "transition": "delete",
                "from_status": from_status.value,
            },
        )

    # --- Internals ---

    def _load(self, account_id: uuid.UUID) -> Account:
        account = self._store.find_by_id(account_id)
        if account is None:
            raise AccountNotFoundError()
        return account

    @staticmethod
    def _check(account: Account, transition: Transition, role: Role) -> None:
        if transition.admin_only and not role.satisfies(Role.ADMIN):
            raise ForbiddenError()
        if account.verification_status not in transition.sources:
            raise InvalidStateError(
                f"Cannot {transition.name.replace('_', ' ')} while "
                f"{account.verification_status.value}"
            )

    def _fire(
        self,
        account: Account,
        transition: Transition,
        values: dict[str, Any] | None = None,
        *,
        role: Role | None = None,
        guards: dict[str, Any] | None = None,
    ) -> Account:
        """Write `transition` if the account is still in the status it was read in.

        `role` runs the legality check first; callers that already checked
        pass None.
        """
        if role is not None:
            self._check(account, transition, role)

        from_status = account.verification_status
        update = dict.fromkeys(transition.clears)
        update.update(values or {})
        update["verification_status"] = transition.target

        updated = self._store.conditional_update(
            account.id, from_status, update, **(guards or {})
        )
        if updated is None:
            # Lost a race: the row moved on since it was read.
            current = self._load(account.id)
            raise InvalidStateError(
                f"Cannot {transition.name.replace('_', ' ')} while "
                f"{current.verification_status.value}"
            )

        logger.info(
            "Verification transition applied",
            extra={
                "account_id": account.id,
                "transition": transition.name,
                "from_status": from_status.value,
                "to_status": transition.target.value,
            },
        )
        return updated

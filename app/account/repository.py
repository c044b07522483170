"""Account store backed by SQLModel.

Every mutation commits in its own transaction. State-machine transitions go
through `conditional_update`, which writes only if the row still carries the
expected status, so the guard and the write are a single atomic statement.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import case, delete, func, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlmodel import Session, col, select

from app.account.exceptions import AccountExistsError, HandleConflictError
from app.account.models import Account, VerificationStatus
from app.core.exceptions import TransientStoreError

logger = logging.getLogger(__name__)

_TRANSIENT_ERRORS = (OperationalError, PoolTimeoutError)


class AccountStore:
    """Find/create/update/delete accounts by identity or declared unique field."""

    def __init__(self, session: Session) -> None:
        self._session = session

    @contextmanager
    def _reading(self) -> Iterator[None]:
        try:
            yield
        except _TRANSIENT_ERRORS as e:
            self._session.rollback()
            logger.warning("Account store read failed: %s", type(e).__name__)
            raise TransientStoreError() from e

    @contextmanager
    def _writing(self) -> Iterator[None]:
        try:
            yield
            self._session.commit()
        except _TRANSIENT_ERRORS as e:
            self._session.rollback()
            logger.warning("Account store write failed: %s", type(e).__name__)
            raise TransientStoreError() from e
        except Exception:
            self._session.rollback()
            raise

    # --- Reads ---

    def find_by_id(self, account_id: uuid.UUID) -> Account | None:
        with self._reading():
            return self._session.get(Account, account_id, populate_existing=True)

    def find_by_external_login_id(self, external_login_id: str) -> Account | None:
        with self._reading():
            return self._session.exec(
                select(Account).where(Account.external_login_id == external_login_id)
            ).first()

    def find_by_email(self, email: str) -> Account | None:
        """Find an account by email, case-insensitively.

        Emails are not unique across accounts; an APPROVED account wins, then
        the oldest.
        """
        approved_first = case(
            (col(Account.verification_status) == VerificationStatus.APPROVED, 0),
            else_=1,
        )
        with self._reading():
            return self._session.exec(
                select(Account)
                .where(func.lower(Account.email) == email.strip().lower())
                .order_by(approved_first, col(Account.created_at))
            ).first()

    def find_by_handle(
        self,
        handle: str,
        status: VerificationStatus,
        *,
        exclude_id: uuid.UUID | None = None,
    ) -> Account | None:
        stmt = select(Account).where(
            Account.external_handle == handle,
            Account.verification_status == status,
        )
        if exclude_id is not None:
            stmt = stmt.where(Account.id != exclude_id)
        with self._reading():
            return self._session.exec(stmt).first()

    def list_by_status(self, statuses: Iterable[VerificationStatus]) -> list[Account]:
        """Accounts in any of the given statuses, most recently updated first."""
        with self._reading():
            return list(
                self._session.exec(
                    select(Account)
                    .where(col(Account.verification_status).in_(list(statuses)))
                    .order_by(col(Account.updated_at).desc())
                ).all()
            )

    def search(
        self,
        *,
        status: VerificationStatus | None = None,
        term: str | None = None,
    ) -> list[Account]:
        """Filter by status and a case-insensitive substring of email, handle or name."""
        stmt = select(Account)
        if status is not None:
            stmt = stmt.where(Account.verification_status == status)
        if term:
            stmt = stmt.where(
                col(Account.email).icontains(term, autoescape=True)
                | col(Account.external_handle).icontains(term, autoescape=True)
                | col(Account.display_name).icontains(term, autoescape=True)
            )
        with self._reading():
            return list(
                self._session.exec(
                    stmt.order_by(col(Account.created_at).desc())
                ).all()
            )

    def count_by_status(self) -> dict[VerificationStatus, int]:
        """Number of accounts per status, with every status present."""
        counts = dict.fromkeys(VerificationStatus, 0)
        with self._reading():
            rows = self._session.exec(
                select(Account.verification_status, func.count()).group_by(
                    col(Account.verification_status)
                )
            ).all()
        for status, total in rows:
            counts[VerificationStatus(status)] = total
        return counts

    def count_with_credential(self) -> int:
        with self._reading():
            return self._session.exec(
                select(func.count()).where(col(Account.credential_set).is_(True))
            ).one()

    # --- Writes ---

    def create(
        self,
        *,
        external_login_id: str,
        email: str,
        display_name: str,
    ) -> Account:
        """Create an UNLINKED account.

        Raises:
            AccountExistsError: If the external login id is already taken
        """
        account = Account(
            external_login_id=external_login_id,
            email=email,
            display_name=display_name,
            verification_status=VerificationStatus.UNLINKED,
        )
        try:
            with self._writing():
                self._session.add(account)
        except IntegrityError as e:
            raise AccountExistsError() from e
        self._session.refresh(account)
        return account

    def conditional_update(
        self,
        account_id: uuid.UUID,
        expected_status: VerificationStatus,
        values: dict[str, Any],
        **guards: Any,
    ) -> Account | None:
        """Apply `values` only if the account still has `expected_status`.

        Extra keyword guards must also match (None matches NULL). Returns the
        updated account, or None when no row matched and nothing was written.

        Raises:
            HandleConflictError: If the write would create a second APPROVED
                account for the same handle
            TransientStoreError: If the store is unreachable
        """
        stmt = (
            update(Account)
            .where(
                col(Account.id) == account_id,
                col(Account.verification_status) == expected_status,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        for name, value in guards.items():
            column = col(getattr(Account, name))
            stmt = stmt.where(column.is_(None) if value is None else column == value)

        try:
            with self._writing():
                matched = self._session.exec(stmt).rowcount  # type: ignore[call-overload]
        except IntegrityError as e:
            raise HandleConflictError() from e

        if matched == 0:
            return None
        return self.find_by_id(account_id)

    def update_profile(
        self, account_id: uuid.UUID, *, email: str, display_name: str
    ) -> Account | None:
        """Refresh identity-provider attributes; not a status transition."""
        stmt = (
            update(Account)
            .where(col(Account.id) == account_id)
            .values(email=email, display_name=display_name)
            .execution_options(synchronize_session=False)
        )
        with self._writing():
            self._session.exec(stmt)  # type: ignore[call-overload]
        return self.find_by_id(account_id)

    def delete_unless(
        self, account_id: uuid.UUID, forbidden_status: VerificationStatus
    ) -> bool:
        """Delete the account unless it is in `forbidden_status`. Returns whether a row was deleted."""
        stmt = (
            delete(Account)
            .where(
                col(Account.id) == account_id,
                col(Account.verification_status) != forbidden_status,
            )
            .execution_options(synchronize_session=False)
        )
        with self._writing():
            deleted = self._session.exec(stmt).rowcount  # type: ignore[call-overload]
        if deleted:
            stale = self._session.identity_map.get(
                self._session.identity_key(Account, account_id)
            )
            if stale is not None:
                self._session.expunge(stale)
        return bool(deleted)

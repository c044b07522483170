"""Read-side queries for administrators."""

from app.account.models import Account, VerificationStatus
from app.account.repository import AccountStore
from app.account.schemas import AccountStats

PENDING_REVIEW = (VerificationStatus.SUBMITTED, VerificationStatus.REJECTED)


class AdminService:
    def __init__(self, store: AccountStore):
        self._store = store

    def verification_requests(self) -> list[Account]:
        """Submitted and rejected claims, most recently updated first."""
        return self._store.list_by_status(PENDING_REVIEW)

    def approved_accounts(self) -> list[Account]:
        return self._store.list_by_status([VerificationStatus.APPROVED])

    def search(
        self, *, status: VerificationStatus | None = None, term: str | None = None
    ) -> list[Account]:
        term = term.strip() if term else None
        return self._store.search(status=status, term=term or None)

    def stats(self) -> AccountStats:
        by_status = self._store.count_by_status()
        return AccountStats(
            total=sum(by_status.values()),
            by_status=by_status,
            with_credential=self._store.count_with_credential(),
        )

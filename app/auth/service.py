"""Identity provider verification and the user login flow.

The identity provider (Firebase Authentication) proves who the caller is;
everything after that, including the session the caller receives, is ours.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from typing import Any, Protocol

import anyio
from firebase_admin import App
from firebase_admin import auth as firebase_admin_auth
from firebase_admin.exceptions import FirebaseError

from app.account.exceptions import AccountExistsError
from app.account.models import Account
from app.account.repository import AccountStore
from app.auth.exceptions import InvalidAssertionError
from app.auth.tokens import IssuedSession, Role, TokenCodec
from app.core.retry import with_retry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExternalIdentity:
    """Verified attributes taken from an identity provider assertion."""

    external_login_id: str
    email: str
    name: str = ""


class IdentityVerifier(Protocol):
    """Protocol for identity provider assertion checks.

    Enables dependency inversion - the login flow depends on this protocol,
    not on the provider SDK.
    """

    async def verify_assertion(self, raw: str) -> ExternalIdentity:
        """Verify `raw` and return the identity it asserts.

        Raises:
            InvalidAssertionError: On any verification failure or timeout
        """
        ...


class FirebaseIdentityVerifier:
    """Verifies Firebase ID tokens with the Admin SDK.

    Signature, audience (the configured project id) and freshness are checked
    by the SDK. The SDK call blocks on certificate fetches, so it runs in a
    worker thread under an overall deadline.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        app: App | None = None,
        retry_attempts: int = 2,
    ):
        self._timeout = timeout
        self._app = app
        self._retry_attempts = retry_attempts

    def _verify_sync(self, raw: str) -> dict[str, Any]:
        return firebase_admin_auth.verify_id_token(raw, app=self._app)

    async def verify_assertion(self, raw: str) -> ExternalIdentity:
        if not raw:
            raise InvalidAssertionError()

        try:
            with anyio.fail_after(self._timeout):
                decoded = await with_retry(
                    lambda: anyio.to_thread.run_sync(
                        self._verify_sync, raw, abandon_on_cancel=True
                    ),
                    attempts=self._retry_attempts,
                    exceptions=(firebase_admin_auth.CertificateFetchError,),
                )
        except TimeoutError as e:
            logger.warning(
                "Identity assertion verification timed out after %.1fs",
                self._timeout,
            )
            raise InvalidAssertionError(
                "Identity assertion verification timed out"
            ) from e
        except (ValueError, FirebaseError) as e:
            logger.info("Identity assertion rejected: %s", type(e).__name__)
            raise InvalidAssertionError() from e

        return self._extract_identity(decoded)

    @staticmethod
    def _extract_identity(decoded: dict[str, Any]) -> ExternalIdentity:
        uid = decoded.get("uid") or decoded.get("sub")
        email = decoded.get("email")
        if not uid or not isinstance(uid, str):
            raise InvalidAssertionError("Identity assertion has no subject")
        if not email or not isinstance(email, str):
            raise InvalidAssertionError("Identity assertion has no email")
        name = decoded.get("name")
        return ExternalIdentity(
            external_login_id=uid,
            email=email.strip().lower(),
            name=name.strip() if isinstance(name, str) else "",
        )


@dataclass(frozen=True)
class LoginResult:
    account: Account
    session: IssuedSession


class LoginService:
    """Find-or-create an account for a verified identity and open a USER session."""

    def __init__(
        self,
        store: AccountStore,
        verifier: IdentityVerifier,
        codec: TokenCodec,
        session_ttl: timedelta = timedelta(days=7),
    ):
        self._store = store
        self._verifier = verifier
        self._codec = codec
        self._session_ttl = session_ttl

    async def login(self, raw_assertion: str) -> LoginResult:
        """Log in with an identity provider assertion.

        Args:
            raw_assertion: Opaque assertion (ID token) from the provider

        Returns:
            LoginResult with the account and a freshly issued USER session

        Raises:
            InvalidAssertionError: If the assertion does not verify
            TransientStoreError: If the account store is unavailable
        """
        identity = await self._verifier.verify_assertion(raw_assertion)
        account = self._find_or_create(identity)

        issued = self._codec.issue(account.id, Role.USER, self._session_ttl)
        logger.info("User login succeeded", extra={"account_id": account.id})
        return LoginResult(account=account, session=issued)

    def _find_or_create(self, identity: ExternalIdentity) -> Account:
        account = self._store.find_by_external_login_id(identity.external_login_id)

        if account is None:
            try:
                account = self._store.create(
                    external_login_id=identity.external_login_id,
                    email=identity.email,
                    display_name=identity.name,
                )
                logger.info("Account created", extra={"account_id": account.id})
                return account
            except AccountExistsError:
                # A concurrent login for the same identity created it first.
                account = self._store.find_by_external_login_id(
                    identity.external_login_id
                )
                if account is None:
                    raise

        if account.email != identity.email or account.display_name != identity.name:
            refreshed = self._store.update_profile(
                account.id, email=identity.email, display_name=identity.name
            )
            if refreshed is not None:
                account = refreshed
        return account


@lru_cache
def get_identity_verifier() -> IdentityVerifier:
    """Get cached identity verifier for the configured provider."""
    from app.core.settings import get_settings

    return FirebaseIdentityVerifier(timeout=get_settings().identity_verify_timeout)

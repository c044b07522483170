"""Auth domain dependencies.

Session extraction, the Authenticator, and the FastAPI dependencies and type
aliases routes use to require an authenticated caller.
"""

import hmac
import logging
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request

from app.account.dependencies import AccountStoreDep
from app.account.exceptions import AccountNotFoundError
from app.account.models import Account
from app.auth.exceptions import (
    ForbiddenError,
    InvalidCredentialsError,
    InvalidTokenError,
    NotAuthenticatedError,
)
from app.auth.service import IdentityVerifier, LoginService, get_identity_verifier
from app.auth.tokens import IssuedSession, Role, SessionClaims, TokenCodec

logger = logging.getLogger(__name__)

BEARER_SCHEME = "Bearer"


def extract_session_token(request: Request, cookie_name: str) -> str | None:
    """Locate the raw session token on a request.

    Priority:
    1. The named cookie (an empty value counts as absent)
    2. An `Authorization: Bearer <token>` header

    A present cookie wins even if it later fails verification; the header is
    not consulted as a fallback.
    """
    cookie = request.cookies.get(cookie_name)
    if cookie:
        return cookie

    header = request.headers.get("Authorization")
    if not header:
        return None
    parts = header.split(" ")
    if len(parts) != 2 or parts[0] != BEARER_SCHEME or not parts[1]:
        return None
    return parts[1]


@dataclass(frozen=True)
class AdminCredentials:
    """The single configured operator username/password pair."""

    username: str
    password: str

    def matches(self, username: str, password: str) -> bool:
        # Both comparisons always run so timing does not reveal which failed.
        username_ok = hmac.compare_digest(
            username.strip().encode("utf-8"), self.username.encode("utf-8")
        )
        password_ok = hmac.compare_digest(
            password.encode("utf-8"), self.password.encode("utf-8")
        )
        return username_ok and password_ok


class Authenticator:
    """Turns an incoming request into verified session claims.

    Everything it needs is passed in, so it can be built in tests without
    touching process-wide configuration.
    """

    def __init__(
        self,
        codec: TokenCodec,
        admin_credentials: AdminCredentials,
        *,
        user_cookie_name: str = "session",
        admin_cookie_name: str = "admin_session",
        admin_session_ttl: timedelta = timedelta(hours=24),
    ):
        self._codec = codec
        self._admin_credentials = admin_credentials
        self._user_cookie_name = user_cookie_name
        self._admin_cookie_name = admin_cookie_name
        self._admin_session_ttl = admin_session_ttl

    def authenticate_user(self, request: Request) -> SessionClaims:
        """Authenticate any valid session (ADMIN tokens included)."""
        return self._authenticate(request, self._user_cookie_name, Role.USER)

    def authenticate_admin(self, request: Request) -> SessionClaims:
        """Authenticate a session whose role satisfies ADMIN."""
        return self._authenticate(request, self._admin_cookie_name, Role.ADMIN)

    def _authenticate(
        self, request: Request, cookie_name: str, required_role: Role
    ) -> SessionClaims:
        """Extract, verify and role-check a session token.

        Raises:
            NotAuthenticatedError: If no token is present
            InvalidTokenError: If the token fails verification (including expiry)
            ForbiddenError: If the token's role does not satisfy `required_role`
        """
        token = extract_session_token(request, cookie_name)
        if token is None:
            logger.info(
                "Authentication failed: no session token",
                extra={"path": request.url.path},
            )
            raise NotAuthenticatedError()

        try:
            claims = self._codec.verify(token)
        except InvalidTokenError as e:
            logger.info(
                "Authentication failed: %s",
                e.error_type,
                extra={"path": request.url.path},
            )
            raise

        if not claims.role.satisfies(required_role):
            logger.info(
                "Authorization failed: role %s does not satisfy %s",
                claims.role.value,
                required_role.value,
                extra={"path": request.url.path},
            )
            raise ForbiddenError()

        request.state.identity = claims
        return claims

    def admin_login(self, username: str, password: str) -> IssuedSession:
        """Check the operator credentials and issue an ADMIN session.

        Raises:
            InvalidCredentialsError: If the pair does not match
        """
        if not self._admin_credentials.matches(username, password):
            logger.info("Operator login rejected")
            raise InvalidCredentialsError("Invalid username or password")
        logger.info("Operator login succeeded")
        return self._codec.issue(None, Role.ADMIN, self._admin_session_ttl)


@lru_cache
def get_authenticator() -> Authenticator:
    """Get cached Authenticator wired from settings.

    Cached for the application lifetime since its configuration
    doesn't change at runtime.
    """
    from app.auth.tokens import get_token_codec
    from app.core.settings import get_settings

    settings = get_settings()
    return Authenticator(
        get_token_codec(),
        AdminCredentials(
            username=settings.admin_username,
            password=settings.admin_password,
        ),
        user_cookie_name=settings.session_cookie_name,
        admin_cookie_name=settings.admin_cookie_name,
        admin_session_ttl=settings.admin_session_ttl,
    )


AuthenticatorDep = Annotated[Authenticator, Depends(get_authenticator)]


def get_current_identity(
    request: Request, authenticator: AuthenticatorDep
) -> SessionClaims:
    return authenticator.authenticate_user(request)


def get_admin_identity(
    request: Request, authenticator: AuthenticatorDep
) -> SessionClaims:
    return authenticator.authenticate_admin(request)


CurrentIdentityDep = Annotated[SessionClaims, Depends(get_current_identity)]
AdminIdentityDep = Annotated[SessionClaims, Depends(get_admin_identity)]


def get_current_account(
    identity: CurrentIdentityDep, store: AccountStoreDep
) -> Account:
    """Load the caller's own account.

    Raises:
        AccountNotFoundError: If the session has no subject (operator tokens)
            or the account no longer exists
    """
    if identity.subject_id is None:
        raise AccountNotFoundError("This session is not bound to an account")
    account = store.find_by_id(identity.subject_id)
    if account is None:
        raise AccountNotFoundError()
    return account


CurrentAccountDep = Annotated[Account, Depends(get_current_account)]


def require_admin(_identity: AdminIdentityDep) -> None:
    """Require an ADMIN session without injecting it into the path operation.

    Use as a router-level or endpoint-level dependency:
        router = APIRouter(dependencies=[Depends(require_admin)])
    """
    pass  # Role check already done by AdminIdentityDep


def get_login_service(
    store: AccountStoreDep,
    verifier: Annotated[IdentityVerifier, Depends(get_identity_verifier)],
) -> LoginService:
    from app.auth.tokens import get_token_codec
    from app.core.settings import get_settings

    return LoginService(
        store,
        verifier,
        get_token_codec(),
        session_ttl=get_settings().user_session_ttl,
    )


LoginServiceDep = Annotated[LoginService, Depends(get_login_service)]

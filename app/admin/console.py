"""Read-only operator console (SQLAdmin) over the accounts table.

Operators sign in with the same username/password pair as the admin API.
The console only displays accounts; every status change goes through the
admin API so it passes through the state machine.
"""

import logging

from fastapi import FastAPI
from sqladmin import Admin, ModelView
from sqladmin.authentication import AuthenticationBackend
from sqlalchemy.engine import Engine
from starlette.requests import Request

from app.account.models import Account
from app.admin.throttle import LoginThrottle
from app.auth.dependencies import Authenticator
from app.auth.exceptions import InvalidCredentialsError, InvalidTokenError
from app.auth.tokens import Role, TokenCodec
from app.core.exceptions import RateLimitError

logger = logging.getLogger(__name__)

CONSOLE_PATH = "/console"
_SESSION_KEY = "admin_token"


class ConsoleAuth(AuthenticationBackend):
    """SQLAdmin auth backed by an ADMIN session token kept in the Starlette session."""

    def __init__(
        self,
        authenticator: Authenticator,
        codec: TokenCodec,
        throttle: LoginThrottle,
        secret_key: str,
    ) -> None:
        # SQLAdmin signs its session cookie with this secret.
        super().__init__(secret_key=secret_key)
        self._authenticator = authenticator
        self._codec = codec
        self._throttle = throttle

    async def login(self, request: Request) -> bool:
        # Shares the attempt budget of POST /admin/login
        client = request.client.host if request.client else "unknown"
        try:
            self._throttle.hit(client)
        except RateLimitError:
            logger.info("Console login throttled", extra={"client_ip": client})
            return False
        form = await request.form()
        username = str(form.get("username", ""))
        password = str(form.get("password", ""))
        try:
            issued = self._authenticator.admin_login(username, password)
        except InvalidCredentialsError:
            return False
        request.session[_SESSION_KEY] = issued.token
        return True

    async def logout(self, request: Request) -> bool:
        request.session.clear()
        return True

    async def authenticate(self, request: Request) -> bool:
        token = request.session.get(_SESSION_KEY)
        if not token:
            return False
        try:
            claims = self._codec.verify(token)
        except InvalidTokenError:
            request.session.clear()
            return False
        return claims.role.satisfies(Role.ADMIN)


class AccountConsoleView(ModelView, model=Account):
    name = "Account"
    name_plural = "Accounts"
    icon = "fa-solid fa-user-check"

    can_create = False
    can_edit = False
    can_delete = False
    can_export = False

    column_list = [
        Account.email,
        Account.display_name,
        Account.verification_status,
        Account.external_handle,
        Account.submission_reference,
        Account.credential_set,
        Account.id,
        Account.created_at,
        Account.updated_at,
    ]
    column_details_exclude_list = [
        Account.external_login_id,
        Account.credential_hash,
        Account.reset_token_hash,
        Account.reset_token_expires_at,
    ]

    column_searchable_list = [
        Account.email,
        Account.display_name,
        Account.external_handle,
    ]

    column_sortable_list = [
        Account.email,
        Account.verification_status,
        Account.external_handle,
        Account.created_at,
        Account.updated_at,
    ]


def mount_console(
    app: FastAPI,
    engine: Engine,
    authenticator: Authenticator,
    codec: TokenCodec,
    throttle: LoginThrottle,
    secret_key: str,
) -> Admin:
    console = Admin(
        app=app,
        engine=engine,
        base_url=CONSOLE_PATH,
        title="HandleProof Console",
        authentication_backend=ConsoleAuth(authenticator, codec, throttle, secret_key),
    )
    console.add_view(AccountConsoleView)
    return console

"""Admin domain router.

Operator login plus review and moderation of verification claims.
Everything except login requires an ADMIN session.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response, status

from app.account.models import Account, VerificationStatus
from app.account.schemas import AccountAdminRead, AccountList, AccountStats
from app.admin.dependencies import AdminServiceDep, LoginThrottleDep
from app.auth.cookies import clear_session_cookie, set_session_cookie
from app.auth.dependencies import AdminIdentityDep, AuthenticatorDep, require_admin
from app.auth.schemas import AdminLoginRequest, AdminLoginResponse, AuthLogout
from app.core.constants import CommonResponses, Routes
from app.core.deps import SettingsDep
from app.verification.dependencies import StateMachineDep

router = APIRouter(
    prefix=Routes.ADMIN.prefix,
    tags=[Routes.ADMIN.tag],
    responses={**CommonResponses.SERVICE_UNAVAILABLE},
)

# Routes below require an ADMIN session
protected = APIRouter(
    dependencies=[Depends(require_admin)],
    responses={**CommonResponses.UNAUTHORIZED, **CommonResponses.FORBIDDEN},
)

_TARGET = {**CommonResponses.NOT_FOUND, **CommonResponses.CONFLICT}


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _listing(accounts: list[Account]) -> AccountList:
    return AccountList(
        accounts=[AccountAdminRead.model_validate(a) for a in accounts],
        count=len(accounts),
    )


@router.post(
    "/login",
    response_model=AdminLoginResponse,
    responses={
        **CommonResponses.UNAUTHORIZED,
        **CommonResponses.TOO_MANY_REQUESTS,
    },
)
async def admin_login(
    payload: AdminLoginRequest,
    request: Request,
    response: Response,
    authenticator: AuthenticatorDep,
    throttle: LoginThrottleDep,
    settings: SettingsDep,
):
    """Log in with the operator username and password."""
    throttle.hit(_client_key(request))
    issued = authenticator.admin_login(payload.username, payload.password)
    set_session_cookie(response, settings.admin_cookie_name, issued, settings)
    return AdminLoginResponse(
        access_token=issued.token, expires_at=issued.claims.expires_at
    )


@protected.post("/logout", response_model=AuthLogout)
async def admin_logout(response: Response, settings: SettingsDep):
    clear_session_cookie(response, settings.admin_cookie_name, settings)
    return AuthLogout(message="Logout successful")


@protected.get("/verification-requests", response_model=AccountList)
async def verification_requests(service: AdminServiceDep):
    """Submitted and rejected claims awaiting review."""
    return _listing(service.verification_requests())


@protected.get("/approved-accounts", response_model=AccountList)
async def approved_accounts(service: AdminServiceDep):
    return _listing(service.approved_accounts())


@protected.get("/accounts", response_model=AccountList)
async def search_accounts(
    service: AdminServiceDep,
    status_filter: Annotated[VerificationStatus | None, Query(alias="status")] = None,
    search: str | None = None,
):
    """Filter accounts by status and a substring of email, handle or name."""
    return _listing(service.search(status=status_filter, term=search))


@protected.get("/stats", response_model=AccountStats)
async def stats(service: AdminServiceDep):
    return service.stats()


@protected.post(
    "/accounts/{account_id}/approve",
    response_model=AccountAdminRead,
    responses=_TARGET,
)
async def approve(
    account_id: uuid.UUID, identity: AdminIdentityDep, machine: StateMachineDep
):
    """Approve a submitted claim.

    Fails with a handle conflict if another account already holds the
    handle as approved.
    """
    return machine.approve(account_id, by=identity.role)


@protected.post(
    "/accounts/{account_id}/reject",
    response_model=AccountAdminRead,
    responses=_TARGET,
)
async def reject(
    account_id: uuid.UUID, identity: AdminIdentityDep, machine: StateMachineDep
):
    return machine.reject(account_id, by=identity.role)


@protected.post(
    "/accounts/{account_id}/revoke",
    response_model=AccountAdminRead,
    responses=_TARGET,
)
async def revoke(
    account_id: uuid.UUID, identity: AdminIdentityDep, machine: StateMachineDep
):
    """Withdraw an approval; the account becomes REJECTED."""
    return machine.revoke(account_id, by=identity.role)


@protected.delete(
    "/accounts/{account_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=_TARGET,
)
async def delete_account(
    account_id: uuid.UUID, identity: AdminIdentityDep, machine: StateMachineDep
):
    """Delete an account that is not approved."""
    machine.delete(account_id, by=identity.role)


router.include_router(protected)

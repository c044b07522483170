"""Auth domain router.

Login with an identity provider assertion, logout, and identity lookup.
Thin HTTP handlers; the work happens in LoginService and the Authenticator.
"""

from fastapi import APIRouter, Response

from app.account.schemas import AccountPublic
from app.auth.cookies import clear_session_cookie, set_session_cookie
from app.auth.dependencies import CurrentIdentityDep, LoginServiceDep
from app.auth.schemas import AuthLogout, IdentityRead, LoginRequest, LoginResponse
from app.core.constants import CommonResponses, Routes
from app.core.deps import SettingsDep

router = APIRouter(
    prefix=Routes.AUTH.prefix,
    tags=[Routes.AUTH.tag],
    responses={**CommonResponses.BAD_REQUEST},
)


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        **CommonResponses.UNAUTHORIZED,
        **CommonResponses.SERVICE_UNAVAILABLE,
    },
)
async def login(
    payload: LoginRequest,
    response: Response,
    login_service: LoginServiceDep,
    settings: SettingsDep,
):
    """Exchange an identity provider assertion for a session.

    Creates the account on first login. The session token is set as an
    http-only cookie and also returned for bearer use.
    """
    result = await login_service.login(payload.token)
    set_session_cookie(
        response, settings.session_cookie_name, result.session, settings
    )
    return LoginResponse(
        account=AccountPublic.model_validate(result.account),
        access_token=result.session.token,
        expires_at=result.session.claims.expires_at,
    )


@router.post("/logout", response_model=AuthLogout)
async def logout(response: Response, settings: SettingsDep):
    """Clear the user and admin session cookies.

    Tokens are stateless; a copied bearer token stays valid until it expires.
    """
    clear_session_cookie(response, settings.session_cookie_name, settings)
    clear_session_cookie(response, settings.admin_cookie_name, settings)
    return AuthLogout(message="Logout successful")


@router.get(
    "/me",
    response_model=IdentityRead,
    responses={**CommonResponses.UNAUTHORIZED},
)
async def get_me(identity: CurrentIdentityDep):
    """Get the caller's session claims."""
    return IdentityRead(
        subject_id=identity.subject_id,
        role=identity.role,
        issued_at=identity.issued_at,
        expires_at=identity.expires_at,
    )

"""Session cookie helpers shared by the user and admin routers."""

from fastapi import Response

from app.auth.tokens import IssuedSession
from app.core.settings import Settings


def set_session_cookie(
    response: Response, name: str, issued: IssuedSession, settings: Settings
) -> None:
    response.set_cookie(
        key=name,
        value=issued.token,
        max_age=issued.max_age,
        httponly=True,
        secure=settings.is_secure_cookie,
        samesite=settings.cookie_samesite,
        domain=settings.cookie_domain,
    )


def clear_session_cookie(response: Response, name: str, settings: Settings) -> None:
    response.delete_cookie(
        key=name,
        httponly=True,
        secure=settings.is_secure_cookie,
        samesite=settings.cookie_samesite,
        domain=settings.cookie_domain,
    )

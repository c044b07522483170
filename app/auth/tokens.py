"""Session token codec.

Signs and verifies compact session tokens (JWT, HS256) carrying a small claim
set. Tokens give integrity, not confidentiality: claims are readable by
anyone holding the token. The codec is a pure function of its secret key.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from functools import lru_cache

import jwt

from app.auth.exceptions import InvalidTokenError, SessionExpiredError

ALGORITHM = "HS256"


class Role(str, Enum):
    """Capability levels, ordered: ADMIN includes everything USER may do."""

    USER = "USER"
    ADMIN = "ADMIN"

    @property
    def level(self) -> int:
        return _ROLE_LEVELS[self]

    def satisfies(self, required: Role) -> bool:
        return self.level >= required.level


_ROLE_LEVELS = {Role.USER: 1, Role.ADMIN: 2}


@dataclass(frozen=True)
class SessionClaims:
    """Decoded session token payload.

    subject_id is None for operator tokens, which have no backing account.
    """

    subject_id: uuid.UUID | None
    role: Role
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class IssuedSession:
    """A freshly signed token together with its claims."""

    token: str
    claims: SessionClaims

    @property
    def max_age(self) -> int:
        """Seconds until expiry, for cookie lifetimes."""
        return int((self.claims.expires_at - self.claims.issued_at).total_seconds())


class TokenCodec:
    def __init__(self, secret_key: str):
        if not secret_key:
            raise ValueError("Token signing secret is required")
        self._secret_key = secret_key

    def issue(
        self,
        subject_id: uuid.UUID | None,
        role: Role,
        ttl: timedelta,
    ) -> IssuedSession:
        """Sign a token for `subject_id` and `role` expiring `ttl` from now."""
        issued_at = datetime.now(UTC).replace(microsecond=0)
        expires_at = issued_at + ttl
        payload: dict[str, object] = {
            "role": role.value,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        if subject_id is not None:
            payload["sub"] = str(subject_id)

        token = jwt.encode(payload, self._secret_key, algorithm=ALGORITHM)
        claims = SessionClaims(
            subject_id=subject_id,
            role=role,
            issued_at=issued_at,
            expires_at=expires_at,
        )
        return IssuedSession(token=token, claims=claims)

    def verify(self, token: str) -> SessionClaims:
        """Check signature and expiry and return the claims.

        Fails closed: nothing is returned unless every check passes.

        Raises:
            SessionExpiredError: If the token has expired
            InvalidTokenError: On any structural defect or signature mismatch
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[ALGORITHM],
                options={"require": ["exp", "iat", "role"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise SessionExpiredError() from e
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError() from e

        try:
            role = Role(payload["role"])
            raw_subject = payload.get("sub")
            subject_id = uuid.UUID(raw_subject) if raw_subject is not None else None
            issued_at = datetime.fromtimestamp(payload["iat"], tz=UTC)
            expires_at = datetime.fromtimestamp(payload["exp"], tz=UTC)
        except (ValueError, TypeError, AttributeError) as e:
            raise InvalidTokenError() from e

        if role is Role.USER and subject_id is None:
            raise InvalidTokenError()

        return SessionClaims(
            subject_id=subject_id,
            role=role,
            issued_at=issued_at,
            expires_at=expires_at,
        )


@lru_cache
def get_token_codec() -> TokenCodec:
    """Get cached token codec built from the configured signing secret."""
    from app.core.settings import get_settings

    return TokenCodec(get_settings().session_secret_key)

"""Tests for app/auth/dependencies.py - session extraction and the Authenticator."""

import uuid
from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from starlette.requests import Request

from app.account.exceptions import AccountNotFoundError
from app.auth.dependencies import (
    AdminCredentials,
    Authenticator,
    extract_session_token,
    get_current_account,
)
from app.auth.exceptions import (
    ForbiddenError,
    InvalidCredentialsError,
    InvalidTokenError,
    NotAuthenticatedError,
    SessionExpiredError,
)
from app.auth.tokens import Role, SessionClaims, TokenCodec


def make_request(
    cookies: dict[str, str] | None = None, authorization: str | None = None
) -> Request:
    headers: list[tuple[bytes, bytes]] = []
    if cookies:
        cookie_header = "; ".join(f"{k}={v}" for k, v in cookies.items())
        headers.append((b"cookie", cookie_header.encode()))
    if authorization is not None:
        headers.append((b"authorization", authorization.encode()))
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/test",
            "headers": headers,
            "query_string": b"",
        }
    )


@pytest.fixture(name="authenticator")
def authenticator_fixture(codec: TokenCodec) -> Authenticator:
    return Authenticator(
        codec,
        AdminCredentials(username="operator", password="s3cret-pass"),
        admin_session_ttl=timedelta(hours=24),
    )


class TestExtractSessionToken:
    def test_cookie_only(self):
        request = make_request(cookies={"session": "cookie-token"})
        assert extract_session_token(request, "session") == "cookie-token"

    def test_bearer_only(self):
        request = make_request(authorization="Bearer header-token")
        assert extract_session_token(request, "session") == "header-token"

    def test_cookie_wins_over_header(self):
        request = make_request(
            cookies={"session": "cookie-token"}, authorization="Bearer header-token"
        )
        assert extract_session_token(request, "session") == "cookie-token"

    def test_empty_cookie_counts_as_absent(self):
        request = make_request(
            cookies={"session": ""}, authorization="Bearer header-token"
        )
        assert extract_session_token(request, "session") == "header-token"

    def test_other_cookie_name_ignored(self):
        request = make_request(cookies={"admin_session": "admin-token"})
        assert extract_session_token(request, "session") is None

    @pytest.mark.parametrize(
        "header",
        ["Basic abc", "bearer abc", "Bearer", "Bearer ", "Bearer a b", "Token"],
    )
    def test_malformed_header_is_absent(self, header):
        request = make_request(authorization=header)
        assert extract_session_token(request, "session") is None

    def test_nothing_present(self):
        assert extract_session_token(make_request(), "session") is None


class TestAuthenticateUser:
    def test_valid_user_token(self, authenticator, codec):
        subject = uuid.uuid4()
        token = codec.issue(subject, Role.USER, timedelta(hours=1)).token
        request = make_request(cookies={"session": token})

        claims = authenticator.authenticate_user(request)

        assert claims.subject_id == subject
        assert request.state.identity == claims

    def test_admin_token_accepted_for_user_routes(self, authenticator, codec):
        token = codec.issue(None, Role.ADMIN, timedelta(hours=1)).token
        request = make_request(authorization=f"Bearer {token}")

        assert authenticator.authenticate_user(request).role is Role.ADMIN

    def test_no_token_is_unauthenticated(self, authenticator):
        with pytest.raises(NotAuthenticatedError) as exc_info:
            authenticator.authenticate_user(make_request())

        assert exc_info.value.status_code == 401
        assert exc_info.value.error_type == "unauthenticated"

    def test_invalid_token(self, authenticator):
        request = make_request(authorization="Bearer garbage")

        with pytest.raises(InvalidTokenError) as exc_info:
            authenticator.authenticate_user(request)

        assert exc_info.value.error_type == "invalid_token"

    def test_expired_token(self, authenticator, codec):
        token = codec.issue(uuid.uuid4(), Role.USER, timedelta(0)).token

        with pytest.raises(SessionExpiredError):
            authenticator.authenticate_user(make_request(cookies={"session": token}))

    def test_invalid_cookie_does_not_fall_back_to_header(self, authenticator, codec):
        good = codec.issue(uuid.uuid4(), Role.USER, timedelta(hours=1)).token
        request = make_request(
            cookies={"session": "garbage"}, authorization=f"Bearer {good}"
        )

        with pytest.raises(InvalidTokenError):
            authenticator.authenticate_user(request)

    def test_failure_leaves_no_identity(self, authenticator):
        request = make_request(authorization="Bearer garbage")

        with pytest.raises(InvalidTokenError):
            authenticator.authenticate_user(request)

        assert getattr(request.state, "identity", None) is None


class TestAuthenticateAdmin:
    def test_admin_token(self, authenticator, codec):
        token = codec.issue(None, Role.ADMIN, timedelta(hours=1)).token
        request = make_request(cookies={"admin_session": token})

        assert authenticator.authenticate_admin(request).role is Role.ADMIN

    def test_user_token_forbidden(self, authenticator, codec):
        token = codec.issue(uuid.uuid4(), Role.USER, timedelta(hours=1)).token

        with pytest.raises(ForbiddenError) as exc_info:
            authenticator.authenticate_admin(
                make_request(authorization=f"Bearer {token}")
            )

        assert exc_info.value.status_code == 403

    def test_reads_admin_cookie_not_user_cookie(self, authenticator, codec):
        token = codec.issue(None, Role.ADMIN, timedelta(hours=1)).token

        with pytest.raises(NotAuthenticatedError):
            authenticator.authenticate_admin(make_request(cookies={"session": token}))


class TestAdminLogin:
    def test_correct_credentials_issue_admin_session(self, authenticator, codec):
        issued = authenticator.admin_login("operator", "s3cret-pass")

        claims = codec.verify(issued.token)
        assert claims.role is Role.ADMIN
        assert claims.subject_id is None
        assert claims.expires_at - claims.issued_at == timedelta(hours=24)

    def test_username_whitespace_is_stripped(self, authenticator):
        issued = authenticator.admin_login("  operator ", "s3cret-pass")
        assert issued.claims.role is Role.ADMIN

    @pytest.mark.parametrize(
        ("username", "password"),
        [
            ("operator", "wrong"),
            ("someone", "s3cret-pass"),
            ("", ""),
            ("operator", " s3cret-pass"),
        ],
    )
    def test_wrong_credentials(self, authenticator, username, password):
        with pytest.raises(InvalidCredentialsError) as exc_info:
            authenticator.admin_login(username, password)

        assert exc_info.value.status_code == 401


class TestGetCurrentAccount:
    def _claims(self, subject_id):
        return SessionClaims(
            subject_id=subject_id,
            role=Role.USER,
            issued_at=MagicMock(),
            expires_at=MagicMock(),
        )

    def test_returns_account(self, store, account):
        result = get_current_account(self._claims(account.id), store)
        assert result.id == account.id

    def test_unknown_subject(self, store):
        with pytest.raises(AccountNotFoundError):
            get_current_account(self._claims(uuid.uuid4()), store)

    def test_operator_session_has_no_account(self, store):
        identity = SimpleNamespace(subject_id=None, role=Role.ADMIN)
        with pytest.raises(AccountNotFoundError):
            get_current_account(identity, store)  # type: ignore[arg-type]

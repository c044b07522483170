import inspect
import os

# Settings are read once at import time by app.db.engine and app.main.
os.environ.setdefault("ENV_NAME", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SESSION_SECRET_KEY", "test-session-secret-key-0123456789abcdef")
os.environ.setdefault("ADMIN_USERNAME", "admin")
os.environ.setdefault("ADMIN_PASSWORD", "admin-password")
os.environ.setdefault("LOG_REQUESTS", "false")

from collections.abc import Callable  # noqa: E402
from datetime import timedelta  # noqa: E402
from typing import Any  # noqa: E402

import anyio  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402
from sqlmodel.pool import StaticPool  # noqa: E402

from app.account.models import Account, VerificationStatus  # noqa: E402
from app.account.repository import AccountStore  # noqa: E402
from app.admin.throttle import LoginThrottle, get_login_throttle  # noqa: E402
from app.auth.hashing import CredentialHasher, get_credential_hasher  # noqa: E402
from app.auth.service import ExternalIdentity, get_identity_verifier  # noqa: E402
from app.auth.tokens import Role, TokenCodec, get_token_codec  # noqa: E402
from app.db.engine import get_session  # noqa: E402
from app.main import app  # noqa: E402
from app.verification.dependencies import get_reset_delivery  # noqa: E402
from app.verification.machine import VerificationStateMachine  # noqa: E402

TEST_SECRET = "unit-test-signing-secret-0123456789abcdef"


def pytest_configure(config: pytest.Config) -> None:
    # Tests use @pytest.mark.asyncio, but we intentionally rely on anyio.
    config.addinivalue_line(
        "markers",
        "asyncio: run async tests using anyio (project-local hook)",
    )


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Run @pytest.mark.asyncio tests with anyio.

    This avoids adding an external pytest-asyncio dependency.
    """
    if pyfuncitem.get_closest_marker("asyncio") is None:
        return None

    test_func = pyfuncitem.obj
    if not inspect.iscoroutinefunction(test_func):
        return None

    funcargs = {
        name: pyfuncitem.funcargs[name] for name in pyfuncitem._fixtureinfo.argnames
    }

    async def _run_async_test() -> None:
        await test_func(**funcargs)

    anyio.run(_run_async_test)
    return True


# --- Fakes ---


class FakeIdentityVerifier:
    """Accepts assertions registered in `identities`; rejects everything else."""

    def __init__(self) -> None:
        self.identities: dict[str, ExternalIdentity] = {}

    async def verify_assertion(self, raw: str) -> ExternalIdentity:
        from app.auth.exceptions import InvalidAssertionError

        try:
            return self.identities[raw]
        except KeyError:
            raise InvalidAssertionError() from None


class RecordingResetDelivery:
    """Keeps delivered reset secrets instead of sending email."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    def deliver(self, email: str, reset_token: str) -> None:
        self.sent.append((email, reset_token))


# --- Domain fixtures ---


@pytest.fixture(name="session")
def session_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture(name="store")
def store_fixture(session: Session) -> AccountStore:
    return AccountStore(session)


@pytest.fixture(name="hasher")
def hasher_fixture() -> CredentialHasher:
    """Cheapest bcrypt cost; hashing speed is irrelevant to the tests."""
    return CredentialHasher(rounds=4)


@pytest.fixture(name="codec")
def codec_fixture() -> TokenCodec:
    return TokenCodec(TEST_SECRET)


@pytest.fixture(name="machine")
def machine_fixture(
    store: AccountStore, hasher: CredentialHasher
) -> VerificationStateMachine:
    return VerificationStateMachine(store, hasher)


@pytest.fixture(name="make_account")
def make_account_fixture(session: Session) -> Callable[..., Account]:
    """Insert an account directly, in any status, for test setup."""
    counter = 0

    def _make(
        status: VerificationStatus = VerificationStatus.UNLINKED,
        handle: str | None = None,
        **fields: Any,
    ) -> Account:
        nonlocal counter
        counter += 1
        values: dict[str, Any] = {
            "external_login_id": f"login-{counter}",
            "email": f"user{counter}@example.com",
            "display_name": f"User {counter}",
            "verification_status": status,
            "external_handle": handle,
        }
        if status != VerificationStatus.UNLINKED:
            values.setdefault("verification_token", "ab" * 16)
        if status in (
            VerificationStatus.SUBMITTED,
            VerificationStatus.APPROVED,
            VerificationStatus.REJECTED,
        ):
            values.setdefault("submission_reference", f"submission-{counter}")
        values.update(fields)
        account = Account(**values)
        session.add(account)
        session.commit()
        session.refresh(account)
        return account

    return _make


@pytest.fixture(name="account")
def account_fixture(make_account) -> Account:
    return make_account()


# --- HTTP fixtures ---


@pytest.fixture(name="identity_verifier")
def identity_verifier_fixture() -> FakeIdentityVerifier:
    return FakeIdentityVerifier()


@pytest.fixture(name="reset_delivery")
def reset_delivery_fixture() -> RecordingResetDelivery:
    return RecordingResetDelivery()


@pytest.fixture(name="login_throttle")
def login_throttle_fixture() -> LoginThrottle:
    return LoginThrottle(max_attempts=5, window_seconds=900)


@pytest.fixture(name="client")
def client_fixture(
    session: Session,
    hasher: CredentialHasher,
    identity_verifier: FakeIdentityVerifier,
    reset_delivery: RecordingResetDelivery,
    login_throttle: LoginThrottle,
):
    """Create a test client with overridden dependencies.

    No session is attached; use `user_headers` / `admin_headers` to
    authenticate individual requests.
    """

    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_credential_hasher] = lambda: hasher
    app.dependency_overrides[get_identity_verifier] = lambda: identity_verifier
    app.dependency_overrides[get_reset_delivery] = lambda: reset_delivery
    app.dependency_overrides[get_login_throttle] = lambda: login_throttle

    client = TestClient(app)
    yield client

    app.dependency_overrides.clear()


@pytest.fixture(name="user_headers")
def user_headers_fixture() -> Callable[[Account], dict[str, str]]:
    """Bearer headers for a USER session bound to `account`."""

    def _headers(account: Account) -> dict[str, str]:
        issued = get_token_codec().issue(account.id, Role.USER, timedelta(hours=1))
        return {"Authorization": f"Bearer {issued.token}"}

    return _headers


@pytest.fixture(name="admin_headers")
def admin_headers_fixture() -> dict[str, str]:
    issued = get_token_codec().issue(None, Role.ADMIN, timedelta(hours=1))
    return {"Authorization": f"Bearer {issued.token}"}

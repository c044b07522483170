from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.admin.console import mount_console
from app.admin.throttle import get_login_throttle
from app.auth.dependencies import get_authenticator
from app.auth.tokens import get_token_codec
from app.core.cors import add_cors_middleware
from app.core.email import init_resend
from app.core.exception_handlers import register_exception_handlers
from app.core.firebase import init_firebase
from app.core.logging import configure_logging
from app.core.request_logging import add_request_logging_middleware
from app.core.settings import get_settings
from app.db.engine import engine
from app.router import api_router

configure_logging()


@asynccontextmanager
async def lifespan(_: FastAPI):
    init_firebase()
    init_resend()
    yield


app = FastAPI(title="HandleProof", version="0.1.0", lifespan=lifespan)

app.include_router(api_router)

add_request_logging_middleware(app)
add_cors_middleware(app)
register_exception_handlers(app)

# Read-only SQLAdmin console at /console (sessions enabled by the auth backend)
mount_console(
    app,
    engine,
    get_authenticator(),
    get_token_codec(),
    get_login_throttle(),
    get_settings().session_secret_key,
)

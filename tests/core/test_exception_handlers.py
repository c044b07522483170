"""Tests for app/core/exception_handlers.py - Error envelope."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from app.account.exceptions import HandleConflictError
from app.core.exception_handlers import register_exception_handlers
from app.core.exceptions import RateLimitError, TransientStoreError


class Payload(BaseModel):
    name: str


@pytest.fixture(name="error_client")
def error_client_fixture():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/conflict")
    async def conflict():
        raise HandleConflictError()

    @app.get("/throttled")
    async def throttled():
        raise RateLimitError(retry_after=42)

    @app.get("/store-down")
    async def store_down():
        raise TransientStoreError()

    @app.get("/boom")
    async def boom():
        raise RuntimeError("secret internals")

    @app.post("/echo")
    async def echo(payload: Payload):
        return payload

    return TestClient(app, raise_server_exceptions=False)


def test_app_exception_envelope(error_client):
    response = error_client.get("/conflict")

    assert response.status_code == 409
    assert set(response.json()) == {"type", "message"}
    assert response.json()["type"] == "handle_conflict"


def test_rate_limit_sets_retry_after(error_client):
    response = error_client.get("/throttled")

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "42"


def test_transient_store_failure(error_client):
    response = error_client.get("/store-down")

    assert response.status_code == 503
    assert response.json()["type"] == "transient_store_failure"


def test_unhandled_error_is_opaque(error_client):
    response = error_client.get("/boom")

    assert response.status_code == 500
    assert response.json() == {
        "type": "internal_error",
        "message": "An unexpected error occurred",
    }


def test_request_validation(error_client):
    response = error_client.post("/echo", json={})

    assert response.status_code == 422
    assert response.json()["type"] == "validation_error"
    assert response.json()["message"].startswith("name:")

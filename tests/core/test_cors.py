"""Tests for app/core/cors.py - CORS middleware configuration."""

from unittest.mock import MagicMock

from app.core.cors import add_cors_middleware
from app.core.settings import get_settings


def test_add_cors_middleware():
    mock_app = MagicMock()

    add_cors_middleware(mock_app)

    mock_app.add_middleware.assert_called_once()
    kwargs = mock_app.add_middleware.call_args[1]
    assert kwargs["allow_origins"] == get_settings().cors_origins_list
    assert kwargs["allow_credentials"] is True
    assert "Authorization" in kwargs["allow_headers"]
    assert "*" not in kwargs["allow_methods"]

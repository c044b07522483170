"""
App-wide constants for route configuration.

This module provides a single source of truth for route prefixes, tags,
common response definitions and email template environments.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape


@dataclass(frozen=True)
class RouteConfig:
    """Configuration for a route group."""

    prefix: str
    tag: str


class Routes:
    """Route configurations for all API endpoints."""

    AUTH = RouteConfig(prefix="/auth", tag="auth")
    USER = RouteConfig(prefix="/user", tag="user")
    ADMIN = RouteConfig(prefix="/admin", tag="admin")
    HEALTH = RouteConfig(prefix="/health", tag="health")


# Common response definitions for reuse across routers
class CommonResponses:
    """Standard HTTP error response definitions for OpenAPI documentation."""

    UNAUTHORIZED: dict[int, dict[str, Any]] = {
        401: {"description": "Not authenticated, invalid or expired session"}
    }
    FORBIDDEN: dict[int, dict[str, Any]] = {
        403: {"description": "Session lacks the required role"}
    }
    NOT_FOUND: dict[int, dict[str, Any]] = {404: {"description": "Account not found"}}
    CONFLICT: dict[int, dict[str, Any]] = {
        409: {"description": "Not allowed in the current state, or handle conflict"}
    }
    BAD_REQUEST: dict[int, dict[str, Any]] = {
        400: {"description": "Invalid request data"}
    }
    TOO_MANY_REQUESTS: dict[int, dict[str, Any]] = {
        429: {"description": "Too many attempts"}
    }
    SERVICE_UNAVAILABLE: dict[int, dict[str, Any]] = {
        503: {"description": "Account store temporarily unavailable, retry"}
    }


# HTML Templates Directory
EmailTemplatesDir = Path(__file__).parent.parent / "templates" / "emails"
CompiledEmailTemplatesDir = EmailTemplatesDir / "compiled"

# Jinja2 environment for compiled templates (used at runtime)
JinjaCompiledEmailTemplatesEnv = Environment(
    loader=FileSystemLoader(str(CompiledEmailTemplatesDir)),
    autoescape=select_autoescape(["html", "xml"]),
)

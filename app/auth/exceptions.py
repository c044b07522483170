"""Auth domain exceptions.

Authentication, authorization, credential and reset-secret failures.
"""

from app.core.exceptions import AppException, ValidationError


# Authentication errors (401)
class AuthenticationError(AppException):
    """Base class for authentication failures."""

    status_code = 401
    error_type = "authentication_error"

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message)


class NotAuthenticatedError(AuthenticationError):
    """Raised when the request carries no session token at all."""

    error_type = "unauthenticated"

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class InvalidTokenError(AuthenticationError):
    """Raised when a session token is malformed, forged or otherwise unusable."""

    error_type = "invalid_token"

    def __init__(self, message: str = "Invalid authentication token"):
        super().__init__(message)


class SessionExpiredError(InvalidTokenError):
    """Raised when a session token was valid but has expired."""

    error_type = "session_expired"

    def __init__(self, message: str = "Session has expired"):
        super().__init__(message)


class InvalidCredentialsError(AuthenticationError):
    """Raised when a username/password or current password does not match."""

    error_type = "invalid_credentials"

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)


class InvalidAssertionError(AuthenticationError):
    """Raised when the identity provider assertion cannot be verified."""

    error_type = "invalid_assertion"

    def __init__(self, message: str = "Identity assertion could not be verified"):
        super().__init__(message)


# Authorization errors (403)
class ForbiddenError(AppException):
    """Raised when an authenticated caller lacks the required role."""

    status_code = 403
    error_type = "forbidden"

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


# Validation errors (400) - auth specific
class PasswordPolicyError(ValidationError):
    """Raised when password does not meet policy requirements."""

    error_type = "password_policy_error"

    def __init__(
        self,
        message: str = "Password does not meet requirements",
        requirements: list[str] | None = None,
    ):
        self.requirements = requirements or []
        if requirements:
            message = f"{message}: {', '.join(requirements)}"
        super().__init__(message)


class MustBeVerifiedError(ValidationError):
    """Raised when a password reset is requested for an unverified account."""

    error_type = "must_be_verified"

    def __init__(
        self, message: str = "Password reset requires a verified account"
    ):
        super().__init__(message)


class ResetExpiredError(ValidationError):
    """Raised when no reset window is open or it has elapsed."""

    error_type = "reset_expired"

    def __init__(self, message: str = "Password reset link has expired"):
        super().__init__(message)


class InvalidResetError(ValidationError):
    """Raised when a reset secret does not match the stored one."""

    error_type = "invalid_reset"

    def __init__(self, message: str = "Invalid password reset link"):
        super().__init__(message)

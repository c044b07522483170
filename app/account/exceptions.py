"""Account domain exceptions.

Account lookups, lifecycle state and handle ownership conflicts.
"""

from app.core.exceptions import ConflictError, NotFoundError


class AccountNotFoundError(NotFoundError):
    """Raised when an account cannot be found."""

    error_type = "account_not_found"

    def __init__(self, message: str = "Account not found"):
        super().__init__(message)


class AccountExistsError(ConflictError):
    """Raised when an account already exists for an external login id."""

    error_type = "account_exists"

    def __init__(self, message: str = "Account already exists"):
        super().__init__(message)


class InvalidStateError(ConflictError):
    """Raised when a transition is not legal from the account's current status.

    The message names the current status so clients can resynchronize.
    """

    error_type = "invalid_state"

    def __init__(self, message: str = "Operation not allowed in the current state"):
        super().__init__(message)


class HandleConflictError(ConflictError):
    """Raised when another account already holds the handle as APPROVED.

    Distinct from InvalidStateError: the client should pick a different
    handle rather than wait.
    """

    error_type = "handle_conflict"

    def __init__(
        self, message: str = "This handle is already verified by another account"
    ):
        super().__init__(message)

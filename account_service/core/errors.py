"""
Error taxonomy for the account service.

Every failure that can reach a caller is one of these. Each carries the HTTP
status it maps to and a message that is safe to show to the client.
"""

from typing import Any, Optional


class AccountError(Exception):
    """Base class for all caller-facing failures."""

    status_code: int = 500
    default_message: str = "Something went wrong"

    def __init__(self, message: Optional[str] = None, errors: Optional[list[Any]] = None):
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class ValidationError(AccountError):
    """Malformed or missing input."""

    status_code = 400
    default_message = "Invalid request"


class AuthenticationError(AccountError):
    """Bad credentials or a missing, invalid, expired or reused token."""

    status_code = 401
    default_message = "unauthorized request"


class NotFoundError(AccountError):
    status_code = 404
    default_message = "Not found"


class ConflictError(AccountError):
    """Duplicate username or email."""

    status_code = 409
    default_message = "Username or email already taken"


class InternalError(AccountError):
    """Unexpected persistence or token-generation failure."""

    status_code = 500
    default_message = "An internal error occurred"

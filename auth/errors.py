"""
auth/errors.py -- Error taxonomy for the auth subsystem.

Every error carries the HTTP status it maps to and a client-safe message.
api/main.py registers one exception handler for AuthError that renders the
shared response envelope, so route handlers simply raise.

Messages on these exceptions ARE shown to clients. Internal detail (which
lookup failed, the storage error text) belongs in the server log, never in
the message.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class. Subclasses set status_code and default_message."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AuthError):
    """Malformed or missing input. Rejected before any storage access."""

    status_code = 400
    default_message = "Invalid request"


class UnauthorizedError(AuthError):
    """Bad credentials, or a missing/invalid/expired session token."""

    status_code = 401
    default_message = "Invalid email or password"


class ConflictError(AuthError):
    status_code = 409
    default_message = "Conflict"


class DuplicateEmailError(ConflictError):
    """Raised by the credential store when the email is already registered."""

    default_message = "User with this email already exists"


class NotFoundError(AuthError):
    status_code = 404
    default_message = "Not found"


class InternalError(AuthError):
    """Unexpected storage or signing failure. Details are logged, not returned."""

    status_code = 500
    default_message = "Internal server error"

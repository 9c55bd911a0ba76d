"""Domain error taxonomy shared by the row-store layer and the HTTP API.

Each error class carries the HTTP status code and machine-readable code
the API maps it to, so resource functions can raise without knowing they
are being called from a request handler.
"""

from __future__ import annotations


class EventideError(Exception):
    """Base class for all expected, user-facing failures."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(EventideError):
    """Missing or malformed input."""

    status_code = 400
    code = "VALIDATION_ERROR"


class AuthenticationError(EventideError):
    """No session, or the identity provider rejected the session token."""

    status_code = 401
    code = "UNAUTHORIZED"


class ForbiddenError(EventideError):
    """The caller is known but not allowed to perform the operation."""

    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(EventideError):
    """The target row or its parent does not exist for this caller."""

    status_code = 404
    code = "NOT_FOUND"


class ConflictError(EventideError):
    """Unique-key violation or an invalid state transition."""

    status_code = 409
    code = "CONFLICT"

"""
auth/errors.py -- Exception taxonomy for the credential-and-token core.

Every failure the auth core can report is one of these types. The HTTP layer
(api/main.py) owns the single normalization boundary that maps them to a small
set of public response shapes; the `reason` attributes here are for logs only
and never reach a response body.

Layer rule: stdlib only. No imports from api/ or core/.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for all auth-core failures."""


class ValidationError(AuthError):
    """Malformed or missing input. The caller may retry with corrected input."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class ConflictError(AuthError):
    """An account with the same username or email already exists."""

    def __init__(self, field: str) -> None:
        super().__init__(f"{field} already exists")
        self.field = field


class InvalidCredentialsError(AuthError):
    """Login failed.

    reason is one of "unknown_user", "bad_password", "inactive". It is kept
    for logging; the response for all three is identical.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class UnauthenticatedError(AuthError):
    """A presented bearer token was rejected.

    Subclasses name the validator step that rejected it. The response is the
    same for all of them.
    """

    reason = "unauthenticated"

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail or self.reason)
        self.detail = detail


class MissingTokenError(UnauthenticatedError):
    """No Authorization header, or not of the form `Bearer <token>`."""

    reason = "missing"


class MalformedTokenError(UnauthenticatedError):
    """The token could not be parsed into a signed claims set."""

    reason = "malformed"


class InvalidSignatureError(UnauthenticatedError):
    reason = "invalid_signature"


class TokenExpiredError(UnauthenticatedError):
    reason = "expired"


class StorageError(AuthError):
    """The storage collaborator failed. Surfaces as an opaque server error."""

"""
API request and response models for authgate REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Separation of concerns: auth/ models = domain truth; api/ models = API contract.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.models import IssuedToken, PublicUser
from auth.passwords import MAX_PASSWORD_BYTES

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

USERNAME_PATTERN = r"^[A-Za-z0-9_.\-]+$"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
PHONE_PATTERN = r"^\+?[0-9][0-9 \-]*$"


def _password_bounds(value: str) -> str:
    """Reject blank passwords and passwords over the hasher's byte limit.

    The password itself is never stripped: leading or trailing spaces are
    part of the secret.
    """
    if not value.strip():
        raise ValueError("Password must not be blank.")
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")
    return value


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register.

    username, email and phone are whitespace-stripped before the length and
    pattern checks run; the password is validated as given.
    """

    username: str = Field(min_length=1, max_length=64, pattern=USERNAME_PATTERN)
    password: str = Field(min_length=1)
    email: str = Field(min_length=3, max_length=255, pattern=EMAIL_PATTERN)
    phone: str = Field(min_length=6, max_length=32, pattern=PHONE_PATTERN)

    @field_validator("username", "email", "phone", mode="before")
    @classmethod
    def strip_identifiers(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        return _password_bounds(value)


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login.

    Deliberately loose: a malformed or oversized username is just another
    wrong login, and must not be distinguishable from one by status code.
    The username is trimmed the same way registration trims it.
    """

    username: str = Field(min_length=1)
    password: str = Field(min_length=1, max_length=1024)

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, value):
        return value.strip() if isinstance(value, str) else value


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public view of an account. Never carries password material."""

    model_config = ConfigDict(frozen=True)

    id: str
    username: str
    email: str
    phone: str
    active: bool
    created_at: str

    @classmethod
    def from_public(cls, user: PublicUser) -> "UserResponse":
        """Factory Method -- the mapping lives here, colocated with the output model."""
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            phone=user.phone,
            active=user.active,
            created_at=user.created_at,
        )


class LoginResponse(BaseModel):
    """Response body for a successful POST /api/v1/auth/login."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"  # noqa: S105 # nosec B105 -- OAuth token type, not a password
    expires_in: int

    @classmethod
    def from_issued(cls, issued: IssuedToken) -> "LoginResponse":
        return cls(
            access_token=issued.access_token,
            token_type=issued.token_type,
            expires_in=issued.expires_in,
        )


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]

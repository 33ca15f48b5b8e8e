"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, near-zero logic). Dataclasses own
domain shape; the store, flows and routes do the work.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A stored account.

    password_hash is the Argon2 PHC string produced by CredentialHasher. It
    never leaves the auth core: use public() for anything that does.

    id, created_at and updated_at are assigned by UserStore on insert.
    """

    username: str
    email: str
    phone: str
    password_hash: str
    id: str | None = None
    active: bool = True
    created_at: str | None = None
    updated_at: str | None = None

    def public(self) -> PublicUser:
        return PublicUser(
            id=self.id,
            username=self.username,
            email=self.email,
            phone=self.phone,
            active=self.active,
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        # Keep the hash out of logs and tracebacks.
        return f"User(id={self.id!r}, username={self.username!r}, active={self.active!r})"


@dataclass(frozen=True)
class PublicUser:
    """The externally visible view of a User. Has no credential fields."""

    id: str
    username: str
    email: str
    phone: str
    active: bool
    created_at: str


@dataclass(frozen=True)
class TokenClaims:
    """Verified identity assertions carried by a bearer token.

    issued_at and expires_at are POSIX seconds (the JWT iat / exp claims).
    expires_at > issued_at always holds for claims produced by TokenValidator.
    """

    subject: str
    issued_at: int
    expires_at: int


@dataclass(frozen=True)
class IssuedToken:
    """Result of a successful login."""

    access_token: str
    expires_in: int
    token_type: str = "bearer"  # nosec B105 -- OAuth token type, not a password

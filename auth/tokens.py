"""
auth/tokens.py -- Bearer token issuance and validation.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry only sub (user id), iat and exp.
       They are self-contained: the server keeps no per-token state, so a
       token is valid for its whole lifetime once issued. There is no
       revocation check.

  Config: TokenConfig is an immutable value built once at startup from
       Settings and handed to TokenIssuer and TokenValidator. Nothing here
       reads global state. A missing or short secret raises
       ConfigurationError at construction, so a misconfigured process never
       reaches its first request [M6].

  Validation is a fixed sequence of steps, each with its own rejection type:
       Presented -> Parsed -> SignatureChecked -> ExpiryChecked -> Accepted.
       The route layer collapses all rejections into one 401 response; the
       distinct types exist for logging.

  Algorithm pinning: jws.verify() is called with algorithms=[HS256], so a
       token whose header names any other algorithm (including "none") fails
       the signature step. HMAC comparison is constant-time (hmac.compare_digest
       inside python-jose).

  Parsing decodes only the header and payload segments. The signature
       segment is checked in the signature step, and it must be the exact
       canonical base64url text of its bytes, so no edit to it can survive.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from jose import jws, jwt
from jose.exceptions import JWSError
from jose.utils import base64url_decode, base64url_encode

from auth.errors import InvalidSignatureError, MalformedTokenError, MissingTokenError, TokenExpiredError
from auth.models import TokenClaims
from core.config import MIN_SECRET_KEY_LENGTH, ConfigurationError

if TYPE_CHECKING:
    from core.config import Settings

ALGORITHM = "HS256"
BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class TokenConfig:
    """Signing secret and lifetime policy, fixed for the life of the process."""

    secret_key: str
    ttl_seconds: int = 3600
    leeway_seconds: int = 0
    algorithm: str = ALGORITHM

    def __post_init__(self) -> None:
        if not isinstance(self.secret_key, str) or not self.secret_key:
            raise ConfigurationError("Token signing secret is not configured.")
        if len(self.secret_key) < MIN_SECRET_KEY_LENGTH:
            raise ConfigurationError(f"Token signing secret must be at least {MIN_SECRET_KEY_LENGTH} characters.")
        if self.ttl_seconds <= 0:
            raise ConfigurationError("Token lifetime must be positive.")
        if self.leeway_seconds < 0:
            raise ConfigurationError("Token leeway must not be negative.")
        if self.algorithm != ALGORITHM:
            raise ConfigurationError(f"Unsupported token algorithm {self.algorithm!r}.")

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenConfig:
        return cls(
            secret_key=settings.secret_key,
            ttl_seconds=settings.token_expire_seconds,
            leeway_seconds=settings.token_leeway_seconds,
        )

    def __repr__(self) -> str:
        # The secret never appears in reprs, logs or tracebacks.
        return (
            f"TokenConfig(ttl_seconds={self.ttl_seconds}, "
            f"leeway_seconds={self.leeway_seconds}, algorithm={self.algorithm!r})"
        )


def _timestamp(now: datetime | None) -> int:
    return int((now or datetime.now(timezone.utc)).timestamp())


# ---------------------------------------------------------------------------
# Issuance
# ---------------------------------------------------------------------------


class TokenIssuer:
    """Produces signed, time-bounded tokens asserting a user's identity."""

    def __init__(self, config: TokenConfig) -> None:
        self.config = config

    @property
    def ttl_seconds(self) -> int:
        return self.config.ttl_seconds

    def issue(self, user_id: str, now: datetime | None = None) -> str:
        """Encode a signed JWT {sub, iat, exp} for user_id.

        Args:
            user_id: Opaque user identifier, stored as the sub claim.
            now:     Issue time. Defaults to the current UTC time; tests pass
                     a fixed value to produce already-expired tokens.
        """
        issued_at = _timestamp(now)
        claims = {
            "sub": str(user_id),
            "iat": issued_at,
            "exp": issued_at + self.config.ttl_seconds,
        }
        return jwt.encode(claims, self.config.secret_key, algorithm=self.config.algorithm)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def extract_bearer(authorization: str | None) -> str:
    """Return the token from an `Authorization: Bearer <token>` header value.

    The scheme prefix is matched literally, including the single space.
    Raises MissingTokenError for an absent header, any other scheme, or an
    empty token.
    """
    if not authorization:
        raise MissingTokenError("Authorization header missing")
    if not authorization.startswith(BEARER_PREFIX):
        raise MissingTokenError("Invalid Authorization scheme")
    token = authorization[len(BEARER_PREFIX) :].strip()
    if not token:
        raise MissingTokenError("Empty bearer token")
    return token


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _split(token: str) -> tuple[str, str, str]:
    """Presented -> three segments. A dot inside the signature stays there."""
    parts = token.split(".", 2)
    if len(parts) != 3:
        raise MalformedTokenError("Token does not have three segments")
    return parts[0], parts[1], parts[2]


def _decode_object(segment: str, what: str) -> dict:
    try:
        data = json.loads(base64url_decode(segment.encode("ascii")))
    except (ValueError, TypeError) as exc:
        raise MalformedTokenError(f"Token {what} is not base64url JSON") from exc
    if not isinstance(data, dict):
        raise MalformedTokenError(f"Token {what} is not a JSON object")
    return data


def _parse_claims(header_segment: str, payload_segment: str) -> TokenClaims:
    """Parsed step: decode header and payload without trusting either yet.

    The signature segment is not touched here; it belongs to the signature step.
    """
    _decode_object(header_segment, "header")
    data = _decode_object(payload_segment, "payload")
    subject, issued_at, expires_at = data.get("sub"), data.get("iat"), data.get("exp")
    if not isinstance(subject, str) or not subject:
        raise MalformedTokenError("Token has no subject")
    if not _is_int(issued_at) or not _is_int(expires_at):
        raise MalformedTokenError("Token timestamps are missing or not integers")
    if expires_at <= issued_at:
        raise MalformedTokenError("Token expiry is not after issue time")
    return TokenClaims(subject=subject, issued_at=issued_at, expires_at=expires_at)


def _check_signature_encoding(signature_segment: str) -> None:
    """Reject signature text that is not the canonical base64url of its bytes.

    The decoder skips stray characters and ignores the unused low bits of the
    last character, so two different segments can decode to the same MAC.
    """
    try:
        encoded = signature_segment.encode("ascii")
        canonical = base64url_encode(base64url_decode(encoded))
    except ValueError as exc:
        raise InvalidSignatureError("Signature is not base64url") from exc
    if canonical != encoded:
        raise InvalidSignatureError("Signature is not canonically encoded")


class TokenValidator:
    """Verifies presented tokens and extracts the authenticated subject.

    Usage:
        validator = TokenValidator(config)
        claims = validator.validate_header(request.headers.get("Authorization"))
        claims.subject  # user id

    Every failure raises a subclass of UnauthenticatedError.
    """

    def __init__(self, config: TokenConfig) -> None:
        self.config = config

    def validate_header(self, authorization: str | None, now: datetime | None = None) -> TokenClaims:
        return self.validate(extract_bearer(authorization), now=now)

    def validate(self, token: str, now: datetime | None = None) -> TokenClaims:
        header_segment, payload_segment, signature_segment = _split(token)
        claims = _parse_claims(header_segment, payload_segment)

        # SignatureChecked
        _check_signature_encoding(signature_segment)
        try:
            jws.verify(token, self.config.secret_key, algorithms=[self.config.algorithm])
        except JWSError as exc:
            raise InvalidSignatureError(str(exc)) from exc

        # ExpiryChecked
        if _timestamp(now) >= claims.expires_at + self.config.leeway_seconds:
            raise TokenExpiredError(f"Token expired at {claims.expires_at}")

        return claims

"""
auth/passwords.py -- Argon2id password hashing and verification.

Security design decisions:
  Algorithm: argon2-cffi's PasswordHasher (Argon2id). Memory-hard, salted,
       with tunable time / memory / parallelism cost. The encoded output is a
       PHC string ($argon2id$v=19$m=...,t=...,p=...$salt$digest), so verify()
       is self-describing and survives cost changes.

  Input bounds: plaintext must be non-empty and at most MAX_PASSWORD_BYTES
       UTF-8 bytes. Argon2 cost grows with input length; the bound caps the
       work an attacker can request per call.

  Fail closed: verify() returns False on any failure -- mismatch, malformed
       hash, unknown algorithm, out-of-bounds plaintext. It never raises.

  Timing equalization [C1]: a dummy hash is computed once per hasher so the
       login flow can run a full verification even when the username does
       not exist. See auth/accounts.py.

Hashing is CPU and memory intensive by design. Callers on an event loop must
run it in a worker thread (FastAPI does this for plain `def` routes).

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
import secrets
from typing import TYPE_CHECKING

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from auth.errors import ValidationError

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("authgate.auth")

MAX_PASSWORD_BYTES = 256


def _check_bounds(plain: str) -> None:
    if not isinstance(plain, str) or not plain:
        raise ValidationError("password", "Password must not be empty.")
    if len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError("password", f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")


class CredentialHasher:
    """One-way hash and verify for plaintext passwords.

    Holds only immutable cost parameters and the dummy hash, so one instance
    is shared by every request thread.

    Usage:
        hasher = CredentialHasher.from_settings(get_settings())
        encoded = hasher.hash("correct horse")
        hasher.verify("correct horse", encoded)  # True
    """

    def __init__(self, time_cost: int = 3, memory_cost: int = 65536, parallelism: int = 4) -> None:
        self._hasher = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
        )
        # Random plaintext: nobody can log in against the dummy hash.
        self._dummy_hash = self._hasher.hash(secrets.token_urlsafe(16))

    @classmethod
    def from_settings(cls, settings: Settings) -> CredentialHasher:
        return cls(
            time_cost=settings.argon2_time_cost,
            memory_cost=settings.argon2_memory_cost,
            parallelism=settings.argon2_parallelism,
        )

    def hash(self, plain: str) -> str:
        """Return an encoded Argon2id hash of plain with a fresh random salt.

        Raises ValidationError if plain is empty or longer than
        MAX_PASSWORD_BYTES.
        """
        _check_bounds(plain)
        return self._hasher.hash(plain)

    def verify(self, plain: str, encoded: str) -> bool:
        """Return True only if plain matches the encoded hash.

        Comparison is constant-time inside argon2. Any malformed input yields
        False rather than an exception.
        """
        try:
            _check_bounds(plain)
        except ValidationError:
            return False
        if not isinstance(encoded, str) or not encoded:
            return False
        try:
            return self._hasher.verify(encoded, plain)
        except VerifyMismatchError:
            return False
        except (VerificationError, InvalidHashError, ValueError) as exc:
            # ValueError covers non-ASCII hash strings. Log the type only --
            # the message may echo hash material.
            logger.warning("Stored password hash could not be verified (%s)", type(exc).__name__)
            return False

    def verify_dummy(self, plain: str) -> None:
        """Spend one verification's worth of work and discard the result.

        Called for unknown usernames so their response time matches a real
        wrong-password check [C1].
        """
        self.verify(plain, self._dummy_hash)

"""
auth/accounts.py -- Registration and login flows.

Both flows are plain synchronous functions that take their collaborators as
arguments (store, hasher, issuer). They hold no state of their own, so any
number of requests may run them concurrently. They do CPU-heavy Argon2 work:
call them from a worker thread, never directly on an event loop.

Security:
  [C1] authenticate_user() runs exactly one Argon2 verification on every
       path -- against the stored hash when the user exists, against the
       hasher's dummy hash when it does not. Unknown username, wrong password
       and inactive account all raise the same InvalidCredentialsError type
       after comparable work. Do NOT inline get_by_username() +
       verify() elsewhere -- that re-introduces the timing leak.

  The plaintext password is never logged, stored or returned. Only its hash
  reaches the store, and only PublicUser leaves this module.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging

from auth.errors import ConflictError, InvalidCredentialsError, ValidationError
from auth.models import IssuedToken, PublicUser, User
from auth.passwords import CredentialHasher
from auth.store import UserStore
from auth.tokens import TokenIssuer

logger = logging.getLogger("authgate.auth")


def _required(field: str, value: str | None) -> str:
    """Return value trimmed, or raise ValidationError if it is missing or blank."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(field, "Field is required.")
    return value.strip()


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


def register_user(
    store: UserStore,
    hasher: CredentialHasher,
    username: str,
    password: str,
    email: str,
    phone: str,
) -> PublicUser:
    """Create an active account and return its public view.

    username, email and phone are stored trimmed. The password must be
    non-blank but is hashed exactly as given.

    Raises:
        ValidationError: a field is missing, blank or out of bounds.
        ConflictError:   username or email already belongs to an account.
                         The existing record is not touched.
        StorageError:    the store failed.
    """
    username = _required("username", username)
    email = _required("email", email)
    phone = _required("phone", phone)
    _required("password", password)

    existing = store.find_by_username_or_email(username, email)
    if existing is not None:
        field = "username" if existing.username == username else "email"
        logger.warning("Registration rejected: %s already exists", field)
        raise ConflictError(field)

    password_hash = hasher.hash(password)
    user = store.create_user(
        User(
            username=username,
            email=email,
            phone=phone,
            password_hash=password_hash,
            active=True,
        )
    )
    logger.info("New user registered with id %s", user.id)
    return user.public()


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


def authenticate_user(store: UserStore, hasher: CredentialHasher, username: str, password: str) -> User:
    """Verify a username/password pair with timing equalization [C1].

    Returns the User on success. Raises InvalidCredentialsError on any
    failure; its reason ("unknown_user", "bad_password", "inactive") is for
    logs only. The username is trimmed, as register_user stores it.
    """
    user = store.get_by_username(username.strip())
    if user is None:
        # Equalize timing -- do NOT return early before running Argon2 [C1]
        hasher.verify_dummy(password)
        raise InvalidCredentialsError("unknown_user")
    if not hasher.verify(password, user.password_hash):
        raise InvalidCredentialsError("bad_password")
    if not user.active:
        raise InvalidCredentialsError("inactive")
    return user


def login(
    store: UserStore,
    hasher: CredentialHasher,
    issuer: TokenIssuer,
    username: str,
    password: str,
) -> IssuedToken:
    """Authenticate and issue a bearer token for the account.

    One store read, one Argon2 verification, one token signature. No writes.
    """
    user = authenticate_user(store, hasher, username, password)
    token = issuer.issue(user.id)
    logger.info("User %s logged in", user.id)
    return IssuedToken(access_token=token, expires_in=issuer.ttl_seconds)

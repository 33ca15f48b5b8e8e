"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper. Flow and route code
never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(username) and UNIQUE(email) are enforced by the database. The
  registration flow checks first for a friendly error, but two concurrent
  registrations can both pass that check; the losing INSERT hits the
  constraint and surfaces as ConflictError.

Errors:
  IntegrityError  -> ConflictError (field guessed from the driver message)
  SQLAlchemyError -> StorageError (original chained, logged by the API layer)

DB path: auth/authgate.db unless DATABASE_URL is set.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, MetaData, String, Table, Text, create_engine, event, or_, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import ConflictError, StorageError
from auth.models import User

logger = logging.getLogger("authgate.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(32), primary_key=True),  # uuid4 hex, assigned on insert
    Column("username", String(255), nullable=False, unique=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("phone", String(32), nullable=False),
    Column("password_hash", Text, nullable=False),  # Argon2 PHC string
    Column("active", Boolean, nullable=False, server_default="1"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    WAL (Write-Ahead Logging) allows readers to proceed without blocking
    during writes. Set per-connection because SQLite PRAGMAs are not
    inherited by new connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _conflict_field(exc: IntegrityError) -> str:
    message = str(exc.orig).lower()
    if "email" in message:
        return "email"
    return "username"


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore()
        user = store.create_user(User(username="alice", email="a@example.com",
                                      phone="0800000000", password_hash=hasher.hash("secret")))
        store.get_by_username("alice")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        try:
            _metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StorageError("Could not initialize user store") from exc

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> User:
        """Insert a new user and return the stored record.

        id, created_at and updated_at are assigned here; values on the
        incoming User are ignored.

        Raises ConflictError if the username or email is already taken.
        """
        now = _now_iso()
        values = {
            "id": uuid.uuid4().hex,
            "username": user.username,
            "email": user.email,
            "phone": user.phone,
            "password_hash": user.password_hash,
            "active": user.active,
            "created_at": now,
            "updated_at": now,
        }
        try:
            with self.engine.connect() as conn:
                conn.execute(_users.insert().values(**values))
                conn.commit()
        except IntegrityError as exc:
            raise ConflictError(_conflict_field(exc)) from exc
        except SQLAlchemyError as exc:
            raise StorageError("Could not create user") from exc
        return User(**values)

    def set_active(self, user_id: str, active: bool) -> bool:
        """Activate or deactivate an account.

        Returns True if a row was updated, False if user_id was not found.
        Tokens already issued to the account stay valid until they expire.
        """
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.update().where(_users.c.id == user_id).values(active=active, updated_at=_now_iso())
                )
                conn.commit()
        except SQLAlchemyError as exc:
            raise StorageError("Could not update user") from exc
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: str) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        return self._fetch_one(_users.select().where(_users.c.id == user_id))

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        return self._fetch_one(_users.select().where(_users.c.username == username))

    def find_by_username_or_email(self, username: str, email: str) -> User | None:
        """Return any user holding either identifier, or None.

        Used by registration to report which field clashes before attempting
        the insert.
        """
        return self._fetch_one(
            _users.select().where(or_(_users.c.username == username, _users.c.email == email)).limit(1)
        )

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by /health."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.exception("User store health check failed")
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()

    def _fetch_one(self, query) -> User | None:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(query).fetchone()
        except SQLAlchemyError as exc:
            raise StorageError("Could not read user") from exc
        return _row_to_user(row) if row is not None else None


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        phone=row.phone,
        password_hash=row.password_hash,
        active=bool(row.active),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )

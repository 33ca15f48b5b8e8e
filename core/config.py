"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for authgate happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY). Type coercion and validation are built in.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. Used to refuse startup without a signing
      secret.

Security notes:
  [M6] SECRET_KEY shorter than 32 chars is rejected outright. HS256 token
       signing relies on key entropy -- a short key weakens every token.

  [M7] A missing SECRET_KEY is a hard startup failure. There is no dev-mode
       fallback: a generated key would silently invalidate every token on
       restart.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("authgate.config")

MIN_SECRET_KEY_LENGTH = 32

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'auth' / 'authgate.db'}"


class ConfigurationError(RuntimeError):
    """Raised when the process cannot safely start with the given configuration.

    Not a per-request error: callers let it propagate so startup aborts.
    """


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Every field except secret_key has a default. Construction fails if
    SECRET_KEY is absent or too short.

    Environment variable name mapping: field names are uppercased automatically.
    E.g. `secret_key` reads from SECRET_KEY, `token_expire_seconds` reads from
    TOKEN_EXPIRE_SECONDS.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ------------------------------------------------------------------
    # Server
    # ------------------------------------------------------------------

    host: str = "127.0.0.1"
    port: int = 8080
    log_level: str = "INFO"
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured"; the validator
    # below raises, so callers never see "".
    secret_key: str = ""
    # Fixed server-side lifetime, not user-controllable.
    token_expire_seconds: int = 3600
    # Clock skew tolerance applied to the expiry check.
    token_leeway_seconds: int = 0

    # ------------------------------------------------------------------
    # Password hashing (Argon2id cost parameters)
    # ------------------------------------------------------------------

    argon2_time_cost: int = 3
    argon2_memory_cost: int = 65536  # KiB
    argon2_parallelism: int = 4

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce SECRET_KEY policy [M6][M7].

        Missing key: refuse to start. Short key: refuse to start.
        """
        if not self.secret_key:
            raise ValueError(
                "SECRET_KEY is required. " "Set SECRET_KEY in your environment or .env file."
            )
        if len(self.secret_key) < MIN_SECRET_KEY_LENGTH:
            raise ValueError(f"SECRET_KEY must be at least {MIN_SECRET_KEY_LENGTH} characters.")
        return self

    @model_validator(mode="after")
    def validate_token_lifetime(self) -> "Settings":
        if self.token_expire_seconds <= 0:
            raise ValueError("TOKEN_EXPIRE_SECONDS must be positive.")
        if self.token_leeway_seconds < 0:
            raise ValueError("TOKEN_LEEWAY_SECONDS must not be negative.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    This is the official FastAPI pattern for config (see FastAPI docs /advanced/settings/).

    Raises ConfigurationError (not pydantic's ValidationError) so startup code
    has a single fatal error type to let through. The pydantic error is not
    chained: its repr echoes input values, which would include the secret.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    try:
        return Settings()
    except PydanticValidationError as exc:
        messages = "; ".join(err["msg"] for err in exc.errors())
        logger.critical("Invalid configuration: %s", messages)
        raise ConfigurationError(messages) from None

"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Products CMS happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. jwt_secret -> JWT_SECRET).

Security notes:
  JWT_SECRET is a hard startup precondition. There is no development fallback:
  the token service reads settings at import time, so a process without a
  secret fails before it serves a single request.

  JWT_SECRET shorter than 32 chars is rejected outright. HS256 signing relies
  on key entropy -- a short key weakens every issued session.

Layer rule: core/ is the kernel. This module may not import from api/, web/,
auth/, catalog/, or client/.
"""

import logging
import re
from functools import lru_cache
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("productscms.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'productscms.db'}"

# "7d", "12h", "30m", "45s" or a bare number of seconds.
_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$", re.IGNORECASE)
_UNIT_SECONDS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str) -> int:
    """Convert a duration string such as "7d" into seconds.

    Raises ValueError for anything that is not a positive whole duration.
    """
    match = _DURATION_RE.match(str(value))
    if match is None:
        raise ValueError(f"Invalid duration {value!r}. Use e.g. '7d', '12h', '30m' or seconds.")
    amount, unit = match.groups()
    seconds = int(amount) * _UNIT_SECONDS[unit.lower()]
    if seconds <= 0:
        raise ValueError("Duration must be greater than zero.")
    return seconds


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Every field except jwt_secret has a default. The validators enforce the
    startup-safety rules.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Runtime
    # ------------------------------------------------------------------

    # "production" turns on the Secure cookie attribute. Anything else is
    # treated as a development environment (plain HTTP allowed).
    environment: str = "development"
    log_level: str = "INFO"
    database_url: str = _DEFAULT_DB_URL
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:8000"]

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured".
    jwt_secret: str = ""
    jwt_expires_in: str = "7d"
    cookie_name: str = "auth-token"
    bcrypt_rounds: int = 12

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("jwt_expires_in")
    @classmethod
    def validate_expires_in(cls, value: str) -> str:
        parse_duration(value)
        return value

    @field_validator("bcrypt_rounds")
    @classmethod
    def validate_bcrypt_rounds(cls, value: int) -> int:
        # bcrypt accepts 4..31; anything outside that range fails in gensalt()
        if not 4 <= value <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        return value

    @model_validator(mode="after")
    def validate_jwt_secret(self) -> "Settings":
        """Refuse to start without a usable signing secret."""
        if not self.jwt_secret:
            raise ValueError(
                "JWT_SECRET environment variable is required. "
                "Set JWT_SECRET in your environment or .env file."
            )
        if len(self.jwt_secret) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters.")
        return self

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def token_expire_seconds(self) -> int:
        return parse_duration(self.jwt_expires_in)

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()

"""
auth/store.py -- SQLAlchemy Core persistence layer for user credentials.

Pattern: Repository + Data Mapper (same as catalog/store.py).
UserStore is the repository; _row_to_user is the mapper. Route, operation and
dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Email uniqueness is a UNIQUE constraint on the users table. The register
  operation checks for an existing email first, but that check-then-insert
  sequence is not atomic: the constraint is the authoritative guard, and an
  IntegrityError on insert is reported as DuplicateEmailError.

  The password hash is only loaded when a caller asks for it
  (include_password=True). Every other read returns hashed_password=None so
  the hash cannot leak through a careless serializer.

DB path: productscms.db at the project root unless DATABASE_URL is set.

Layer rule: no imports from api/, web/, catalog/, or client/.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.errors import DuplicateEmailError, ValidationError
from auth.models import User
from auth.tokens import check_password, hash_password
from core.config import get_settings

logger = logging.getLogger("productscms.auth")

# Anchored, no nested quantifiers: local part, one or more dot-separated
# domain labels, alphabetic TLD of 2+ characters.
_EMAIL_RE = re.compile(r"^[\w.+-]+@[A-Za-z0-9-]+(\.[A-Za-z0-9-]+)*\.[A-Za-z]{2,}$")

NAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_BYTES = 72  # bcrypt input limit
AGE_MIN, AGE_MAX = 0, 150

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(NAME_MAX_LENGTH), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("age", Integer),
    Column("hashed_password", Text, nullable=False),
    Column("role", String(30), nullable=False, server_default="user"),  # unused by auth flows
    Column("is_active", Integer, nullable=False, server_default="1"),
    Column("last_login", String(32)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_email(email: str) -> str:
    return email.strip().lower()


def validate_new_user(name, email, password, age) -> None:
    """Raise ValidationError for the first problem found in a registration.

    Pure input check, no database access. auth.operations.register() calls it
    before any lookup; create() calls it again for direct callers.
    """
    if not name or not email or not password:
        raise ValidationError("Name, email, and password are required")
    if not isinstance(name, str) or not isinstance(email, str) or not isinstance(password, str):
        raise ValidationError("Name, email, and password must be strings")
    if not name.strip():
        raise ValidationError("Please provide a name")
    if len(name.strip()) > NAME_MAX_LENGTH:
        raise ValidationError(f"Name cannot be more than {NAME_MAX_LENGTH} characters")
    if not _EMAIL_RE.match(normalize_email(email)):
        raise ValidationError("Please provide a valid email")
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValidationError(f"Password cannot be longer than {PASSWORD_MAX_BYTES} bytes")
    if age is not None:
        if isinstance(age, bool) or not isinstance(age, int):
            raise ValidationError("Age must be a whole number")
        if age < AGE_MIN:
            raise ValidationError("Age must be a positive number")
        if age > AGE_MAX:
            raise ValidationError("Age must be realistic")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Credential store for User records.

    Usage:
        store = UserStore()
        user = store.create("Ann", "ann@x.com", "secret1")
        found = store.find_by_email("ANN@x.com", include_password=True)
        store.verify_password(found, "secret1")  # True
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has_users(self) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(text("SELECT COUNT(*) FROM users")).scalar()
        return (result or 0) > 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def find_by_email(self, email: str, include_password: bool = False) -> User | None:
        """Look up a user by email (case-insensitive). Returns None if not found.

        The hash is only populated when include_password=True.
        """
        if not email:
            return None
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == normalize_email(email))).fetchone()
        return _row_to_user(row, include_password) if row is not None else None

    def get_by_id(self, user_id: int, include_password: bool = False) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row, include_password) if row is not None else None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, name: str, email: str, password: str, age: int | None = None) -> User:
        """Validate, hash and insert a new user. Returns the stored user (no hash).

        Raises:
            ValidationError:     missing/malformed name, email, password or age.
            DuplicateEmailError: the email is already registered, including
                                 when a concurrent insert wins the race.
        """
        validate_new_user(name, email, password, age)
        now = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        name=name.strip(),
                        email=normalize_email(email),
                        age=age,
                        hashed_password=hash_password(password),
                        is_active=1,
                        created_at=now,
                        updated_at=now,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateEmailError() from exc
        user_id = result.inserted_primary_key[0]
        logger.info("User created user_id=%s", user_id)
        return self.get_by_id(user_id)

    def verify_password(self, user: User, candidate: str) -> bool:
        """Compare a candidate password against the user's stored hash.

        Returns False (never raises) when the user was loaded without its
        hash or has none.
        """
        return check_password(candidate, user.hashed_password)

    def touch_last_login(self, user: User) -> User:
        """Stamp last_login with the current UTC time and return the refreshed user."""
        now = _now_iso()
        with self.engine.connect() as conn:
            conn.execute(_users.update().where(_users.c.id == user.id).values(last_login=now, updated_at=now))
            conn.commit()
        return self.get_by_id(user.id)

    def set_active(self, user_id: int, is_active: bool) -> bool:
        """Activate or deactivate an account. Returns False if user_id is unknown.

        A deactivated user cannot log in, and tokens issued before the change
        stop resolving in whoami.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.id == user_id)
                .values(is_active=1 if is_active else 0, updated_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row, include_password: bool = False) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        age=row.age,
        hashed_password=row.hashed_password if include_password else None,
        role=row.role,
        is_active=bool(row.is_active),
        last_login=row.last_login,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )

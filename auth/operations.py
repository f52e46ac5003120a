"""
auth/operations.py -- Register, login and whoami as single-shot transactions.

Each operation validates its input before touching storage, talks to the
credential store and the token service, and either returns a complete result
or raises an AuthError subclass. The HTTP layer (api/routes/v1/auth.py, web/)
attaches or clears the session cookie; operations never see a response
object, so a failed operation can never leave a half-set cookie behind.

Error-message policy:
  Login failures are always UnauthorizedError("Invalid email or password"),
  whether the email is unknown, the password is wrong or the account is
  inactive. The reason is logged by auth.tokens.authenticate().

  Storage (SQLAlchemyError) and signing (JWTError) failures are logged here
  with their traceback and surface as InternalError with a generic message.

Logout has no operation: it is a cookie clear, idempotent by construction.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from jose import JWTError
from sqlalchemy.exc import SQLAlchemyError

from auth.errors import ConflictError, InternalError, NotFoundError, UnauthorizedError, ValidationError
from auth.models import User
from auth.store import UserStore, validate_new_user
from auth.tokens import authenticate, issue_token, verify_token

logger = logging.getLogger("productscms.auth")

INVALID_CREDENTIALS = "Invalid email or password"


@dataclass
class AuthResult:
    """A freshly authenticated user and the token minted for them."""

    user: User
    token: str


@contextmanager
def _internal_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except (SQLAlchemyError, JWTError) as exc:
        logger.exception("%s failed", operation)
        raise InternalError() from exc


def register(
    store: UserStore,
    name: str | None,
    email: str | None,
    password: str | None,
    age: int | None = None,
) -> AuthResult:
    """Create an account and mint its first session token.

    Raises ValidationError (400), ConflictError (409) or InternalError (500).
    """
    validate_new_user(name, email, password, age)

    with _internal_errors("register"):
        if store.find_by_email(email) is not None:
            raise ConflictError("User with this email already exists")
        # DuplicateEmailError from a lost insert race is a ConflictError too.
        user = store.create(name, email, password, age)
        token = issue_token(user.claims())
    logger.info("Registration successful user_id=%s", user.id)
    return AuthResult(user=user, token=token)


def login(store: UserStore, email: str | None, password: str | None) -> AuthResult:
    """Check credentials, stamp last_login and mint a session token.

    Raises ValidationError (400), UnauthorizedError (401) or InternalError (500).
    """
    if not email or not password:
        raise ValidationError("Email and password are required")

    with _internal_errors("login"):
        user = authenticate(store, email, password)
        if user is None:
            raise UnauthorizedError(INVALID_CREDENTIALS)
        user = store.touch_last_login(user)
        token = issue_token(user.claims())
    logger.info("Login successful user_id=%s", user.id)
    return AuthResult(user=user, token=token)


def whoami(store: UserStore, token: str | None) -> User:
    """Resolve the session token to the current user.

    Re-derives identity from the signed token and the store on every call;
    nothing cached on the client is trusted.

    Raises UnauthorizedError (401), NotFoundError (404) or InternalError (500).
    """
    if not token:
        raise UnauthorizedError("No authentication token found")
    claims = verify_token(token)
    if claims is None:
        raise UnauthorizedError("Invalid or expired token")

    with _internal_errors("whoami"):
        user = store.get_by_id(claims["id"])
    if user is None or not user.is_active:
        logger.info("Session refers to missing or inactive user_id=%s", claims["id"])
        raise NotFoundError("User not found or inactive")
    return user

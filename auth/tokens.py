"""
auth/tokens.py -- Password hashing and session token utilities.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with JWT_SECRET and carry
       the identity claims {id, email, name} plus iat/exp. Verification
       returns None on any failure (malformed, bad signature, expired,
       missing claims) -- callers treat None uniformly as "unauthenticated".
       The specific reason is logged at DEBUG for diagnostics only.

  Expiry: a token is expired once the current time reaches exp (now >= exp).
       jose itself only rejects exp < now, so verify_token() applies the
       stricter boundary after jose's checks.

  Passwords: bcrypt directly (no passlib wrapper), cost factor from
       Settings.bcrypt_rounds (default 12). The _DUMMY_HASH constant enables
       timing equalization in authenticate() so response time does not reveal
       whether an email is registered.

  JWT_SECRET: sourced from core.config.get_settings() at module load. A
       missing or short secret raises there, which makes importing this module
       (and therefore starting the app) fail -- a configuration precondition,
       not a per-call error.

Layer rule: no imports from api/, web/, catalog/, or client/. Import from core/
is allowed -- core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("productscms.auth")

# ---------------------------------------------------------------------------
# Config -- read once at module load via the lru_cache singleton
# ---------------------------------------------------------------------------

_settings = get_settings()

_ALGORITHM = "HS256"

_IDENTITY_CLAIMS = ("id", "email", "name")
_REQUIRED_CLAIMS = frozenset(_IDENTITY_CLAIMS) | {"iat", "exp"}


def _now() -> int:
    return int(datetime.now(timezone.utc).timestamp())


# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    bcrypt only looks at the first 72 bytes. The credential store rejects
    longer passwords before they reach this function.
    """
    salt = bcrypt.gensalt(rounds=_settings.bcrypt_rounds)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def check_password(plain: str, hashed: str | None) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    Never raises: a missing hash, a corrupt hash or an over-long candidate
    all yield False.
    """
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


# Timing equalization dummy hash.
# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("productscms_timing_dummy")


# ---------------------------------------------------------------------------
# JWT issue / verify / decode
# ---------------------------------------------------------------------------


def issue_token(claims: dict, expire_seconds: int | None = None) -> str:
    """Sign a session token for the given identity claims.

    Args:
        claims:         Mapping with at least id, email and name.
        expire_seconds: Token lifetime. None (default) uses
                        Settings.token_expire_seconds (JWT_EXPIRES_IN, 7 days
                        unless configured otherwise).

    Raises ValueError if an identity claim is missing.
    """
    missing = [key for key in _IDENTITY_CLAIMS if claims.get(key) is None]
    if missing:
        raise ValueError(f"Cannot issue token without claims: {', '.join(missing)}")

    duration = _settings.token_expire_seconds if expire_seconds is None else expire_seconds
    issued_at = _now()
    payload = {
        "sub": str(claims["id"]),
        "id": claims["id"],
        "email": claims["email"],
        "name": claims["name"],
        "iat": issued_at,
        "exp": issued_at + duration,
    }
    return jwt.encode(payload, _settings.jwt_secret, algorithm=_ALGORITHM)


def verify_token(token: str | None) -> dict | None:
    """Verify signature and expiry. Returns the claims dict or None.

    Returning None (rather than raising) keeps the caller simple: any invalid
    token is treated as unauthenticated.
    """
    if not token or not isinstance(token, str):
        return None
    try:
        payload = jwt.decode(token, _settings.jwt_secret, algorithms=[_ALGORITHM])
    except JWTError as exc:
        logger.debug("Token rejected: %s", exc.__class__.__name__)
        return None
    if not _REQUIRED_CLAIMS.issubset(payload):
        logger.debug("Token rejected: missing claims")
        return None
    exp = payload["exp"]
    if not isinstance(exp, (int, float)) or exp <= _now():
        logger.debug("Token rejected: expired")
        return None
    return payload


def decode_token(token: str | None) -> dict | None:
    """Return the token's claims WITHOUT verifying the signature.

    For local expiry inspection only. Never use the result to decide whether
    a request is authenticated -- use verify_token() for that.
    """
    if not token or not isinstance(token, str):
        return None
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return None
    return claims if isinstance(claims, dict) else None


def is_token_expired(token: str | None) -> bool:
    """Return True when the token's exp has been reached.

    Fail-closed: an undecodable token or one without a numeric exp claim
    counts as expired.
    """
    claims = decode_token(token)
    exp = claims.get("exp") if claims else None
    if not isinstance(exp, (int, float)):
        return True
    return exp <= _now()


def token_remaining_seconds(token: str | None) -> int:
    """Seconds until the token expires, floored at 0. Used to size the cookie."""
    claims = decode_token(token)
    exp = claims.get("exp") if claims else None
    if not isinstance(exp, (int, float)):
        return 0
    return max(0, int(exp) - _now())


# ---------------------------------------------------------------------------
# Credential check (constant-time-equivalent)
# ---------------------------------------------------------------------------


def authenticate(store: UserStore, email: str, password: str) -> User | None:
    """Authenticate an email/password pair with timing equalization.

    Always runs bcrypt whether or not the user exists:
    - Unknown email: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash (same cost)

    The three failure reasons are distinguished in the log only. The caller
    gets None for all of them.
    """
    user = store.find_by_email(email, include_password=True)
    if user is None or user.hashed_password is None:
        # Equalize timing -- do NOT return early before running bcrypt
        check_password(password, _DUMMY_HASH)
        logger.info("Login rejected: unknown email")
        return None
    if not store.verify_password(user, password):
        logger.info("Login rejected: wrong password for user_id=%s", user.id)
        return None
    if not user.is_active:
        logger.info("Login rejected: inactive account user_id=%s", user.id)
        return None
    return user

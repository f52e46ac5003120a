"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The session cookie is the only credential. Both helpers go through
auth.operations.whoami(), so API routes, web pages and GET /api/auth/me all
apply the same rules (signature, expiry, user exists and is active).

try_get_current_user() is the soft variant (returns None on failure).
get_current_user() raises UnauthorizedError, which api/main.py renders as a
401 envelope.

Layer rule: no imports from web/, catalog/, or client/.
  auth/dependencies.py may import from starlette/fastapi (for Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.cookies import extract_session
from auth.errors import NotFoundError, UnauthorizedError
from auth.models import User
from auth.operations import whoami


def try_get_current_user(request: Request) -> User | None:
    """Return the authenticated User, or None if the request has no valid session.

    Never raises for auth failures -- callers that need a hard 401 should use
    get_current_user().
    """
    token = extract_session(request)
    if token is None:
        return None
    try:
        return whoami(request.app.state.user_store, token)
    except (UnauthorizedError, NotFoundError):
        return None


def get_current_user(request: Request) -> User:
    """Require authentication.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: User = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request)
    if user is None:
        raise UnauthorizedError("Authentication required")
    return user

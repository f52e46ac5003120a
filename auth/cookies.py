"""
auth/cookies.py -- Session transport: the session token travels in a cookie.

Cookie attributes:
  httponly=True:   JS cannot read the cookie (XSS mitigation).
  samesite="lax":  cookie sent on same-site requests and top-level cross-site
                   navigations, but not on cross-site POST (CSRF mitigation).
  secure:          only in production (ENVIRONMENT=production), so local
                   development over plain HTTP keeps working.
  path="/":        every route sees the session.
  max_age:         the token's own remaining lifetime at attach time. The
                   cookie therefore never outlives the token it carries.

The cookie name is process-wide (COOKIE_NAME, default "auth-token").

Layer rule: no imports from api/, web/, catalog/, or client/.
"""

from __future__ import annotations

from starlette.requests import Request
from starlette.responses import Response

from auth.tokens import token_remaining_seconds
from core.config import get_settings

_settings = get_settings()


def _cookie_kwargs() -> dict:
    return {
        "httponly": True,
        "secure": _settings.is_production,
        "samesite": "lax",
        "path": "/",
    }


def attach_session(response: Response, token: str) -> None:
    """Set the session cookie carrying token on the outgoing response."""
    response.set_cookie(
        _settings.cookie_name,
        value=token,
        max_age=token_remaining_seconds(token),
        **_cookie_kwargs(),
    )


def clear_session(response: Response) -> None:
    """Expire the session cookie immediately on the client.

    Uses the same name, path and flags as attach_session() so the browser
    matches and replaces the existing cookie. Safe to call when no cookie is
    present.
    """
    response.set_cookie(
        _settings.cookie_name,
        value="",
        max_age=0,
        **_cookie_kwargs(),
    )


def extract_session(request: Request) -> str | None:
    """Return the session token from the incoming request, or None."""
    return request.cookies.get(_settings.cookie_name) or None

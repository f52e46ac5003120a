"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  POST /api/auth/register  -- create account; sets session cookie; 201
  POST /api/auth/login     -- password login; sets session cookie
  POST /api/auth/logout    -- clears session cookie; always 200
  GET  /api/auth/me        -- current user from the session cookie
  GET  /api/auth/whoami    -- alias of /me

Every body uses the {success, data, error, message} envelope from api.models.
Failures are raised as auth.errors exceptions and rendered by the handler in
api/main.py. The cookie is attached only after the operation has fully
succeeded, so a failed register/login never mutates the client's session.

Security:
  No raw token in any response body -- the cookie is the only carrier.
  Cache-Control: no-store on responses that set a session cookie.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.models import LoginRequest, RegisterRequest, ok, user_payload
from auth import operations
from auth.cookies import attach_session, clear_session, extract_session
from auth.store import UserStore

# Auth policy:
# - POST /api/auth/register: public
# - POST /api/auth/login:    public -- login endpoint must be unauthenticated
# - POST /api/auth/logout:   public -- clearing a cookie needs no prior auth
# - GET  /api/auth/me:       resolves the cookie itself (401/404 on failure)
router = APIRouter()


def _session_response(content: dict, token: str, status_code: int = 200) -> JSONResponse:
    resp = JSONResponse(status_code=status_code, content=content)
    attach_session(resp, token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/register", status_code=201)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create an account and sign the new user in."""
    user_store: UserStore = request.app.state.user_store
    result = operations.register(user_store, body.name, body.email, body.password, body.age)
    return _session_response(
        ok(user_payload(result.user), message="Registration successful"),
        result.token,
        status_code=201,
    )


@router.post("/auth/login")
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; set the session cookie.

    Returns the same generic error for an unknown email, a wrong password
    and an inactive account to avoid leaking which accounts exist.
    """
    user_store: UserStore = request.app.state.user_store
    result = operations.login(user_store, body.email, body.password)
    return _session_response(ok(user_payload(result.user), message="Login successful"), result.token)


@router.post("/auth/logout")
async def logout() -> JSONResponse:
    """Clear the session cookie. Succeeds whether or not a session existed.

    The token itself stays valid until it expires; there is no server-side
    revocation list.
    """
    resp = JSONResponse(content=ok(message="Logout successful"))
    clear_session(resp)
    return resp


@router.get("/auth/me")
@router.get("/auth/whoami")
def me(request: Request) -> JSONResponse:
    """Return the user behind the session cookie.

    This is what clients use to decide whether they are signed in, so it
    re-verifies the token and re-reads the user on every call.
    """
    user_store: UserStore = request.app.state.user_store
    user = operations.whoami(user_store, extract_session(request))
    return JSONResponse(content=ok(user_payload(user)))

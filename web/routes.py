"""
web/routes.py -- Jinja2 template routes for the Products CMS web UI.

These routes serve server-rendered HTML. They share app.state with the API
routes (same user store and product store) and call the same auth
operations, but answer with pages and redirects instead of JSON.

Routes:
  GET  /                  -- landing page (login/sign-up or dashboard link)
  GET  /auth/login        -- login form
  POST /auth/login        -- handle password login
  GET  /auth/register     -- registration form
  POST /auth/register     -- handle registration
  POST /auth/logout       -- clear cookie, redirect /auth/login
  GET  /admin/dashboard   -- product overview (auth required)

Protected pages redirect to /auth/login?next=<path> when the session cookie
is missing or no longer resolves to an active user.
"""

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from auth import operations
from auth.cookies import attach_session, clear_session
from auth.dependencies import try_get_current_user
from auth.errors import AuthError, InternalError
from auth.store import UserStore
from catalog.store import ProductStore

logger = logging.getLogger("productscms.web")

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
router = APIRouter()

LOGIN_URL = "/auth/login"
HOME_AFTER_LOGIN = "/admin/dashboard"

# ---------------------------------------------------------------------------
# Auth helpers
# ---------------------------------------------------------------------------

# Whitelist mapping for ?error= query params on /auth/login.
# The raw query param is NEVER passed to templates -- only the message from
# this dict is. Prevents reflected XSS via crafted error query strings.
_ERROR_MESSAGES: dict[str, str] = {
    "bad_credentials": operations.INVALID_CREDENTIALS,
    "missing_fields": "Email and password are required",
    "server_error": "Something went wrong. Please try again.",
}


def _safe_next(next_url: Optional[str]) -> str:
    """Validate a post-login redirect target. Only accept relative paths.

    Rejects absolute URLs and protocol-relative URLs ("//host") so a crafted
    ?next= cannot send the user off-site after login.
    """
    if next_url and next_url.startswith("/") and not next_url.startswith("//"):
        return next_url
    return HOME_AFTER_LOGIN


def _login_redirect(request: Request) -> RedirectResponse:
    """Send an unauthenticated visitor to the login page, remembering where they were.

    Protected handlers resolve the user once and fall back to this:
        user = try_get_current_user(request)
        if user is None:
            return _login_redirect(request)
    """
    return RedirectResponse(f"{LOGIN_URL}?next={quote(request.url.path)}", status_code=302)


def _signed_in_redirect(token: str, target: str) -> RedirectResponse:
    resp = RedirectResponse(target, status_code=302)
    attach_session(resp, token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# GET / -- landing page
# ---------------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
def index(request: Request) -> HTMLResponse:
    user = try_get_current_user(request)
    return templates.TemplateResponse(request, "index.html", {"current_user": user})


# ---------------------------------------------------------------------------
# Login / register / logout
# ---------------------------------------------------------------------------


@router.get("/auth/login", response_class=HTMLResponse)
def login_form(request: Request) -> HTMLResponse:
    """Render the login page. Already-authenticated users go to the dashboard."""
    if try_get_current_user(request) is not None:
        return RedirectResponse(HOME_AFTER_LOGIN, status_code=302)
    error_msg = _ERROR_MESSAGES.get(request.query_params.get("error", ""))
    return templates.TemplateResponse(
        request,
        "login.html",
        {"error_msg": error_msg, "next": _safe_next(request.query_params.get("next"))},
    )


@router.post("/auth/login", response_class=HTMLResponse)
def login_post(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    next: str = Form(""),
) -> RedirectResponse:
    """Handle the login form submission."""
    user_store: UserStore = request.app.state.user_store
    next_url = _safe_next(next)
    try:
        result = operations.login(user_store, email, password)
    except InternalError:
        return RedirectResponse(f"{LOGIN_URL}?error=server_error&next={quote(next_url)}", status_code=302)
    except AuthError as exc:
        code = "missing_fields" if exc.status_code == 400 else "bad_credentials"
        return RedirectResponse(f"{LOGIN_URL}?error={code}&next={quote(next_url)}", status_code=302)
    return _signed_in_redirect(result.token, next_url)


@router.get("/auth/register", response_class=HTMLResponse)
def register_form(request: Request) -> HTMLResponse:
    if try_get_current_user(request) is not None:
        return RedirectResponse(HOME_AFTER_LOGIN, status_code=302)
    return templates.TemplateResponse(request, "register.html", {})


@router.post("/auth/register", response_class=HTMLResponse)
def register_post(
    request: Request,
    name: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    confirm_password: str = Form(""),
    age: str = Form(""),
) -> HTMLResponse:
    """Handle the registration form. Errors re-render the form with a message.

    Messages come from auth.errors exceptions raised by our own code, so they
    are safe to render; Jinja2 autoescaping applies regardless.
    """
    user_store: UserStore = request.app.state.user_store
    form = {"name": name, "email": email, "age": age}

    def _form_error(message: str, status_code: int = 400) -> HTMLResponse:
        return templates.TemplateResponse(
            request,
            "register.html",
            {"error_msg": message, "form": form},
            status_code=status_code,
        )

    if password != confirm_password:
        return _form_error("Passwords don't match")
    parsed_age: Optional[int] = None
    if age.strip():
        if not age.strip().isdigit():
            return _form_error("Age must be a valid number")
        parsed_age = int(age.strip())

    try:
        result = operations.register(user_store, name, email, password, parsed_age)
    except AuthError as exc:
        logger.debug("Registration form rejected: %s", exc.message)
        return _form_error(exc.message, exc.status_code)
    return _signed_in_redirect(result.token, HOME_AFTER_LOGIN)


@router.post("/auth/logout")
def logout(request: Request) -> RedirectResponse:
    """Clear the session cookie and redirect to the login page."""
    resp = RedirectResponse(LOGIN_URL, status_code=302)
    clear_session(resp)
    return resp


# ---------------------------------------------------------------------------
# GET /admin/dashboard -- protected product overview
# ---------------------------------------------------------------------------


@router.get("/admin/dashboard", response_class=HTMLResponse)
def dashboard(request: Request) -> HTMLResponse:
    user = try_get_current_user(request)
    if user is None:
        return _login_redirect(request)
    product_store: ProductStore = request.app.state.product_store
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "current_user": user,
            "products": product_store.list_products(),
            "stats": product_store.status_counts(),
        },
    )

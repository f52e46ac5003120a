"""
client/session.py -- Client-side session cache and route guard.

  AuthApiClient  -- calls the /api/auth endpoints, returns ApiResult
  SessionContext -- owns {user, loading}; created once per application scope
  RouteGuard     -- WAIT / REDIRECT / RENDER for a view that requires a user

The context is an explicit object handed to whatever needs it. There is no
module-level instance. Its lifetime is the application's root scope: use it
as a context manager, or call close() when the scope ends. Calls that finish
after close() are discarded without touching state or notifying anyone.

The session cookie lives in the HTTP client's cookie jar (requests.Session
by default). This module never reads or stores the token itself; the user
it caches always comes from the server.

Usage:
    with SessionContext(AuthApiClient("http://localhost:8000")) as session:
        session.initialize()
        guard = RouteGuard(session)
        if guard.decide() is GuardDecision.REDIRECT:
            ...
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional
from urllib.parse import quote

import requests

logger = logging.getLogger("productscms.client")

NETWORK_ERROR = "Network error. Please try again."
UNEXPECTED_RESPONSE = "Unexpected response from server"

# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ApiResult:
    """One parsed response envelope."""

    success: bool
    data: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    message: Optional[str] = None
    status_code: Optional[int] = None

    @property
    def user(self) -> Optional[dict[str, Any]]:
        if not self.success or not self.data:
            return None
        return self.data.get("user")


class AuthApiClient:
    """Thin wrapper over the auth endpoints.

    Args:
        base_url: Server root, e.g. "http://localhost:8000". The /api prefix
                  is added here.
        http:     Object with requests-style get/post methods that keeps
                  cookies between calls. Defaults to a new requests.Session.
                  Starlette's TestClient works as well.
        timeout:  Seconds per request.
    """

    def __init__(self, base_url: str, http: Any = None, timeout: float = 10.0) -> None:
        self._base_url = base_url.rstrip("/")
        if http is None:
            http = requests.Session()
            http.max_redirects = 3
        self._http = http
        self._timeout = timeout

    def register(self, name: str, email: str, password: str, age: Optional[int] = None) -> ApiResult:
        body: dict[str, Any] = {"name": name, "email": email, "password": password}
        if age is not None:
            body["age"] = age
        return self._call("post", "/auth/register", body)

    def login(self, email: str, password: str) -> ApiResult:
        return self._call("post", "/auth/login", {"email": email, "password": password})

    def logout(self) -> ApiResult:
        return self._call("post", "/auth/logout")

    def whoami(self) -> ApiResult:
        return self._call("get", "/auth/whoami")

    def _call(self, method: str, path: str, body: Optional[dict[str, Any]] = None) -> ApiResult:
        url = f"{self._base_url}/api{path}"
        kwargs: dict[str, Any] = {"timeout": self._timeout}
        if body is not None:
            kwargs["json"] = body
        try:
            resp = getattr(self._http, method)(url, **kwargs)
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method.upper(), path, exc)
            return ApiResult(success=False, error=NETWORK_ERROR)

        try:
            payload = resp.json()
        except ValueError:
            logger.warning("%s %s returned a non-JSON body (status %d)", method.upper(), path, resp.status_code)
            return ApiResult(success=False, error=UNEXPECTED_RESPONSE, status_code=resp.status_code)
        if not isinstance(payload, dict):
            return ApiResult(success=False, error=UNEXPECTED_RESPONSE, status_code=resp.status_code)

        return ApiResult(
            success=bool(payload.get("success")) and resp.status_code < 400,
            data=payload.get("data"),
            error=payload.get("error"),
            message=payload.get("message"),
            status_code=resp.status_code,
        )

    def close(self) -> None:
        self._http.close()


# ---------------------------------------------------------------------------
# Session context
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SessionState:
    user: Optional[dict[str, Any]] = None
    loading: bool = True

    @property
    def authenticated(self) -> bool:
        return self.user is not None


Subscriber = Callable[[SessionState], None]


class SessionContext:
    """Cached view of who is signed in, refreshed from the server.

    State starts as loading with no user. initialize() asks the server once;
    until it answers, loading stays True and guards must not redirect.
    """

    def __init__(self, api: AuthApiClient) -> None:
        self._api = api
        self._state = SessionState()
        self._subscribers: list[Subscriber] = []
        self._initialized = False
        self._closed = False

    def __enter__(self) -> SessionContext:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def user(self) -> Optional[dict[str, Any]]:
        return self._state.user

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def closed(self) -> bool:
        return self._closed

    def initialize(self) -> SessionState:
        """Resolve the initial state with a single whoami call.

        Later calls return the cached state; use refresh() to ask again.
        """
        if self._initialized or self._closed:
            return self._state
        self._initialized = True
        return self.refresh()

    def refresh(self) -> SessionState:
        """Re-read the current user from the server.

        Any failure (no cookie, expired token, inactive user, network
        error) settles the state as signed out.
        """
        result = self._api.whoami()
        if self._closed:
            return self._state
        if not result.success:
            logger.debug("whoami did not return a user: %s", result.error)
        self._publish(SessionState(user=result.user, loading=False))
        return self._state

    def login(self, email: str, password: str) -> ApiResult:
        """Sign in. On failure the cached state is left exactly as it was."""
        result = self._api.login(email, password)
        if result.success and not self._closed:
            self._publish(SessionState(user=result.user, loading=False))
        return result

    def logout(self) -> ApiResult:
        """Sign out. The cached user is cleared whatever the server answers."""
        result = self._api.logout()
        if not result.success:
            logger.info("Logout request failed (%s); clearing local session anyway", result.error)
        if not self._closed:
            self._publish(SessionState(user=None, loading=False))
        return result

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register callback for every new state. Returns the unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def close(self) -> None:
        """End the scope. Idempotent."""
        self._closed = True
        self._subscribers.clear()

    def _publish(self, state: SessionState) -> None:
        self._state = state
        for callback in list(self._subscribers):
            callback(state)


# ---------------------------------------------------------------------------
# Route guard
# ---------------------------------------------------------------------------


class GuardDecision(Enum):
    WAIT = "wait"
    REDIRECT = "redirect"
    RENDER = "render"


class RouteGuard:
    """Gate for views that require a signed-in user."""

    def __init__(self, context: SessionContext, login_url: str = "/auth/login") -> None:
        self._context = context
        self.login_url = login_url

    def decide(self) -> GuardDecision:
        # A redirect while loading would bounce signed-in users on every reload.
        state = self._context.state
        if state.loading:
            return GuardDecision.WAIT
        if state.user is None:
            return GuardDecision.REDIRECT
        return GuardDecision.RENDER

    def redirect_url(self, next_path: Optional[str] = None) -> str:
        if next_path and next_path.startswith("/") and not next_path.startswith("//"):
            return f"{self.login_url}?next={quote(next_path)}"
        return self.login_url

"""
frontend/session.py
Explicit authentication session for the API client.

The session owns the cached bearer token and the token provider for one
signed-in user. It is created on sign-in, cleared on sign-out or when a
refresh fails, and is passed to the ApiClient instead of living in module
globals.

Lifecycle:
    NO_TOKEN --sign_in--> REFRESHING --token obtained--> ATTACHED
    ATTACHED --401--> REFRESHING --> ATTACHED (or NO_TOKEN if refresh fails)

Only one refresh runs at a time. Callers that need a token while a refresh
is in flight wait for that refresh instead of starting another one.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future
from enum import Enum
from typing import Any, Callable, Dict, MutableMapping, Optional

import requests

from frontend.config import ENABLE_VERBOSE_LOGGING, REFRESH_TIMEOUT_SECONDS, get_api_base_url
from frontend.dev_observability import track_event
from frontend.errors import AuthError, NetworkError, extract_error_message

TokenProvider = Callable[[], str]


class SessionState(str, Enum):
    NO_TOKEN = "no_token"
    REFRESHING = "refreshing"
    ATTACHED = "attached"


class AuthSession:
    """Cached bearer token plus single-flight refresh for one user session."""

    def __init__(self, state: Optional[MutableMapping[str, Any]] = None):
        # Session-state mapping used for the event timeline (st.session_state in the app)
        self.state = state if state is not None else {}
        self.current_user: Optional[Dict[str, Any]] = None
        self._lock = threading.Lock()
        self._token: Optional[str] = None
        self._provider: Optional[TokenProvider] = None
        self._inflight: Optional[Future] = None
        # Bumped on every sign-in/sign-out so a refresh that started in an
        # older session never stores its token in the new one
        self._epoch = 0

    @property
    def status(self) -> SessionState:
        with self._lock:
            if self._inflight is not None:
                return SessionState.REFRESHING
            if self._token:
                return SessionState.ATTACHED
            return SessionState.NO_TOKEN

    @property
    def is_authenticated(self) -> bool:
        """True while a token provider is attached (a token may still need refreshing)."""
        with self._lock:
            return self._provider is not None

    def sign_in(
        self,
        token_provider: TokenProvider,
        token: Optional[str] = None,
        current_user: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Start a session.

        Args:
            token_provider: Callable returning a fresh bearer token
            token: Token already issued at login, if any; otherwise one is fetched now
            current_user: User object returned by the backend
        """
        with self._lock:
            self._epoch += 1
            self._provider = token_provider
            self._token = token
            self._inflight = None
            self.current_user = current_user
        track_event(self.state, "sign_in", {"user_id": str((current_user or {}).get("id", ""))})
        if token is None:
            self.refresh()

    def sign_out(self) -> None:
        """Discard the token immediately. Safe to call multiple times."""
        with self._lock:
            self._end_locked()
        track_event(self.state, "sign_out")

    def get_token(self) -> str:
        """Return the cached token, refreshing first if there is none."""
        with self._lock:
            if self._token:
                return self._token
        return self.refresh()

    def invalidate(self, stale_token: Optional[str]) -> None:
        """
        Drop the cached token after a 401.

        Only clears the cache if it still holds `stale_token`; if another
        request already refreshed it, the newer token is kept.
        """
        with self._lock:
            if stale_token is None or self._token == stale_token:
                self._token = None

    def refresh(self) -> str:
        """
        Obtain a new token from the provider, sharing any refresh already in flight.

        Raises:
            AuthError: If no session is active or the provider fails. The session
                is ended in that case.
        """
        with self._lock:
            if self._provider is None:
                raise AuthError("Authentication required. Please log in.", status_code=401)
            future = self._inflight
            owner = future is None
            if owner:
                future = Future()
                self._inflight = future
                provider = self._provider
                epoch = self._epoch

        if not owner:
            return future.result()

        try:
            token = provider()
            if not token:
                raise AuthError("Token refresh returned no token", status_code=401)
        except BaseException as exc:
            # Waiters must always be released, even on interrupts
            error = exc if isinstance(exc, AuthError) else AuthError(
                f"Token refresh failed: {type(exc).__name__}", status_code=401
            )
            with self._lock:
                if epoch == self._epoch:
                    self._end_locked()
            if ENABLE_VERBOSE_LOGGING:
                # Never log the exception itself, it may carry credentials
                print(f"[AUTH] Token refresh failed: {type(exc).__name__}")
            track_event(self.state, "token_refresh_failed", {"error": type(exc).__name__})
            future.set_exception(error)
            if error is exc or not isinstance(exc, Exception):
                raise
            raise error from exc

        with self._lock:
            stale = epoch != self._epoch
            if stale:
                if self._inflight is future:
                    self._inflight = None
            else:
                self._token = token
                self._inflight = None

        if stale:
            error = AuthError("Session ended during token refresh", status_code=401)
            future.set_exception(error)
            raise error

        track_event(self.state, "token_refreshed")
        future.set_result(token)
        return token

    def _end_locked(self) -> None:
        self._epoch += 1
        self._token = None
        self._provider = None
        self._inflight = None
        self.current_user = None


class RefreshTokenProvider:
    """
    Token provider backed by the backend's /auth/refresh endpoint.

    Rotates the refresh token when the backend returns a new one.
    Security: never logs tokens or sensitive data.
    """

    def __init__(
        self,
        session_id: str,
        refresh_token: str,
        base_url: Optional[str] = None,
        http: Optional[requests.Session] = None,
        timeout: float = REFRESH_TIMEOUT_SECONDS,
    ):
        self.session_id = session_id
        self.refresh_token = refresh_token
        self.base_url = base_url
        self.http = http or requests.Session()
        self.timeout = timeout
        self.user: Optional[Dict[str, Any]] = None

    def __call__(self) -> str:
        base_url = self.base_url or get_api_base_url()
        try:
            resp = self.http.post(
                f"{base_url}/auth/refresh",
                json={"session_id": self.session_id, "refresh_token": self.refresh_token},
                timeout=self.timeout,
            )
        except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as exc:
            raise NetworkError(f"Token refresh could not reach the backend: {type(exc).__name__}") from exc

        if resp.status_code != 200:
            raise AuthError(f"Token refresh failed: HTTP {resp.status_code}", status_code=401)

        data = resp.json()
        new_token = data.get("access_token")
        if not new_token:
            raise AuthError("Token refresh response missing access_token", status_code=401)

        new_refresh = data.get("refresh_token")
        if new_refresh:
            self.refresh_token = new_refresh
        if data.get("user"):
            self.user = data["user"]
        return new_token


def sign_in_with_password(
    email: str,
    password: str,
    session: Optional[AuthSession] = None,
    base_url: Optional[str] = None,
    http: Optional[requests.Session] = None,
) -> AuthSession:
    """
    Log in against /auth/login and return a signed-in session.

    Raises:
        AuthError: Invalid credentials
        NetworkError: Backend unreachable
    """
    base_url = base_url or get_api_base_url()
    http = http or requests.Session()
    try:
        resp = http.post(
            f"{base_url}/auth/login",
            json={"email": email, "password": password},
            timeout=REFRESH_TIMEOUT_SECONDS,
        )
    except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as exc:
        raise NetworkError(f"Cannot connect to backend at {base_url}") from exc

    if resp.status_code != 200:
        raise AuthError(
            extract_error_message(resp, "Login failed. Please check your credentials."),
            status_code=resp.status_code,
        )

    data = resp.json()
    provider = RefreshTokenProvider(
        session_id=data.get("session_id", ""),
        refresh_token=data.get("refresh_token", ""),
        base_url=base_url,
        http=http,
    )
    session = session or AuthSession()
    session.sign_in(provider, token=data.get("access_token"), current_user=data.get("user"))
    return session

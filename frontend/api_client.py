"""
frontend/api_client.py
Centralized API client for all backend requests.

This module ensures:
1. Every protected call carries Authorization: Bearer <token> from the session
2. A 401 triggers exactly one refresh-and-retry; refreshes are shared across
   concurrent callers by the AuthSession
3. Failures surface as typed errors (frontend.errors) instead of None
4. No token or auth header ever appears in logs or error messages
"""

import time
from typing import Any, Callable, Dict, Literal, Optional

import requests

from frontend.config import ENABLE_VERBOSE_LOGGING, REQUEST_TIMEOUT_SECONDS, get_api_base_url
from frontend.dev_observability import track_event
from frontend.errors import ApiError, AuthError, NetworkError, raise_for_response
from frontend.session import AuthSession

__all__ = ["ApiClient", "is_public_endpoint"]

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]

PUBLIC_PATHS = ("/auth/login", "/auth/register", "/auth/refresh", "/auth/resume")


def is_public_endpoint(path: str) -> bool:
    """
    Check if endpoint is public (doesn't require authentication).

    Public endpoints:
    - /auth/login
    - /auth/register
    - /auth/refresh (uses the refresh token, not a Bearer token)
    - /auth/resume

    All other endpoints are protected and require Authorization header.
    """
    return path.split("?", 1)[0] in PUBLIC_PATHS


class ApiClient:
    """
    Authenticated JSON client for the backend REST API.

    Args:
        session: AuthSession owning the bearer token
        base_url: API base URL including the /api prefix (defaults to config)
        http: requests.Session used for transport
        timeout: Default request timeout in seconds
        on_session_expired: Called once the session can no longer be refreshed,
            typically to send the user to the login page
    """

    def __init__(
        self,
        session: AuthSession,
        base_url: Optional[str] = None,
        http: Optional[requests.Session] = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        on_session_expired: Optional[Callable[[], None]] = None,
    ):
        self.session = session
        self._base_url = base_url
        self.http = http or requests.Session()
        self.timeout = timeout
        self.on_session_expired = on_session_expired

    @property
    def base_url(self) -> str:
        if self._base_url is None:
            self._base_url = get_api_base_url()
        return self._base_url

    def request(
        self,
        method: HttpMethod,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        _retry: bool = True,
    ) -> requests.Response:
        """
        Make an API request with automatic auth header attachment.

        Returns:
            The successful (2xx/3xx) response

        Raises:
            AuthError: 401 after the single retry, failed refresh, or 403
            NotFoundError, ServerError, ValidationError, ApiError: mapped from the status code
            NetworkError: Timeout or connection failure
        """
        method = method.upper()  # type: ignore[assignment]
        if method not in ("GET", "POST", "PUT", "PATCH", "DELETE"):
            raise ValueError(f"Unsupported HTTP method: {method}")

        url = f"{self.base_url}{path}"
        headers = {"Accept": "application/json"}
        if json is not None:
            headers["Content-Type"] = "application/json"

        public = is_public_endpoint(path)
        token = None
        if not public:
            try:
                token = self.session.get_token()
            except AuthError:
                self._handle_session_expired()
                raise
            headers["Authorization"] = f"Bearer {token}"

        resp = self._send(method, url, path, headers, json, params, timeout or self.timeout)

        if resp.status_code == 401 and not public:
            if not _retry:
                if ENABLE_VERBOSE_LOGGING:
                    print(f"[API] 401 on {path} after refresh, session expired")
                self.session.sign_out()
                self._handle_session_expired()
                raise_for_response(resp, path)

            if ENABLE_VERBOSE_LOGGING:
                print(f"[API] 401 on {path}, attempting token refresh...")
            self.session.invalidate(token)
            try:
                self.session.get_token()
            except AuthError:
                self._handle_session_expired()
                raise
            if ENABLE_VERBOSE_LOGGING:
                print(f"[API] Retrying {path} with refreshed token...")
            return self.request(method, path, json=json, params=params, timeout=timeout, _retry=False)

        if resp.status_code == 403 and ENABLE_VERBOSE_LOGGING:
            print(f"[API] 403 Forbidden on {path}")

        raise_for_response(resp, path)
        self._update_backend_status("ok")
        return resp

    def _send(
        self,
        method: str,
        url: str,
        path: str,
        headers: Dict[str, str],
        json: Optional[Dict[str, Any]],
        params: Optional[Dict[str, Any]],
        timeout: float,
    ) -> requests.Response:
        try:
            return self.http.request(method, url, headers=headers, json=json, params=params, timeout=timeout)
        except requests.exceptions.Timeout as exc:
            if ENABLE_VERBOSE_LOGGING:
                print(f"[API] Timeout on {method} {path}")
            self._update_backend_status("timeout")
            raise NetworkError(f"Request timed out after {timeout:g}s. Please try again.", path=path) from exc
        except requests.exceptions.ConnectionError as exc:
            if ENABLE_VERBOSE_LOGGING:
                print(f"[API] Connection error on {method} {path}")
            self._update_backend_status("connection_error")
            # Show configured backend URL only, never the full request
            raise NetworkError(f"Cannot connect to backend at {self.base_url}. Please check your connection.", path=path) from exc

    # JSON helpers -----------------------------------------------------------

    def get(self, path: str, params: Optional[Dict[str, Any]] = None, **kwargs: Any) -> Any:
        return _json_body(self.request("GET", path, params=params, **kwargs))

    def post(self, path: str, json: Optional[Dict[str, Any]] = None, **kwargs: Any) -> Any:
        return _json_body(self.request("POST", path, json=json, **kwargs))

    def put(self, path: str, json: Optional[Dict[str, Any]] = None, **kwargs: Any) -> Any:
        return _json_body(self.request("PUT", path, json=json, **kwargs))

    def delete(self, path: str, **kwargs: Any) -> Any:
        return _json_body(self.request("DELETE", path, **kwargs))

    # Internal helpers -------------------------------------------------------

    def _handle_session_expired(self) -> None:
        track_event(self.session.state, "session_expired")
        if self.on_session_expired is not None:
            self.on_session_expired()

    def _update_backend_status(self, status: str) -> None:
        """
        Record backend connection status in session state.

        Args:
            status: "ok", "timeout", "connection_error"
        """
        ss = self.session.state
        ss["_backend_status"] = status
        ss["_backend_last_ping_time"] = time.time()
        if status != "ok":
            ss["_backend_was_down"] = True


def _json_body(resp: requests.Response) -> Any:
    if resp.status_code == 204 or not resp.content:
        return None
    try:
        return resp.json()
    except ValueError as exc:
        raise ApiError("Backend returned a non-JSON response", status_code=resp.status_code) from exc

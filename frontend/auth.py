"""
frontend/auth.py
Streamlit binding for the authentication session.

Every Streamlit interaction reruns the script from the top, so the
AuthSession and the ApiClient built on it are kept in st.session_state and
looked up on each rerun instead of living in module globals.

- init_auth_state(): MUST be called at the top of main() on every rerun
- login() / set_auth(): establish the session after a successful sign-in
- clear_auth(): sign out and wipe user-derived keys
- handle_session_expired(): called by the ApiClient when refresh fails;
  clears auth and sends the user to the Login page
- require_auth(): guard for protected pages

Functions take an optional session-state mapping; the app passes nothing and
gets st.session_state, tests pass a plain dict.
"""

from typing import Any, Dict, MutableMapping, Optional

import streamlit as st

from frontend.api_client import ApiClient
from frontend.config import ENABLE_VERBOSE_LOGGING
from frontend.dev_observability import track_event
from frontend.session import AuthSession, sign_in_with_password

SESSION_KEY = "auth_session"
CLIENT_KEY = "api_client"

StateMap = MutableMapping[str, Any]


def _state(ss: Optional[StateMap]) -> StateMap:
    return st.session_state if ss is None else ss


def init_auth_state(ss: Optional[StateMap] = None) -> None:
    """
    Ensure auth keys exist. Idempotent, safe to call on every rerun.
    """
    ss = _state(ss)
    if ss.get(SESSION_KEY) is None:
        ss[SESSION_KEY] = AuthSession(state=ss)
    ss.setdefault("current_user", None)
    ss.setdefault("is_authenticated", False)
    ss.setdefault("nav_page", None)
    ss.setdefault("_session_expired", False)

    # Keep the flag in sync with the session (it may have been ended by a failed refresh)
    ss["is_authenticated"] = ss[SESSION_KEY].is_authenticated


def get_session(ss: Optional[StateMap] = None) -> AuthSession:
    ss = _state(ss)
    if ss.get(SESSION_KEY) is None:
        init_auth_state(ss)
    return ss[SESSION_KEY]


def get_client(ss: Optional[StateMap] = None) -> ApiClient:
    """ApiClient bound to this browser session, created once per session."""
    ss = _state(ss)
    client = ss.get(CLIENT_KEY)
    if client is None:
        client = ApiClient(get_session(ss), on_session_expired=lambda: handle_session_expired(ss))
        ss[CLIENT_KEY] = client
    return client


def login(email: str, password: str, ss: Optional[StateMap] = None) -> Dict[str, Any]:
    """
    Sign in with email and password.

    Returns:
        The current user object

    Raises:
        AuthError: Invalid credentials
        NetworkError: Backend unreachable
    """
    ss = _state(ss)
    session = sign_in_with_password(email, password, session=get_session(ss))
    set_auth(ss)
    return session.current_user or {}


def set_auth(ss: Optional[StateMap] = None) -> None:
    """Mirror the signed-in session into the keys pages read."""
    ss = _state(ss)
    session = get_session(ss)
    ss["current_user"] = session.current_user
    ss["is_authenticated"] = session.is_authenticated
    ss["_session_expired"] = False


def clear_auth(ss: Optional[StateMap] = None) -> None:
    """
    Sign out and wipe user-derived state (logout or session expiry).

    Safe to call multiple times.
    """
    ss = _state(ss)
    session = ss.get(SESSION_KEY)
    if session is not None and session.is_authenticated:
        session.sign_out()
    ss["current_user"] = None
    ss["is_authenticated"] = False
    # Drop cached report results so the next user never sees them
    ss.pop("report_runner", None)


def handle_session_expired(ss: Optional[StateMap] = None) -> None:
    ss = _state(ss)
    if ENABLE_VERBOSE_LOGGING:
        print("[AUTH] Session expired, redirecting to Login")
    clear_auth(ss)
    ss["_session_expired"] = True
    ss["nav_page"] = "Login"
    track_event(ss, "redirect_to_login")


def is_authenticated(ss: Optional[StateMap] = None) -> bool:
    return get_session(ss).is_authenticated


def get_current_user(ss: Optional[StateMap] = None) -> Optional[Dict[str, Any]]:
    return get_session(ss).current_user


def require_auth(redirect_to_login: bool = True) -> bool:
    """
    Guard for protected pages - stops execution if not authenticated.

    Usage at top of page render functions:
        if not require_auth():
            return

    Returns:
        True if authenticated (continue execution), False otherwise
    """
    if is_authenticated():
        return True

    if st.session_state.get("_session_expired"):
        st.warning("⚠️ Your session has expired. Please log in again.")
    else:
        st.warning("⚠️ You must be logged in to access this page.")

    if st.button("Go to Login", type="primary"):
        if redirect_to_login:
            st.session_state["nav_page"] = "Login"
        st.rerun()
    return False

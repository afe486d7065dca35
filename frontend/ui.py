"""
frontend/ui.py
Rendering helpers that turn frontend.errors types into Streamlit feedback.

- ValidationError: messages inline under each field (field_error)
- NetworkError / ServerError: banner plus retry button with the remaining count
- AuthError: permission message for 403; 401 is handled by the session redirect
- NotFoundError: informational, the page shows an empty result
"""

from typing import Optional

import streamlit as st

from frontend.config import ENABLE_DEBUG_UI
from frontend.dev_observability import export_events_json, get_recent_events
from frontend.errors import ApiError, AuthError, NetworkError, NotFoundError, RetryLimitExceeded, ServerError, ValidationError
from frontend.pricing import format_amount

FIELD_ERRORS_KEY = "_field_errors"


def remember_field_errors(error: Optional[ValidationError]) -> None:
    """Store (or clear) field errors so inputs can render them on the next rerun."""
    st.session_state[FIELD_ERRORS_KEY] = error.by_field() if error is not None else {}


def field_error(field_id: str) -> None:
    """Render validation messages for one input, if any."""
    for message in st.session_state.get(FIELD_ERRORS_KEY, {}).get(field_id, []):
        st.caption(f":red[{message}]")


def show_api_error(error: ApiError, retry_key: Optional[str] = None) -> bool:
    """
    Render an error banner for a failed call.

    Args:
        error: The raised error
        retry_key: Widget key for the retry button; no button when None

    Returns:
        True if the user clicked retry on this rerun
    """
    if isinstance(error, ValidationError):
        remember_field_errors(error)
        st.error("Please fix the highlighted fields.")
        for message in error.by_field().get("request", []):
            st.error(message)
        return False

    if isinstance(error, RetryLimitExceeded):
        st.error(f"❌ {error.message}")
        return False

    if isinstance(error, AuthError):
        if error.is_forbidden:
            st.error(f"🔒 **Permission Denied:** {error.message}")
        else:
            st.error("❌ Not authenticated. Please log in again.")
        return False

    if isinstance(error, NotFoundError):
        st.info(error.message)
        return False

    if isinstance(error, NetworkError):
        st.error(f"⚠️ Backend unreachable: {error.message}")
    elif isinstance(error, ServerError):
        st.error(f"⚠️ Server error: {error.message}")
    else:
        st.error(error.message)

    if retry_key is None or not error.retryable:
        return False
    label = "🔄 Retry"
    if error.retries_remaining is not None:
        label = f"🔄 Retry ({error.retries_remaining} left)"
        if error.retries_remaining <= 0:
            return False
    return st.button(label, key=retry_key)


def render_price(amount_in_kobo: int, caption: Optional[str] = None) -> None:
    st.metric(caption or "Price", format_amount(amount_in_kobo))


def render_event_timeline() -> None:
    """DEV-only expander with the redacted event timeline."""
    if not ENABLE_DEBUG_UI:
        return
    with st.expander("🔍 Event timeline (DEV)"):
        events = get_recent_events(st.session_state, limit=30)
        if not events:
            st.text("No events yet")
        for event in events:
            details = event.get("details")
            st.text(f"{event['ts']}  {event['name']}" + (f"  {details}" if details else ""))
        st.download_button(
            "Export timeline",
            data=export_events_json(st.session_state),
            file_name="events.json",
            mime="application/json",
        )

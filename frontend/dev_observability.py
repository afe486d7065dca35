# frontend/dev_observability.py
# Redacted event timeline for auth, report and payment lifecycle events

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, MutableMapping, Optional

EVENTS_KEY = "_dev_events"
MAX_EVENTS = 100

# Sensitive keys that must be redacted
SENSITIVE_KEYS = {
    "token",
    "refresh_token",
    "access_token",
    "authorization",
    "password",
    "session_id",
    "secret",
    "api_key",
    "access_code",
}


def redact_value(key: str, value: Any) -> Any:
    """
    Redact sensitive values.
    - If key names a credential: return "[REDACTED]"
    - If key is an id/reference: return last 4 chars (e.g., "…a9f2")
    - Otherwise: return actual value
    """
    key_lower = key.lower()

    if any(sensitive in key_lower for sensitive in SENSITIVE_KEYS):
        return "[REDACTED]"

    if ("id" in key_lower or "reference" in key_lower) and isinstance(value, str) and len(value) > 4:
        return f"…{value[-4:]}"

    return value


def now_iso() -> str:
    """Return current timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def track_event(state: MutableMapping[str, Any], event_name: str, details: Optional[Dict[str, Any]] = None) -> None:
    """
    Append an event to the session timeline.

    Args:
        state: Session state mapping (st.session_state or a plain dict)
        event_name: Short descriptive name (e.g., "token_refreshed", "report_superseded")
        details: Optional context; values are redacted before storing
    """
    events = state.setdefault(EVENTS_KEY, [])

    event: Dict[str, Any] = {"ts": now_iso(), "name": event_name}
    if details:
        event["details"] = {k: redact_value(k, v) for k, v in details.items()}
    events.append(event)

    if len(events) > MAX_EVENTS:
        state[EVENTS_KEY] = events[-MAX_EVENTS:]


def get_recent_events(state: MutableMapping[str, Any], limit: int = 30) -> List[Dict[str, Any]]:
    """Most recent events first."""
    events = state.get(EVENTS_KEY, [])
    return list(reversed(events[-limit:]))


def event_names(state: MutableMapping[str, Any]) -> List[str]:
    """Event names in the order they happened."""
    return [e["name"] for e in state.get(EVENTS_KEY, [])]


def clear_events(state: MutableMapping[str, Any]) -> None:
    if EVENTS_KEY in state:
        state[EVENTS_KEY] = []


def export_events_json(state: MutableMapping[str, Any], limit: int = 50) -> str:
    """Diagnostic dump of the timeline for the DEV debug panel."""
    return json.dumps(
        {"timestamp": now_iso(), "recent_events": get_recent_events(state, limit=limit)},
        indent=2,
        default=str,
    )

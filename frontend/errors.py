"""
frontend/errors.py
Error taxonomy for every call the frontend makes.

Each failure mode resolves to one of these types so pages can decide how to
surface it:
- ValidationError: user-correctable, shown inline next to the offending field
- NetworkError: no response received, shown as a banner with a retry action
- AuthError: 401/403, handled by the client's single refresh-and-retry,
  otherwise forces re-authentication
- ServerError: 5xx, banner with a retry action (reports allow up to 3)
- NotFoundError: 404, optional data degrades to an empty result

Messages never include tokens or Authorization headers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests


@dataclass(frozen=True)
class FieldError:
    """A single validation failure tagged with the field it belongs to."""
    field: str
    message: str


class ApiError(Exception):
    """Base class for all frontend-visible failures."""

    retryable = False

    def __init__(self, message: str, status_code: Optional[int] = None, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.path = path
        # Set by ReportRunner when the failure is surfaced with a retry budget
        self.retries_remaining: Optional[int] = None


class ValidationError(ApiError):
    """Input failed validation. Lists every violation, not only the first."""

    def __init__(self, field_errors: List[FieldError], message: Optional[str] = None):
        self.field_errors = list(field_errors)
        if message is None:
            message = "; ".join(f"{e.field}: {e.message}" for e in self.field_errors) or "Invalid input"
        super().__init__(message, status_code=400)

    def by_field(self) -> Dict[str, List[str]]:
        """Group messages by field id for inline display."""
        grouped: Dict[str, List[str]] = {}
        for err in self.field_errors:
            grouped.setdefault(err.field, []).append(err.message)
        return grouped


class NetworkError(ApiError):
    """Request never produced a response (timeout, refused connection)."""
    retryable = True


class AuthError(ApiError):
    """Not authenticated (401) or not permitted (403)."""

    @property
    def is_forbidden(self) -> bool:
        return self.status_code == 403


class ServerError(ApiError):
    """Backend failed with a 5xx status."""
    retryable = True


class NotFoundError(ApiError):
    """Resource or feature absent (404)."""


class RetryLimitExceeded(ApiError):
    """Manual retries for a report are used up until its filters change."""

    def __init__(self, message: str = "Report generation failed too many times. Change the filters to try again."):
        super().__init__(message)
        self.retries_remaining = 0


def extract_error_message(resp: requests.Response, default: str) -> str:
    """
    Pull a human-readable message out of an error response.

    Backend errors arrive as {"message": ...}, {"detail": ...} or {"error": ...}.
    Falls back to `default` when the body is not JSON.
    """
    try:
        body: Any = resp.json()
    except ValueError:
        return default
    if isinstance(body, dict):
        for key in ("message", "detail", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return default


def error_for_response(resp: requests.Response, path: Optional[str] = None) -> Optional[ApiError]:
    """
    Map a non-2xx response to the matching error type.

    Returns None for successful responses.
    """
    status = resp.status_code
    if status < 400:
        return None
    if status in (401, 403):
        default = "Not authenticated" if status == 401 else "You don't have permission to perform this action."
        return AuthError(extract_error_message(resp, default), status_code=status, path=path)
    if status == 404:
        return NotFoundError(extract_error_message(resp, "Not found"), status_code=status, path=path)
    if status >= 500:
        return ServerError(extract_error_message(resp, f"Backend error {status}"), status_code=status, path=path)
    if status in (400, 422):
        message = extract_error_message(resp, "Invalid request")
        return ValidationError([FieldError(field="request", message=message)], message=message)
    return ApiError(extract_error_message(resp, f"Request failed with status {status}"), status_code=status, path=path)


def raise_for_response(resp: requests.Response, path: Optional[str] = None) -> None:
    """Raise the mapped ApiError for a failed response."""
    error = error_for_response(resp, path)
    if error is not None:
        raise error

"""
frontend/report_runner.py

Lifecycle around reports.generate() for one report builder session.

- Last request wins: starting a generation supersedes the one in flight.
  A superseded generation returns None and its result (or error) is dropped.
- Retry budget: after a retryable failure (5xx, network) the caller may retry
  up to MAX_REPORT_RETRIES times with the same report type and filters.
  After that, generation is refused until the type or filters change.
"""

from __future__ import annotations

import json
import threading
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from frontend.config import ENABLE_VERBOSE_LOGGING, MAX_REPORT_RETRIES
from frontend.dev_observability import track_event
from frontend.errors import ApiError, RetryLimitExceeded
from frontend.models import ReportFilter, ReportResult, ReportType
from frontend.reports import BASE_FILTERS, FetchAssets, generate


class GenerationSuperseded(Exception):
    """Raised inside a generation once a newer one has started."""


def request_key(report_type: Union[ReportType, str], filters: Mapping[str, Any]) -> Tuple[str, str]:
    """Stable identity of a (report type, filter set) pair."""
    kind = report_type.value if isinstance(report_type, ReportType) else str(report_type)
    return kind, json.dumps(dict(filters), sort_keys=True, default=str)


class ReportRunner:
    """
    Runs report generations so that only the most recent one is applied.

    Args:
        fetch_assets: Collaborator returning asset records for a filter set
        declared_filters: Filters offered by the builder (used for validation)
        max_retries: Manual retries allowed after a retryable failure
        state: Session-state mapping for the event timeline
    """

    def __init__(
        self,
        fetch_assets: FetchAssets,
        declared_filters: Sequence[ReportFilter] = BASE_FILTERS,
        max_retries: int = MAX_REPORT_RETRIES,
        state: Optional[Dict[str, Any]] = None,
    ):
        self.fetch_assets = fetch_assets
        self.declared_filters = list(declared_filters)
        self.max_retries = max_retries
        self.state = state if state is not None else {}
        self.latest: Optional[ReportResult] = None
        self.last_error: Optional[ApiError] = None
        self._lock = threading.Lock()
        self._generation = 0
        self._cancel_event: Optional[threading.Event] = None
        self._failure_key: Optional[Tuple[str, str]] = None
        self._failures = 0

    @property
    def retries_remaining(self) -> int:
        """Manual retries left for the last failed request (max_retries when nothing failed)."""
        with self._lock:
            if self._failures == 0:
                return self.max_retries
            return max(self.max_retries + 1 - self._failures, 0)

    def cancel(self) -> None:
        """Abandon the in-flight generation, if any."""
        with self._lock:
            self._generation += 1
            if self._cancel_event is not None:
                self._cancel_event.set()
                self._cancel_event = None

    def generate(self, report_type: Union[ReportType, str], filters: Mapping[str, Any]) -> Optional[ReportResult]:
        """
        Generate a report, superseding any generation in flight.

        Returns:
            The ReportResult, or None if a newer generation started meanwhile

        Raises:
            ValidationError: Invalid filters (does not consume the retry budget)
            RetryLimitExceeded: Retries for this type/filter set are used up
            ApiError: Fetch failure; `retries_remaining` is set for retryable errors
        """
        key = request_key(report_type, filters)
        with self._lock:
            if key != self._failure_key:
                self._failure_key = key
                self._failures = 0
            if self._failures > self.max_retries:
                self.last_error = RetryLimitExceeded()
                raise self.last_error

            self._generation += 1
            generation = self._generation
            if self._cancel_event is not None:
                self._cancel_event.set()
            cancel_event = threading.Event()
            self._cancel_event = cancel_event

        def fetch(filter_values: Dict[str, Any]):
            assets = list(self.fetch_assets(filter_values))
            if cancel_event.is_set():
                raise GenerationSuperseded()
            return assets

        try:
            result = generate(report_type, filters, fetch, self.declared_filters)
        except GenerationSuperseded:
            self._discard(key, generation)
            return None
        except ApiError as error:
            with self._lock:
                superseded = generation != self._generation
                if not superseded:
                    if error.retryable:
                        self._failures += 1
                        error.retries_remaining = max(self.max_retries + 1 - self._failures, 0)
                    self.last_error = error
                    if self._cancel_event is cancel_event:
                        self._cancel_event = None
            if superseded:
                self._discard(key, generation)
                return None
            if ENABLE_VERBOSE_LOGGING:
                print(f"[REPORTS] {key[0]} failed: {type(error).__name__} (retries left: {error.retries_remaining})")
            track_event(self.state, "report_failed", {"report_type": key[0], "error": type(error).__name__})
            raise

        with self._lock:
            superseded = generation != self._generation
            if not superseded:
                self.latest = result
                self.last_error = None
                self._failures = 0
                if self._cancel_event is cancel_event:
                    self._cancel_event = None
        if superseded:
            self._discard(key, generation)
            return None

        track_event(self.state, "report_generated", {
            "report_type": key[0],
            "records": result.summary.total_records,
        })
        return result

    def _discard(self, key: Tuple[str, str], generation: int) -> None:
        if ENABLE_VERBOSE_LOGGING:
            print(f"[REPORTS] Discarding superseded {key[0]} generation #{generation}")
        track_event(self.state, "report_superseded", {"report_type": key[0]})

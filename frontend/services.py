"""
frontend/services.py

Thin wrappers over the backend endpoints used by the asset and report pages.

All calls go through ApiClient (auth, retry, typed errors) and
frontend.adapters (response shapes). Optional lookup data (categories,
locations, departments) degrades to an empty list on 404.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from frontend.adapters import (
    extract_object,
    parse_asset,
    parse_assets,
    parse_options,
    parse_saved_report,
    parse_saved_reports,
)
from frontend.api_client import ApiClient
from frontend.config import ENABLE_VERBOSE_LOGGING
from frontend.errors import ApiError, NotFoundError
from frontend.models import AssetRecord, FilterOption, ReportFilter, SavedReport
from frontend.reports import build_available_filters, parse_date


def filters_to_params(filters: Dict[str, Any]) -> Dict[str, Any]:
    """Encode a report filter set as query parameters (lists comma-joined, dates ISO)."""
    params: Dict[str, Any] = {}
    for key, value in filters.items():
        if value is None or value == "" or value == []:
            continue
        if isinstance(value, (list, tuple, set)):
            params[key] = ",".join(str(v) for v in value)
        elif key in ("dateFrom", "dateTo") and parse_date(value):
            params[key] = parse_date(value).isoformat()
        else:
            params[key] = value
    return params


def serialize_filters(filters: Dict[str, Any]) -> Dict[str, Any]:
    """JSON-safe copy of a filter set for saved reports (lists kept, dates as ISO strings)."""
    out: Dict[str, Any] = {}
    for key, value in filters.items():
        if isinstance(value, (list, tuple, set)):
            out[key] = [str(v) for v in value]
        elif key in ("dateFrom", "dateTo") and parse_date(value):
            out[key] = parse_date(value).isoformat()
        else:
            out[key] = value
    return out


class AssetService:
    """CRUD and assignment calls for tracked assets."""

    def __init__(self, client: ApiClient):
        self.client = client

    def list_assets(self, search: Optional[str] = None, page: Optional[int] = None, status: Optional[str] = None) -> List[AssetRecord]:
        params = {k: v for k, v in {"search": search, "page": page, "status": status}.items() if v is not None}
        return parse_assets(self.client.get("/assets", params=params or None))

    def get_asset(self, asset_id: str) -> AssetRecord:
        return parse_asset(extract_object(self.client.get(f"/assets/{asset_id}")))

    def create_asset(self, data: Dict[str, Any]) -> AssetRecord:
        return parse_asset(extract_object(self.client.post("/assets", json=data)))

    def update_asset(self, asset_id: str, data: Dict[str, Any]) -> AssetRecord:
        return parse_asset(extract_object(self.client.put(f"/assets/{asset_id}", json=data)))

    def delete_asset(self, asset_id: str) -> None:
        self.client.delete(f"/assets/{asset_id}")

    def assign_asset(self, asset_id: str, user_id: str) -> AssetRecord:
        return parse_asset(extract_object(self.client.post(f"/assets/{asset_id}/assign", json={"userId": user_id})))

    def return_asset(self, asset_id: str) -> AssetRecord:
        return parse_asset(extract_object(self.client.post(f"/assets/{asset_id}/return")))


class CatalogService:
    """Lookup lists that populate the report builder's dynamic filters."""

    def __init__(self, client: ApiClient):
        self.client = client

    def _options(self, path: str, key: str) -> List[FilterOption]:
        try:
            return parse_options(self.client.get(path), key)
        except NotFoundError:
            # Endpoint not deployed for this organization: treat as no data
            if ENABLE_VERBOSE_LOGGING:
                print(f"[API] {path} not available, using empty {key}")
            return []

    def get_categories(self) -> List[FilterOption]:
        return self._options("/categories", "categories")

    def get_locations(self) -> List[FilterOption]:
        return self._options("/assets/locations", "locations")

    def get_departments(self) -> List[FilterOption]:
        return self._options("/organizations/departments", "departments")


@dataclass
class DynamicFilters:
    filters: List[ReportFilter]
    warnings: List[str] = field(default_factory=list)


def load_dynamic_filters(catalog: CatalogService, required: tuple = ()) -> DynamicFilters:
    """
    Build the report builder's filter list from the catalog endpoints.

    Each lookup fails independently; a failed lookup drops its filter and adds
    a warning, and the base filters are always available.
    """
    loaded: Dict[str, List[FilterOption]] = {}
    failed: List[str] = []
    for name, loader in (
        ("Categories", catalog.get_categories),
        ("Locations", catalog.get_locations),
        ("Departments", catalog.get_departments),
    ):
        try:
            loaded[name] = loader()
        except ApiError as e:
            if ENABLE_VERBOSE_LOGGING:
                print(f"[API] Failed to load {name.lower()}: {type(e).__name__}")
            loaded[name] = []
            failed.append(name)

    warnings = []
    if failed:
        warnings.append(
            f"Some filter options could not be loaded: {', '.join(failed)}. Basic filters are still available."
        )
    filters = build_available_filters(
        categories=loaded["Categories"],
        locations=loaded["Locations"],
        departments=loaded["Departments"],
        required=required,
    )
    return DynamicFilters(filters=filters, warnings=warnings)


class ReportService:
    """Asset fetching for report generation plus saved report configurations."""

    def __init__(self, client: ApiClient):
        self.client = client

    def fetch_assets(self, filters: Dict[str, Any]) -> List[AssetRecord]:
        """Collaborator passed to reports.generate / ReportRunner."""
        return parse_assets(self.client.get("/reports/assets", params=filters_to_params(filters)))

    def list_saved_reports(self) -> List[SavedReport]:
        return parse_saved_reports(self.client.get("/reports"))

    def get_saved_report(self, report_id: str) -> SavedReport:
        return parse_saved_report(self.client.get(f"/reports/{report_id}"))

    def save_report(self, name: str, report_type: str, filters: Dict[str, Any], description: Optional[str] = None) -> SavedReport:
        payload = {
            "name": name,
            "type": report_type,
            "filters": serialize_filters(filters),
            "description": description,
        }
        return parse_saved_report(self.client.post("/reports", json=payload))

    def update_report(self, report_id: str, changes: Dict[str, Any]) -> SavedReport:
        payload = dict(changes)
        if "filters" in payload:
            payload["filters"] = serialize_filters(payload["filters"])
        return parse_saved_report(self.client.put(f"/reports/{report_id}", json=payload))

    def delete_report(self, report_id: str) -> None:
        self.client.delete(f"/reports/{report_id}")

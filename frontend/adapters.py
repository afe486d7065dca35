"""
frontend/adapters.py

Single boundary between raw backend JSON and the typed models.

The backend is inconsistent about envelopes: a list may arrive top-level,
under "data", under "data.<key>", under "<key>" or under "items". Every
service call goes through these helpers so no call site re-checks shapes.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from frontend.config import ENABLE_VERBOSE_LOGGING
from frontend.models import AssetRecord, FilterOption, MaintenanceRecord, SavedReport


def extract_list(body: Any, key: Optional[str] = None) -> List[Any]:
    """
    Find the list payload in a response body.

    Checked in order: the body itself, data, data.<key>, <key>, data.items, items.
    Returns [] when no list is present.
    """
    if isinstance(body, list):
        return body
    if not isinstance(body, dict):
        return []

    data = body.get("data")
    if isinstance(data, list):
        return data

    candidates = []
    if isinstance(data, dict):
        if key:
            candidates.append(data.get(key))
        candidates.append(data.get("items"))
    if key:
        candidates.append(body.get(key))
    candidates.append(body.get("items"))

    for candidate in candidates:
        if isinstance(candidate, list):
            return candidate
    return []


def extract_object(body: Any) -> Dict[str, Any]:
    """Unwrap {"data": {...}} envelopes; return the dict payload."""
    if isinstance(body, dict):
        data = body.get("data")
        if isinstance(data, dict):
            return data
        return body
    return {}


def _normalize_id(raw: Dict[str, Any]) -> Dict[str, Any]:
    item = dict(raw)
    if not item.get("id") and item.get("_id"):
        item["id"] = item["_id"]
    if item.get("id") is not None:
        item["id"] = str(item["id"])
    return item


def _to_number(value: Any) -> Any:
    # Values sometimes arrive pre-formatted ("1,250,000")
    if isinstance(value, str):
        cleaned = value.replace(",", "").replace("₦", "").strip()
        try:
            return float(cleaned) if cleaned else 0.0
        except ValueError:
            return value
    return value


def _date_text(item: Dict[str, Any], *keys: str) -> None:
    # Timestamps ("2021-07-04T00:00:00.000Z") are stored as plain dates;
    # anything that is not ISO becomes None
    for key in keys:
        if isinstance(item.get(key), str):
            text = item[key].strip()[:10]
            try:
                item[key] = date.fromisoformat(text).isoformat()
            except ValueError:
                item[key] = None


def _display_name(value: Any) -> Any:
    # assignedTo / department can be a nested user or org object
    if isinstance(value, dict):
        for key in ("name", "fullName", "email", "label"):
            if value.get(key):
                return value[key]
        return None
    return value


def parse_maintenance_record(raw: Dict[str, Any]) -> MaintenanceRecord:
    item = _normalize_id(raw)
    if "cost" in item:
        item["cost"] = _to_number(item["cost"])
    if "performedBy" in item:
        item["performedBy"] = _display_name(item["performedBy"])
    _date_text(item, "date", "nextScheduled")
    return MaintenanceRecord.model_validate(item)


def parse_asset(raw: Dict[str, Any]) -> AssetRecord:
    """
    Validate one raw asset dict.

    Raises:
        pydantic.ValidationError: If required fields (id, name) are missing
    """
    item = _normalize_id(raw)

    # Older records use purchasePrice instead of purchaseValue
    if "purchaseValue" not in item and "purchasePrice" in item:
        item["purchaseValue"] = item["purchasePrice"]
    for key in ("purchaseValue", "currentValue", "utilization", "hoursUsed", "efficiencyScore"):
        if key in item:
            item[key] = _to_number(item[key])
            if item[key] is None and key in ("purchaseValue", "currentValue"):
                item[key] = 0.0
    for key in ("assignedTo", "department", "location", "category"):
        if key in item:
            item[key] = _display_name(item[key])
    if item.get("category") is None:
        item.pop("category", None)
    _date_text(item, "purchaseDate", "warrantyExpiry", "lastAudit")

    history = item.get("maintenanceHistory") or []
    item["maintenanceHistory"] = [parse_maintenance_record(r) for r in history if isinstance(r, dict)]
    return AssetRecord.model_validate(item)


def parse_assets(body: Any) -> List[AssetRecord]:
    """Parse an asset list response, skipping records that fail validation."""
    assets: List[AssetRecord] = []
    for raw in extract_list(body, "assets"):
        if not isinstance(raw, dict):
            continue
        try:
            assets.append(parse_asset(raw))
        except PydanticValidationError as e:
            if ENABLE_VERBOSE_LOGGING:
                print(f"[API] Skipping malformed asset record: {e.error_count()} error(s)")
    return assets


def parse_options(body: Any, key: Optional[str] = None) -> List[FilterOption]:
    """
    Turn a categories/locations/departments response into filter options.

    Items may be plain strings or objects shaped {value,label}, {id,name} or {_id,name}.
    Duplicates are dropped, first occurrence wins.
    """
    options: List[FilterOption] = []
    seen = set()
    for raw in extract_list(body, key):
        if isinstance(raw, str):
            value, label = raw, raw
        elif isinstance(raw, dict):
            value = raw.get("value") or raw.get("name") or raw.get("id") or raw.get("_id")
            label = raw.get("label") or raw.get("name") or value
        else:
            continue
        if not value or value in seen:
            continue
        seen.add(value)
        options.append(FilterOption(value=str(value), label=str(label)))
    return options


def parse_saved_reports(body: Any) -> List[SavedReport]:
    """Parse a saved-report list, skipping records that fail validation."""
    reports: List[SavedReport] = []
    for raw in extract_list(body, "reports"):
        if not isinstance(raw, dict):
            continue
        try:
            reports.append(SavedReport.model_validate(_normalize_id(raw)))
        except PydanticValidationError as e:
            if ENABLE_VERBOSE_LOGGING:
                print(f"[API] Skipping malformed saved report: {e.error_count()} error(s)")
    return reports


def parse_saved_report(body: Any) -> SavedReport:
    return SavedReport.model_validate(_normalize_id(extract_object(body)))

"""
frontend/reports.py

Report builder logic: declared filters, filter validation, and shaping raw
asset records into table/chart data with summary statistics.

Every report is derived from the asset list returned by an injected
`fetch_assets(filters)` collaborator, so this module never talks to the
network itself. Shaping is deterministic: the same filters over the same
assets always yield the same ReportData.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from frontend.adapters import parse_asset
from frontend.errors import FieldError, ValidationError
from frontend.models import (
    AssetRecord,
    ChartPoint,
    ChartType,
    FilterOption,
    FilterType,
    MaintenanceRecord,
    ReportData,
    ReportFilter,
    ReportResult,
    ReportSummary,
    ReportType,
    ReportTypeInfo,
)

FetchAssets = Callable[[Dict[str, Any]], Iterable[Union[AssetRecord, Dict[str, Any]]]]

NOT_AVAILABLE = "N/A"


# ============================================================================
# Declared filters
# ============================================================================

def _options(*pairs: Tuple[str, str]) -> List[FilterOption]:
    return [FilterOption(value=v, label=l) for v, l in pairs]


BASE_FILTERS: List[ReportFilter] = [
    ReportFilter(id="dateFrom", label="Start Date", type=FilterType.date),
    ReportFilter(id="dateTo", label="End Date", type=FilterType.date),
    ReportFilter(
        id="status",
        label="Asset Status",
        type=FilterType.multiselect,
        options=_options(
            ("active", "Active"),
            ("inactive", "Inactive"),
            ("maintenance", "Under Maintenance"),
            ("repair", "Under Repair"),
            ("retired", "Retired"),
            ("disposed", "Disposed"),
            ("missing", "Missing/Lost"),
        ),
    ),
    ReportFilter(
        id="assignmentStatus",
        label="Assignment Status",
        type=FilterType.select,
        options=_options(
            ("assigned", "Assigned"),
            ("unassigned", "Unassigned"),
            ("pool", "Pool Asset"),
            ("reserved", "Reserved"),
        ),
    ),
]


def build_available_filters(
    categories: Sequence[FilterOption] = (),
    locations: Sequence[FilterOption] = (),
    departments: Sequence[FilterOption] = (),
    required: Iterable[str] = (),
) -> List[ReportFilter]:
    """
    Base filters plus category/location/department selects.

    A dynamic filter is only offered when its option list is non-empty.
    Filter ids listed in `required` are marked required.
    """
    filters = list(BASE_FILTERS)
    for filter_id, label, options in (
        ("category", "Asset Category", categories),
        ("location", "Location", locations),
        ("department", "Department", departments),
    ):
        if options:
            filters.append(ReportFilter(id=filter_id, label=label, type=FilterType.select, options=list(options)))

    required = set(required)
    if required:
        filters = [f.model_copy(update={"required": True}) if f.id in required else f for f in filters]
    return filters


# ============================================================================
# Validation
# ============================================================================

def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set)):
        return len(value) == 0
    return False


def parse_date(value: Any) -> Optional[date]:
    """Accept date, datetime or ISO string; return None if unparseable."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None
    return None


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def validate_filters(filters: Mapping[str, Any], declared: Sequence[ReportFilter] = BASE_FILTERS) -> List[FieldError]:
    """
    Check a filter set against its declarations.

    Returns every violation found (empty list when valid):
    - required filters without a value
    - dates that do not parse
    - select/multiselect values not among the declared options
    - dateFrom later than dateTo
    """
    errors: List[FieldError] = []

    for declared_filter in declared:
        value = filters.get(declared_filter.id)
        if _is_empty(value):
            if declared_filter.required:
                errors.append(FieldError(declared_filter.id, f"{declared_filter.label} is required"))
            continue

        if declared_filter.type == FilterType.date:
            if parse_date(value) is None:
                errors.append(FieldError(declared_filter.id, f"{declared_filter.label} must be a valid date (YYYY-MM-DD)"))
        elif declared_filter.type in (FilterType.select, FilterType.multiselect) and declared_filter.options:
            if declared_filter.type == FilterType.select and isinstance(value, (list, tuple, set, dict)):
                errors.append(FieldError(declared_filter.id, f"{declared_filter.label} accepts a single value"))
                continue
            allowed = {o.value for o in declared_filter.options}
            values = _as_list(value) if declared_filter.type == FilterType.multiselect else [value]
            invalid = [str(v) for v in values if str(v) not in allowed]
            if invalid:
                errors.append(FieldError(declared_filter.id, f"{declared_filter.label} has invalid option(s): {', '.join(invalid)}"))

    date_from = parse_date(filters.get("dateFrom"))
    date_to = parse_date(filters.get("dateTo"))
    if date_from and date_to and date_from > date_to:
        errors.append(FieldError("dateFrom", "Start date cannot be later than end date"))

    return errors


def ensure_valid_filters(filters: Mapping[str, Any], declared: Sequence[ReportFilter] = BASE_FILTERS) -> None:
    """Raise ValidationError listing every violation."""
    errors = validate_filters(filters, declared)
    if errors:
        raise ValidationError(errors)


# ============================================================================
# Client-side filtering
# ============================================================================

def _same(a: Optional[str], b: Any) -> bool:
    return a is not None and str(a).strip().lower() == str(b).strip().lower()


def in_date_range(value: Optional[date], filters: Mapping[str, Any]) -> bool:
    date_from = parse_date(filters.get("dateFrom"))
    date_to = parse_date(filters.get("dateTo"))
    if not date_from and not date_to:
        return True
    if value is None:
        return False
    if date_from and value < date_from:
        return False
    if date_to and value > date_to:
        return False
    return True


def matches_filters(asset: AssetRecord, filters: Mapping[str, Any], include_dates: bool = True) -> bool:
    """True if the asset satisfies every non-empty filter."""
    if include_dates and not in_date_range(asset.purchase_date, filters):
        return False

    statuses = filters.get("status")
    if not _is_empty(statuses) and not any(_same(asset.status, s) for s in _as_list(statuses)):
        return False

    assignment = filters.get("assignmentStatus")
    if not _is_empty(assignment):
        if assignment == "assigned" and not asset.assigned_to:
            return False
        if assignment == "unassigned" and asset.assigned_to:
            return False
        if assignment in ("pool", "reserved") and not _same(asset.status, assignment):
            return False

    for key, attr in (("category", "category"), ("location", "location"), ("department", "department")):
        wanted = filters.get(key)
        if not _is_empty(wanted) and not _same(getattr(asset, attr), wanted):
            return False

    return True


# ============================================================================
# Shapers
# ============================================================================

def _iso(value: Optional[date], default: str = NOT_AVAILABLE) -> str:
    return value.isoformat() if value else default


def _group(assets: Iterable[AssetRecord], key: Callable[[AssetRecord], str]) -> Dict[str, List[AssetRecord]]:
    groups: Dict[str, List[AssetRecord]] = {}
    for asset in assets:
        groups.setdefault(key(asset), []).append(asset)
    return groups


def _percent(count: int, total: int) -> str:
    pct = (count / total * 100) if total else 0.0
    return f"{pct:.1f}%"


ShapeResult = Tuple[ReportData, List[AssetRecord]]


def shape_asset_inventory(assets: List[AssetRecord], filters: Mapping[str, Any]) -> ShapeResult:
    headers = [
        "Asset ID", "Name", "Category", "Location", "Status",
        "Current Value (₦)", "Assigned To", "Purchase Date", "Serial Number",
    ]
    rows = [
        [
            a.id,
            a.name,
            a.category,
            a.location or NOT_AVAILABLE,
            a.status,
            a.current_value,
            a.assigned_to or "Unassigned",
            _iso(a.purchase_date),
            a.serial_number or NOT_AVAILABLE,
        ]
        for a in assets
    ]
    return ReportData(headers=headers, table_data=rows), assets


def shape_financial_summary(assets: List[AssetRecord], filters: Mapping[str, Any]) -> ShapeResult:
    groups = _group(assets, lambda a: a.category)
    totals = {category: sum(a.current_value for a in members) for category, members in groups.items()}
    data = ReportData(
        headers=["Category", "Total Value (₦)", "Asset Count"],
        table_data=[[category, totals[category], len(groups[category])] for category in groups],
        chart_data=[ChartPoint(name=category, value=totals[category]) for category in groups],
        total_value=sum(totals.values()),
    )
    return data, assets


def shape_depreciation_analysis(assets: List[AssetRecord], filters: Mapping[str, Any]) -> ShapeResult:
    groups = _group(assets, lambda a: str(a.purchase_date.year) if a.purchase_date else "Unknown")
    rows = []
    chart = []
    # "Unknown" sorts after the years
    for period in sorted(groups, key=lambda p: (p == "Unknown", p)):
        members = groups[period]
        current = sum(a.current_value for a in members)
        depreciation = sum(max(a.purchase_value - a.current_value, 0.0) for a in members)
        rows.append([period, current, depreciation, len(members)])
        chart.append(ChartPoint(name=period, value=current))
    data = ReportData(
        headers=["Period", "Total Value (₦)", "Depreciation (₦)", "Asset Count"],
        table_data=rows,
        chart_data=chart,
        total_value=sum(a.current_value for a in assets),
    )
    return data, assets


def _distribution(assets: List[AssetRecord], key: Callable[[AssetRecord], str], label: str) -> ReportData:
    groups = _group(assets, key)
    total = len(assets)
    return ReportData(
        headers=[label, "Asset Count", "Percentage"],
        table_data=[[name, len(members), _percent(len(members), total)] for name, members in groups.items()],
        chart_data=[ChartPoint(name=name, value=len(members)) for name, members in groups.items()],
    )


def shape_category_distribution(assets: List[AssetRecord], filters: Mapping[str, Any]) -> ShapeResult:
    return _distribution(assets, lambda a: a.category, "Category"), assets


def shape_status_breakdown(assets: List[AssetRecord], filters: Mapping[str, Any]) -> ShapeResult:
    return _distribution(assets, lambda a: a.status, "Status"), assets


def shape_maintenance_report(assets: List[AssetRecord], filters: Mapping[str, Any]) -> ShapeResult:
    headers = [
        "Asset ID", "Asset Name", "Maintenance Date", "Type", "Cost (₦)",
        "Description", "Performed By", "Next Scheduled",
    ]
    rows = []
    touched = []
    for asset in assets:
        records: List[MaintenanceRecord] = [
            r for r in asset.maintenance_history if in_date_range(r.performed_on, filters)
        ]
        if records:
            touched.append(asset)
        for record in sorted(records, key=lambda r: (r.performed_on or date.min, r.id)):
            rows.append([
                asset.id,
                asset.name,
                _iso(record.performed_on),
                record.type,
                record.cost,
                record.description,
                record.performed_by or NOT_AVAILABLE,
                _iso(record.next_scheduled),
            ])
    return ReportData(headers=headers, table_data=rows), touched


def shape_utilization_analysis(assets: List[AssetRecord], filters: Mapping[str, Any]) -> ShapeResult:
    tracked = [a for a in assets if a.utilization is not None]
    groups = _group(tracked, lambda a: a.category)
    chart = [
        ChartPoint(name=category, value=round(sum(a.utilization for a in members) / len(members), 1))
        for category, members in groups.items()
    ]
    rows = [
        [
            a.name,
            a.utilization,
            a.hours_used if a.hours_used is not None else 0,
            a.efficiency_score if a.efficiency_score is not None else NOT_AVAILABLE,
        ]
        for a in tracked
    ]
    data = ReportData(
        headers=["Asset", "Utilization %", "Hours Used", "Efficiency Score"],
        table_data=rows,
        chart_data=chart,
    )
    return data, tracked


def shape_compliance_audit(assets: List[AssetRecord], filters: Mapping[str, Any]) -> ShapeResult:
    rows = [
        [
            a.id,
            a.name,
            a.compliance_status or "Unknown",
            _iso(a.last_audit, default="Never"),
            a.issues,
            a.risk_level or "Unknown",
        ]
        for a in assets
    ]
    data = ReportData(
        headers=["Asset ID", "Asset Name", "Compliance Status", "Last Audit", "Issues", "Risk Level"],
        table_data=rows,
    )
    return data, assets


def shape_assignment_report(assets: List[AssetRecord], filters: Mapping[str, Any]) -> ShapeResult:
    assigned = [a for a in assets if a.assigned_to]
    rows = [
        [a.id, a.name, a.assigned_to, a.department or NOT_AVAILABLE, a.location or NOT_AVAILABLE, a.status]
        for a in assigned
    ]
    data = ReportData(
        headers=["Asset ID", "Asset Name", "Assigned To", "Department", "Location", "Status"],
        table_data=rows,
    )
    return data, assigned


# ============================================================================
# Report registry
# ============================================================================

@dataclass(frozen=True)
class ReportDefinition:
    info: ReportTypeInfo
    shape: Callable[[List[AssetRecord], Mapping[str, Any]], ShapeResult]
    # Index of the monetary column summed into summary.total_value
    value_column: Optional[int] = None
    # False when the date range applies to something other than purchase date
    filter_by_purchase_date: bool = True


def _definition(report_type: ReportType, name: str, description: str, chart_type: ChartType, shape, **kwargs) -> ReportDefinition:
    info = ReportTypeInfo(id=report_type, name=name, description=description, chart_type=chart_type)
    return ReportDefinition(info=info, shape=shape, **kwargs)


REPORTS: Dict[ReportType, ReportDefinition] = {
    d.info.id: d
    for d in (
        _definition(ReportType.asset_inventory, "Asset Inventory",
                    "Complete asset inventory with current status", ChartType.table,
                    shape_asset_inventory, value_column=5),
        _definition(ReportType.financial_summary, "Financial Summary",
                    "Asset values and financial metrics by category", ChartType.bar,
                    shape_financial_summary, value_column=1),
        _definition(ReportType.depreciation_analysis, "Depreciation Analysis",
                    "Asset value and depreciation by purchase year", ChartType.line,
                    shape_depreciation_analysis, value_column=1),
        _definition(ReportType.category_distribution, "Category Distribution",
                    "Asset distribution by categories", ChartType.pie,
                    shape_category_distribution),
        _definition(ReportType.maintenance_report, "Maintenance Report",
                    "Maintenance activities and costs", ChartType.table,
                    shape_maintenance_report, value_column=4, filter_by_purchase_date=False),
        _definition(ReportType.utilization_analysis, "Utilization Analysis",
                    "Asset utilization and efficiency metrics", ChartType.bar,
                    shape_utilization_analysis),
        _definition(ReportType.compliance_audit, "Compliance Audit",
                    "Compliance status and audit trail", ChartType.table,
                    shape_compliance_audit),
        _definition(ReportType.assignment_report, "Assignment Report",
                    "Asset assignments to employees/departments", ChartType.table,
                    shape_assignment_report),
        _definition(ReportType.status_breakdown, "Status Breakdown",
                    "Asset counts grouped by status", ChartType.pie,
                    shape_status_breakdown),
    )
}


def list_report_types() -> List[ReportTypeInfo]:
    return [d.info for d in REPORTS.values()]


# ============================================================================
# Summary + generation
# ============================================================================

def _distinct(values: Iterable[Optional[str]]) -> List[str]:
    seen: Dict[str, None] = {}
    for value in values:
        if value:
            seen.setdefault(value, None)
    return list(seen)


def summarize(definition: ReportDefinition, data: ReportData, touched: List[AssetRecord]) -> ReportSummary:
    """
    Summary statistics for a shaped report.

    total_records counts table rows for table reports and series points for
    chart reports. total_value sums the report's monetary column when it has one.
    """
    if definition.info.chart_type == ChartType.table or data.chart_data is None:
        total_records = len(data.table_data)
    else:
        total_records = len(data.chart_data)

    total_value = 0.0
    if data.total_value is not None:
        total_value = data.total_value
    elif definition.value_column is not None:
        total_value = sum(
            row[definition.value_column]
            for row in data.table_data
            if isinstance(row[definition.value_column], (int, float))
        )

    return ReportSummary(
        total_records=total_records,
        total_value=total_value,
        categories=_distinct(a.category for a in touched),
        locations=_distinct(a.location for a in touched),
        departments=_distinct(a.department for a in touched),
    )


def _coerce_assets(raw_assets: Iterable[Union[AssetRecord, Dict[str, Any]]]) -> List[AssetRecord]:
    return [a if isinstance(a, AssetRecord) else parse_asset(a) for a in raw_assets]


def generate(
    report_type: Union[ReportType, str],
    filters: Mapping[str, Any],
    fetch_assets: FetchAssets,
    declared_filters: Sequence[ReportFilter] = BASE_FILTERS,
    now: Optional[datetime] = None,
) -> ReportResult:
    """
    Validate filters, fetch assets, and shape them into a ReportResult.

    Raises:
        ValidationError: Invalid filters or unknown report type (all violations listed)
        ApiError subclasses: Propagated from fetch_assets
    """
    errors = validate_filters(filters, declared_filters)
    definition = None
    try:
        definition = REPORTS[ReportType(report_type)]
    except ValueError:
        errors.append(FieldError("reportType", f"Unknown report type: {report_type}"))
    if errors:
        raise ValidationError(errors)

    filter_values = dict(filters)
    assets = _coerce_assets(fetch_assets(filter_values))
    selected = [
        a for a in assets
        if matches_filters(a, filter_values, include_dates=definition.filter_by_purchase_date)
    ]

    data, touched = definition.shape(selected, filter_values)
    return ReportResult(
        report_type=definition.info.id,
        filters=filter_values,
        data=data,
        generated_at=now or datetime.now(timezone.utc),
        summary=summarize(definition, data, touched),
    )

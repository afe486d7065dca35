# frontend/test_reports.py
# Unit tests for report filter validation and report shaping

import pytest
import sys
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from frontend.errors import ValidationError
from frontend.models import FilterOption, ReportType
from frontend.reports import (
    BASE_FILTERS,
    build_available_filters,
    generate,
    list_report_types,
    validate_filters,
)

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

ASSETS = [
    {
        "id": "a1",
        "name": "Laptop",
        "category": "IT",
        "location": "Lagos",
        "status": "active",
        "department": "Eng",
        "assignedTo": {"name": "Ada"},
        "purchaseDate": "2022-03-01",
        "purchaseValue": "1,000",
        "currentValue": 800,
        "utilization": 80,
        "hoursUsed": 100,
        "efficiencyScore": 90,
        "maintenanceHistory": [
            {"id": "m1", "date": "2023-01-10", "type": "repair", "cost": 50, "description": "Screen"},
            {"id": "m2", "date": "2024-02-01", "type": "service", "cost": 20, "performedBy": {"name": "TechCo"}},
        ],
    },
    {
        "id": "a2",
        "name": "Desk",
        "category": "Furniture",
        "location": "Abuja",
        "status": "active",
        "purchaseDate": "2023-06-15",
        "purchaseValue": 300,
        "currentValue": 250,
        "utilization": 65,
    },
    {
        "_id": 3,
        "name": "Printer",
        "category": "IT",
        "location": "Lagos",
        "status": "maintenance",
        "department": "Ops",
        "assignedTo": "Bola",
        "purchasePrice": 200,
        "currentValue": 50,
        "complianceStatus": "non-compliant",
        "lastAudit": "2024-01-05",
        "issues": 2,
        "riskLevel": "high",
    },
]


def fetch(filters):
    return ASSETS


def run(report_type, filters=None, **kwargs):
    return generate(report_type, filters or {}, fetch, now=NOW, **kwargs)


# ============================================================================
# Validation
# ============================================================================

def test_two_missing_required_filters_give_two_errors():
    declared = build_available_filters(
        categories=[FilterOption(value="IT", label="IT")],
        required=("dateFrom", "category"),
    )
    errors = validate_filters({}, declared)
    assert sorted(e.field for e in errors) == ["category", "dateFrom"]


def test_date_order_violation():
    errors = validate_filters({"dateFrom": "2024-02-01", "dateTo": "2024-01-01"})
    assert [(e.field, e.message) for e in errors] == [("dateFrom", "Start date cannot be later than end date")]


def test_invalid_date_and_option_reported_together():
    errors = validate_filters({"dateTo": "not-a-date", "status": ["active", "bogus"]})
    assert {e.field for e in errors} == {"dateTo", "status"}


def test_single_select_given_a_list_is_a_field_error():
    fetch_assets = MagicMock(return_value=[])
    declared = build_available_filters(categories=[FilterOption(value="IT", label="IT")])
    with pytest.raises(ValidationError) as exc_info:
        generate("asset-inventory", {"category": ["IT"]}, fetch_assets, declared)
    assert exc_info.value.by_field() == {"category": ["Asset Category accepts a single value"]}
    fetch_assets.assert_not_called()


def test_select_option_compared_as_text():
    declared = build_available_filters(categories=[FilterOption(value="2024", label="2024")])
    assert validate_filters({"category": 2024}, declared) == []


def test_valid_filters():
    assert validate_filters({"dateFrom": "2024-01-01", "dateTo": "2024-01-31", "status": ["active"]}) == []


def test_generate_validation_error_skips_fetch():
    fetch_assets = MagicMock(return_value=ASSETS)
    declared = build_available_filters(required=("dateFrom", "dateTo"))
    with pytest.raises(ValidationError) as exc_info:
        generate("asset-inventory", {}, fetch_assets, declared)
    assert set(exc_info.value.by_field()) == {"dateFrom", "dateTo"}
    fetch_assets.assert_not_called()


def test_unknown_report_type():
    with pytest.raises(ValidationError) as exc_info:
        run("profit-forecast")
    assert [e.field for e in exc_info.value.field_errors] == ["reportType"]


def test_dynamic_filters_only_when_options_present():
    declared = build_available_filters(locations=[FilterOption(value="Lagos", label="Lagos")])
    ids = [f.id for f in declared]
    assert ids == [f.id for f in BASE_FILTERS] + ["location"]


# ============================================================================
# Shaping
# ============================================================================

def test_asset_inventory():
    result = run("asset-inventory")
    assert result.report_type == ReportType.asset_inventory
    assert [row[0] for row in result.data.table_data] == ["a1", "a2", "3"]
    assert result.data.table_data[0][6] == "Ada"
    assert result.data.table_data[2][7] == "N/A"
    assert result.summary.total_records == 3
    assert result.summary.total_value == 1100
    assert result.summary.categories == ["IT", "Furniture"]
    assert result.summary.locations == ["Lagos", "Abuja"]
    assert result.summary.departments == ["Eng", "Ops"]


def test_financial_summary():
    result = run("financial-summary")
    assert [(p.name, p.value) for p in result.data.chart_data] == [("IT", 850), ("Furniture", 250)]
    assert result.data.table_data == [["IT", 850, 2], ["Furniture", 250, 1]]
    assert result.summary.total_value == 1100
    assert result.summary.total_records == 2


def test_depreciation_unknown_year_last():
    result = run("depreciation-analysis")
    assert result.data.table_data == [
        ["2022", 800, 200, 1],
        ["2023", 250, 50, 1],
        ["Unknown", 50, 150, 1],
    ]


def test_category_distribution_percentages():
    result = run("category-distribution")
    assert result.data.table_data == [["IT", 2, "66.7%"], ["Furniture", 1, "33.3%"]]
    assert result.summary.total_records == 2


def test_status_breakdown():
    result = run("status-breakdown")
    assert [(p.name, p.value) for p in result.data.chart_data] == [("active", 2), ("maintenance", 1)]


def test_maintenance_report_filters_by_maintenance_date():
    # The laptop was bought in 2022 but serviced in 2024: it must still appear
    result = run("maintenance-report", {"dateFrom": "2024-01-01"})
    rows = result.data.table_data
    assert len(rows) == 1
    assert rows[0][:5] == ["a1", "Laptop", "2024-02-01", "service", 20]
    assert rows[0][6] == "TechCo"
    assert result.summary.total_value == 20
    assert result.summary.categories == ["IT"]


def test_utilization_analysis():
    result = run("utilization-analysis")
    assert [(p.name, p.value) for p in result.data.chart_data] == [("IT", 80), ("Furniture", 65)]
    assert result.data.table_data[1] == ["Desk", 65, 0, "N/A"]


def test_compliance_audit_defaults():
    result = run("compliance-audit")
    rows = {row[0]: row for row in result.data.table_data}
    assert rows["3"][2:] == ["non-compliant", "2024-01-05", 2, "high"]
    assert rows["a2"][2:] == ["Unknown", "Never", 0, "Unknown"]


def test_assignment_report_only_assigned():
    result = run("assignment-report")
    assert result.data.table_data == [
        ["a1", "Laptop", "Ada", "Eng", "Lagos", "active"],
        ["3", "Printer", "Bola", "Ops", "Lagos", "maintenance"],
    ]


def test_status_filter_applied_client_side():
    result = run("asset-inventory", {"status": ["maintenance"]})
    assert [row[0] for row in result.data.table_data] == ["3"]


def test_purchase_date_range_excludes_undated_assets():
    result = run("asset-inventory", {"dateFrom": "2023-01-01"})
    assert [row[0] for row in result.data.table_data] == ["a2"]


def test_empty_result():
    result = generate("asset-inventory", {}, lambda filters: [], now=NOW)
    assert result.data.table_data == []
    assert result.summary.total_records == 0
    assert result.summary.total_value == 0


def test_generate_is_deterministic():
    filters = {"status": ["active", "maintenance"]}
    assert run("financial-summary", filters) == run("financial-summary", filters)


def test_fetch_receives_filters():
    fetch_assets = MagicMock(return_value=[])
    generate("asset-inventory", {"status": ["active"]}, fetch_assets)
    fetch_assets.assert_called_once_with({"status": ["active"]})


def test_every_report_type_registered():
    assert {info.id for info in list_report_types()} == set(ReportType)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

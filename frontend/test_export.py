# frontend/test_export.py
# Unit tests for report export formats

import io
import json
import pytest
import sys
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch

import pandas as pd

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from frontend import export
from frontend.reports import generate

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
ASSETS = [
    {"id": "a1", "name": "Laptop", "category": "IT", "currentValue": 800},
    {"id": "a2", "name": "Desk", "category": "Furniture", "currentValue": 250},
]


def make_result(report_type="asset-inventory"):
    return generate(report_type, {}, lambda filters: ASSETS, now=NOW)


def test_dataframe_uses_headers():
    df = export.report_to_dataframe(make_result())
    assert list(df.columns)[:3] == ["Asset ID", "Name", "Category"]
    assert len(df) == 2


def test_csv_round_trips_rows():
    df = pd.read_csv(io.BytesIO(export.to_csv(make_result())))
    assert df["Name"].tolist() == ["Laptop", "Desk"]


def test_filename():
    assert export.export_filename(make_result("financial-summary"), "csv") == "financial-summary-2024-05-01.csv"


def test_json_export():
    data = json.loads(export.to_json(make_result()))
    assert data["report_type"] == "asset-inventory"
    assert data["summary"]["total_records"] == 2


def test_excel_skipped_without_openpyxl():
    with patch.object(export, "excel_available", return_value=False):
        assert export.to_excel(make_result()) is None


def test_excel_export():
    pytest.importorskip("openpyxl")
    sheets = pd.read_excel(io.BytesIO(export.to_excel(make_result())), sheet_name=None)
    assert set(sheets) == {"Report", "Summary"}
    assert len(sheets["Report"]) == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

"""
frontend/export.py

Download formats for a generated report.

CSV and JSON are always available. Excel needs the optional openpyxl engine;
without it `to_excel` returns None and the page hides the Excel button.
"""

from __future__ import annotations

import importlib.util
import io
import json
from typing import Optional

import pandas as pd

from frontend.config import ENABLE_VERBOSE_LOGGING
from frontend.models import ReportResult


def excel_available() -> bool:
    return importlib.util.find_spec("openpyxl") is not None


def report_to_dataframe(result: ReportResult) -> pd.DataFrame:
    """Table rows under their headers; chart-only reports export their series."""
    data = result.data
    if data.table_data:
        return pd.DataFrame(data.table_data, columns=data.headers)
    if data.chart_data:
        return pd.DataFrame([{"Name": p.name, "Value": p.value} for p in data.chart_data])
    return pd.DataFrame(columns=data.headers)


def export_filename(result: ReportResult, extension: str) -> str:
    stamp = result.generated_at.strftime("%Y-%m-%d")
    return f"{result.report_type.value}-{stamp}.{extension}"


def to_csv(result: ReportResult) -> bytes:
    return report_to_dataframe(result).to_csv(index=False).encode("utf-8")


def to_excel(result: ReportResult) -> Optional[bytes]:
    """
    Excel workbook with a data sheet and a summary sheet.

    Returns:
        Workbook bytes, or None when openpyxl is not installed
    """
    if not excel_available():
        if ENABLE_VERBOSE_LOGGING:
            print("[REPORTS] Excel export skipped: openpyxl not installed")
        return None

    summary = result.summary
    summary_df = pd.DataFrame(
        [
            ("Report", result.report_type.value),
            ("Generated", result.generated_at.isoformat()),
            ("Total Records", summary.total_records),
            ("Total Value", summary.total_value),
            ("Categories", ", ".join(summary.categories)),
        ],
        columns=["Field", "Value"],
    )
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        report_to_dataframe(result).to_excel(writer, sheet_name="Report", index=False)
        summary_df.to_excel(writer, sheet_name="Summary", index=False)
    return buffer.getvalue()


def to_json(result: ReportResult) -> str:
    return json.dumps(result.model_dump(mode="json"), indent=2)

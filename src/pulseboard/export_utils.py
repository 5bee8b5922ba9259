"""Excel workbook export of the daily and monthly series.

One sheet per series (X, LinkedIn, Combined; daily and monthly), plus the
dataset validation table. The workbook is a side output and never feeds back
into the pipeline.
"""
from __future__ import annotations

from datetime import date, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable, List, Tuple

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from .logging_utils import get_logger

if TYPE_CHECKING:  # pragma: no cover
    from .pipeline import DashboardData

LOGGER = get_logger("export")


def _safe_sheet_name(name: str) -> str:
    """Return a sheet-safe string (openpyxl constraints)."""
    sanitized = "".join(ch if ch not in '[]:*?/\\' else '_' for ch in str(name))
    return sanitized[:31] if sanitized else "Sheet"


def _cell_value(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.to_pydatetime()
    if isinstance(value, (datetime, date, str, bool, int, float)):
        return None if isinstance(value, float) and pd.isna(value) else value
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value.item() if hasattr(value, "item") else str(value)


def _write_sheet(ws, df: pd.DataFrame) -> None:
    if df is None or df.empty:
        ws.append(["No data available"])
        return
    ws.append([str(c) for c in df.columns])
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for row in df.itertuples(index=False, name=None):
        ws.append([_cell_value(v) for v in row])
    for idx, col in enumerate(df.columns, start=1):
        ws.column_dimensions[get_column_letter(idx)].width = max(12, min(40, len(str(col)) + 2))
    ws.freeze_panes = "A2"


def workbook_sheets(data: "DashboardData") -> List[Tuple[str, pd.DataFrame]]:
    sheets: List[Tuple[str, pd.DataFrame]] = []
    for name, platform in (("X", data.x), ("LinkedIn", data.linkedin), ("Combined", data.combined)):
        sheets.append((f"{name} daily", platform.daily))
        sheets.append((f"{name} monthly", platform.monthly))
    validation = pd.DataFrame([v.to_dict() for v in data.csv_validation])
    for col in ("missing_required", "missing_optional"):
        if col in validation.columns:
            validation[col] = validation[col].map(", ".join)
    sheets.append(("Validation", validation))
    return sheets


def write_workbook(sheets: Iterable[Tuple[str, pd.DataFrame]], output_path: str | Path) -> Path:
    out = Path(output_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    wb = Workbook()
    wb.remove(wb.active)
    for name, df in sheets:
        ws = wb.create_sheet(title=_safe_sheet_name(name))
        _write_sheet(ws, df)
    wb.save(out)
    LOGGER.info("Workbook written to %s", out)
    return out


def export_dashboard_workbook(data: "DashboardData", output_path: str | Path) -> Path:
    return write_workbook(workbook_sheets(data), output_path)

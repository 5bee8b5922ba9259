from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .aggregator import DataQualitySummary
from .logging_utils import get_logger
from .standards.schemas import ColumnGroup, DatasetSchema

LOGGER = get_logger("validation")

SOURCE_RAW = "raw"
SOURCE_SAMPLE = "sample"
SOURCE_MISSING = "missing"

STATUS_OK = "ok"
STATUS_PARTIAL = "partial"
STATUS_NEEDS_ATTENTION = "needs-attention"
STATUS_MISSING_FILE = "missing-file"


@dataclass(frozen=True)
class CsvValidation:
    id: str
    label: str
    file_path: str
    source: str
    row_count: int
    missing_required: List[str] = field(default_factory=list)
    missing_optional: List[str] = field(default_factory=list)

    @property
    def status(self) -> str:
        return derive_status(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "file_path": self.file_path,
            "source": self.source,
            "row_count": self.row_count,
            "missing_required": list(self.missing_required),
            "missing_optional": list(self.missing_optional),
            "status": self.status,
        }


def find_missing_groups(columns: Iterable[str], groups: Sequence[ColumnGroup]) -> List[str]:
    """Labels of groups none of whose aliases appear in ``columns`` (case-insensitive)."""

    present = {str(c).strip().lower() for c in columns}
    return [g.label for g in groups if all(f.lower() not in present for f in g.fields)]


def describe_path(file_path: Optional[str]) -> str:
    """Path relative to the working directory when possible, else as given."""

    if not file_path:
        return "n/a"
    try:
        return os.path.relpath(file_path)
    except ValueError:
        # different drive on Windows
        return str(file_path)


def build_csv_validation(
    schema: DatasetSchema,
    columns: Iterable[str],
    row_count: int,
    source: str,
    file_path: Optional[str] = None,
) -> CsvValidation:
    cols = list(columns)
    validation = CsvValidation(
        id=schema.id,
        label=schema.label,
        file_path=describe_path(file_path),
        source=source,
        row_count=int(row_count),
        missing_required=find_missing_groups(cols, schema.required),
        missing_optional=find_missing_groups(cols, schema.optional),
    )
    if validation.missing_required and source != SOURCE_MISSING:
        LOGGER.warning("%s is missing required columns: %s", schema.id, ", ".join(validation.missing_required))
    return validation


def derive_status(validation: CsvValidation) -> str:
    """missing-file > needs-attention > partial > ok."""

    if validation.source == SOURCE_MISSING:
        return STATUS_MISSING_FILE
    if validation.missing_required:
        return STATUS_NEEDS_ATTENTION
    if validation.missing_optional:
        return STATUS_PARTIAL
    return STATUS_OK


def _quality_dict(summary: DataQualitySummary) -> Dict[str, Any]:
    cov = summary.coverage
    return {
        "label": summary.label,
        "start": cov.start.isoformat() if cov.start else None,
        "end": cov.end.isoformat() if cov.end else None,
        "observed_days": cov.days,
        "expected_days": summary.expected_days,
        "missing_days": summary.missing_days,
        "zero_view_days": summary.zero_view_days,
    }


def build_report(
    validations: Sequence[CsvValidation],
    data_quality: Sequence[DataQualitySummary] = (),
    using_sample_data: bool = False,
) -> Dict[str, Any]:
    statuses: Dict[str, int] = {}
    for v in validations:
        statuses[v.status] = statuses.get(v.status, 0) + 1
    return {
        "summary": {
            "datasets": len(validations),
            "total_rows": int(sum(v.row_count for v in validations)),
            "status_counts": statuses,
            "using_sample_data": bool(using_sample_data),
        },
        "datasets": [v.to_dict() for v in validations],
        "data_quality": [_quality_dict(q) for q in data_quality],
    }


def write_report(report: Dict[str, Any], output_path: str | Path) -> Path:
    out = Path(output_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", encoding="utf-8") as f:
        json.dump(report, f, indent=2)
    return out

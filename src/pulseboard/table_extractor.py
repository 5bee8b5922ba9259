"""Header-row detection for noisy spreadsheet exports.

Platform exports often carry a title block, export notes or blank lines above
the real table. :func:`extract_table` scans the parsed grid for the first row
that contains the expected header label and builds records from the rows
below it.
"""
from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

import pandas as pd

from .logging_utils import get_logger

LOGGER = get_logger("extract")


@dataclass
class ExtractedTable:
    """Column names plus string-valued records found below the header row."""

    columns: List[str] = field(default_factory=list)
    frame: pd.DataFrame = field(default_factory=pd.DataFrame)

    @property
    def row_count(self) -> int:
        return int(len(self.frame))

    @property
    def empty(self) -> bool:
        return not self.columns

    @property
    def records(self) -> List[Dict[str, str]]:
        return self.frame.to_dict(orient="records")


def _parse_grid(text: str, delimiter: str) -> List[List[str]]:
    reader = csv.reader(io.StringIO(text), delimiter=delimiter)
    return [row for row in reader]


def _is_blank(row: Iterable[str]) -> bool:
    return all(str(cell).strip() == "" for cell in row)


def _unique_columns(headers: List[str]) -> List[str]:
    seen: List[str] = []
    for h in headers:
        if h not in seen:
            seen.append(h)
    return seen


def extract_table(text: str | None, header_label: str, delimiter: str = ",") -> ExtractedTable:
    """Locate the header row labelled ``header_label`` and return its table.

    - Matching is trimmed and case-insensitive on any cell of a row.
    - Rows after the header that are entirely blank are skipped.
    - Cells beyond the header width are ignored; missing cells become "".
    - When a header name repeats, the right-most cell wins.

    Never raises: unparseable text or a missing header yields an empty table.
    """

    if not text:
        return ExtractedTable()
    # csv.Error covers malformed quoting; the rest guard odd inputs
    try:
        grid = _parse_grid(text.lstrip("\ufeff"), delimiter)
    except (csv.Error, ValueError, TypeError) as exc:
        LOGGER.warning("Could not parse delimited text: %s", exc)
        return ExtractedTable()

    target = header_label.strip().lower()
    header_idx = next(
        (i for i, row in enumerate(grid) if any(str(cell).strip().lower() == target for cell in row)),
        None,
    )
    if header_idx is None:
        LOGGER.warning("Header row '%s' not found; treating dataset as empty", header_label)
        return ExtractedTable()

    headers = [str(cell).strip() for cell in grid[header_idx]]
    records: List[Dict[str, str]] = []
    for row in grid[header_idx + 1:]:
        if _is_blank(row):
            continue
        record: Dict[str, str] = {}
        for i, name in enumerate(headers):
            record[name] = row[i] if i < len(row) else ""
        records.append(record)

    columns = _unique_columns(headers)
    frame = pd.DataFrame.from_records(records, columns=columns)
    if not frame.empty:
        frame = frame.astype(object).fillna("")
    return ExtractedTable(columns=columns, frame=frame)


def concat_tables(tables: Iterable[ExtractedTable]) -> ExtractedTable:
    """Union several extracted tables of one dataset (e.g. monthly exports).

    Columns keep their order of first appearance; cells a table does not
    carry are filled with "".
    """

    non_empty = [t for t in tables if not t.empty]
    if not non_empty:
        return ExtractedTable()
    columns: List[str] = []
    for t in non_empty:
        for c in t.columns:
            if c not in columns:
                columns.append(c)
    frames = [t.frame.reindex(columns=columns) for t in non_empty]
    frame = pd.concat(frames, ignore_index=True).astype(object).fillna("")
    return ExtractedTable(columns=columns, frame=frame)

"""Cell-level coercion: numbers, rates, dates and column aliases.

Every function here is pure and never raises on bad input. Value defects are
coerced (0 for counters, ``None`` for rates and dates) so that one broken cell
cannot take down a whole export.
"""
from __future__ import annotations

import html
import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Sequence

import numpy as np
import pandas as pd


EXCEL_EPOCH = pd.Timestamp(1899, 12, 30)
MS_PER_DAY = 24 * 60 * 60 * 1000
TITLE_MAX_CHARS = 140

_SERIAL_RX = re.compile(r"^\d+(?:\.\d+)?$")
_SLASH_DATE_RX = re.compile(
    r"^(\d{1,2})/(\d{1,2})/(\d{2,4})"
    r"(?:\s+(\d{1,2}):(\d{1,2})(?::\d{1,2})?(?:\s*([AaPp][Mm]))?)?$"
)
_WS_RX = re.compile(r"\s+")


class DateStrategy(str, Enum):
    """Date parsing strategy, chosen per dataset."""

    GENERIC = "generic"
    LINKEDIN = "linkedin"
    POST_TIMESTAMP = "post_timestamp"


@dataclass(frozen=True)
class ParsedDateTime:
    value: pd.Timestamp
    time_known: bool

    @property
    def day(self) -> Optional[pd.Timestamp]:
        return to_calendar_day(self.value)


# ============================================================
# Numbers and rates
# ============================================================

def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def to_number(value: Any) -> float:
    """Coerce a counter cell to float: blanks, junk and non-finite become 0."""

    if _is_missing(value):
        return 0.0
    if isinstance(value, (int, float, np.number)) and not isinstance(value, bool):
        num = float(value)
    else:
        try:
            num = float(str(value).replace(",", "").strip())
        except ValueError:
            return 0.0
    return num if math.isfinite(num) else 0.0


def parse_rate(value: Any) -> Optional[float]:
    """Parse a rate cell as a plain decimal; blank or invalid gives ``None``."""

    if _is_missing(value):
        return None
    try:
        num = float(str(value).strip())
    except ValueError:
        return None
    return num if math.isfinite(num) else None


def engagement_rate(impressions: float, likes: float, secondary: float, reposts: float) -> Optional[float]:
    """``(likes + secondary + reposts) / impressions``; ``None`` without impressions."""

    if not impressions or impressions <= 0:
        return None
    return (likes + secondary + reposts) / impressions


# ============================================================
# Dates
# ============================================================

def _to_naive_utc(ts: pd.Timestamp) -> pd.Timestamp:
    if ts.tzinfo is not None:
        return ts.tz_convert("UTC").tz_localize(None)
    return ts


def to_calendar_day(value: Any) -> Optional[pd.Timestamp]:
    """Normalize any date-like value to a tz-naive UTC midnight Timestamp.

    This is the only place day boundaries are decided; every day key in the
    pipeline goes through it.
    """

    if value is None:
        return None
    try:
        ts = pd.Timestamp(value)
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(ts):
        return None
    return _to_naive_utc(ts).normalize()


def _parse_timestamp(raw: Any) -> Optional[pd.Timestamp]:
    if isinstance(raw, (pd.Timestamp, datetime, date)):
        ts = pd.Timestamp(raw)
    else:
        text = str(raw).strip()
        if not text:
            return None
        try:
            ts = pd.to_datetime(text, errors="coerce")
        except (ValueError, TypeError, OverflowError):
            return None
    if ts is None or pd.isna(ts):
        return None
    return _to_naive_utc(ts)


def parse_generic_date(raw: Any) -> Optional[pd.Timestamp]:
    """Locale-agnostic parse truncated to the calendar day (X daily exports)."""

    if _is_missing(raw):
        return None
    ts = _parse_timestamp(raw)
    return to_calendar_day(ts) if ts is not None else None


def parse_post_timestamp(raw: Any) -> Optional[pd.Timestamp]:
    """Parse a post creation timestamp keeping its time of day (X posts)."""

    if _is_missing(raw):
        return None
    return _parse_timestamp(raw)


def from_spreadsheet_serial(serial: float) -> Optional[pd.Timestamp]:
    """Convert a spreadsheet serial (days since 1899-12-30) to a Timestamp."""

    if not math.isfinite(serial):
        return None
    try:
        return EXCEL_EPOCH + pd.Timedelta(milliseconds=round(serial * MS_PER_DAY))
    except (ValueError, OverflowError):
        return None


def _serial_result(serial: float) -> Optional[ParsedDateTime]:
    ts = from_spreadsheet_serial(serial)
    if ts is None:
        return None
    return ParsedDateTime(ts, time_known=serial != math.floor(serial))


def _slash_date(match: re.Match, date_order: str) -> Optional[ParsedDateTime]:
    p1, p2, p3 = (int(match.group(i)) for i in (1, 2, 3))
    month, day = (p1, p2) if date_order == "MDY" else (p2, p1)
    year = p3 + 2000 if len(match.group(3)) == 2 else p3
    hour = minute = 0
    time_known = match.group(4) is not None
    if time_known:
        hour, minute = int(match.group(4)), int(match.group(5))
        ampm = (match.group(6) or "").upper()
        if ampm == "PM" and hour < 12:
            hour += 12
        if ampm == "AM" and hour == 12:
            hour = 0
    try:
        return ParsedDateTime(pd.Timestamp(year, month, day, hour, minute), time_known)
    except ValueError:
        return None


def parse_linkedin_datetime(raw: Any, date_order: str = "MDY") -> Optional[ParsedDateTime]:
    """Parse a LinkedIn date cell, keeping the time of day when present.

    Accepted forms, in order:
      1) spreadsheet serial number (numeric value or numeric string)
      2) ``M/D/Y[ H:MM[ AM|PM]]`` under ``date_order`` (``MDY`` or ``DMY``)
      3) anything else :func:`pandas.to_datetime` understands
    """

    if _is_missing(raw):
        return None
    if isinstance(raw, (pd.Timestamp, datetime)):
        ts = _to_naive_utc(pd.Timestamp(raw))
        return ParsedDateTime(ts, time_known=ts != ts.normalize())
    if isinstance(raw, (int, float, np.number)) and not isinstance(raw, bool):
        return _serial_result(float(raw))

    text = str(raw).strip()
    if _SERIAL_RX.match(text):
        return _serial_result(float(text))

    match = _SLASH_DATE_RX.match(text)
    if match:
        parsed = _slash_date(match, date_order)
        if parsed is not None:
            return parsed

    ts = _parse_timestamp(text)
    if ts is None:
        return None
    return ParsedDateTime(ts, time_known=":" in text)


def parse_date(raw: Any, strategy: DateStrategy, date_order: str = "MDY") -> Optional[ParsedDateTime]:
    """Dispatch to the parser for ``strategy``."""

    if strategy is DateStrategy.LINKEDIN:
        return parse_linkedin_datetime(raw, date_order)
    if strategy is DateStrategy.POST_TIMESTAMP:
        ts = parse_post_timestamp(raw)
        return ParsedDateTime(ts, time_known=":" in str(raw)) if ts is not None else None
    day = parse_generic_date(raw)
    return ParsedDateTime(day, time_known=False) if day is not None else None


def parse_day(raw: Any, strategy: DateStrategy, date_order: str = "MDY") -> Optional[pd.Timestamp]:
    parsed = parse_date(raw, strategy, date_order)
    return parsed.day if parsed is not None else None


# ============================================================
# Column aliases
# ============================================================

def resolve_column(columns: Iterable[str], aliases: Sequence[str]) -> Optional[str]:
    """Return the first column matching ``aliases`` in priority order.

    Exact names are tried first; only when none matches is a case-insensitive
    pass made, for slightly different exports.
    """

    cols = list(columns)
    for alias in aliases:
        if alias in cols:
            return alias
    lowered = {}
    for c in cols:
        lowered.setdefault(str(c).lower(), c)
    for alias in aliases:
        hit = lowered.get(alias.lower())
        if hit is not None:
            return hit
    return None


def pick_field(row: Mapping[str, Any], aliases: Sequence[str]) -> Any:
    """Return the value of the first alias present in ``row``, else ""."""

    name = resolve_column(row.keys(), aliases)
    return row[name] if name is not None else ""


def column_values(frame: pd.DataFrame, aliases: Sequence[str]) -> pd.Series:
    """Raw values of the first matching column, or a Series of "" if absent."""

    name = resolve_column(frame.columns, aliases)
    if name is None:
        return pd.Series([""] * len(frame), index=frame.index, dtype=object)
    return frame[name]


def numeric_column(frame: pd.DataFrame, aliases: Sequence[str]) -> pd.Series:
    return column_values(frame, aliases).map(to_number).astype("float64")


def text_column(frame: pd.DataFrame, aliases: Sequence[str]) -> pd.Series:
    return column_values(frame, aliases).map(lambda v: "" if _is_missing(v) else str(v).strip())


# ============================================================
# Text
# ============================================================

def sanitize_title(text: Any) -> str:
    """Collapse whitespace and cap to a display-friendly length."""
    if _is_missing(text):
        return ""
    return _WS_RX.sub(" ", str(text))[:TITLE_MAX_CHARS]


def decode_html_entities(text: Any) -> str:
    if _is_missing(text):
        return ""
    return html.unescape(str(text))


def normalize_text_key(text: Any) -> str:
    """Case- and whitespace-insensitive key used for post identity."""
    if _is_missing(text):
        return ""
    return _WS_RX.sub(" ", str(text)).strip().lower()

"""Month roll-ups, totals, coverage and data-quality summaries."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Sequence

import pandas as pd

from .logging_utils import get_logger
from .merge_engine import merge_daily_metrics
from .standards.schemas import COUNTER_COLUMNS, MONTH_COLUMNS, empty_daily_frame
from .field_normalizer import to_calendar_day

LOGGER = get_logger("aggregate")

DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
ENGAGEMENT_MIX_FIELDS = (("Likes", "likes"), ("Comments", "comments"), ("Reposts", "reposts"))


@dataclass(frozen=True)
class Coverage:
    start: Optional[date] = None
    end: Optional[date] = None
    days: int = 0


@dataclass(frozen=True)
class DataQualitySummary:
    label: str
    coverage: Coverage
    expected_days: Optional[int]
    missing_days: Optional[int]
    zero_view_days: int


@dataclass(frozen=True)
class MonthOverMonth:
    deltas: Dict[str, Optional[float]]
    last_label: Optional[str] = None
    previous_label: Optional[str] = None


@dataclass
class PlatformData:
    daily: pd.DataFrame
    monthly: pd.DataFrame
    totals: Dict[str, float]
    coverage: Coverage = field(default_factory=Coverage)


def empty_month_frame() -> pd.DataFrame:
    frame = pd.DataFrame({c: pd.Series(dtype="float64") for c in COUNTER_COLUMNS})
    frame.insert(0, "label", pd.Series(dtype="object"))
    frame.insert(0, "month_key", pd.Series(dtype="object"))
    frame["days"] = pd.Series(dtype="int64")
    return frame[MONTH_COLUMNS]


def format_month_label(month_key: str) -> str:
    """``"2026-01"`` -> ``"Jan 2026"``; unparseable keys are returned as-is."""

    try:
        return pd.Timestamp(f"{month_key}-01").strftime("%b %Y")
    except (ValueError, TypeError):
        return month_key


def aggregate_by_month(daily: pd.DataFrame) -> pd.DataFrame:
    """Sum every counter per calendar month.

    ``days`` counts distinct calendar days, so a month never reports more days
    than it has even when the series holds rows for both platforms.
    """

    if daily is None or daily.empty:
        return empty_month_frame()
    df = daily.copy()
    df["month_key"] = pd.to_datetime(df["day"]).dt.strftime("%Y-%m")
    grouped = df.groupby("month_key", sort=True)
    monthly = grouped[COUNTER_COLUMNS].sum()
    monthly["days"] = grouped["day"].nunique().astype("int64")
    monthly = monthly.reset_index()
    monthly["label"] = monthly["month_key"].map(format_month_label)
    return monthly[MONTH_COLUMNS]


def summarize_totals(monthly: pd.DataFrame) -> Dict[str, float]:
    """Field-wise sum over all months as a ``Total`` row."""

    totals: Dict[str, float] = {"month_key": "total", "label": "Total"}
    for c in COUNTER_COLUMNS:
        totals[c] = float(monthly[c].sum()) if monthly is not None and not monthly.empty else 0.0
    totals["days"] = int(monthly["days"].sum()) if monthly is not None and not monthly.empty else 0
    return totals


def build_coverage(daily: pd.DataFrame) -> Coverage:
    if daily is None or daily.empty:
        return Coverage()
    days = pd.to_datetime(daily["day"])
    return Coverage(start=days.min().date(), end=days.max().date(), days=int(days.nunique()))


def build_data_quality(label: str, daily: pd.DataFrame) -> DataQualitySummary:
    """Coverage plus the gap between observed and expected days.

    Zero-view days are calendar days whose summed ``views`` is exactly 0:
    usually an empty reporting day rather than an error. Like coverage, they
    count distinct days, so they never exceed the observed days.
    """

    coverage = build_coverage(daily)
    if coverage.start is None or coverage.end is None:
        return DataQualitySummary(label, coverage, None, None, 0)
    expected = (coverage.end - coverage.start).days + 1
    missing = max(expected - coverage.days, 0)
    views_per_day = daily.groupby(pd.to_datetime(daily["day"]))["views"].sum()
    zero_view_days = int((views_per_day == 0).sum())
    if missing:
        LOGGER.info("%s: %d of %d days missing between %s and %s", label, missing, expected, coverage.start, coverage.end)
    return DataQualitySummary(label, coverage, expected, missing, zero_view_days)


def percent_delta(current: float, previous: float) -> Optional[float]:
    if not previous:
        return None
    return (current - previous) / previous


def month_over_month(monthly: pd.DataFrame, fields: Sequence[str] = COUNTER_COLUMNS) -> MonthOverMonth:
    """Percent change between the last two months for each field."""

    if monthly is None or monthly.empty:
        return MonthOverMonth(deltas={f: None for f in fields})
    ordered = monthly.sort_values("month_key")
    if len(ordered) < 2:
        return MonthOverMonth(deltas={f: None for f in fields}, last_label=ordered.iloc[-1]["label"])
    previous, current = ordered.iloc[-2], ordered.iloc[-1]
    deltas = {f: percent_delta(float(current[f]), float(previous[f])) for f in fields}
    return MonthOverMonth(deltas=deltas, last_label=current["label"], previous_label=previous["label"])


def build_platform_data(daily: pd.DataFrame) -> PlatformData:
    merged = merge_daily_metrics(daily)
    monthly = aggregate_by_month(merged)
    return PlatformData(
        daily=merged,
        monthly=monthly,
        totals=summarize_totals(monthly),
        coverage=build_coverage(merged),
    )


def build_engagement_mix(totals: Dict[str, float]) -> List[Dict[str, object]]:
    """Likes / comments / reposts totals; zero entries are dropped."""

    mix = [{"label": label, "value": float(totals.get(key, 0.0))} for label, key in ENGAGEMENT_MIX_FIELDS]
    return [item for item in mix if item["value"] > 0]


def build_day_of_week_summary(daily: pd.DataFrame) -> pd.DataFrame:
    """Views per weekday (Sun..Sat), summing platforms per calendar day first."""

    summary = pd.DataFrame({"day": DAY_NAMES, "total_views": 0.0, "days": 0, "average_views": 0.0})
    if daily is None or daily.empty:
        return summary
    per_day = daily.groupby(pd.to_datetime(daily["day"]))["views"].sum()
    # pandas weekday is Mon=0; shift to Sun=0
    weekday = ((per_day.index.dayofweek + 1) % 7).to_numpy()
    by_weekday = per_day.groupby(weekday).agg(["sum", "count"])
    summary["total_views"] = by_weekday["sum"].reindex(range(7), fill_value=0.0).to_numpy(dtype=float)
    summary["days"] = by_weekday["count"].reindex(range(7), fill_value=0).to_numpy(dtype=int)
    summary["average_views"] = [
        total / days if days else 0.0 for total, days in zip(summary["total_views"], summary["days"])
    ]
    return summary


def filter_date_range(daily: pd.DataFrame, start=None, end=None) -> pd.DataFrame:
    """Rows whose day falls inside ``[start, end]``; open ends are unbounded."""

    if daily is None or daily.empty:
        return empty_daily_frame()
    days = pd.to_datetime(daily["day"])
    mask = pd.Series(True, index=daily.index)
    start_day, end_day = to_calendar_day(start), to_calendar_day(end)
    if start_day is not None:
        mask &= days >= start_day
    if end_day is not None:
        mask &= days <= end_day
    return daily.loc[mask].reset_index(drop=True)

"""Unit tests for month roll-ups, coverage and data quality."""
import sys
from datetime import date
from pathlib import Path

import pandas as pd
import pytest

sys.path.append(str(Path(__file__).resolve().parents[2] / "src"))

from pulseboard.aggregator import (
    aggregate_by_month,
    build_coverage,
    build_data_quality,
    build_day_of_week_summary,
    build_engagement_mix,
    build_platform_data,
    filter_date_range,
    format_month_label,
    month_over_month,
    summarize_totals,
)
from pulseboard.standards.schemas import COUNTER_COLUMNS, ensure_daily_columns


def _daily(rows):
    return ensure_daily_columns(pd.DataFrame(rows))


@pytest.fixture
def two_months():
    return _daily(
        [
            {"platform": "x", "day": "2026-01-01", "views": 100, "likes": 5, "posts": 1},
            {"platform": "x", "day": "2026-01-15", "views": 50, "likes": 1, "posts": 2},
            {"platform": "linkedin", "day": "2026-01-15", "views": 30, "comments": 4},
            {"platform": "x", "day": "2026-02-03", "views": 150, "likes": 0, "posts": 1},
        ]
    )


def test_month_sums_match_daily_sums(two_months):
    monthly = aggregate_by_month(two_months)
    assert monthly["month_key"].tolist() == ["2026-01", "2026-02"]
    keys = pd.to_datetime(two_months["day"]).dt.strftime("%Y-%m")
    for _, month in monthly.iterrows():
        rows = two_months[keys == month["month_key"]]
        for field in COUNTER_COLUMNS:
            assert month[field] == pytest.approx(rows[field].sum())


def test_month_days_count_distinct_days(two_months):
    monthly = aggregate_by_month(two_months)
    assert monthly["days"].tolist() == [2, 1]
    assert monthly["label"].tolist() == ["Jan 2026", "Feb 2026"]


def test_totals_row(two_months):
    totals = summarize_totals(aggregate_by_month(two_months))
    assert totals["month_key"] == "total"
    assert totals["label"] == "Total"
    assert totals["views"] == 330
    assert totals["posts"] == 4


def test_format_month_label():
    assert format_month_label("2026-01") == "Jan 2026"


def test_coverage_with_one_missing_day():
    days = [d for d in pd.date_range("2026-03-01", "2026-03-10") if d.day != 5]
    daily = _daily([{"platform": "x", "day": d, "views": 1} for d in days])
    quality = build_data_quality("X", daily)
    assert quality.coverage.start == date(2026, 3, 1)
    assert quality.coverage.end == date(2026, 3, 10)
    assert quality.coverage.days == 9
    assert quality.expected_days == 10
    assert quality.missing_days == 1


def test_empty_series_has_no_coverage():
    empty = ensure_daily_columns(pd.DataFrame())
    coverage = build_coverage(empty)
    assert coverage.start is None and coverage.end is None and coverage.days == 0
    quality = build_data_quality("LinkedIn", empty)
    assert quality.expected_days is None
    assert quality.missing_days is None
    assert quality.zero_view_days == 0


def test_zero_view_days_are_counted():
    daily = _daily(
        [
            {"platform": "x", "day": "2026-01-01", "views": 0},
            {"platform": "x", "day": "2026-01-02", "views": 3},
        ]
    )
    assert build_data_quality("X", daily).zero_view_days == 1


def test_zero_view_days_count_calendar_days_across_platforms():
    daily = _daily(
        [
            {"platform": "x", "day": "2026-01-01", "views": 0},
            {"platform": "linkedin", "day": "2026-01-01", "views": 0},
            {"platform": "x", "day": "2026-01-02", "views": 0},
            {"platform": "linkedin", "day": "2026-01-02", "views": 4},
        ]
    )
    quality = build_data_quality("Combined", daily)
    assert quality.coverage.days == 2
    assert quality.zero_view_days == 1


def test_month_over_month_single_month_is_all_null():
    monthly = aggregate_by_month(_daily([{"platform": "x", "day": "2026-01-01", "views": 10}]))
    mom = month_over_month(monthly)
    assert all(v is None for v in mom.deltas.values())
    assert set(mom.deltas) == set(COUNTER_COLUMNS)
    assert mom.last_label == "Jan 2026"
    assert mom.previous_label is None


def test_month_over_month_deltas_and_zero_previous():
    monthly = aggregate_by_month(
        _daily(
            [
                {"platform": "x", "day": "2026-01-01", "views": 100, "likes": 0},
                {"platform": "x", "day": "2026-02-01", "views": 150, "likes": 7},
            ]
        )
    )
    mom = month_over_month(monthly)
    assert mom.deltas["views"] == pytest.approx(0.5)
    assert mom.deltas["likes"] is None
    assert mom.last_label == "Feb 2026"
    assert mom.previous_label == "Jan 2026"


def test_engagement_mix_drops_zero_entries():
    mix = build_engagement_mix({"likes": 5.0, "comments": 0.0, "reposts": 2.0})
    assert mix == [{"label": "Likes", "value": 5.0}, {"label": "Reposts", "value": 2.0}]


def test_day_of_week_sums_platforms_per_day_first():
    # 2026-01-04 and 2026-01-11 are Sundays
    daily = _daily(
        [
            {"platform": "x", "day": "2026-01-04", "views": 10},
            {"platform": "linkedin", "day": "2026-01-04", "views": 20},
            {"platform": "x", "day": "2026-01-11", "views": 10},
            {"platform": "x", "day": "2026-01-05", "views": 7},
        ]
    )
    summary = build_day_of_week_summary(daily).set_index("day")
    assert list(summary.index) == ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
    assert summary.loc["Sun", "total_views"] == 40
    assert summary.loc["Sun", "days"] == 2
    assert summary.loc["Sun", "average_views"] == pytest.approx(20.0)
    assert summary.loc["Mon", "total_views"] == 7
    assert summary.loc["Tue", "days"] == 0
    assert summary.loc["Tue", "average_views"] == 0


def test_filter_date_range_is_inclusive(two_months):
    window = filter_date_range(two_months, "2026-01-15", "2026-02-03")
    assert len(window) == 3
    assert len(filter_date_range(two_months, start="2026-02-01")) == 1
    assert len(filter_date_range(two_months)) == 4


def test_build_platform_data(two_months):
    data = build_platform_data(two_months)
    assert len(data.daily) == 4
    assert data.monthly["month_key"].tolist() == ["2026-01", "2026-02"]
    assert data.totals["views"] == 330
    assert data.coverage.days == 3

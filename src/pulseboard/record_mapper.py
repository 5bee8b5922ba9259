"""Map extracted export rows into canonical daily metric frames."""
from __future__ import annotations

from typing import Mapping, Union

import numpy as np
import pandas as pd

from .field_normalizer import column_values, numeric_column, parse_day
from .logging_utils import get_logger
from .standards import schemas as sc
from .standards.schemas import (
    LINKEDIN_DAILY,
    PLATFORM_LINKEDIN,
    PLATFORM_X,
    X_DAILY,
    X_VIDEO_OVERVIEW,
    empty_daily_frame,
    ensure_daily_columns,
)
from .table_extractor import ExtractedTable

LOGGER = get_logger("mapper")

VIDEO_COLUMNS = ["views", "watch_time_ms", "completion_rate"]

PostsByDay = Union[pd.Series, Mapping[pd.Timestamp, int]]


def empty_video_overview() -> pd.DataFrame:
    frame = pd.DataFrame({c: pd.Series(dtype="float64") for c in VIDEO_COLUMNS})
    frame.index = pd.DatetimeIndex([], name="day")
    return frame


def _parsed_days(frame: pd.DataFrame, aliases, strategy, date_order: str = "MDY") -> pd.Series:
    return column_values(frame, aliases).map(lambda v: parse_day(v, strategy, date_order))


def _log_dropped(dataset: str, total: int, kept: int) -> None:
    if kept < total:
        LOGGER.info("%s: dropped %d of %d rows without a parseable date", dataset, total - kept, total)


def build_video_overview(table: ExtractedTable) -> pd.DataFrame:
    """Per-day video watch stats from the X video overview export.

    Returns a frame indexed by ``day`` with ``views``, ``watch_time_ms`` and
    ``completion_rate`` (fraction, the export reports percent). When a day
    appears more than once the row with more views wins, then the one with
    more watch time.
    """

    if table.empty or table.row_count == 0:
        return empty_video_overview()
    frame = table.frame
    days = _parsed_days(frame, sc.VIDEO_DATE, X_VIDEO_OVERVIEW.date_strategy)
    out = pd.DataFrame(
        {
            "day": days,
            "views": numeric_column(frame, sc.VIDEO_VIEWS),
            "watch_time_ms": numeric_column(frame, sc.VIDEO_WATCH_TIME),
            "completion_rate": numeric_column(frame, sc.VIDEO_COMPLETION_RATE) / 100.0,
        }
    )
    out = out[out["day"].notna()].copy()
    _log_dropped(X_VIDEO_OVERVIEW.id, table.row_count, len(out))
    if out.empty:
        return empty_video_overview()
    out["day"] = pd.to_datetime(out["day"])
    out = (
        out.sort_values(["day", "views", "watch_time_ms"], ascending=[True, False, False], kind="mergesort")
        .drop_duplicates(subset=["day"], keep="first")
        .set_index("day")
    )
    return out[VIDEO_COLUMNS]


def map_x_daily(table: ExtractedTable, video_overview: pd.DataFrame | None = None) -> pd.DataFrame:
    """Canonical daily rows from an X account analytics export.

    ``video_views`` prefers the export's own column and falls back to the
    overview's views for the same day; watch views, watch time and the
    view-weighted completion sum come from the overview only.
    """

    if table.empty or table.row_count == 0:
        return empty_daily_frame()
    frame = table.frame
    days = _parsed_days(frame, sc.X_DATE, X_DAILY.date_strategy)
    keep = days.notna()
    _log_dropped(X_DAILY.id, table.row_count, int(keep.sum()))
    if not keep.any():
        return empty_daily_frame()
    frame = frame.loc[keep]
    day_index = pd.DatetimeIndex(pd.to_datetime(days[keep]))

    overview = video_overview if video_overview is not None else empty_video_overview()
    video = overview.reindex(day_index)
    watch_views = video["views"].fillna(0.0).to_numpy()
    watch_time = video["watch_time_ms"].fillna(0.0).to_numpy()
    completion = video["completion_rate"].fillna(0.0).to_numpy()

    shares = numeric_column(frame, sc.X_SHARES).to_numpy()
    base_video_views = numeric_column(frame, sc.X_VIDEO_VIEWS).to_numpy()

    out = pd.DataFrame(
        {
            "platform": PLATFORM_X,
            "day": day_index.to_numpy(),
            "views": numeric_column(frame, sc.X_IMPRESSIONS).to_numpy(),
            "likes": numeric_column(frame, sc.X_LIKES).to_numpy(),
            "comments": numeric_column(frame, sc.X_REPLIES).to_numpy(),
            "reposts": numeric_column(frame, sc.X_REPOSTS).to_numpy() + shares,
            "clicks": 0.0,
            "shares": shares,
            "bookmarks": numeric_column(frame, sc.X_BOOKMARKS).to_numpy(),
            "profile_visits": numeric_column(frame, sc.X_PROFILE_VISITS).to_numpy(),
            "engagements": numeric_column(frame, sc.X_ENGAGEMENTS).to_numpy(),
            "video_views": np.where(base_video_views != 0, base_video_views, watch_views),
            "video_watch_views": watch_views,
            "video_watch_time_ms": watch_time,
            "video_completion_rate_sum": completion * watch_views,
            "posts": numeric_column(frame, sc.X_CREATE_POST).to_numpy(),
            "new_follows": numeric_column(frame, sc.X_NEW_FOLLOWS).to_numpy(),
            "unfollows": numeric_column(frame, sc.X_UNFOLLOWS).to_numpy(),
        }
    )
    return ensure_daily_columns(out)


def map_linkedin_daily(
    table: ExtractedTable,
    posts_by_day: PostsByDay | None = None,
    date_order: str = "MDY",
) -> pd.DataFrame:
    """Canonical daily rows from a LinkedIn metrics export.

    LinkedIn's metrics file carries no post count; ``posts`` is looked up in
    ``posts_by_day`` (built from the deduplicated post export).
    """

    if table.empty or table.row_count == 0:
        return empty_daily_frame()
    frame = table.frame
    days = _parsed_days(frame, sc.LI_DATE, LINKEDIN_DAILY.date_strategy, date_order)
    keep = days.notna()
    _log_dropped(LINKEDIN_DAILY.id, table.row_count, int(keep.sum()))
    if not keep.any():
        return empty_daily_frame()
    frame = frame.loc[keep]
    day_series = pd.Series(pd.to_datetime(days[keep]).to_numpy())

    lookup = pd.Series(posts_by_day if posts_by_day is not None else {}, dtype="float64")
    posts = day_series.map(lookup).fillna(0.0).to_numpy()

    out = pd.DataFrame(
        {
            "platform": PLATFORM_LINKEDIN,
            "day": day_series.to_numpy(),
            "views": numeric_column(frame, sc.LI_IMPRESSIONS).to_numpy(),
            "likes": numeric_column(frame, sc.LI_REACTIONS).to_numpy(),
            "comments": numeric_column(frame, sc.LI_COMMENTS).to_numpy(),
            "reposts": numeric_column(frame, sc.LI_REPOSTS).to_numpy(),
            "clicks": numeric_column(frame, sc.LI_CLICKS).to_numpy(),
            "posts": posts,
        }
    )
    return ensure_daily_columns(out)

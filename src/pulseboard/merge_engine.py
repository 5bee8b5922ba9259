"""Reconcile overlapping exports into one row per (platform, day)."""
from __future__ import annotations

import pandas as pd

from .logging_utils import get_logger
from .standards.schemas import COUNTER_COLUMNS, ensure_daily_columns, empty_daily_frame

LOGGER = get_logger("merge")


def check_negative(df: pd.DataFrame) -> pd.Series:
    """Flag rows where any counter is negative."""

    cols = [c for c in COUNTER_COLUMNS if c in df.columns]
    if not cols or df.empty:
        return pd.Series(False, index=df.index)
    return (df[cols] < 0).any(axis=1)


def merge_daily_metrics(frame: pd.DataFrame | None) -> pd.DataFrame:
    """Collapse duplicate (platform, day) rows, taking each counter's maximum.

    Overlapping monthly exports repeat days, sometimes with revised numbers.
    Summing would double count, so the larger reported value wins field by
    field. Negative counters are clipped to 0. Output is sorted by day then
    platform, and merging an already merged frame returns it unchanged.
    """

    if frame is None or frame.empty:
        return empty_daily_frame()
    df = ensure_daily_columns(frame)
    negatives = int(check_negative(df).sum())
    if negatives:
        LOGGER.warning("Clipped negative counters to 0 on %d rows", negatives)
    df[COUNTER_COLUMNS] = df[COUNTER_COLUMNS].clip(lower=0.0)

    merged = (
        df.groupby(["platform", "day"], as_index=False, sort=False)[COUNTER_COLUMNS]
        .max()
        .sort_values(["day", "platform"], kind="mergesort")
        .reset_index(drop=True)
    )
    collapsed = len(df) - len(merged)
    if collapsed:
        LOGGER.debug("Merged %d duplicate daily rows", collapsed)
    return ensure_daily_columns(merged)


def combine_platforms(*frames: pd.DataFrame) -> pd.DataFrame:
    """Stack several merged frames and merge again, for one cross-platform series."""

    parts = [f for f in frames if f is not None and not f.empty]
    if not parts:
        return empty_daily_frame()
    return merge_daily_metrics(pd.concat(parts, ignore_index=True))

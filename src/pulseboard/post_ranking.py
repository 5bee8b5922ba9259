"""Post-level summaries: deduplication, rankings and rollups.

Post exports are per-post rows; uploading several monthly exports repeats
posts, so every view here is built from the deduplicated set.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

import numpy as np
import pandas as pd

from .aggregator import DAY_NAMES
from .field_normalizer import (
    column_values,
    decode_html_entities,
    normalize_text_key,
    numeric_column,
    parse_date,
    parse_rate,
    sanitize_title,
    text_column,
    to_calendar_day,
)
from .logging_utils import get_logger
from .standards import schemas as sc
from .standards.schemas import LINKEDIN_POSTS, X_POSTS
from .table_extractor import ExtractedTable

LOGGER = get_logger("posts")

LINKEDIN_POST_COLUMNS = [
    "title", "link", "created_at", "time_known", "impressions", "views", "clicks",
    "likes", "comments", "reposts", "engagement_rate", "content_type",
]
X_POST_COLUMNS = [
    "text", "link", "created_at", "impressions", "likes", "replies", "reposts",
    "engagements", "engagement_rate",
]
CONTENT_TYPE_COLUMNS = ["type", "posts", "impressions", "views", "engagements"]
TIME_SLOT_COLUMNS = ["label", "day", "hour", "posts", "impressions", "engagements", "engagement_rate"]


def _empty(columns: List[str]) -> pd.DataFrame:
    return pd.DataFrame({c: pd.Series(dtype="object") for c in columns})


def _empty_posts_by_day() -> pd.Series:
    return pd.Series(dtype="int64", index=pd.DatetimeIndex([], name="day"), name="posts")


@dataclass
class LinkedInPostsResult:
    posts: pd.DataFrame = field(default_factory=lambda: _empty(LINKEDIN_POST_COLUMNS))
    top_posts: pd.DataFrame = field(default_factory=lambda: _empty(LINKEDIN_POST_COLUMNS))
    top_posts_by_rate: pd.DataFrame = field(default_factory=lambda: _empty(LINKEDIN_POST_COLUMNS))
    content_types: pd.DataFrame = field(default_factory=lambda: _empty(CONTENT_TYPE_COLUMNS))
    best_times: pd.DataFrame = field(default_factory=lambda: _empty(TIME_SLOT_COLUMNS))
    posts_by_day: pd.Series = field(default_factory=_empty_posts_by_day)
    time_of_day_available: bool = False


@dataclass
class XPostsResult:
    posts: pd.DataFrame = field(default_factory=lambda: _empty(X_POST_COLUMNS))
    top_posts: pd.DataFrame = field(default_factory=lambda: _empty(X_POST_COLUMNS))
    top_posts_by_rate: pd.DataFrame = field(default_factory=lambda: _empty(X_POST_COLUMNS))


# ============================================================
# Rates and identity
# ============================================================

def _engagement_rates(raw: pd.Series, impressions: pd.Series, interactions: pd.Series) -> pd.Series:
    """Reported rate where parseable, else interactions / impressions."""

    reported = raw.map(parse_rate).astype("float64")
    computed = (interactions / impressions.where(impressions > 0)).astype("float64")
    return reported.fillna(computed)


def post_identity(link: str, text: str, created_at) -> str:
    """Permalink when present, else normalized text plus creation timestamp."""

    if link:
        return link
    stamp = "" if created_at is None or pd.isna(created_at) else pd.Timestamp(created_at).isoformat()
    return f"{normalize_text_key(text)}|{stamp}"


def deduplicate_posts(posts: pd.DataFrame, text_field: str = "title", prefer_time_known: bool = False) -> pd.DataFrame:
    """Keep one row per post identity.

    The row with strictly greater impressions wins; on a tie the row with a
    known time of day wins when ``prefer_time_known``; otherwise the first row
    seen is kept.
    """

    if posts is None or posts.empty:
        return posts
    df = posts.copy()
    df["_key"] = [
        post_identity(link, text, created)
        for link, text, created in zip(df["link"], df[text_field], df["created_at"])
    ]
    df["_order"] = np.arange(len(df))
    by = ["_key", "impressions"]
    ascending = [True, False]
    if prefer_time_known and "time_known" in df.columns:
        by.append("time_known")
        ascending.append(False)
    by.append("_order")
    ascending.append(True)
    deduped = (
        df.sort_values(by, ascending=ascending, kind="mergesort")
        .drop_duplicates(subset=["_key"], keep="first")
        .sort_values("_order")
        .drop(columns=["_key", "_order"])
        .reset_index(drop=True)
    )
    dropped = len(df) - len(deduped)
    if dropped:
        LOGGER.info("Removed %d duplicate posts", dropped)
    return deduped


# ============================================================
# Rankings
# ============================================================

def rank_top_posts(posts: pd.DataFrame, secondary: str, top_n: int = 5, text_field: str | None = None) -> pd.DataFrame:
    """Top ``top_n`` by impressions, ties broken by ``secondary`` descending."""

    if posts is None or posts.empty:
        return posts
    df = posts
    if text_field is not None:
        df = df[(df[text_field] != "") | (df["link"] != "")]
    return (
        df.sort_values(["impressions", secondary], ascending=[False, False], kind="mergesort")
        .head(top_n)
        .reset_index(drop=True)
    )


def rank_by_engagement_rate(posts: pd.DataFrame, top_n: int = 5) -> pd.DataFrame:
    """Top ``top_n`` by engagement rate; posts with an unknown rate are excluded."""

    if posts is None or posts.empty:
        return posts
    known = posts[posts["engagement_rate"].notna()]
    return known.sort_values("engagement_rate", ascending=False, kind="mergesort").head(top_n).reset_index(drop=True)


# ============================================================
# Rollups
# ============================================================

def summarize_content_types(posts: pd.DataFrame, limit: int = 6) -> pd.DataFrame:
    """Per content type: post count, impressions, views, engagements."""

    if posts is None or posts.empty:
        return _empty(CONTENT_TYPE_COLUMNS)
    df = pd.DataFrame(
        {
            "type": posts["content_type"].replace("", "Unknown"),
            "impressions": posts["impressions"],
            "views": posts["views"],
            "engagements": posts["likes"] + posts["comments"] + posts["reposts"],
        }
    )
    grouped = df.groupby("type", sort=False)
    summary = grouped[["impressions", "views", "engagements"]].sum()
    summary.insert(0, "posts", grouped.size())
    summary = summary.reset_index()
    return (
        summary.sort_values("impressions", ascending=False, kind="mergesort")
        .head(limit)
        .reset_index(drop=True)[CONTENT_TYPE_COLUMNS]
    )


def _slot_label(day: str, hour) -> str:
    return day if hour is None else f"{day} {int(hour):02d}:00"


def build_time_slots(posts: pd.DataFrame, limit: int = 5) -> pd.DataFrame:
    """Best posting slots by engagement rate.

    Posts with a known time of day are grouped by (weekday, hour); the rest by
    weekday alone. Slots without impressions have no rate and sort as 0.
    """

    if posts is None or posts.empty:
        return _empty(TIME_SLOT_COLUMNS)
    created = pd.to_datetime(posts["created_at"])
    days = [DAY_NAMES[(d + 1) % 7] for d in created.dt.dayofweek]
    hours = [int(h) if known else None for h, known in zip(created.dt.hour, posts["time_known"])]
    df = pd.DataFrame(
        {
            "label": [_slot_label(d, h) for d, h in zip(days, hours)],
            "day": days,
            "hour": pd.array(hours, dtype="Int64"),
            "impressions": posts["impressions"].to_numpy(),
            "engagements": (posts["likes"] + posts["comments"] + posts["reposts"]).to_numpy(),
        }
    )
    grouped = df.groupby("label", sort=False)
    slots = grouped.agg(
        day=("day", "first"),
        hour=("hour", "first"),
        posts=("impressions", "size"),
        impressions=("impressions", "sum"),
        engagements=("engagements", "sum"),
    ).reset_index()
    slots = slots[slots["posts"] > 0].copy()
    slots["engagement_rate"] = [
        e / i if i else None for e, i in zip(slots["engagements"], slots["impressions"])
    ]
    order = slots["engagement_rate"].fillna(0.0).astype(float)
    return (
        slots.assign(_rate=order)
        .sort_values("_rate", ascending=False, kind="mergesort")
        .drop(columns=["_rate"])
        .head(limit)
        .reset_index(drop=True)[TIME_SLOT_COLUMNS]
    )


def posts_by_day(posts: pd.DataFrame) -> pd.Series:
    """Deduplicated post count per calendar day."""

    if posts is None or posts.empty:
        return _empty_posts_by_day()
    days = posts["created_at"].map(to_calendar_day)
    counts = days.dropna().value_counts().sort_index()
    counts.index = pd.DatetimeIndex(counts.index, name="day")
    return counts.astype("int64").rename("posts")


# ============================================================
# Builders
# ============================================================

def build_linkedin_posts(
    table: ExtractedTable,
    date_order: str = "MDY",
    top_n: int = 5,
    content_type_limit: int = 6,
    best_time_limit: int = 5,
) -> LinkedInPostsResult:
    """Summaries, rankings and rollups for a LinkedIn post export.

    Rows without a parseable creation date are dropped.
    """

    if table.empty or table.row_count == 0:
        return LinkedInPostsResult()
    frame = table.frame
    raw_dates = column_values(frame, sc.LI_POST_CREATED)
    parsed = raw_dates.map(lambda v: parse_date(v, LINKEDIN_POSTS.date_strategy, date_order))
    keep = parsed.notna()
    if not keep.all():
        LOGGER.info("%s: dropped %d rows without a parseable date", LINKEDIN_POSTS.id, int((~keep).sum()))
    if not keep.any():
        return LinkedInPostsResult()
    frame, parsed = frame.loc[keep], parsed[keep]

    impressions = numeric_column(frame, ("Impressions",))
    likes = numeric_column(frame, ("Likes",))
    comments = numeric_column(frame, ("Comments",))
    reposts = numeric_column(frame, ("Reposts",))
    posts = pd.DataFrame(
        {
            "title": text_column(frame, sc.LI_POST_TITLE).map(sanitize_title),
            "link": text_column(frame, sc.LI_POST_LINK),
            "created_at": [p.value for p in parsed],
            "time_known": [p.time_known for p in parsed],
            "impressions": impressions,
            "views": numeric_column(frame, ("Views",)),
            "clicks": numeric_column(frame, ("Clicks",)),
            "likes": likes,
            "comments": comments,
            "reposts": reposts,
            "engagement_rate": _engagement_rates(
                column_values(frame, sc.ENGAGEMENT_RATE), impressions, likes + comments + reposts
            ),
            "content_type": text_column(frame, sc.LI_POST_CONTENT_TYPE),
        }
    ).reset_index(drop=True)
    posts["created_at"] = pd.to_datetime(posts["created_at"])
    posts = deduplicate_posts(posts, text_field="title", prefer_time_known=True)
    time_of_day_available = bool(posts["time_known"].any())

    return LinkedInPostsResult(
        posts=posts,
        top_posts=rank_top_posts(posts, secondary="views", top_n=top_n, text_field="title"),
        top_posts_by_rate=rank_by_engagement_rate(posts, top_n=top_n),
        content_types=summarize_content_types(posts, limit=content_type_limit),
        best_times=build_time_slots(posts, limit=best_time_limit),
        posts_by_day=posts_by_day(posts),
        time_of_day_available=time_of_day_available,
    )


def build_x_posts(table: ExtractedTable, top_n: int = 5) -> XPostsResult:
    """Summaries and rankings for an X post export.

    Rows need post text or a link; the creation time may be unknown.
    """

    if table.empty or table.row_count == 0:
        return XPostsResult()
    frame = table.frame
    text = text_column(frame, sc.X_POST_TEXT).map(decode_html_entities)
    link = text_column(frame, sc.X_POST_LINK)
    keep = (text != "") | (link != "")
    if not keep.any():
        return XPostsResult()
    frame, text, link = frame.loc[keep], text[keep], link[keep]

    impressions = numeric_column(frame, ("Impressions",))
    likes = numeric_column(frame, ("Likes",))
    replies = numeric_column(frame, ("Replies",))
    reposts = numeric_column(frame, sc.X_POST_REPOSTS)
    created = column_values(frame, sc.X_POST_CREATED).map(
        lambda v: parse_date(v, X_POSTS.date_strategy)
    )
    posts = pd.DataFrame(
        {
            "text": text.map(sanitize_title),
            "link": link,
            "created_at": [p.value if p is not None else pd.NaT for p in created],
            "impressions": impressions,
            "likes": likes,
            "replies": replies,
            "reposts": reposts,
            "engagements": numeric_column(frame, ("Engagements",)),
            "engagement_rate": _engagement_rates(
                column_values(frame, sc.ENGAGEMENT_RATE), impressions, likes + replies + reposts
            ),
        }
    ).reset_index(drop=True)
    posts["created_at"] = pd.to_datetime(posts["created_at"])
    posts = deduplicate_posts(posts, text_field="text")

    return XPostsResult(
        posts=posts,
        top_posts=rank_top_posts(posts, secondary="engagements", top_n=top_n),
        top_posts_by_rate=rank_by_engagement_rate(posts, top_n=top_n),
    )

"""Dataset schemas, column groups and frame contracts for Pulseboard."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

import pandas as pd

from ..field_normalizer import DateStrategy


PLATFORM_X = "x"
PLATFORM_LINKEDIN = "linkedin"

COUNTER_COLUMNS: List[str] = [
    "views",
    "likes",
    "comments",
    "reposts",
    "clicks",
    "shares",
    "bookmarks",
    "profile_visits",
    "engagements",
    "video_views",
    "video_watch_views",
    "video_watch_time_ms",
    "video_completion_rate_sum",
    "posts",
    "new_follows",
    "unfollows",
]

DAILY_COLUMNS: List[str] = ["platform", "day", *COUNTER_COLUMNS]
MONTH_COLUMNS: List[str] = ["month_key", "label", *COUNTER_COLUMNS, "days"]


@dataclass(frozen=True)
class ColumnGroup:
    """A named requirement satisfied by any one of several header aliases."""

    label: str
    fields: Tuple[str, ...]


@dataclass(frozen=True)
class DatasetSchema:
    id: str
    label: str
    header_label: str
    required: Tuple[ColumnGroup, ...]
    optional: Tuple[ColumnGroup, ...] = field(default_factory=tuple)
    date_strategy: DateStrategy = DateStrategy.GENERIC


def _group(label: str, *fields: str) -> ColumnGroup:
    return ColumnGroup(label=label, fields=tuple(fields) or (label,))


# Header aliases, in priority order
X_DATE = ("Date",)
X_IMPRESSIONS = ("Impressions",)
X_LIKES = ("Likes",)
X_REPLIES = ("Replies",)
X_REPOSTS = ("Reposts", "Retweets")
X_SHARES = ("Shares",)
X_BOOKMARKS = ("Bookmarks",)
X_PROFILE_VISITS = ("Profile visits",)
X_ENGAGEMENTS = ("Engagements",)
X_VIDEO_VIEWS = ("Video views",)
X_CREATE_POST = ("Create Post",)
X_NEW_FOLLOWS = ("New follows",)
X_UNFOLLOWS = ("Unfollows",)

VIDEO_DATE = ("Date",)
VIDEO_VIEWS = ("Views",)
VIDEO_WATCH_TIME = ("Watch Time (ms)",)
VIDEO_COMPLETION_RATE = ("Completion Rate",)

X_POST_TEXT = ("Tweet text", "Text", "Post text", "Tweet", "Post")
X_POST_LINK = ("Post Link", "Tweet permalink", "URL", "Tweet URL", "Permalink")
X_POST_REPOSTS = ("Reposts", "Retweets", "Retweets (organic)")
X_POST_CREATED = ("time", "Time", "Created at", "Date")
ENGAGEMENT_RATE = ("Engagement rate", "Engagement rate (total)")

LI_DATE = ("Date",)
LI_IMPRESSIONS = ("Impressions (total)", "Impressions", "Impressions (organic)")
LI_CLICKS = ("Clicks (total)", "Clicks", "Clicks (organic)")
LI_REACTIONS = ("Reactions (total)", "Reactions", "Reactions (organic)")
LI_COMMENTS = ("Comments (total)", "Comments", "Comments (organic)")
LI_REPOSTS = ("Reposts (total)", "Reposts", "Reposts (organic)", "Shares")

LI_POST_CREATED = ("Created date", "Created Date")
LI_POST_TITLE = ("Post title",)
LI_POST_LINK = ("Post link",)
LI_POST_CONTENT_TYPE = ("Content Type", "Post type")


X_DAILY = DatasetSchema(
    id="x-daily",
    label="X account analytics",
    header_label="Date",
    required=(_group("Date", *X_DATE), _group("Impressions", *X_IMPRESSIONS)),
    optional=(
        _group("Likes", *X_LIKES),
        _group("Replies", *X_REPLIES),
        _group("Reposts", *X_REPOSTS),
        _group("Shares", *X_SHARES),
        _group("Bookmarks", *X_BOOKMARKS),
        _group("Profile visits", *X_PROFILE_VISITS),
        _group("Engagements", *X_ENGAGEMENTS),
        _group("Video views", *X_VIDEO_VIEWS),
        _group("Create Post", *X_CREATE_POST),
        _group("New follows", *X_NEW_FOLLOWS),
        _group("Unfollows", *X_UNFOLLOWS),
    ),
)

X_VIDEO_OVERVIEW = DatasetSchema(
    id="x-video-overview",
    label="X video overview",
    header_label="Date",
    required=(
        _group("Date", *VIDEO_DATE),
        _group("Views", *VIDEO_VIEWS),
        _group("Watch Time (ms)", *VIDEO_WATCH_TIME),
    ),
    optional=(_group("Completion Rate", *VIDEO_COMPLETION_RATE),),
)

X_POSTS = DatasetSchema(
    id="x-posts",
    label="X post analytics",
    header_label="Impressions",
    required=(
        _group("Impressions", "Impressions"),
        _group("Post text or link", *X_POST_TEXT, *X_POST_LINK),
    ),
    optional=(
        _group("Likes", "Likes"),
        _group("Replies", "Replies"),
        _group("Reposts", *X_POST_REPOSTS),
        _group("Engagements", "Engagements"),
        _group("Engagement rate", "Engagement rate"),
        _group("Created at", *X_POST_CREATED),
    ),
    date_strategy=DateStrategy.POST_TIMESTAMP,
)

LINKEDIN_DAILY = DatasetSchema(
    id="linkedin-daily",
    label="LinkedIn daily metrics",
    header_label="Date",
    required=(_group("Date", *LI_DATE), _group("Impressions", *LI_IMPRESSIONS)),
    optional=(
        _group("Clicks", *LI_CLICKS),
        _group("Reactions", *LI_REACTIONS),
        _group("Comments", *LI_COMMENTS),
        _group("Reposts", *LI_REPOSTS),
    ),
    date_strategy=DateStrategy.LINKEDIN,
)

LINKEDIN_POSTS = DatasetSchema(
    id="linkedin-posts",
    label="LinkedIn post analytics",
    header_label="Created date",
    required=(_group("Created date", *LI_POST_CREATED), _group("Impressions", "Impressions")),
    optional=(
        _group("Views", "Views"),
        _group("Clicks", "Clicks"),
        _group("Likes", "Likes"),
        _group("Comments", "Comments"),
        _group("Reposts", "Reposts"),
        _group("Post title", *LI_POST_TITLE),
        _group("Post link", *LI_POST_LINK),
        _group("Content Type", *LI_POST_CONTENT_TYPE),
    ),
    date_strategy=DateStrategy.LINKEDIN,
)

# Order matters: validation results are reported in this order
DATASETS: Dict[str, DatasetSchema] = {
    schema.id: schema
    for schema in (X_DAILY, X_VIDEO_OVERVIEW, X_POSTS, LINKEDIN_DAILY, LINKEDIN_POSTS)
}


def empty_daily_frame() -> pd.DataFrame:
    frame = pd.DataFrame({c: pd.Series(dtype="float64") for c in COUNTER_COLUMNS})
    frame.insert(0, "day", pd.Series(dtype="datetime64[ns]"))
    frame.insert(0, "platform", pd.Series(dtype="object"))
    return frame


def ensure_daily_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Return ``df`` with every daily column present, counters as float64.

    Missing counters are added as zeros so partial frames from older exports
    still satisfy the daily contract.
    """

    if df is None or df.empty:
        return empty_daily_frame()
    out = df.copy()
    for c in COUNTER_COLUMNS:
        if c not in out.columns:
            out[c] = 0.0
        out[c] = pd.to_numeric(out[c], errors="coerce").fillna(0.0).astype("float64")
    out["day"] = pd.to_datetime(out["day"])
    return out[DAILY_COLUMNS]

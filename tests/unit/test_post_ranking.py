"""Unit tests for post deduplication, rankings and rollups."""
import sys
from pathlib import Path

import pandas as pd
import pytest

sys.path.append(str(Path(__file__).resolve().parents[2] / "src"))

from pulseboard.post_ranking import (
    build_linkedin_posts,
    build_x_posts,
    deduplicate_posts,
    posts_by_day,
    rank_by_engagement_rate,
    rank_top_posts,
)
from pulseboard.table_extractor import extract_table


LINKEDIN_POSTS_TEXT = (
    "LinkedIn post analytics\n"
    "\n"
    "Post title,Post link,Created date,Impressions,Views,Clicks,Likes,Comments,Reposts,Engagement rate,Content Type\n"
    "Post A,https://li/1,01/02/2026 05:15 PM,500,100,1,10,5,5,,Article\n"
    "Post A,https://li/1,01/02/2026 05:15 PM,800,90,1,10,5,5,,Article\n"
    "Post B,https://li/2,01/03/2026,200,50,0,10,5,5,,\n"
    "Post C,,01/05/2026 09:00 AM,0,0,0,0,0,0,,Video\n"
    "Post D,https://li/4,01/06/2026 10:00 AM,300,40,0,3,0,0,0.5,Image\n"
    "Undated,https://li/5,,999,0,0,0,0,0,,Image\n"
)


@pytest.fixture
def linkedin_result():
    return build_linkedin_posts(extract_table(LINKEDIN_POSTS_TEXT, "Created date"))


def test_permalink_duplicates_keep_higher_impressions(linkedin_result):
    posts = linkedin_result.posts
    assert len(posts) == 4
    post_a = posts[posts["link"] == "https://li/1"]
    assert len(post_a) == 1
    assert post_a.iloc[0]["impressions"] == 800


def test_top_posts_by_impressions(linkedin_result):
    assert linkedin_result.top_posts["title"].tolist() == ["Post A", "Post D", "Post B", "Post C"]


def test_top_posts_by_rate_excludes_unknown_rates(linkedin_result):
    ranked = linkedin_result.top_posts_by_rate
    assert ranked["title"].tolist() == ["Post D", "Post B", "Post A"]
    assert ranked.iloc[0]["engagement_rate"] == pytest.approx(0.5)  # reported rate wins
    assert ranked.iloc[1]["engagement_rate"] == pytest.approx(0.10)  # (10 + 5 + 5) / 200


def test_content_types(linkedin_result):
    types = linkedin_result.content_types
    assert types["type"].tolist() == ["Article", "Image", "Unknown", "Video"]
    article = types.iloc[0]
    assert article["posts"] == 1
    assert article["impressions"] == 800
    assert article["views"] == 90
    assert article["engagements"] == 20


def test_content_types_limit():
    result = build_linkedin_posts(extract_table(LINKEDIN_POSTS_TEXT, "Created date"), content_type_limit=2)
    assert result.content_types["type"].tolist() == ["Article", "Image"]


def test_best_times(linkedin_result):
    slots = linkedin_result.best_times
    assert slots["label"].tolist() == ["Sat", "Fri 17:00", "Tue 10:00", "Mon 09:00"]
    sat = slots.iloc[0]
    assert sat["day"] == "Sat"
    assert pd.isna(sat["hour"])
    assert sat["engagement_rate"] == pytest.approx(0.10)
    assert slots.iloc[1]["hour"] == 17
    assert pd.isna(slots.iloc[3]["engagement_rate"])


def test_posts_by_day_and_time_of_day_flag(linkedin_result):
    counts = linkedin_result.posts_by_day
    assert counts.to_dict() == {
        pd.Timestamp(2026, 1, 2): 1,
        pd.Timestamp(2026, 1, 3): 1,
        pd.Timestamp(2026, 1, 5): 1,
        pd.Timestamp(2026, 1, 6): 1,
    }
    assert linkedin_result.time_of_day_available is True


def test_tie_prefers_known_time_of_day():
    text = (
        "Post title,Post link,Created date,Impressions\n"
        "Same,https://li/9,01/02/2026,100\n"
        "Same,https://li/9,01/02/2026 09:00 AM,100\n"
    )
    posts = build_linkedin_posts(extract_table(text, "Created date")).posts
    assert len(posts) == 1
    assert bool(posts.iloc[0]["time_known"]) is True
    assert posts.iloc[0]["created_at"] == pd.Timestamp(2026, 1, 2, 9, 0)


def test_without_link_identity_is_text_and_timestamp():
    text = (
        "Post title,Post link,Created date,Impressions\n"
        "Hello  World,,01/02/2026 09:00 AM,10\n"
        "hello world,,01/02/2026 09:00 AM,30\n"
        "hello world,,01/03/2026 09:00 AM,5\n"
    )
    posts = build_linkedin_posts(extract_table(text, "Created date")).posts
    assert sorted(posts["impressions"].tolist()) == [5, 30]


def test_time_of_day_flag_false_without_times():
    text = "Post title,Post link,Created date,Impressions\nA,https://li/1,01/02/2026,10\n"
    result = build_linkedin_posts(extract_table(text, "Created date"))
    assert result.time_of_day_available is False
    assert result.best_times["label"].tolist() == ["Fri"]


def test_spreadsheet_serial_with_fraction_enables_time_of_day():
    text = "Post title,Post link,Created date,Impressions\nA,https://li/1,44927.75,10\n"
    result = build_linkedin_posts(extract_table(text, "Created date"))
    assert bool(result.posts.iloc[0]["time_known"]) is True
    assert result.time_of_day_available is True
    assert result.best_times["label"].tolist() == ["Sun 18:00"]


def test_empty_linkedin_table():
    result = build_linkedin_posts(extract_table("", "Created date"))
    assert result.posts.empty
    assert result.posts_by_day.empty
    assert result.time_of_day_available is False


X_POSTS_TEXT = (
    "Tweet text,Tweet permalink,time,Impressions,Likes,Replies,Retweets,Engagements,Engagement rate\n"
    "Fish &amp; chips,https://x/1,2026-01-01 09:00,500,10,5,5,30,\n"
    "Fish &amp; chips,https://x/1,2026-01-01 09:00,800,10,5,5,30,\n"
    ",,2026-01-02,999,1,1,1,3,\n"
    "No date,https://x/3,,200,10,5,5,25,\n"
)


def test_x_posts_require_text_or_link_and_decode_entities():
    result = build_x_posts(extract_table(X_POSTS_TEXT, "Impressions"))
    posts = result.posts
    assert len(posts) == 2
    assert result.top_posts.iloc[0]["text"] == "Fish & chips"
    assert result.top_posts.iloc[0]["impressions"] == 800
    assert result.top_posts.iloc[0]["reposts"] == 5


def test_x_posts_created_at_may_be_unknown():
    result = build_x_posts(extract_table(X_POSTS_TEXT, "Impressions"))
    undated = result.posts[result.posts["link"] == "https://x/3"].iloc[0]
    assert pd.isna(undated["created_at"])
    assert undated["engagement_rate"] == pytest.approx(0.10)
    assert result.top_posts_by_rate["link"].tolist() == ["https://x/3", "https://x/1"]


def test_rank_top_posts_breaks_ties_with_secondary():
    posts = pd.DataFrame(
        {
            "title": ["a", "b", "c", ""],
            "link": ["", "", "", ""],
            "impressions": [100, 100, 50, 1000],
            "views": [1, 5, 9, 0],
        }
    )
    ranked = rank_top_posts(posts, secondary="views", top_n=5, text_field="title")
    assert ranked["title"].tolist() == ["b", "a", "c"]


def test_rank_by_engagement_rate_top_n():
    posts = pd.DataFrame({"engagement_rate": [0.1, None, 0.3, 0.2], "title": list("abcd")})
    ranked = rank_by_engagement_rate(posts, top_n=2)
    assert ranked["title"].tolist() == ["c", "d"]


def test_deduplicate_tie_keeps_first_seen():
    posts = pd.DataFrame(
        {
            "text": ["first", "second"],
            "link": ["https://x/1", "https://x/1"],
            "created_at": [pd.NaT, pd.NaT],
            "impressions": [10, 10],
        }
    )
    deduped = deduplicate_posts(posts, text_field="text")
    assert deduped["text"].tolist() == ["first"]


def test_posts_by_day_empty():
    assert posts_by_day(pd.DataFrame()).empty

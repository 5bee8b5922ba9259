"""Unit tests for raw/sample export lookup."""
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[2] / "src"))

from pulseboard.common.config_validator import load_and_validate_config
from pulseboard.file_provider import LocalFileProvider, StaticFileProvider


def _config(tmp_path, datasets=None):
    raw_dir = tmp_path / "raw"
    sample_dir = tmp_path / "sample"
    raw_dir.mkdir()
    sample_dir.mkdir()
    return load_and_validate_config(
        {
            "paths": {"raw_dir": str(raw_dir), "sample_dir": str(sample_dir)},
            "datasets": datasets or {},
        }
    )


def test_raw_filename_preferred_over_sample(tmp_path):
    config = _config(tmp_path)
    (tmp_path / "raw" / "x_account_analytics.csv").write_text("raw", encoding="utf-8")
    (tmp_path / "sample" / "x_account_analytics_sample.csv").write_text("sample", encoding="utf-8")

    fetched = LocalFileProvider(config).fetch("x-daily")
    assert fetched.source == "raw"
    assert fetched.texts == ["raw"]
    assert fetched.file_path.endswith("x_account_analytics.csv")


def test_pattern_loads_every_match_sorted(tmp_path):
    config = _config(tmp_path)
    (tmp_path / "raw" / "account_analytics_content_2026-02.csv").write_text("feb", encoding="utf-8")
    (tmp_path / "raw" / "account_analytics_content_2026-01.csv").write_text("jan", encoding="utf-8")

    fetched = LocalFileProvider(config).fetch("x-posts")
    assert fetched.source == "raw"
    assert fetched.texts == ["jan", "feb"]


def test_explicit_file_and_monthly_exports_load_together(tmp_path):
    config = _config(tmp_path)
    (tmp_path / "raw" / "x_account_analytics.csv").write_text("main", encoding="utf-8")
    (tmp_path / "raw" / "account_overview_analytics_2026-02.csv").write_text("feb", encoding="utf-8")

    fetched = LocalFileProvider(config).fetch("x-daily")
    assert fetched.source == "raw"
    assert sorted(fetched.texts) == ["feb", "main"]


def test_filename_matching_its_own_pattern_loads_once(tmp_path):
    config = _config(tmp_path)
    (tmp_path / "raw" / "linkedin_metrics.csv").write_text("main", encoding="utf-8")
    (tmp_path / "raw" / "linkedin_metrics_2026-02.csv").write_text("feb", encoding="utf-8")

    fetched = LocalFileProvider(config).fetch("linkedin-daily")
    assert fetched.texts == ["main", "feb"]


def test_sample_fallback(tmp_path):
    config = _config(tmp_path)
    (tmp_path / "sample" / "linkedin_posts_sample.csv").write_text("sample", encoding="utf-8")

    fetched = LocalFileProvider(config).fetch("linkedin-posts")
    assert fetched.source == "sample"
    assert fetched.texts == ["sample"]


def test_missing_dataset(tmp_path):
    fetched = LocalFileProvider(_config(tmp_path)).fetch("linkedin-daily")
    assert fetched.source == "missing"
    assert fetched.texts == []
    assert fetched.file_path.endswith("linkedin_metrics.csv")


def test_override_filename(tmp_path):
    config = _config(tmp_path, {"linkedin-daily": {"filename": "my_metrics.csv"}})
    (tmp_path / "raw" / "my_metrics.csv").write_text("mine", encoding="utf-8")
    assert LocalFileProvider(config).fetch("linkedin-daily").texts == ["mine"]


def test_static_provider():
    provider = StaticFileProvider({"x-daily": "a", "x-posts": ["b", "c"]})
    assert provider.fetch("x-daily").texts == ["a"]
    assert provider.fetch("x-posts").texts == ["b", "c"]
    assert provider.fetch("linkedin-daily").source == "missing"

"""Pulseboard pipeline orchestrator.

Responsibilities:
- Fetch the five datasets from a file provider and extract their tables
- Map, merge and aggregate the X and LinkedIn daily series
- Rank posts and build the content-type and time-slot rollups
- Validate dataset columns and write the JSON report (optionally a workbook)

Loads run as three tasks on a thread pool: the X daily chain (video overview
then daily), X posts, and LinkedIn posts then LinkedIn daily. A failing
dataset degrades to an empty result; the run itself never aborts.
"""
from __future__ import annotations

import argparse
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar

import pandas as pd

from .aggregator import (
    DataQualitySummary,
    MonthOverMonth,
    PlatformData,
    build_data_quality,
    build_day_of_week_summary,
    build_engagement_mix,
    build_platform_data,
    month_over_month,
)
from .common.config_validator import PipelineConfig, load_config
from .export_utils import export_dashboard_workbook
from .file_provider import DatasetSource, FileProvider, LocalFileProvider
from .logging_utils import (
    end_phase_timer,
    get_logger,
    log_system_event,
    setup_logging,
    start_phase_timer,
)
from .merge_engine import combine_platforms, merge_daily_metrics
from .post_ranking import LinkedInPostsResult, XPostsResult, build_linkedin_posts, build_x_posts
from .record_mapper import build_video_overview, empty_video_overview, map_linkedin_daily, map_x_daily
from .standards.schemas import (
    DATASETS,
    LINKEDIN_DAILY,
    LINKEDIN_POSTS,
    X_DAILY,
    X_POSTS,
    X_VIDEO_OVERVIEW,
    DatasetSchema,
    empty_daily_frame,
)
from .table_extractor import ExtractedTable, concat_tables, extract_table
from .validation_reporter import (
    SOURCE_MISSING,
    SOURCE_SAMPLE,
    CsvValidation,
    build_csv_validation,
    build_report,
    write_report,
)

LOGGER = get_logger("pipeline")

T = TypeVar("T")

REPORT_FILE = "validation_report.json"
WORKBOOK_FILE = "pulseboard_series.xlsx"


@dataclass
class LoadedDataset:
    schema: DatasetSchema
    table: ExtractedTable
    validation: CsvValidation


@dataclass
class DashboardData:
    x: PlatformData
    linkedin: PlatformData
    combined: PlatformData
    engagement_mix: List[Dict[str, Any]]
    mom: MonthOverMonth
    x_top_posts: pd.DataFrame
    x_top_posts_by_rate: pd.DataFrame
    linkedin_top_posts: pd.DataFrame
    linkedin_top_posts_by_rate: pd.DataFrame
    linkedin_content_types: pd.DataFrame
    day_of_week: pd.DataFrame
    best_times: pd.DataFrame
    time_of_day_available: bool
    data_quality: List[DataQualitySummary]
    csv_validation: List[CsvValidation]
    using_sample_data: bool
    timings: Dict[str, float] = field(default_factory=dict)


def _guarded(label: str, fn: Callable[[], T], fallback: Callable[[], T]) -> T:
    """Run ``fn``; on any error log it and return ``fallback()`` instead."""
    try:
        return fn()
    except Exception:
        LOGGER.exception("%s failed; continuing with an empty result", label)
        return fallback()


def load_dataset(provider: FileProvider, schema: DatasetSchema) -> LoadedDataset:
    """Fetch every blob for ``schema`` and extract one combined table."""

    fetched = _guarded(f"{schema.id} fetch", lambda: provider.fetch(schema.id), DatasetSource)
    table = concat_tables(extract_table(text, schema.header_label) for text in fetched.texts)
    validation = build_csv_validation(schema, table.columns, table.row_count, fetched.source, fetched.file_path)
    LOGGER.info("%s: %d rows from %s (%s)", schema.id, table.row_count, validation.file_path, fetched.source)
    return LoadedDataset(schema, table, validation)


@dataclass
class _XDailyResult:
    metrics: pd.DataFrame
    validation: CsvValidation
    video_validation: CsvValidation


@dataclass
class _LinkedInResult:
    metrics: pd.DataFrame
    posts: LinkedInPostsResult
    validation: CsvValidation
    posts_validation: CsvValidation


def _x_daily_task(provider: FileProvider, timings: Dict[str, float]) -> _XDailyResult:
    t0 = start_phase_timer("x-daily")
    video = load_dataset(provider, X_VIDEO_OVERVIEW)
    overview = _guarded(X_VIDEO_OVERVIEW.id, lambda: build_video_overview(video.table), empty_video_overview)
    daily = load_dataset(provider, X_DAILY)
    metrics = _guarded(
        X_DAILY.id,
        lambda: merge_daily_metrics(map_x_daily(daily.table, overview)),
        empty_daily_frame,
    )
    end_phase_timer("x-daily", t0, timings, LOGGER)
    return _XDailyResult(metrics, daily.validation, video.validation)


def _x_posts_task(provider: FileProvider, config: PipelineConfig, timings: Dict[str, float]) -> tuple:
    t0 = start_phase_timer("x-posts")
    loaded = load_dataset(provider, X_POSTS)
    result = _guarded(X_POSTS.id, lambda: build_x_posts(loaded.table, top_n=config.ranking.top_n), XPostsResult)
    end_phase_timer("x-posts", t0, timings, LOGGER)
    return result, loaded.validation


def _linkedin_task(provider: FileProvider, config: PipelineConfig, timings: Dict[str, float]) -> _LinkedInResult:
    t0 = start_phase_timer("linkedin")
    date_order = config.linkedin.date_order
    posts_loaded = load_dataset(provider, LINKEDIN_POSTS)
    posts = _guarded(
        LINKEDIN_POSTS.id,
        lambda: build_linkedin_posts(
            posts_loaded.table,
            date_order=date_order,
            top_n=config.ranking.top_n,
            content_type_limit=config.ranking.content_type_limit,
            best_time_limit=config.ranking.best_time_limit,
        ),
        LinkedInPostsResult,
    )
    # daily mapping needs the per-day post counts above
    daily = load_dataset(provider, LINKEDIN_DAILY)
    metrics = _guarded(
        LINKEDIN_DAILY.id,
        lambda: merge_daily_metrics(map_linkedin_daily(daily.table, posts.posts_by_day, date_order)),
        empty_daily_frame,
    )
    end_phase_timer("linkedin", t0, timings, LOGGER)
    return _LinkedInResult(metrics, posts, daily.validation, posts_loaded.validation)


def _empty_validation(schema: DatasetSchema) -> CsvValidation:
    return build_csv_validation(schema, [], 0, SOURCE_MISSING)


def _collect(future: Future, label: str, fallback: Callable[[], T]) -> T:
    return _guarded(label, future.result, fallback)


def run_pipeline(provider: Optional[FileProvider] = None, config: Optional[PipelineConfig] = None) -> DashboardData:
    """Build the complete dashboard data set from the provider's current files."""

    config = config or PipelineConfig()
    provider = provider or LocalFileProvider(config)
    timings: Dict[str, float] = {}
    t0 = start_phase_timer("pipeline")
    log_system_event(LOGGER, "Pipeline run started")

    with ThreadPoolExecutor(max_workers=3, thread_name_prefix="pulseboard") as pool:
        x_daily_f = pool.submit(_x_daily_task, provider, timings)
        x_posts_f = pool.submit(_x_posts_task, provider, config, timings)
        linkedin_f = pool.submit(_linkedin_task, provider, config, timings)

        x_daily = _collect(
            x_daily_f,
            "x daily chain",
            lambda: _XDailyResult(empty_daily_frame(), _empty_validation(X_DAILY), _empty_validation(X_VIDEO_OVERVIEW)),
        )
        x_posts, x_posts_validation = _collect(
            x_posts_f, "x posts", lambda: (XPostsResult(), _empty_validation(X_POSTS))
        )
        linkedin = _collect(
            linkedin_f,
            "linkedin chain",
            lambda: _LinkedInResult(
                empty_daily_frame(),
                LinkedInPostsResult(),
                _empty_validation(LINKEDIN_DAILY),
                _empty_validation(LINKEDIN_POSTS),
            ),
        )

    x_data = build_platform_data(x_daily.metrics)
    linkedin_data = build_platform_data(linkedin.metrics)
    combined = build_platform_data(combine_platforms(x_daily.metrics, linkedin.metrics))

    csv_validation = [
        x_daily.validation,
        x_daily.video_validation,
        x_posts_validation,
        linkedin.validation,
        linkedin.posts_validation,
    ]
    data = DashboardData(
        x=x_data,
        linkedin=linkedin_data,
        combined=combined,
        engagement_mix=build_engagement_mix(combined.totals),
        mom=month_over_month(combined.monthly),
        x_top_posts=x_posts.top_posts,
        x_top_posts_by_rate=x_posts.top_posts_by_rate,
        linkedin_top_posts=linkedin.posts.top_posts,
        linkedin_top_posts_by_rate=linkedin.posts.top_posts_by_rate,
        linkedin_content_types=linkedin.posts.content_types,
        day_of_week=build_day_of_week_summary(combined.daily),
        best_times=linkedin.posts.best_times,
        time_of_day_available=linkedin.posts.time_of_day_available,
        data_quality=[
            build_data_quality("X", x_data.daily),
            build_data_quality("LinkedIn", linkedin_data.daily),
            build_data_quality("Combined", combined.daily),
        ],
        csv_validation=csv_validation,
        using_sample_data=any(v.source == SOURCE_SAMPLE for v in csv_validation),
        timings=timings,
    )
    end_phase_timer("pipeline", t0, timings, LOGGER)
    if data.using_sample_data:
        LOGGER.warning("At least one dataset fell back to bundled sample data")
    return data


def summarize_run(data: DashboardData) -> Dict[str, Any]:
    """Compact, JSON-friendly summary of a run for logs and reports."""

    return {
        "x_days": int(data.x.coverage.days),
        "linkedin_days": int(data.linkedin.coverage.days),
        "combined_views": float(data.combined.totals.get("views", 0.0)),
        "months": int(len(data.combined.monthly)),
        "last_month": data.mom.last_label,
        "previous_month": data.mom.previous_label,
        "statuses": {v.id: v.status for v in data.csv_validation},
        "using_sample_data": data.using_sample_data,
    }


def inspect_datasets(provider: FileProvider, dataset_ids: Sequence[str] | None = None) -> List[Dict[str, Any]]:
    """Provenance, columns and first record per dataset, without any mapping."""

    rows: List[Dict[str, Any]] = []
    for dataset_id in dataset_ids or list(DATASETS):
        loaded = load_dataset(provider, DATASETS[dataset_id])
        records = loaded.table.records
        rows.append(
            {
                "id": dataset_id,
                "source": loaded.validation.source,
                "file_path": loaded.validation.file_path,
                "columns": list(loaded.table.columns),
                "row_count": loaded.table.row_count,
                "first_record": records[0] if records else None,
            }
        )
    return rows


def _print_inspection(rows: List[Dict[str, Any]]) -> None:
    for row in rows:
        print(f"\n== {row['id']} ({row['source']}) {row['file_path']}")
        if not row["columns"]:
            print("   no header row found")
            continue
        print(f"   columns ({len(row['columns'])}): {', '.join(row['columns'])}")
        print(f"   rows: {row['row_count']}")
        if row["first_record"]:
            print(f"   first row: {row['first_record']}")


def build_arg_parser() -> argparse.ArgumentParser:
    """Create an argument parser for the pipeline CLI."""

    parser = argparse.ArgumentParser(description="Pulseboard social analytics pipeline")
    parser.add_argument("--config", default="config/pipeline.yaml", help="Path to configuration file")
    parser.add_argument("--output", help="Report directory (defaults to paths.output_dir)")
    parser.add_argument("--excel", action="store_true", help="Also write an Excel workbook of the series")
    parser.add_argument(
        "--inspect",
        action="store_true",
        help="Print columns and the first row of every dataset, then exit",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point."""

    args = build_arg_parser().parse_args(argv)
    config = load_config(args.config) if Path(args.config).exists() else PipelineConfig()
    setup_logging(config)
    if not Path(args.config).exists():
        LOGGER.warning("Config %s not found; using defaults", args.config)

    provider = LocalFileProvider(config)
    if args.inspect:
        _print_inspection(inspect_datasets(provider))
        return 0

    data = run_pipeline(provider, config)
    output_dir = Path(args.output or config.paths.output_dir)
    report = build_report(data.csv_validation, data.data_quality, data.using_sample_data)
    report["run"] = summarize_run(data)
    report_path = write_report(report, output_dir / REPORT_FILE)
    log_system_event(LOGGER, f"Validation report written to {report_path}")
    if args.excel:
        export_dashboard_workbook(data, output_dir / WORKBOOK_FILE)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI guard
    raise SystemExit(main())

"""Configuration validation models using Pydantic."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from ..standards.schemas import DATASETS


class PathsConfig(BaseModel):
    """Filesystem locations used by the local file provider and reports."""

    raw_dir: str = Field("Data/raw", description="User-supplied exports")
    sample_dir: str = Field("Data/sample", description="Bundled sample exports")
    logs_dir: str = Field("logs", description="Log file directory")
    output_dir: str = Field("outputs", description="Report output directory")


class DatasetOverride(BaseModel):
    """Per-dataset file resolution.

    ``filename`` names a single raw export; ``pattern`` is a glob matched in
    the raw directory and every match is loaded (overlapping monthly exports).
    When both are set, the file and all pattern matches are loaded together.
    Overriding only the pattern drops the default filename.
    """

    filename: Optional[str] = None
    pattern: Optional[str] = None
    sample_filename: Optional[str] = None


class LinkedInConfig(BaseModel):
    date_order: Literal["MDY", "DMY"] = Field(
        "MDY", description="Month/day order of LinkedIn M/D/Y dates"
    )


class RankingConfig(BaseModel):
    top_n: int = Field(5, ge=1)
    content_type_limit: int = Field(6, ge=1)
    best_time_limit: int = Field(5, ge=1)


class LoggingConfig(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    file_name: str = "pulseboard.log"


DEFAULT_DATASET_FILES: Dict[str, DatasetOverride] = {
    "x-daily": DatasetOverride(
        filename="x_account_analytics.csv",
        pattern="account_overview_analytics*.csv",
        sample_filename="x_account_analytics_sample.csv",
    ),
    "x-video-overview": DatasetOverride(
        filename="x_video_overview.csv",
        pattern="video_overview*.csv",
        sample_filename="x_video_overview_sample.csv",
    ),
    "x-posts": DatasetOverride(
        filename="x_post_analytics.csv",
        pattern="account_analytics_content_*.csv",
        sample_filename="x_post_analytics_sample.csv",
    ),
    "linkedin-daily": DatasetOverride(
        filename="linkedin_metrics.csv",
        pattern="linkedin_metrics*.csv",
        sample_filename="linkedin_metrics_sample.csv",
    ),
    "linkedin-posts": DatasetOverride(
        filename="linkedin_posts.csv",
        pattern="linkedin_posts*.csv",
        sample_filename="linkedin_posts_sample.csv",
    ),
}


class PipelineConfig(BaseModel):
    """Complete pipeline configuration."""

    paths: PathsConfig = Field(default_factory=PathsConfig)
    datasets: Dict[str, DatasetOverride] = Field(default_factory=dict)
    linkedin: LinkedInConfig = Field(default_factory=LinkedInConfig)
    ranking: RankingConfig = Field(default_factory=RankingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("datasets")
    @classmethod
    def validate_dataset_ids(cls, v):
        """Reject overrides for datasets the pipeline does not know."""
        unknown = sorted(set(v) - set(DATASETS))
        if unknown:
            raise ValueError(f"Unknown dataset ids: {unknown}; expected one of {list(DATASETS)}")
        return v

    def dataset_files(self, dataset_id: str) -> DatasetOverride:
        """Return the override for ``dataset_id`` layered over the defaults."""

        default = DEFAULT_DATASET_FILES[dataset_id]
        override = self.datasets.get(dataset_id)
        if override is None:
            return default
        return DatasetOverride(
            filename=override.filename or (None if override.pattern else default.filename),
            pattern=override.pattern or default.pattern,
            sample_filename=override.sample_filename or default.sample_filename,
        )


def load_and_validate_config(config_dict: dict | None) -> PipelineConfig:
    """
    Validate a raw configuration mapping.

    Args:
        config_dict: Mapping loaded from YAML (may be empty)

    Returns:
        Validated PipelineConfig object

    Raises:
        ValidationError: If configuration is invalid
    """
    return PipelineConfig(**(config_dict or {}))


def load_config(path: str | Path) -> PipelineConfig:
    """Load a YAML configuration file and validate it."""

    with open(path, "r", encoding="utf-8") as stream:
        raw = yaml.safe_load(stream) or {}
    return load_and_validate_config(raw)

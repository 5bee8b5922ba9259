"""Raw export lookup: user files first, bundled samples second."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .common.config_validator import PipelineConfig
from .logging_utils import get_logger
from .validation_reporter import SOURCE_MISSING, SOURCE_RAW, SOURCE_SAMPLE

LOGGER = get_logger("files")


@dataclass
class DatasetSource:
    """Raw text blobs for one dataset plus where they came from.

    Several texts mean overlapping exports (typically one per month) that are
    all parsed and merged.
    """

    texts: List[str] = field(default_factory=list)
    source: str = SOURCE_MISSING
    file_path: Optional[str] = None


class FileProvider:
    """Supplies raw text per logical dataset id."""

    def fetch(self, dataset_id: str) -> DatasetSource:
        raise NotImplementedError


def _resolve(name: str, base_dir: Path) -> Path:
    p = Path(name).expanduser()
    return p if p.is_absolute() else base_dir / p


def _read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


class LocalFileProvider(FileProvider):
    """Reads exports from ``paths.raw_dir`` and falls back to ``paths.sample_dir``.

    In the raw directory the explicit filename and every file matching the
    dataset's glob pattern are loaded together, in sorted path order, so
    overlapping monthly exports all reach the merge.
    """

    def __init__(self, config: PipelineConfig):
        self.config = config
        self.raw_dir = Path(config.paths.raw_dir).expanduser()
        self.sample_dir = Path(config.paths.sample_dir).expanduser()

    def raw_files(self, dataset_id: str) -> List[Path]:
        files = self.config.dataset_files(dataset_id)
        found = set()
        if files.filename:
            candidate = _resolve(files.filename, self.raw_dir)
            if candidate.is_file():
                found.add(candidate.resolve())
        if files.pattern and self.raw_dir.is_dir():
            found.update(p.resolve() for p in self.raw_dir.glob(files.pattern) if p.is_file())
        return sorted(found)

    def sample_file(self, dataset_id: str) -> Optional[Path]:
        name = self.config.dataset_files(dataset_id).sample_filename
        if not name:
            return None
        candidate = _resolve(name, self.sample_dir)
        return candidate if candidate.is_file() else None

    def fetch(self, dataset_id: str) -> DatasetSource:
        raw = self.raw_files(dataset_id)
        if raw:
            LOGGER.info("%s: loading %d raw file(s)", dataset_id, len(raw))
            description = str(raw[0]) if len(raw) == 1 else ", ".join(p.name for p in raw)
            return DatasetSource([_read_text(p) for p in raw], SOURCE_RAW, description)

        sample = self.sample_file(dataset_id)
        if sample is not None:
            LOGGER.info("%s: no raw export found, using sample %s", dataset_id, sample)
            return DatasetSource([_read_text(sample)], SOURCE_SAMPLE, str(sample))

        expected = self.config.dataset_files(dataset_id).filename or self.config.dataset_files(dataset_id).pattern
        LOGGER.warning("%s: no raw or sample export found", dataset_id)
        return DatasetSource([], SOURCE_MISSING, str(_resolve(expected, self.raw_dir)) if expected else None)


class StaticFileProvider(FileProvider):
    """In-memory provider, keyed by dataset id; useful for tests and notebooks."""

    def __init__(self, texts: Dict[str, List[str] | str], source: str = SOURCE_RAW):
        self.texts = texts
        self.source = source

    def fetch(self, dataset_id: str) -> DatasetSource:
        value = self.texts.get(dataset_id)
        if value is None:
            return DatasetSource([], SOURCE_MISSING, None)
        blobs = [value] if isinstance(value, str) else list(value)
        return DatasetSource(blobs, self.source, f"<memory:{dataset_id}>")

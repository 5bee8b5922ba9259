"""Logging utilities for Pulseboard.

Centralizes logger setup and phase timing so every component logs under the
``pulseboard`` namespace:
  - console + file handler (``paths.logs_dir`` / ``logging.file_name``)
  - timing breakdown per dataset load

If the file handler cannot be attached, logging continues on the console.
"""
from __future__ import annotations

import logging
import sys
import time
from pathlib import Path
from typing import Dict

from .common.config_validator import PipelineConfig

LOGGER_NAME = "pulseboard"
SYSTEM_FMT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FMT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str) -> logging.Logger:
    """Return a child of the ``pulseboard`` logger (``pulseboard.<name>``)."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def _safe_add_file_handler(logger: logging.Logger, path: Path, level: int) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(path, encoding="utf-8")
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(SYSTEM_FMT, datefmt=DATE_FMT))
        logger.addHandler(fh)
    except OSError as exc:
        logger.warning("[WARNING] Failed to attach file handler %s (%s)", str(path), exc)


def setup_logging(config: PipelineConfig, log_to_file: bool = True) -> logging.Logger:
    """Configure the ``pulseboard`` logger from the pipeline configuration.

    Handlers are reset on every call so repeated runs do not duplicate output.
    """
    level = getattr(logging, config.logging.level, logging.INFO)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers = []

    sh = logging.StreamHandler(sys.stdout)
    sh.setLevel(level)
    sh.setFormatter(logging.Formatter(SYSTEM_FMT, datefmt=DATE_FMT))
    logger.addHandler(sh)

    if log_to_file:
        log_path = Path(config.paths.logs_dir).expanduser() / config.logging.file_name
        _safe_add_file_handler(logger, log_path, level)
        logger.debug("Logging initialised. Logs will be written to %s", log_path)
    return logger


def start_phase_timer(phase_name: str) -> float:
    """Start a timer for a given phase and return the perf counter."""
    return time.perf_counter()


def end_phase_timer(phase_name: str, start_time: float, timing_dict: Dict[str, float], logger: logging.Logger) -> float:
    """End timer, record to ``timing_dict`` and log the elapsed seconds."""
    elapsed = time.perf_counter() - float(start_time)
    timing_dict[phase_name] = float(elapsed)
    logger.info("Phase %s completed in %.2f seconds", phase_name, elapsed)
    return elapsed


def log_system_event(logger: logging.Logger, message: str) -> None:
    logger.info("[SYSTEM] %s", message)


def log_warning(logger: logging.Logger, message: str) -> None:
    logger.warning("[WARNING] %s", message)

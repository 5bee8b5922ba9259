"""
Pulseboard: social analytics ingestion for X and LinkedIn exports.

Turns noisy spreadsheet exports into a merged daily series, month roll-ups,
coverage statistics, post rankings and per-dataset validation.
"""

from .pipeline import DashboardData, run_pipeline

__version__ = "0.1.0"

__all__ = ["DashboardData", "run_pipeline", "__version__"]

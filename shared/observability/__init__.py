"""Logging and metrics for sensitivity analysis runs."""

from .logging import get_logger, setup_logging
from .metrics import SensitivityMetrics

__all__ = ["get_logger", "setup_logging", "SensitivityMetrics"]

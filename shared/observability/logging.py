"""Logging setup for the sensitivity analysis library."""

import logging
import sys

from shared.config import Environment, SensitivityConfig

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(config: SensitivityConfig | None = None) -> None:
    """Set up logging configuration."""
    if config is None:
        config = SensitivityConfig()

    if config.environment == Environment.DEVELOPMENT:
        log_level = logging.DEBUG
    else:
        log_level = logging.INFO

    logging.basicConfig(
        level=log_level, format=LOG_FORMAT, handlers=[logging.StreamHandler(sys.stdout)]
    )

    # statsmodels and scipy are chatty at DEBUG during repeated fits
    for noisy in ("statsmodels", "scipy"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)

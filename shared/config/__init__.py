"""Configuration management for the sensitivity analysis library."""

from .base import BaseConfiguration, Environment
from .sensitivity_config import SensitivityConfig

__all__ = [
    "BaseConfiguration",
    "Environment",
    "SensitivityConfig",
]

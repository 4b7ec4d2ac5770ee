"""Synthetic policy data for testing and examples."""

from .synthetic import (
    GROUPING,
    OUTCOME,
    TREATMENT,
    SyntheticPolicyDataGenerator,
    generate_policy,
)

__all__ = [
    "GROUPING",
    "OUTCOME",
    "TREATMENT",
    "SyntheticPolicyDataGenerator",
    "generate_policy",
]

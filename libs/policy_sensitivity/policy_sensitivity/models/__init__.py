"""Regression fitting and formula helpers used by the sensitivity engine."""

from .fitting import Fitter, GLMFitter, group_term_name, pull_coefs, tidy_results
from .formula import extract_features, make_formula

__all__ = [
    "Fitter",
    "GLMFitter",
    "group_term_name",
    "pull_coefs",
    "tidy_results",
    "extract_features",
    "make_formula",
]

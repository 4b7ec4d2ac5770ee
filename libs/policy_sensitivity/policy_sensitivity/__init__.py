"""Sensitivity analysis for group disparities in policy decisions.

Estimates how much an unobserved binary confounder would have to influence
treatment and outcome to explain away a disparity between groups in who
receives a treatment (e.g. who is searched, stopped or flagged).
"""

__version__ = "0.1.0"
__author__ = "Robert Welborn"

from .core import *
from .data import SyntheticPolicyDataGenerator, generate_policy
from .diagnostics import compute_auc
from .models import Fitter, GLMFitter, extract_features, make_formula
from .policy import Policy
from .sensitivity import (
    OptimSensResult,
    PackedParameters,
    expand_params,
    optimsens,
    pack_params,
    sensitivity,
    sensitize,
    summarize,
)

__all__ = [
    "__version__",
    "__author__",
    "Fitter",
    "GLMFitter",
    "OptimSensResult",
    "PackedParameters",
    "Policy",
    "SyntheticPolicyDataGenerator",
    "compute_auc",
    "expand_params",
    "extract_features",
    "generate_policy",
    "make_formula",
    "optimsens",
    "pack_params",
    "sensitivity",
    "sensitize",
    "summarize",
]

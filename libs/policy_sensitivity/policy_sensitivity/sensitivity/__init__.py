"""Sensitivity of group disparity estimates to unobserved confounding.

Main Functions:
    sensitivity: Adjusted disparity estimates for given sensitivity parameters
    optimsens: Search the parameter space for the min/max adjusted estimates
    summarize: Pivot tagged search results into min/max bounds per term

Building Blocks:
    expand_params: Broadcast scalar, per-level or per-row parameters
    pack_params: Map a flat search vector onto named base/modifier slots
    sensitize: Split fitted probabilities into confounder states
"""

from .engine import confounder_state_frame, filter_groups, sensitivity
from .optimize import OptimSensResult, default_bounds, optimsens
from .parameters import (
    N_SLOTS,
    SLOT_NAMES,
    PackedParameters,
    expand_params,
    is_categorical,
    pack_params,
)
from .sensitize import sensitize, solve_mixture_logit
from .summary import BOUNDS, split_tag, summarize

__all__ = [
    # Engine
    "sensitivity",
    "filter_groups",
    "confounder_state_frame",
    # Calibration search
    "optimsens",
    "OptimSensResult",
    "default_bounds",
    # Parameters
    "expand_params",
    "pack_params",
    "PackedParameters",
    "is_categorical",
    "SLOT_NAMES",
    "N_SLOTS",
    # Augmentation
    "sensitize",
    "solve_mixture_logit",
    # Summaries
    "summarize",
    "split_tag",
    "BOUNDS",
]

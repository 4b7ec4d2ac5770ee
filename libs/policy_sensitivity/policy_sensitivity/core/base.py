"""Base definitions shared by the sensitivity analysis modules.

This module provides the exception hierarchy, the recognized outcome-regime
identifiers and the column names that make up a policy data table.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import pandas as pd

# Outcome regimes a policy can use as its base risk measure
RESP_CTL = "resp_ctl"
RESP_TRT = "resp_trt"
RISK_COLUMNS = (RESP_CTL, RESP_TRT)

# Reserved columns of a policy data table
FOLD_COL = "fold__"
PTRT_COL = "ptrt__"
RESP_CTL_COL = "resp_ctl__"
RESP_TRT_COL = "resp_trt__"
RISK_COL = "risk__"
REQUIRED_POLICY_COLUMNS = (FOLD_COL, PTRT_COL, RESP_CTL_COL, RESP_TRT_COL, RISK_COL)

# Capabilities an object needs to be analysed as a policy
POLICY_ATTRIBUTES = ("data", "treatment", "grouping", "controls", "risk_col", "fitter")


class SensitivityAnalysisError(Exception):
    """Base exception class for sensitivity analysis errors."""

    pass


class InvalidInputError(SensitivityAnalysisError):
    """Raised when an object lacks the capabilities of a policy."""

    pass


class InvalidGroupSpecificationError(SensitivityAnalysisError):
    """Raised when requested groups do not exist in the grouping variable."""

    pass


class InvalidParameterShapeError(SensitivityAnalysisError):
    """Raised when a parameter vector has a length that cannot be broadcast."""

    pass


class MisspecifiedPolicyError(SensitivityAnalysisError):
    """Raised when a policy names an unrecognized risk column."""

    pass


class MalformedTagError(SensitivityAnalysisError):
    """Raised when a result tag cannot be split into group and bound."""

    pass


class EstimationError(SensitivityAnalysisError):
    """Raised when a model fit or parameter search fails."""

    pass


@runtime_checkable
class PolicyProtocol(Protocol):
    """Protocol defining the capabilities consumed by the sensitivity engine."""

    data: pd.DataFrame
    treatment: str
    grouping: str
    controls: list[str]
    risk_col: str
    fitter: Any


def validate_policy(policy: Any) -> None:
    """Check that ``policy`` exposes everything the sensitivity engine reads.

    Args:
        policy: Object to validate

    Raises:
        InvalidInputError: If an attribute, a fitting capability or a
            required data column is missing
    """
    missing = [attr for attr in POLICY_ATTRIBUTES if not hasattr(policy, attr)]
    if missing:
        raise InvalidInputError(
            f"Expected a policy object; missing attributes: {', '.join(missing)}"
        )

    fitter = policy.fitter
    for method in ("fit_weighted", "fit_unweighted"):
        if not callable(getattr(fitter, method, None)):
            raise InvalidInputError(f"Policy fitter must provide a callable {method}()")

    if not isinstance(policy.data, pd.DataFrame):
        raise InvalidInputError("Policy data must be a pandas DataFrame")

    required = [policy.grouping, policy.treatment, *REQUIRED_POLICY_COLUMNS]
    absent = [col for col in required if col not in policy.data.columns]
    if absent:
        raise InvalidInputError(
            f"Policy data is missing required columns: {', '.join(absent)}"
        )

"""Core definitions: exceptions, policy protocol and reserved column names."""

from .base import (
    FOLD_COL,
    PTRT_COL,
    REQUIRED_POLICY_COLUMNS,
    RESP_CTL,
    RESP_CTL_COL,
    RESP_TRT,
    RESP_TRT_COL,
    RISK_COL,
    RISK_COLUMNS,
    EstimationError,
    InvalidGroupSpecificationError,
    InvalidInputError,
    InvalidParameterShapeError,
    MalformedTagError,
    MisspecifiedPolicyError,
    PolicyProtocol,
    SensitivityAnalysisError,
    validate_policy,
)

__all__ = [
    "SensitivityAnalysisError",
    "InvalidInputError",
    "InvalidGroupSpecificationError",
    "InvalidParameterShapeError",
    "MisspecifiedPolicyError",
    "MalformedTagError",
    "EstimationError",
    "PolicyProtocol",
    "validate_policy",
    "RESP_CTL",
    "RESP_TRT",
    "RISK_COLUMNS",
    "FOLD_COL",
    "PTRT_COL",
    "RESP_CTL_COL",
    "RESP_TRT_COL",
    "RISK_COL",
    "REQUIRED_POLICY_COLUMNS",
]

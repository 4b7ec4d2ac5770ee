"""Sensitivity of group disparity estimates to an unobserved confounder.

``sensitivity`` re-estimates the disparity regression of a policy (treatment
on group membership, risk and legitimate controls) after augmenting the data
with a hypothesized binary confounder u. Each test-fold observation is
duplicated into a u = 0 and a u = 1 row whose treatment probability and risk
are adjusted by the sensitivity parameters, and the regression is re-fit with
weights 1 - q and q.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from shared.config import SensitivityConfig

from ..core.base import (
    FOLD_COL,
    PTRT_COL,
    RESP_CTL,
    RESP_CTL_COL,
    RESP_TRT,
    RESP_TRT_COL,
    RISK_COL,
    InvalidGroupSpecificationError,
    InvalidInputError,
    InvalidParameterShapeError,
    MisspecifiedPolicyError,
    PolicyProtocol,
    validate_policy,
)
from ..models.fitting import pull_coefs
from .parameters import expand_params, is_categorical
from .sensitize import sensitize

logger = logging.getLogger(__name__)

# beta (log-odds of response given u = 0) and delta (shift when u = 1) per regime
_RISK_SOURCES = {
    RESP_CTL: ("beta_ctl__", "d0"),
    RESP_TRT: ("beta_trt__", "d1"),
}


def _group_levels(values: pd.Series) -> list[Any]:
    if is_categorical(values):
        return list(values.cat.categories)
    return list(pd.unique(values.dropna()))


def filter_groups(
    data: pd.DataFrame, grouping: str, compare: str | Sequence[Any]
) -> pd.DataFrame:
    """Keep rows of the ``compare`` groups and order levels as given.

    The first group in ``compare`` becomes the reference level of the
    grouping variable.

    Raises:
        InvalidGroupSpecificationError: If a group is unknown, repeated or has
            no rows in ``data``
    """
    groups = [compare] if isinstance(compare, str) else list(compare)
    if not groups:
        raise InvalidGroupSpecificationError("compare must name at least one group")

    levels = _group_levels(data[grouping])
    missing = [g for g in groups if g not in levels]
    if missing:
        raise InvalidGroupSpecificationError(
            "Groups specified in compare do not exist: "
            f"{', '.join(map(str, missing))}. "
            f"Available groups are: {', '.join(map(str, levels))}"
        )
    if len(set(groups)) != len(groups):
        raise InvalidGroupSpecificationError(f"compare contains duplicates: {groups}")

    filtered = data[data[grouping].isin(groups)].copy()
    empty = [g for g in groups if not (filtered[grouping] == g).any()]
    if empty:
        raise InvalidGroupSpecificationError(
            f"Groups specified in compare have no rows: {', '.join(map(str, empty))}"
        )

    filtered[grouping] = pd.Categorical(filtered[grouping], categories=groups)
    return filtered


def _resolve_override(
    value: Any, default: pd.Series, n: int, name: str
) -> NDArray[np.float64]:
    """Caller override of a fitted column (length 1 or n) or the column itself."""
    if value is None:
        return default.to_numpy(dtype=float)

    arr = np.asarray(value, dtype=float).reshape(-1)
    if len(arr) == 1:
        return np.repeat(arr, n)
    if len(arr) == n:
        return arr
    raise InvalidParameterShapeError(
        f"Bad specification of argument: {name}; "
        f"expected length 1 or {n}, got {len(arr)}"
    )


def _risk_sources(risk_col: str) -> tuple[str, str]:
    try:
        return _RISK_SOURCES[risk_col]
    except KeyError:
        raise MisspecifiedPolicyError(
            "Misspecified risk_col in policy object. "
            f"Expected either {RESP_CTL} or {RESP_TRT}; got: {risk_col!r}"
        ) from None


def confounder_state_frame(
    sensitized: pd.DataFrame,
    u: int,
    treatment: str,
    risk_col: str,
) -> pd.DataFrame:
    """Rows of the augmented data for confounder state ``u``.

    Sets the treatment to the state-specific treatment probability, the risk
    to ``beta + u * delta`` and the weight to ``1 - q`` (u = 0) or ``q``
    (u = 1).
    """
    if u not in (0, 1):
        raise ValueError(f"Confounder state must be 0 or 1, got {u}")

    beta_col, delta_col = _risk_sources(risk_col)

    frame = sensitized.copy()
    frame["u"] = u
    frame[treatment] = frame["ptrt_u1__"] if u else frame["ptrt_u0__"]
    frame[RISK_COL] = frame[beta_col] + u * frame[delta_col]
    frame["weights"] = frame["q"] if u else 1.0 - frame["q"]
    return frame


def sensitivity(
    policy: PolicyProtocol,
    q: Any,
    dp: Any,
    d0: Any,
    d1: Any,
    compare: str | Sequence[Any] | None = None,
    ptreat: Any = None,
    resp_ctl: Any = None,
    resp_trt: Any = None,
    controls: str | Sequence[str] | None = None,
    naive_se: bool = True,
    debug: bool = False,
    config: SensitivityConfig | None = None,
) -> pd.DataFrame | tuple[pd.DataFrame, pd.DataFrame]:
    """Disparity estimates under a hypothesized unobserved confounder.

    All sensitivity parameters (q, dp, d0, d1) accept one of three formats,
    determined by their length: a single value applied to every row, one
    value per level of the grouping variable (categorical groupings only;
    with ``compare`` the levels are the compared groups in the given order),
    or one value per test-fold row.

    Args:
        policy: Policy object (see :class:`policy_sensitivity.policy.Policy`)
        q: p(u = 1 | x)
        dp: Change in log-odds of treatment = 1 if u = 1
        d0: Change in log-odds of response = 1 if treatment = 0 and u = 1
        d1: Change in log-odds of response = 1 if treatment = 1 and u = 1
        compare: Groups to compare; data are restricted to these groups and
            the first one becomes the base group
        ptreat: Probability of treatment overriding the policy's fitted values
        resp_ctl: Probability of response under control overriding the
            fitted values (e.g. 0 when the outcome cannot occur untreated)
        resp_trt: Probability of response under treatment overriding the
            fitted values
        controls: Legitimate controls; the policy's controls when None
        naive_se: Also report standard errors from the unadjusted regression
        debug: Also return the augmented data used for the weighted fit
        config: Configuration; defaults to ``SensitivityConfig()``

    Returns:
        Coefficient table of grouping terms with columns ``term``,
        ``estimate``, ``std.error`` (or ``std.error.weighted`` and
        ``std.error.naive`` when ``naive_se``) and ``controls``. With
        ``debug``, a tuple ``(augmented_data, coefficients)``.

    Raises:
        InvalidInputError: If ``policy`` lacks a required capability
        InvalidGroupSpecificationError: If ``compare`` names unknown groups
        InvalidParameterShapeError: If a parameter or override cannot be
            broadcast to the rows
        MisspecifiedPolicyError: If ``policy.risk_col`` is not recognized
    """
    validate_policy(policy)
    if config is None:
        config = SensitivityConfig()

    if controls is None:
        controls = list(policy.controls)
    elif isinstance(controls, str):
        controls = [controls]
    else:
        controls = list(controls)

    grouping = policy.grouping
    treatment = policy.treatment

    d = policy.data
    d = d[d[FOLD_COL] == config.test_fold].copy()
    if d.empty:
        raise InvalidInputError(f"Policy data has no rows in fold {config.test_fold!r}")

    if compare is not None:
        d = filter_groups(d, grouping, compare)
    elif is_categorical(d[grouping]):
        # Levels without test rows would give the regression all-zero columns
        observed = d[grouping].cat.remove_unused_categories()
        unused = [
            level
            for level in d[grouping].cat.categories
            if level not in observed.cat.categories
        ]
        if unused:
            logger.warning(
                "Dropping %s levels without test rows: %s",
                grouping,
                ", ".join(map(str, unused)),
            )
            d[grouping] = observed

    if is_categorical(d[grouping]):
        levels = list(d[grouping].cat.categories)
        logger.info(
            "Comparing %s=%s against %s={%s}",
            grouping,
            levels[0],
            grouping,
            ", ".join(map(str, levels[1:])),
        )

    # Numeric response; a boolean column would be expanded into two outcomes
    d[treatment] = d[treatment].astype(float)

    n = len(d)
    d["p_trt"] = _resolve_override(ptreat, d[PTRT_COL], n, "ptreat")
    d["resp_ctl"] = _resolve_override(resp_ctl, d[RESP_CTL_COL], n, "resp_ctl")
    d["resp_trt"] = _resolve_override(resp_trt, d[RESP_TRT_COL], n, "resp_trt")

    features = [RISK_COL, *controls]

    naive_coefs = None
    if naive_se:
        naive_coefs = pull_coefs(d, treatment, grouping, features, policy.fitter)
        naive_coefs = naive_coefs[["term", "std.error", "controls"]]

    groups = d[grouping]
    qs = expand_params(groups, q)
    dps = expand_params(groups, dp)
    d0s = expand_params(groups, d0)
    d1s = expand_params(groups, d1)

    sens_df = sensitize(d, q=qs, dp=dps, d0=d0s, d1=d1s, config=config)
    sens_df["obs__"] = np.arange(n)

    augmented = pd.concat(
        [
            confounder_state_frame(sens_df, u, treatment, policy.risk_col)
            for u in (0, 1)
        ],
        ignore_index=True,
    )
    logger.debug("Augmented %d test rows into %d weighted rows", n, len(augmented))

    coefs = pull_coefs(
        augmented,
        treatment,
        grouping,
        features,
        policy.fitter,
        weights=augmented["weights"],
    )
    coefs = coefs[["term", "estimate", "std.error", "controls"]]

    if naive_coefs is not None:
        coefs = coefs.merge(
            naive_coefs,
            on=["term", "controls"],
            suffixes=(".weighted", ".naive"),
        )

    ret = coefs[coefs["term"].str.contains(grouping, regex=False)].reset_index(
        drop=True
    )

    if debug:
        return augmented, ret
    return ret

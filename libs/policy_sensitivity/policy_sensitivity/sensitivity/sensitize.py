"""Confounder augmentation for policy data.

Given per-row sensitivity parameters, ``sensitize`` splits each observation's
fitted treatment and outcome probabilities into the two states of a binary
unobserved confounder u. With u ~ Bernoulli(q):

    P(T = 1 | x, u) = expit(alpha + u * dp)
    P(Y = 1 | T = t, x, u) = expit(beta_t + u * d_t)

alpha and beta_t are chosen so that marginalizing over u reproduces the
observed (fitted) probabilities: alpha over the prior of u, beta_t over the
posterior of u within treatment regime t.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from scipy.optimize import elementwise
from scipy.special import expit, logit

from shared.config import SensitivityConfig

from ..core.base import InvalidInputError, InvalidParameterShapeError

logger = logging.getLogger(__name__)

SENSITIZE_INPUT_COLUMNS = ("p_trt", "resp_ctl", "resp_trt")


def _mixture_residual(
    x: NDArray[Any], weight: NDArray[Any], shift: NDArray[Any], target: NDArray[Any]
) -> NDArray[np.float64]:
    return weight * expit(x + shift) + (1.0 - weight) * expit(x) - target


def solve_mixture_logit(
    target: NDArray[Any],
    weight: NDArray[Any],
    shift: NDArray[Any],
    tolerance: float = 1e-10,
    max_iter: int = 200,
) -> NDArray[np.float64]:
    """Solve ``weight * expit(x + shift) + (1 - weight) * expit(x) = target`` for x.

    The left-hand side is increasing in x and equals ``target`` somewhere in
    ``[logit(target) - max(shift, 0), logit(target) - min(shift, 0)]``. Each
    row is solved with ``scipy.optimize.elementwise.find_root`` on that
    bracket, widened by one unit on both sides so it always changes sign.

    Args:
        target: Mixture probabilities, strictly inside (0, 1)
        weight: Mixture weight of the shifted component, in [0, 1]
        shift: Log-odds shift of the weighted component
        tolerance: Absolute tolerance of the solutions
        max_iter: Maximum number of root-finding iterations

    Returns:
        Array of solutions on the log-odds scale
    """
    target, weight, shift = np.broadcast_arrays(
        np.asarray(target, dtype=float),
        np.asarray(weight, dtype=float),
        np.asarray(shift, dtype=float),
    )
    base = logit(target)
    lo = base - np.maximum(shift, 0.0) - 1.0
    hi = base - np.minimum(shift, 0.0) + 1.0

    res = elementwise.find_root(
        _mixture_residual,
        (lo, hi),
        args=(weight, shift, target),
        tolerances={"xatol": tolerance},
        maxiter=max_iter,
    )
    failed = ~np.asarray(res.success)
    if failed.any():
        logger.warning(
            "Root finding did not converge for %d of %d rows", failed.sum(), failed.size
        )
    return np.asarray(res.x, dtype=float)


def _row_vector(values: Any, n: int, name: str) -> NDArray[np.float64]:
    arr = np.asarray(values, dtype=float).reshape(-1)
    if len(arr) == 1:
        return np.repeat(arr, n)
    if len(arr) != n:
        raise InvalidParameterShapeError(
            f"{name} has length {len(arr)}; expected 1 or {n}"
        )
    return arr


def sensitize(
    data: pd.DataFrame,
    q: Any,
    dp: Any,
    d0: Any,
    d1: Any,
    config: SensitivityConfig | None = None,
) -> pd.DataFrame:
    """Augment policy data with confounder-state specific quantities.

    Args:
        data: Frame with columns ``p_trt`` (probability of treatment),
            ``resp_ctl`` and ``resp_trt`` (probability of response under each
            treatment regime)
        q: p(u = 1 | x), scalar or one value per row
        dp: Change in log-odds of treatment if u = 1
        d0: Change in log-odds of response under control if u = 1
        d1: Change in log-odds of response under treatment if u = 1
        config: Numerical settings; defaults to ``SensitivityConfig()``

    Returns:
        Copy of ``data`` with added columns ``q, dp, d0, d1`` (row-expanded),
        ``ptrt_u0__`` and ``ptrt_u1__`` (treatment probability given u = 0/1)
        and ``beta_ctl__`` and ``beta_trt__`` (log-odds of response given
        u = 0 under each regime)

    Raises:
        InvalidInputError: If a required column is missing
        InvalidParameterShapeError: If a parameter has neither length 1 nor n
        ValueError: If q lies outside [0, 1] or inputs contain missing values
    """
    if config is None:
        config = SensitivityConfig()

    missing = [col for col in SENSITIZE_INPUT_COLUMNS if col not in data.columns]
    if missing:
        raise InvalidInputError(f"sensitize() requires columns: {', '.join(missing)}")

    n = len(data)
    qs = _row_vector(q, n, "q")
    dps = _row_vector(dp, n, "dp")
    d0s = _row_vector(d0, n, "d0")
    d1s = _row_vector(d1, n, "d1")

    if np.any((qs < 0) | (qs > 1)):
        raise ValueError("q must lie in [0, 1]")
    for name, values in (("dp", dps), ("d0", d0s), ("d1", d1s)):
        if not np.all(np.isfinite(values)):
            raise ValueError(f"{name} contains missing or infinite values")

    eps = config.probability_clip
    probs = {}
    for col in SENSITIZE_INPUT_COLUMNS:
        values = data[col].to_numpy(dtype=float)
        if np.any(np.isnan(values)):
            n_missing = int(np.isnan(values).sum())
            raise ValueError(f"{col} contains {n_missing} missing values")
        probs[col] = np.clip(values, eps, 1 - eps)

    solve = dict(tolerance=config.solver_tolerance, max_iter=config.solver_max_iter)

    alpha = solve_mixture_logit(probs["p_trt"], qs, dps, **solve)
    ptrt_u0 = expit(alpha)
    ptrt_u1 = expit(alpha + dps)

    # Posterior prevalence of u within each observed treatment regime
    w_trt = np.clip(qs * ptrt_u1 / probs["p_trt"], 0.0, 1.0)
    w_ctl = np.clip(qs * (1 - ptrt_u1) / (1 - probs["p_trt"]), 0.0, 1.0)

    beta_ctl = solve_mixture_logit(probs["resp_ctl"], w_ctl, d0s, **solve)
    beta_trt = solve_mixture_logit(probs["resp_trt"], w_trt, d1s, **solve)

    out = data.copy()
    out["q"] = qs
    out["dp"] = dps
    out["d0"] = d0s
    out["d1"] = d1s
    out["ptrt_u0__"] = ptrt_u0
    out["ptrt_u1__"] = ptrt_u1
    out["beta_ctl__"] = beta_ctl
    out["beta_trt__"] = beta_trt

    logger.debug("Sensitized %d rows", n)
    return out

"""Calibration search for the range of adjusted disparity estimates.

``optimsens`` searches the sensitivity parameter space for the smallest and
largest adjusted estimate of each comparison group's disparity term. The
searched vector is mapped onto named parameters with ``pack_params``: base
group values (qb, ab, d0b, d1b) apply to the first group in ``compare`` and
modifier values (qm, am, d0m, d1m) to every other group.

With few free parameters every corner of the search box is also evaluated and
kept when it beats the local optimizer.
"""

from __future__ import annotations

import contextlib
import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from scipy.optimize import minimize

from shared.config import SensitivityConfig
from shared.observability.metrics import SensitivityMetrics

from ..core.base import (
    EstimationError,
    InvalidGroupSpecificationError,
    InvalidParameterShapeError,
    PolicyProtocol,
    validate_policy,
)
from ..models.fitting import group_term_name
from .engine import sensitivity
from .parameters import N_SLOTS, SLOT_NAMES, PackedParameters, pack_params
from .summary import BOUNDS, TAG_SEPARATOR, summarize

logger = logging.getLogger(__name__)


@dataclass
class OptimSensResult:
    """Results of a calibration search.

    Attributes:
        results: One row per (group, bound) with the coefficient columns of
            :func:`sensitivity`, the ``tag`` ``"<group>_<bound>"``, whether
            the optimizer converged, and the packed parameter values at the
            optimum
        compare: Compared groups, base group first
        grouping: Name of the grouping variable
    """

    results: pd.DataFrame
    compare: list[Any]
    grouping: str
    optimizer_messages: dict[str, str] = field(default_factory=dict)

    def summary(self) -> pd.DataFrame:
        """Min and max adjusted estimate of each group term."""
        return summarize(self.results)


def default_bounds(
    config: SensitivityConfig, q_range: bool = False
) -> list[tuple[float, float]]:
    """Search bounds for the eight parameter slots, in slot order."""
    bounds = []
    for name in SLOT_NAMES:
        if name == "qm" and q_range:
            bounds.append(tuple(config.q_range_bounds))
        elif name.startswith("q"):
            bounds.append(tuple(config.q_bounds))
        else:
            bounds.append(tuple(config.log_odds_bounds))
    return bounds


def _free_bounds(
    mask: NDArray[np.bool_],
    config: SensitivityConfig,
    q_range: bool,
    lower: Sequence[float] | None,
    upper: Sequence[float] | None,
) -> list[tuple[float, float]]:
    bounds = [b for b, free in zip(default_bounds(config, q_range), mask) if free]
    n_free = len(bounds)

    if lower is not None:
        lower = np.asarray(lower, dtype=float).reshape(-1)
        if len(lower) != n_free:
            raise InvalidParameterShapeError(
                f"lower has {len(lower)} entries for {n_free} free parameters"
            )
        bounds = [(lo, hi) for lo, (_, hi) in zip(lower, bounds)]
    if upper is not None:
        upper = np.asarray(upper, dtype=float).reshape(-1)
        if len(upper) != n_free:
            raise InvalidParameterShapeError(
                f"upper has {len(upper)} entries for {n_free} free parameters"
            )
        bounds = [(lo, hi) for (lo, _), hi in zip(bounds, upper)]

    for lo, hi in bounds:
        if lo > hi:
            raise ValueError(f"Lower bound {lo} exceeds upper bound {hi}")
    return [(float(lo), float(hi)) for lo, hi in bounds]


def optimsens(
    policy: PolicyProtocol,
    compare: Sequence[Any],
    free_mask: Sequence[bool] | None = None,
    fixed_values: Sequence[float] | None = None,
    allow_sgv: bool = False,
    q_range: bool = False,
    x0: Sequence[float] | None = None,
    lower: Sequence[float] | None = None,
    upper: Sequence[float] | None = None,
    naive_se: bool | None = None,
    config: SensitivityConfig | None = None,
    metrics: SensitivityMetrics | None = None,
) -> OptimSensResult:
    """Find the minimum and maximum adjusted disparity for each group.

    Args:
        policy: Policy object
        compare: Groups to compare, base group first (at least two)
        free_mask: Eight booleans marking the searched slots (all when None)
        fixed_values: Values of the slots not searched, in slot order
        allow_sgv: Allow dp, d0 and d1 to differ between base and modifier
            groups
        q_range: Search the modifier prevalence as a log-odds shift from qb
        x0: Starting point for the free parameters (bounds midpoint if None)
        lower: Lower bounds of the free parameters (configuration if None)
        upper: Upper bounds of the free parameters (configuration if None)
        naive_se: Report naive standard errors at the optimum
            (``config.naive_se`` when None)
        config: Configuration; defaults to ``SensitivityConfig()``
        metrics: Records every objective evaluation when given

    Returns:
        OptimSensResult

    Raises:
        InvalidGroupSpecificationError: If fewer than two groups are compared
        InvalidParameterShapeError: If masks, fixed values, starting point or
            bounds have inconsistent lengths
        EstimationError: If an evaluation yields a non-finite estimate or the
            group term is absent from the fit
    """
    validate_policy(policy)
    if config is None:
        config = SensitivityConfig()
    if naive_se is None:
        naive_se = config.naive_se

    groups = [compare] if isinstance(compare, str) else list(compare)
    if len(groups) < 2:
        raise InvalidGroupSpecificationError(
            "optimsens needs a base group and at least one comparison group"
        )

    if free_mask is None:
        if fixed_values is not None:
            raise InvalidParameterShapeError(
                "fixed_values requires free_mask to locate the fixed slots"
            )
        mask = np.ones(N_SLOTS, dtype=bool)
        fixed: Sequence[float] = []
    else:
        mask = np.asarray(free_mask, dtype=bool).reshape(-1)
        if len(mask) != N_SLOTS:
            raise InvalidParameterShapeError(
                f"free_mask must have {N_SLOTS} entries, got {len(mask)}"
            )
        fixed = [] if fixed_values is None else fixed_values

    bounds = _free_bounds(mask, config, q_range, lower, upper)

    def _pack(x: NDArray[Any]) -> PackedParameters:
        return pack_params(
            x,
            free_mask=mask,
            fixed_values=fixed,
            allow_sgv=allow_sgv,
            q_range=q_range,
        )

    if x0 is None:
        start = np.array([(lo + hi) / 2 for lo, hi in bounds], dtype=float)
    else:
        start = np.asarray(x0, dtype=float).reshape(-1)
    if len(start) != len(bounds):
        raise InvalidParameterShapeError(
            f"x0 has {len(start)} entries for {len(bounds)} free parameters"
        )
    # Fail on inconsistent free/fixed lengths before any fitting
    _pack(start)

    timer = None
    if metrics is not None and config.enable_metrics:
        timer = metrics.time_evaluation

    def _evaluate(x: NDArray[Any], with_naive_se: bool) -> pd.DataFrame:
        params = _pack(x).level_values(len(groups))
        ctx = timer("optimsens") if timer is not None else contextlib.nullcontext()
        with ctx:
            return sensitivity(
                policy,
                compare=groups,
                naive_se=with_naive_se,
                config=config,
                **params,
            )

    def _term_row(coefs: pd.DataFrame, term: str) -> pd.DataFrame:
        row = coefs[coefs["term"] == term]
        if row.empty:
            raise EstimationError(
                f"Term {term!r} not found among {list(coefs['term'])}"
            )
        return row

    def _estimate(x: NDArray[Any], term: str) -> float:
        estimate = float(_term_row(_evaluate(x, False), term)["estimate"].iloc[0])
        if not np.isfinite(estimate):
            raise EstimationError(f"Non-finite estimate for {term!r} at {x}")
        return estimate

    check_corners = 0 < len(bounds) <= config.corner_check_max_free

    rows = []
    messages = {}
    for group in groups[1:]:
        term = group_term_name(policy.grouping, group)
        # Estimates at the box corners are shared by both bounds of a term
        corners = []
        if check_corners:
            for corner in itertools.product(*bounds):
                x_corner = np.array(corner, dtype=float)
                corners.append((x_corner, _estimate(x_corner, term)))

        for bound in BOUNDS:
            tag = f"{group}{TAG_SEPARATOR}{bound}"
            sign = 1.0 if bound == "min" else -1.0

            def objective(
                x: NDArray[Any], term: str = term, sign: float = sign
            ) -> float:
                return sign * _estimate(x, term)

            logger.info(
                "Searching %s bound of %s over %d parameters", bound, term, len(bounds)
            )
            if len(bounds) == 0:
                x_opt, converged, message = start, True, "no free parameters"
            else:
                res = minimize(
                    objective,
                    start,
                    method=config.optim_method,
                    bounds=bounds,
                    options={"maxiter": config.optim_maxiter},
                )
                x_opt, converged, message = res.x, bool(res.success), str(res.message)
                if not converged:
                    logger.warning("Search for %s did not converge: %s", tag, message)

                if corners:
                    x_best, best = min(
                        ((x, sign * est) for x, est in corners), key=lambda c: c[1]
                    )
                    if best < float(res.fun):
                        logger.info(
                            "Box corner %s improves the %s bound of %s",
                            x_best,
                            bound,
                            term,
                        )
                        x_opt = x_best
            messages[tag] = message

            packed = _pack(x_opt)
            row = _term_row(_evaluate(x_opt, naive_se), term).copy()
            row["tag"] = tag
            row["converged"] = converged
            for name, value in packed.as_dict().items():
                row[name] = value
            rows.append(row)

    results = pd.concat(rows, ignore_index=True)
    return OptimSensResult(
        results=results,
        compare=groups,
        grouping=policy.grouping,
        optimizer_messages=messages,
    )

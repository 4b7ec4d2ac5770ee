"""Sensitivity parameter expansion and packing.

Sensitivity parameters (q, dp, d0, d1) can be supplied as a single value, one
value per level of the grouping variable, or one value per row.
``expand_params`` broadcasts them to row vectors. ``pack_params`` maps the
flat vector searched by the calibration routine onto the eight named slots
(base/modifier pairs of q, dp, d0 and d1).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Sequence

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from scipy.special import expit, logit

from ..core.base import InvalidGroupSpecificationError, InvalidParameterShapeError

SLOT_NAMES = ("qb", "qm", "ab", "am", "d0b", "d0m", "d1b", "d1m")
N_SLOTS = len(SLOT_NAMES)

# Modifier slots forced equal to their base slot without subgroup validity.
# qm never collapses.
_COLLAPSED_SLOTS = (("am", "ab"), ("d0m", "d0b"), ("d1m", "d1b"))


def _as_vector(values: Any, name: str) -> NDArray[np.float64]:
    """Convert a scalar or sequence to a flat float vector."""
    if values is None:
        return np.empty(0, dtype=float)
    try:
        arr = np.asarray(values, dtype=float)
    except (TypeError, ValueError) as exc:
        raise InvalidParameterShapeError(f"{name} must be numeric") from exc
    if arr.ndim > 1:
        raise InvalidParameterShapeError(
            f"{name} must be a scalar or 1D sequence, got shape {arr.shape}"
        )
    return arr.reshape(-1)


def is_categorical(grouping: Any) -> bool:
    """Whether ``grouping`` carries an explicit, ordered level set."""
    if isinstance(grouping, pd.Categorical):
        return True
    dtype = getattr(grouping, "dtype", None)
    return isinstance(dtype, pd.CategoricalDtype)


def expand_params(grouping: Any, param: Any) -> NDArray[np.float64]:
    """Broadcast a sensitivity parameter to one value per row.

    Args:
        grouping: Grouping variable of length n. Level-wise broadcasting is
            only available when it is categorical (``pd.Categorical`` or a
            Series with categorical dtype).
        param: Scalar, per-level sequence (length k) or per-row sequence
            (length n)

    Returns:
        Array of length n

    Raises:
        InvalidParameterShapeError: If the length of ``param`` is not 1, k
            (for categorical groupings) or n
        InvalidGroupSpecificationError: If level-wise broadcasting hits rows
            with a missing group

    Example:
        >>> g = pd.Categorical(["a", "b", "a"], categories=["a", "b"])
        >>> expand_params(g, [0.1, 0.2])
        array([0.1, 0.2, 0.1])
    """
    p = _as_vector(param, "param")
    n = len(grouping)

    if len(p) == 1:
        return np.repeat(p, n)

    if is_categorical(grouping):
        categorical = pd.Categorical(grouping)
        if len(p) == len(categorical.categories):
            codes = np.asarray(categorical.codes)
            if np.any(codes < 0):
                raise InvalidGroupSpecificationError(
                    "Cannot broadcast per-level parameters over missing groups"
                )
            return p[codes]

    if len(p) == n:
        return p.copy()

    n_levels = (
        len(pd.Categorical(grouping).categories) if is_categorical(grouping) else None
    )
    accepted = "1" + (f", {n_levels}" if n_levels is not None else "") + f" or {n}"
    raise InvalidParameterShapeError(
        f"Parameter of length {len(p)} cannot be expanded; expected length {accepted}"
    )


@dataclass(frozen=True)
class PackedParameters:
    """Named sensitivity parameters for a base group and its comparison groups.

    Attributes:
        qb, qm: Confounder prevalence p(u = 1 | x)
        ab, am: Change in log-odds of treatment when u = 1
        d0b, d0m: Change in log-odds of response under control when u = 1
        d1b, d1m: Change in log-odds of response under treatment when u = 1
    """

    qb: float
    qm: float
    ab: float
    am: float
    d0b: float
    d0m: float
    d1b: float
    d1m: float

    def as_dict(self) -> dict[str, float]:
        return asdict(self)

    def level_values(self, n_levels: int) -> dict[str, NDArray[np.float64]]:
        """Per-level vectors ``[base, modifier, ..., modifier]`` for each parameter.

        The keys match the arguments of :func:`sensitivity` (q, dp, d0, d1).
        """
        if n_levels < 2:
            raise InvalidGroupSpecificationError(
                "At least two groups are needed to assign base and modifier values"
            )

        def _levels(base: float, modifier: float) -> NDArray[np.float64]:
            return np.array([base] + [modifier] * (n_levels - 1), dtype=float)

        return {
            "q": _levels(self.qb, self.qm),
            "dp": _levels(self.ab, self.am),
            "d0": _levels(self.d0b, self.d0m),
            "d1": _levels(self.d1b, self.d1m),
        }


def pack_params(
    raw_params: Sequence[float] | NDArray[Any],
    free_mask: Sequence[bool] | NDArray[np.bool_] | None = None,
    fixed_values: Sequence[float] | NDArray[Any] | None = None,
    allow_sgv: bool = False,
    q_range: bool = False,
) -> PackedParameters:
    """Map optimizer parameters onto the eight named sensitivity slots.

    Args:
        raw_params: All eight slot values, or only the free ones when
            ``free_mask`` is given
        free_mask: Eight booleans marking which slots ``raw_params`` fills
        fixed_values: Values for the slots not marked free, in slot order
        allow_sgv: Allow subgroup validity, i.e. let dp, d0 and d1 differ
            between base and modifier groups. When False the modifier slots
            take the base values.
        q_range: Interpret slot 2 as a shift of the base prevalence on the
            log-odds scale, ``qm = expit(logit(qb) + slot2)``

    Returns:
        PackedParameters

    Raises:
        InvalidParameterShapeError: If the lengths of the arguments are
            inconsistent
    """
    raw = _as_vector(raw_params, "raw_params")

    if free_mask is None:
        if fixed_values is not None:
            raise InvalidParameterShapeError(
                "fixed_values requires free_mask to locate the fixed slots"
            )
        if len(raw) != N_SLOTS:
            raise InvalidParameterShapeError(
                f"Expected {N_SLOTS} parameters, got {len(raw)}"
            )
        slots = dict(zip(SLOT_NAMES, raw.tolist()))
    else:
        mask = np.asarray(free_mask, dtype=bool).reshape(-1)
        if len(mask) != N_SLOTS:
            raise InvalidParameterShapeError(
                f"free_mask must have {N_SLOTS} entries, got {len(mask)}"
            )
        fixed = _as_vector(fixed_values, "fixed_values")
        n_free = int(mask.sum())
        if len(raw) != n_free:
            raise InvalidParameterShapeError(
                f"free_mask marks {n_free} free parameters but {len(raw)} were given"
            )
        if len(fixed) != N_SLOTS - n_free:
            raise InvalidParameterShapeError(
                f"free_mask leaves {N_SLOTS - n_free} fixed parameters "
                f"but {len(fixed)} fixed values were given"
            )

        free_names = [name for name, free in zip(SLOT_NAMES, mask) if free]
        fixed_names = [name for name, free in zip(SLOT_NAMES, mask) if not free]
        slots = dict(zip(free_names, raw.tolist()))
        slots.update(zip(fixed_names, fixed.tolist()))

    if not allow_sgv:
        for modifier, base in _COLLAPSED_SLOTS:
            slots[modifier] = slots[base]

    if q_range:
        slots["qm"] = float(expit(logit(slots["qb"]) + slots["qm"]))

    return PackedParameters(**{name: float(slots[name]) for name in SLOT_NAMES})

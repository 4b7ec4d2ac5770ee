"""Reduce tagged calibration results to min/max bounds per term."""

from __future__ import annotations

import pandas as pd

from ..core.base import MalformedTagError

BOUNDS = ("min", "max")
TAG_SEPARATOR = "_"


def split_tag(tag: str) -> tuple[str, str]:
    """Split ``"<group>_<bound>"`` into group and bound.

    The bound is taken after the last separator, so group names may contain
    underscores.

    Raises:
        MalformedTagError: If there is no separator or the bound is not
            ``min`` or ``max``
    """
    if not isinstance(tag, str) or TAG_SEPARATOR not in tag:
        raise MalformedTagError(f"Tag {tag!r} is not of the form '<group>_<bound>'")
    group, bound = tag.rsplit(TAG_SEPARATOR, 1)
    if not group or bound not in BOUNDS:
        raise MalformedTagError(
            f"Tag {tag!r} must end in one of {', '.join('_' + b for b in BOUNDS)}"
        )
    return group, bound


def summarize(coefficients: pd.DataFrame) -> pd.DataFrame:
    """Pivot tagged estimates into one row per term with ``min`` and ``max``.

    Args:
        coefficients: Table with columns ``term``, ``estimate`` and ``tag``

    Returns:
        DataFrame with columns ``term``, ``min``, ``max``

    Raises:
        MalformedTagError: If the tag column is missing or a tag is malformed,
            or a term has more than one estimate for the same bound
    """
    for col in ("term", "estimate", "tag"):
        if col not in coefficients.columns:
            raise MalformedTagError(f"Coefficient table has no {col!r} column")

    split = [split_tag(tag) for tag in coefficients["tag"]]
    tidy = pd.DataFrame(
        {
            "term": coefficients["term"].to_numpy(),
            "group": [group for group, _ in split],
            "bound": [bound for _, bound in split],
            "estimate": coefficients["estimate"].to_numpy(dtype=float),
        }
    )

    duplicated = tidy.duplicated(["term", "bound"], keep=False)
    if duplicated.any():
        repeated = tidy.loc[duplicated, ["term", "bound"]].drop_duplicates()
        raise MalformedTagError(
            "Coefficient table has more than one estimate for: "
            + ", ".join(f"{t} {b}" for t, b in repeated.itertuples(index=False))
        )

    wide = tidy.pivot(index="term", columns="bound", values="estimate")
    wide = wide.reindex(columns=list(BOUNDS))
    wide.columns.name = None
    return wide.reset_index()[["term", "min", "max"]]

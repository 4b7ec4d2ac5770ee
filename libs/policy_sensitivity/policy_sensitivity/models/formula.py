"""Construction and decomposition of model formula strings."""

from __future__ import annotations

import re

_INTERACTION = re.compile(r"\s*:\s*")


def make_formula(outcome: str, features: str | list[str] | tuple[str, ...]) -> str:
    """Build a formula string ``"outcome ~ f1 + f2 + ..."``.

    Args:
        outcome: Name of the response variable
        features: One feature name or a sequence of them; an empty sequence
            gives an intercept-only formula

    Returns:
        Formula string accepted by ``statsmodels.formula.api``

    Example:
        >>> make_formula("y", ["x1", "x2", "x3"])
        'y ~ x1 + x2 + x3'
    """
    if isinstance(features, str):
        features = [features]
    rhs = " + ".join(features) if features else "1"
    return f"{outcome} ~ {rhs}"


def extract_features(formula: str) -> dict[str, str | list[str]]:
    """Split ``"treat ~ group + f1 + f2"`` into its parts.

    The first right-hand term is the grouping variable; the rest are returned
    as written. Interaction terms (``a:b``) stay a single feature.

    Args:
        formula: Formula string with exactly one ``~``

    Returns:
        Dictionary with keys ``treat``, ``group`` and ``feats``

    Raises:
        ValueError: If the formula has no response or no grouping term
    """
    parts = formula.split("~")
    if len(parts) != 2:
        raise ValueError(f"Formula must contain exactly one '~': {formula!r}")

    treat = parts[0].strip()
    terms = [_INTERACTION.sub(":", term.strip()) for term in parts[1].split("+")]
    terms = [term for term in terms if term]

    if not treat:
        raise ValueError(f"Formula has no response variable: {formula!r}")
    if not terms:
        raise ValueError(f"Formula has no grouping term: {formula!r}")

    return {"treat": treat, "group": terms[0], "feats": terms[1:]}

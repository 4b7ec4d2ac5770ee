"""Regression fitting capability injected into policies.

The sensitivity engine only needs tidy coefficient tables from a weighted and
an unweighted fit, so fitting sits behind the small ``Fitter`` interface.
``GLMFitter`` implements it with statsmodels generalized linear models.
"""

from __future__ import annotations

import abc
import logging
from typing import Any

import numpy as np
import pandas as pd
import statsmodels.api as sm
import statsmodels.formula.api as smf
from numpy.typing import NDArray

from ..core.base import EstimationError
from .formula import make_formula

logger = logging.getLogger(__name__)

TIDY_COLUMNS = ["term", "estimate", "std.error", "statistic", "p.value"]


def tidy_results(results: Any) -> pd.DataFrame:
    """Convert fitted statsmodels results into a tidy coefficient table."""
    params = pd.Series(results.params)
    return pd.DataFrame(
        {
            "term": params.index.astype(str),
            "estimate": params.to_numpy(dtype=float),
            "std.error": np.asarray(results.bse, dtype=float),
            "statistic": np.asarray(results.tvalues, dtype=float),
            "p.value": np.asarray(results.pvalues, dtype=float),
        }
    )


def group_term_name(grouping: str, level: Any) -> str:
    """Name of the coefficient for ``level`` of a treatment-coded categorical."""
    return f"{grouping}[T.{level}]"


class Fitter(abc.ABC):
    """Interface for the regression fits used by the sensitivity engine.

    Both methods take a formula string and a data frame and return a tidy
    coefficient table with columns ``term``, ``estimate``, ``std.error``,
    ``statistic`` and ``p.value``.
    """

    @abc.abstractmethod
    def fit_unweighted(self, formula: str, data: pd.DataFrame) -> pd.DataFrame:
        """Fit ``formula`` on ``data`` with unit weights."""

    @abc.abstractmethod
    def fit_weighted(
        self,
        formula: str,
        data: pd.DataFrame,
        weights: NDArray[Any] | pd.Series,
    ) -> pd.DataFrame:
        """Fit ``formula`` on ``data`` with observation weights."""


class GLMFitter(Fitter):
    """Generalized linear model fitter backed by statsmodels.

    Args:
        family: ``"binomial"`` (logistic regression; the response may be a
            probability) or ``"gaussian"`` (linear regression)
        maxiter: Maximum IRLS iterations
    """

    FAMILIES = ("binomial", "gaussian")

    def __init__(self, family: str = "binomial", maxiter: int = 100):
        if family not in self.FAMILIES:
            raise ValueError(f"family must be one of {self.FAMILIES}, got {family!r}")
        self.family = family
        self.maxiter = maxiter

    def __repr__(self) -> str:
        return f"GLMFitter(family={self.family!r}, maxiter={self.maxiter})"

    def _family(self) -> sm.families.Family:
        if self.family == "binomial":
            return sm.families.Binomial()
        return sm.families.Gaussian()

    def fit_model(
        self,
        formula: str,
        data: pd.DataFrame,
        weights: NDArray[Any] | pd.Series | None = None,
    ) -> Any:
        """Fit and return the statsmodels results object."""
        freq_weights = None
        if weights is not None:
            freq_weights = np.asarray(weights, dtype=float)
            if len(freq_weights) != len(data):
                raise EstimationError(
                    f"Got {len(freq_weights)} weights for {len(data)} observations"
                )

        try:
            model = smf.glm(
                formula, data=data, family=self._family(), freq_weights=freq_weights
            )
            return model.fit(maxiter=self.maxiter)
        except Exception as e:
            raise EstimationError(f"Failed to fit {formula!r}: {str(e)}") from e

    def fit_unweighted(self, formula: str, data: pd.DataFrame) -> pd.DataFrame:
        return tidy_results(self.fit_model(formula, data))

    def fit_weighted(
        self,
        formula: str,
        data: pd.DataFrame,
        weights: NDArray[Any] | pd.Series,
    ) -> pd.DataFrame:
        return tidy_results(self.fit_model(formula, data, weights=weights))


def pull_coefs(
    data: pd.DataFrame,
    treatment: str,
    grouping: str,
    features: list[str],
    fitter: Fitter,
    weights: NDArray[Any] | pd.Series | None = None,
) -> pd.DataFrame:
    """Regress treatment on grouping and features and return tidy coefficients.

    Args:
        data: Data to fit
        treatment: Response column
        grouping: Grouping column; its first level is the reference
        features: Additional right-hand side terms
        fitter: Fitting capability
        weights: Observation weights; an unweighted fit is used when None

    Returns:
        Tidy coefficient table with an added ``controls`` column identifying
        the feature set
    """
    formula = make_formula(treatment, [grouping, *features])
    logger.debug(
        "Fitting %s on %d rows (weighted=%s)", formula, len(data), weights is not None
    )

    if weights is None:
        coefs = fitter.fit_unweighted(formula, data)
    else:
        coefs = fitter.fit_weighted(formula, data, weights)

    coefs = coefs.copy()
    coefs["controls"] = " + ".join(features) if features else "none"
    return coefs

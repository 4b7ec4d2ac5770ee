"""Policy objects: observational treatment decisions with first-stage fits.

A policy bundles the analysed data with the names of its treatment, outcome,
grouping and control variables, the outcome regime used as base risk, and the
regression fitter used by the sensitivity engine. ``Policy.from_formula``
builds one from raw data by fitting the first-stage treatment and outcome
models on a training fold.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from pydantic import BaseModel, Field, model_validator
from scipy.special import logit
from sklearn.model_selection import train_test_split

from shared.config import SensitivityConfig

from .core.base import (
    FOLD_COL,
    PTRT_COL,
    REQUIRED_POLICY_COLUMNS,
    RESP_CTL,
    RESP_CTL_COL,
    RESP_TRT,
    RESP_TRT_COL,
    RISK_COL,
    RISK_COLUMNS,
    InvalidInputError,
    MisspecifiedPolicyError,
)
from .diagnostics.auc import compute_auc
from .models.fitting import Fitter, GLMFitter
from .models.formula import extract_features, make_formula
from .sensitivity.parameters import is_categorical

logger = logging.getLogger(__name__)


class Policy(BaseModel):
    """Data model for a policy under disparity analysis.

    ``data`` must contain the grouping and treatment columns, the fold label
    ``fold__``, fitted probabilities ``ptrt__``, ``resp_ctl__`` and
    ``resp_trt__``, and the base risk ``risk__`` (log-odds scale).
    """

    data: pd.DataFrame = Field(..., description="Policy data with first-stage fits")
    treatment: str = Field(..., description="Name of the treatment indicator")
    grouping: str = Field(..., description="Name of the grouping variable")
    outcome: str | None = Field(default=None, description="Name of the outcome")
    controls: list[str] = Field(
        default_factory=list, description="Legitimate control variables"
    )
    risk_col: str = Field(
        default=RESP_CTL,
        description="Outcome regime used as base risk: 'resp_ctl' or 'resp_trt'",
    )
    fitter: Fitter = Field(
        default_factory=GLMFitter, description="Second-stage regression fitter"
    )

    model_config = {"arbitrary_types_allowed": True}

    @model_validator(mode="after")
    def validate_columns(self) -> Policy:
        """Validate that the data has every column the analysis reads."""
        required = [
            self.grouping,
            self.treatment,
            *REQUIRED_POLICY_COLUMNS,
            *self.controls,
        ]
        if self.outcome is not None:
            required.append(self.outcome)
        missing = [col for col in dict.fromkeys(required) if col not in self.data]
        if missing:
            raise InvalidInputError(
                f"Policy data is missing required columns: {', '.join(missing)}"
            )
        return self

    @property
    def levels(self) -> list[Any]:
        """Levels of the grouping variable, reference level first."""
        groups = self.data[self.grouping]
        if is_categorical(groups):
            return list(groups.cat.categories)
        return sorted(pd.unique(groups.dropna()))

    @classmethod
    def from_formula(
        cls,
        formula: str,
        data: pd.DataFrame,
        outcome: str,
        risk_col: str = RESP_CTL,
        controls: list[str] | None = None,
        fitter: Fitter | None = None,
        train_size: float = 0.5,
        random_state: int | None = None,
        config: SensitivityConfig | None = None,
    ) -> Policy:
        """Split data into folds and fit the first-stage models.

        Args:
            formula: ``"treatment ~ grouping + feature + ..."``; features may
                include interactions such as ``a:b``
            data: Raw observations
            outcome: Name of the binary outcome column
            risk_col: Outcome regime used as base risk
            controls: Legitimate controls for the disparity regression; none
                when None. Features are only used as controls when named here.
            fitter: Second-stage fitter; a binomial GLM when None
            train_size: Fraction of rows used to fit first-stage models
            random_state: Seed for the fold split
            config: Configuration providing the fold labels

        Returns:
            Policy whose data carries fold labels and fitted probabilities

        Raises:
            InvalidInputError: If a column named in the formula is missing
            MisspecifiedPolicyError: If ``risk_col`` is not recognized
        """
        if config is None:
            config = SensitivityConfig()
        if risk_col not in RISK_COLUMNS:
            raise MisspecifiedPolicyError(
                f"risk_col must be one of {RISK_COLUMNS}, got {risk_col!r}"
            )

        parts = extract_features(formula)
        treatment, grouping, feats = parts["treat"], parts["group"], parts["feats"]

        missing = [col for col in (treatment, grouping, outcome) if col not in data]
        if missing:
            raise InvalidInputError(f"Data is missing columns: {', '.join(missing)}")

        df = data.copy()
        if not is_categorical(df[grouping]):
            df[grouping] = pd.Categorical(df[grouping])
        df[treatment] = df[treatment].astype(float)
        df[outcome] = df[outcome].astype(float)

        train_idx, _ = train_test_split(
            df.index, train_size=train_size, random_state=random_state
        )
        df[FOLD_COL] = config.test_fold
        df.loc[train_idx, FOLD_COL] = config.train_fold
        train = df.loc[train_idx]

        # First stages see group membership as well as the features
        rhs = [grouping, *feats]
        treated = train[treatment] == 1
        df[PTRT_COL] = _predict_probability(make_formula(treatment, rhs), train, df)
        df[RESP_TRT_COL] = _predict_probability(
            make_formula(outcome, rhs), train[treated], df
        )
        df[RESP_CTL_COL] = _predict_probability(
            make_formula(outcome, rhs), train[~treated], df
        )

        eps = config.probability_clip
        base = df[RESP_CTL_COL] if risk_col == RESP_CTL else df[RESP_TRT_COL]
        df[RISK_COL] = logit(np.clip(base.to_numpy(dtype=float), eps, 1 - eps))

        logger.info(
            "Fitted policy %s on %d training rows (%d test rows)",
            formula,
            len(train),
            len(df) - len(train),
        )

        return cls(
            data=df,
            treatment=treatment,
            grouping=grouping,
            outcome=outcome,
            controls=[] if controls is None else list(controls),
            risk_col=risk_col,
            fitter=fitter if fitter is not None else GLMFitter(),
        )

    def describe(self, config: SensitivityConfig | None = None) -> dict[str, Any]:
        """Test-fold AUCs of the first-stage models.

        Returns:
            Dictionary with ``n_train``, ``n_test`` and the AUCs of
            ``ptrt__`` (against treatment), ``resp_trt__`` (against outcome
            among treated) and ``resp_ctl__`` (against outcome among
            untreated). Outcome AUCs are only reported when ``outcome`` is set.
        """
        if config is None:
            config = SensitivityConfig()

        folds = self.data[FOLD_COL]
        test = self.data[folds == config.test_fold]
        treated = test[self.treatment] == 1

        summary: dict[str, Any] = {
            "n_train": int((folds == config.train_fold).sum()),
            "n_test": len(test),
            "auc_ptrt": compute_auc(test[PTRT_COL], test[self.treatment], ret_num=True),
        }
        if self.outcome is not None:
            summary["auc_resp_trt"] = compute_auc(
                test.loc[treated, RESP_TRT_COL],
                test.loc[treated, self.outcome],
                ret_num=True,
            )
            summary["auc_resp_ctl"] = compute_auc(
                test.loc[~treated, RESP_CTL_COL],
                test.loc[~treated, self.outcome],
                ret_num=True,
            )
        return summary


def _predict_probability(
    formula: str, train: pd.DataFrame, data: pd.DataFrame
) -> NDArray[np.float64]:
    """Fit a logistic model on ``train`` and predict on ``data``.

    A response without variation in ``train`` is predicted by its mean (zero
    when ``train`` is empty).
    """
    response = formula.split("~")[0].strip()
    y = train[response]
    if y.nunique() < 2:
        constant = float(y.mean()) if len(y) else 0.0
        logger.warning(
            "No variation in %s for %s; predicting constant %.3f",
            response,
            formula,
            constant,
        )
        return np.full(len(data), constant)

    results = GLMFitter("binomial").fit_model(formula, train)
    return np.asarray(results.predict(data), dtype=float)


__all__ = ["Policy", "RESP_CTL", "RESP_TRT"]

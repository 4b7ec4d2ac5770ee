"""Synthetic policy data for testing sensitivity analyses and examples.

The generated decisions depend on group membership, observed covariates and a
hidden binary confounder ``u``, so analyses can be checked against a known
source of omitted-variable bias.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
import pandas as pd
from scipy.special import expit

from ..core.base import RESP_CTL
from ..policy import Policy

TREATMENT = "treated"
OUTCOME = "outcome"
GROUPING = "group"


class SyntheticPolicyDataGenerator:
    """Generator for synthetic policy decision datasets."""

    def __init__(self, random_state: Optional[int] = None):
        """Initialize the synthetic data generator.

        Args:
            random_state: Random seed for reproducible results
        """
        self.random_state = random_state
        self.rng = np.random.RandomState(random_state)

    def generate_policy_data(
        self,
        n_samples: int = 1000,
        groups: Sequence[str] = ("white", "black"),
        group_probs: Sequence[float] | None = None,
        group_effects: Sequence[float] | None = None,
        n_covariates: int = 2,
        covariate_strength: float = 0.8,
        outcome_strength: float = 1.0,
        confounder_prevalence: float = 0.3,
        confounder_treatment_effect: float = 1.0,
        confounder_outcome_effect: float = 1.0,
        include_confounder: bool = False,
    ) -> pd.DataFrame:
        """Generate decisions made with a hidden binary confounder.

        Args:
            n_samples: Number of observations to generate
            groups: Group labels, reference group first
            group_probs: Group membership probabilities (uniform if None)
            group_effects: Log-odds effect of each group on treatment; the
                first group is the reference. Defaults to 0.5 per step.
            n_covariates: Number of observed covariates ``x1, x2, ...``
            covariate_strength: Effect of each covariate on treatment
            outcome_strength: Effect of ``x1`` on the outcome
            confounder_prevalence: p(u = 1)
            confounder_treatment_effect: Log-odds effect of u on treatment
            confounder_outcome_effect: Log-odds effect of u on the outcome
            include_confounder: Keep the column ``u`` in the output

        Returns:
            DataFrame with a categorical ``group`` column, covariates, a
            binary ``treated`` column and a binary ``outcome`` column
        """
        k = len(groups)
        if k < 2:
            raise ValueError("At least two groups are required")
        if group_probs is None:
            group_probs = np.full(k, 1.0 / k)
        if group_effects is None:
            group_effects = 0.5 * np.arange(k)
        group_effects = np.asarray(group_effects, dtype=float)
        if len(group_probs) != k or len(group_effects) != k:
            raise ValueError("group_probs and group_effects need one entry per group")

        codes = self.rng.choice(k, size=n_samples, p=np.asarray(group_probs))
        X = self.rng.normal(size=(n_samples, n_covariates))
        u = self.rng.binomial(1, confounder_prevalence, n_samples)

        treatment_logits = (
            -0.5
            + group_effects[codes]
            + covariate_strength * X.sum(axis=1)
            + confounder_treatment_effect * u
        )
        treatment = self.rng.binomial(1, expit(treatment_logits))

        # Outcome depends on covariates and u but not on group membership
        outcome_logits = (
            -1.0 + outcome_strength * X[:, 0] + confounder_outcome_effect * u
        )
        outcome = self.rng.binomial(1, expit(outcome_logits))

        data = pd.DataFrame(X, columns=[f"x{i + 1}" for i in range(n_covariates)])
        data.insert(
            0,
            GROUPING,
            pd.Categorical.from_codes(codes, categories=list(groups)),
        )
        data[TREATMENT] = treatment
        data[OUTCOME] = outcome
        if include_confounder:
            data["u"] = u
        return data


def generate_policy(
    n_samples: int = 1000,
    groups: Sequence[str] = ("white", "black"),
    risk_col: str = RESP_CTL,
    train_size: float = 0.5,
    random_state: Optional[int] = None,
    **kwargs,
) -> Policy:
    """Generate synthetic decisions and fit a policy on them.

    Args:
        n_samples: Number of observations (split between folds)
        groups: Group labels, reference group first
        risk_col: Outcome regime used as base risk
        train_size: Fraction of rows used for the first-stage fits
        random_state: Random seed for data generation and fold split
        **kwargs: Passed to
            :meth:`SyntheticPolicyDataGenerator.generate_policy_data`

    Returns:
        Policy fitted with ``treated ~ group + x1 + ... + xk``
    """
    generator = SyntheticPolicyDataGenerator(random_state=random_state)
    data = generator.generate_policy_data(n_samples=n_samples, groups=groups, **kwargs)

    covariates = [col for col in data.columns if col.startswith("x")]
    formula = f"{TREATMENT} ~ {' + '.join([GROUPING, *covariates])}"
    return Policy.from_formula(
        formula,
        data,
        outcome=OUTCOME,
        risk_col=risk_col,
        train_size=train_size,
        random_state=random_state,
    )

"""Tests for synthetic policy data generation."""

import numpy as np
import pytest

from policy_sensitivity.data.synthetic import (
    SyntheticPolicyDataGenerator,
    generate_policy,
)
from policy_sensitivity.policy import Policy


class TestSyntheticPolicyDataGenerator:
    """Tests for the synthetic decision generator."""

    def test_columns_and_types(self, synthetic_data_generator, small_sample_size):
        data = synthetic_data_generator.generate_policy_data(
            n_samples=small_sample_size, n_covariates=3
        )
        assert list(data.columns) == ["group", "x1", "x2", "x3", "treated", "outcome"]
        assert len(data) == small_sample_size
        assert list(data["group"].cat.categories) == ["white", "black"]
        assert set(data["treated"]).issubset({0, 1})
        assert set(data["outcome"]).issubset({0, 1})

    def test_reproducible(self, random_state):
        first = SyntheticPolicyDataGenerator(random_state).generate_policy_data(50)
        second = SyntheticPolicyDataGenerator(random_state).generate_policy_data(50)
        assert first.equals(second)

    def test_confounder_column(self, synthetic_data_generator):
        data = synthetic_data_generator.generate_policy_data(
            n_samples=2000, confounder_prevalence=0.3, include_confounder=True
        )
        assert "u" in data.columns
        assert abs(data["u"].mean() - 0.3) < 0.05

    def test_group_effect_raises_treatment_rate(self, synthetic_data_generator):
        data = synthetic_data_generator.generate_policy_data(
            n_samples=4000, group_effects=[0.0, 1.5]
        )
        rates = data.groupby("group", observed=True)["treated"].mean()
        assert rates["black"] > rates["white"]

    def test_invalid_groups(self, synthetic_data_generator):
        with pytest.raises(ValueError, match="two groups"):
            synthetic_data_generator.generate_policy_data(groups=["white"])
        with pytest.raises(ValueError, match="one entry per group"):
            synthetic_data_generator.generate_policy_data(group_effects=[0.0])


def test_generate_policy():
    policy = generate_policy(n_samples=300, random_state=3)
    assert isinstance(policy, Policy)
    assert policy.controls == []
    assert np.isfinite(policy.data["risk__"]).all()

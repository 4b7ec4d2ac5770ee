"""Tests for policy construction and first-stage fits."""

import numpy as np
import pytest
from numpy.testing import assert_allclose
from scipy.special import logit

from policy_sensitivity.core.base import (
    FOLD_COL,
    PTRT_COL,
    REQUIRED_POLICY_COLUMNS,
    RESP_CTL_COL,
    RESP_TRT_COL,
    RISK_COL,
    InvalidInputError,
    MisspecifiedPolicyError,
    PolicyProtocol,
)
from policy_sensitivity.models.fitting import GLMFitter
from policy_sensitivity.policy import Policy

FORMULA = "treated ~ group + x1 + x2"


@pytest.fixture
def raw_data(synthetic_data_generator):
    return synthetic_data_generator.generate_policy_data(n_samples=400)


class TestFromFormula:
    """Tests for building a policy from raw data."""

    def test_adds_fold_and_fitted_columns(self, raw_data):
        """First-stage fits are stored next to the raw columns."""
        policy = Policy.from_formula(
            FORMULA, raw_data, outcome="outcome", random_state=0
        )
        data = policy.data

        for col in REQUIRED_POLICY_COLUMNS:
            assert col in data.columns
        assert set(data[FOLD_COL]) == {"train", "test"}
        assert (data[FOLD_COL] == "train").sum() == 200
        for col in (PTRT_COL, RESP_CTL_COL, RESP_TRT_COL):
            assert data[col].between(0, 1).all()
        assert "fold__" not in raw_data.columns

    def test_policy_attributes(self, raw_data):
        """Names are parsed from the formula; controls must be named explicitly."""
        policy = Policy.from_formula(FORMULA, raw_data, outcome="outcome")

        assert policy.treatment == "treated"
        assert policy.grouping == "group"
        assert policy.outcome == "outcome"
        assert policy.controls == []
        assert policy.risk_col == "resp_ctl"
        assert isinstance(policy.fitter, GLMFitter)
        assert policy.levels == ["white", "black"]
        assert isinstance(policy, PolicyProtocol)

    def test_risk_uses_selected_regime(self, raw_data):
        """risk__ is the log-odds of the selected response probability."""
        ctl = Policy.from_formula(FORMULA, raw_data, outcome="outcome", random_state=1)
        trt = Policy.from_formula(
            FORMULA, raw_data, outcome="outcome", risk_col="resp_trt", random_state=1
        )
        assert_allclose(ctl.data[RISK_COL], logit(ctl.data[RESP_CTL_COL]))
        assert_allclose(trt.data[RISK_COL], logit(trt.data[RESP_TRT_COL]))

    def test_treatment_model_sees_group(self, synthetic_data_generator):
        """Fitted treatment probabilities carry the group effect."""
        data = synthetic_data_generator.generate_policy_data(
            n_samples=2000, group_effects=[0.0, 3.0]
        )
        policy = Policy.from_formula(FORMULA, data, outcome="outcome", random_state=0)

        means = policy.data.groupby("group", observed=True)[PTRT_COL].mean()
        assert means["black"] - means["white"] > 0.3

    def test_explicit_controls(self, raw_data):
        policy = Policy.from_formula(
            FORMULA, raw_data, outcome="outcome", controls=["x2"]
        )
        assert policy.controls == ["x2"]

    def test_string_grouping_becomes_categorical(self, raw_data):
        """A plain grouping column is converted with sorted levels."""
        data = raw_data.copy()
        data["group"] = data["group"].astype(str)
        policy = Policy.from_formula(FORMULA, data, outcome="outcome")
        assert policy.levels == ["black", "white"]

    def test_constant_outcome_regime(self, raw_data):
        """A regime without outcome variation is predicted by its mean."""
        data = raw_data.copy()
        data["outcome"] = 0
        policy = Policy.from_formula(FORMULA, data, outcome="outcome")
        assert (policy.data[RESP_CTL_COL] == 0).all()
        assert np.isfinite(policy.data[RISK_COL]).all()

    def test_invalid_arguments(self, raw_data):
        with pytest.raises(MisspecifiedPolicyError, match="risk_col"):
            Policy.from_formula(FORMULA, raw_data, outcome="outcome", risk_col="resp")

        with pytest.raises(InvalidInputError, match="missing columns: found"):
            Policy.from_formula(FORMULA, raw_data, outcome="found")

        with pytest.raises(ValueError, match="exactly one"):
            Policy.from_formula("treated group + x1", raw_data, outcome="outcome")


class TestPolicyModel:
    """Tests for the policy data model."""

    def test_missing_columns_rejected(self, raw_data):
        """Policy data must carry the first-stage columns."""
        with pytest.raises(InvalidInputError, match="ptrt__"):
            Policy(data=raw_data, treatment="treated", grouping="group")

    def test_missing_control_rejected(self, two_group_policy):
        with pytest.raises(InvalidInputError, match="x9"):
            Policy(
                data=two_group_policy.data,
                treatment="treated",
                grouping="group",
                controls=["x9"],
            )

    def test_describe(self, two_group_policy):
        """Test-fold AUCs are reported for every first-stage model."""
        summary = two_group_policy.describe()

        assert summary["n_train"] + summary["n_test"] == len(two_group_policy.data)
        for key in ("auc_ptrt", "auc_resp_trt", "auc_resp_ctl"):
            assert 0.0 <= summary[key] <= 1.0
        # Treatment depends strongly on the covariates
        assert summary["auc_ptrt"] > 0.6

    def test_describe_without_outcome(self, two_group_policy):
        policy = Policy(
            data=two_group_policy.data,
            treatment="treated",
            grouping="group",
        )
        assert set(policy.describe()) == {"n_train", "n_test", "auc_ptrt"}
        assert policy.levels == ["white", "black"]

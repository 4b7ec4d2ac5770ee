"""Tests for configuration, logging setup and metrics."""

import logging

import pytest
from prometheus_client import CollectorRegistry
from pydantic import ValidationError

import shared.config
from shared.config import BaseConfiguration, Environment, SensitivityConfig
from shared.observability import SensitivityMetrics, get_logger, setup_logging


class TestSensitivityConfig:
    """Tests for sensitivity analysis configuration."""

    def test_defaults(self):
        config = SensitivityConfig()
        assert config.test_fold == "test"
        assert config.train_fold == "train"
        assert config.probability_clip == 1e-6
        assert config.q_bounds == (0.01, 0.99)
        assert config.optim_method == "Powell"
        assert config.corner_check_max_free == 3
        assert config.naive_se is True
        assert config.validate_configuration() == []

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("SENSITIVITY_TEST_FOLD", "holdout")
        monkeypatch.setenv("SENSITIVITY_OPTIM_MAXITER", "7")
        config = SensitivityConfig()
        assert config.test_fold == "holdout"
        assert config.optim_maxiter == 7

    @pytest.mark.parametrize(
        "overrides",
        [
            {"probability_clip": 0.6},
            {"probability_clip": 0.0},
            {"solver_tolerance": -1.0},
            {"solver_max_iter": 0},
            {"corner_check_max_free": -1},
            {"q_bounds": (0.5, 0.2)},
            {"q_bounds": (0.0, 1.0)},
            {"log_odds_bounds": (1.0, -1.0)},
            {"q_range_bounds": (0.0, 0.0)},
            {"test_fold": "train"},
        ],
    )
    def test_invalid_values(self, overrides):
        with pytest.raises(ValidationError):
            SensitivityConfig(**overrides)

    def test_configuration_issues(self):
        config = SensitivityConfig(
            environment=Environment.PRODUCTION,
            optim_maxiter=5,
            probability_clip=0.01,
            solver_tolerance=1e-4,
        )
        issues = config.validate_configuration()
        assert len(issues) == 3
        assert any("optim_maxiter" in issue for issue in issues)

    def test_base_configuration(self, monkeypatch):
        """Configurations are passed explicitly; only the base model is shared."""
        assert shared.config.__all__ == [
            "BaseConfiguration",
            "Environment",
            "SensitivityConfig",
        ]
        monkeypatch.setenv("ENVIRONMENT", "staging")
        config = BaseConfiguration()
        assert config.environment == Environment.STAGING
        assert config.validate_configuration() == []


class TestObservability:
    """Tests for logging and metrics helpers."""

    def test_setup_logging_quiets_fitting_libraries(self):
        setup_logging(SensitivityConfig(environment=Environment.TESTING))
        assert logging.getLogger("statsmodels").level == logging.WARNING
        assert get_logger("policy_sensitivity").name == "policy_sensitivity"

    def test_time_evaluation_success(self):
        metrics = SensitivityMetrics(registry=CollectorRegistry())
        with metrics.time_evaluation("sensitivity"):
            pass
        assert metrics.evaluation_total("sensitivity") == 1.0
        assert metrics.evaluation_total("sensitivity", status="error") == 0.0

    def test_time_evaluation_error(self):
        metrics = SensitivityMetrics(registry=CollectorRegistry())
        with pytest.raises(RuntimeError):
            with metrics.time_evaluation("sensitivity"):
                raise RuntimeError("fit failed")

        assert metrics.evaluation_total("sensitivity", status="error") == 1.0
        errors = metrics.registry.get_sample_value(
            "sensitivity_errors_total",
            {"error_type": "RuntimeError", "operation": "sensitivity"},
        )
        assert errors == 1.0

"""Sensitivity analysis specific configuration."""

from pydantic import Field, field_validator, model_validator
from pydantic_settings import SettingsConfigDict

from .base import BaseConfiguration, Environment


class SensitivityConfig(BaseConfiguration):
    """Configuration for unobserved-confounding sensitivity analyses.

    Values can be overridden through environment variables prefixed with
    ``SENSITIVITY_`` (e.g. ``SENSITIVITY_TEST_FOLD=holdout``).
    """

    model_config = SettingsConfigDict(
        env_prefix="SENSITIVITY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Data layout
    test_fold: str = Field(
        default="test", description="Fold label of rows used for analysis"
    )
    train_fold: str = Field(
        default="train", description="Fold label of rows used for first-stage fits"
    )

    # Numerical configuration
    probability_clip: float = Field(
        default=1e-6,
        description="Probabilities are clipped to [eps, 1 - eps] before logit",
    )
    solver_tolerance: float = Field(
        default=1e-10, description="Absolute tolerance of root solutions"
    )
    solver_max_iter: int = Field(
        default=200, description="Maximum iterations per root solve"
    )

    # Calibration search configuration
    q_bounds: tuple[float, float] = Field(
        default=(0.01, 0.99), description="Search bounds for confounder prevalence"
    )
    log_odds_bounds: tuple[float, float] = Field(
        default=(-2.0, 2.0), description="Search bounds for log-odds shifts"
    )
    q_range_bounds: tuple[float, float] = Field(
        default=(-2.0, 2.0),
        description="Search bounds for the modifier prevalence on the log-odds scale",
    )
    optim_method: str = Field(
        default="Powell", description="scipy.optimize.minimize method"
    )
    optim_maxiter: int = Field(
        default=50, description="Maximum optimizer iterations per bound"
    )
    corner_check_max_free: int = Field(
        default=3,
        description="Also evaluate every box corner when at most this many "
        "parameters are free",
    )

    # Reporting
    naive_se: bool = Field(
        default=True, description="Report naive standard errors by default"
    )
    enable_metrics: bool = Field(default=True, description="Enable metrics collection")

    @field_validator("probability_clip")
    @classmethod
    def validate_probability_clip(cls, v: float) -> float:
        if not 0 < v < 0.5:
            raise ValueError("probability_clip must be between 0 and 0.5")
        return v

    @field_validator("solver_tolerance")
    @classmethod
    def validate_solver_tolerance(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("solver_tolerance must be positive")
        return v

    @field_validator("solver_max_iter", "optim_maxiter")
    @classmethod
    def validate_iterations(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Iteration limits must be at least 1")
        return v

    @field_validator("corner_check_max_free")
    @classmethod
    def validate_corner_check(cls, v: int) -> int:
        if v < 0:
            raise ValueError("corner_check_max_free must be non-negative")
        return v

    @field_validator("q_bounds")
    @classmethod
    def validate_q_bounds(cls, v: tuple[float, float]) -> tuple[float, float]:
        lower, upper = v
        if not 0 < lower < upper < 1:
            raise ValueError("q_bounds must satisfy 0 < lower < upper < 1")
        return v

    @model_validator(mode="after")
    def validate_bound_order(self) -> "SensitivityConfig":
        for name in ("log_odds_bounds", "q_range_bounds"):
            lower, upper = getattr(self, name)
            if lower >= upper:
                raise ValueError(f"{name} lower bound must be below upper bound")
        if self.test_fold == self.train_fold:
            raise ValueError("test_fold and train_fold must differ")
        return self

    def validate_configuration(self) -> list[str]:
        """Validate sensitivity analysis specific configuration."""
        issues = super().validate_configuration()

        if self.environment == Environment.PRODUCTION:
            if self.optim_maxiter < 10:
                issues.append("optim_maxiter below 10 rarely reaches a bound")

        if self.probability_clip > 1e-3:
            issues.append("probability_clip above 1e-3 distorts extreme risks")

        if self.solver_tolerance > 1e-6:
            issues.append("solver_tolerance above 1e-6 makes weighted fits noisy")

        return issues

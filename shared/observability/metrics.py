"""Metrics collection for sensitivity analysis runs."""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager

from prometheus_client import CollectorRegistry, Counter, Histogram


class SensitivityMetrics:
    """Prometheus metrics for sensitivity evaluations and calibration searches."""

    def __init__(self, registry: CollectorRegistry | None = None):
        self.registry = registry or CollectorRegistry()

        self.evaluation_duration = Histogram(
            "sensitivity_evaluation_duration_seconds",
            "Duration of a single sensitivity evaluation",
            ["operation"],
            registry=self.registry,
        )

        self.evaluation_count = Counter(
            "sensitivity_evaluations_total",
            "Total number of sensitivity evaluations",
            ["operation", "status"],
            registry=self.registry,
        )

        self.errors = Counter(
            "sensitivity_errors_total",
            "Total errors raised during sensitivity evaluations",
            ["error_type", "operation"],
            registry=self.registry,
        )

    def record_evaluation(self, operation: str, duration: float, status: str) -> None:
        """Record a completed sensitivity evaluation."""
        self.evaluation_duration.labels(operation=operation).observe(duration)
        self.evaluation_count.labels(operation=operation, status=status).inc()

    def record_error(self, error_type: str, operation: str) -> None:
        """Record an error."""
        self.errors.labels(error_type=error_type, operation=operation).inc()

    @contextmanager
    def time_evaluation(self, operation: str) -> Iterator[None]:
        """Time the enclosed block and record it as one evaluation."""
        start = time.perf_counter()
        try:
            yield
        except Exception as exc:
            self.record_error(type(exc).__name__, operation)
            self.record_evaluation(operation, time.perf_counter() - start, "error")
            raise
        self.record_evaluation(operation, time.perf_counter() - start, "success")

    def evaluation_total(self, operation: str, status: str = "success") -> float:
        """Return the number of recorded evaluations for ``operation``."""
        value = self.registry.get_sample_value(
            "sensitivity_evaluations_total",
            {"operation": operation, "status": status},
        )
        return value or 0.0

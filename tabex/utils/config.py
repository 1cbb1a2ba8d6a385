"""Shared engine configuration (thresholds, iteration budgets, penalties)."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any

from tabex.exceptions import InvalidConfigurationError


@dataclass(frozen=True)
class EngineConfig:
    """Tunable parameters used across the analyzers.

    A single instance can be passed to every analyzer so that a session runs
    with consistent thresholds. Use :meth:`replace` to derive a variant.
    """

    # type inference
    numeric_threshold: float = 0.8

    # linear algebra
    singular_tolerance: float = 1e-12

    # linear regression
    ridge_lambda: float = 0.0
    test_fraction: float = 0.2
    cv_folds: int = 0

    # logistic regression
    epochs: int = 1000
    learning_rate: float = 0.1
    l2_penalty: float = 1e-4
    decision_threshold: float = 0.5

    # k-means
    max_iterations: int = 100

    # pca
    n_components: int = 2
    power_iterations: int = 500

    # suggestions
    missing_rate_threshold: float = 0.05
    variation_threshold: float = 1.0
    max_cardinality: int = 50
    correlation_threshold: float = 0.9
    outlier_z: float = 3.0
    min_paired_rows: int = 3

    # reporting
    histogram_bins: int = 10

    def replace(self, **changes: Any) -> EngineConfig:
        """Return a validated copy with ``changes`` applied."""
        return dataclasses.replace(self, **changes).validate()

    def validate(self) -> EngineConfig:
        """Raise :class:`InvalidConfigurationError` on impossible values, else return self."""
        problems: dict[str, Any] = {}
        if not 0.0 <= self.numeric_threshold <= 1.0:
            problems["numeric_threshold"] = self.numeric_threshold
        if self.singular_tolerance <= 0:
            problems["singular_tolerance"] = self.singular_tolerance
        if self.ridge_lambda < 0:
            problems["ridge_lambda"] = self.ridge_lambda
        if not 0.0 <= self.test_fraction < 1.0:
            problems["test_fraction"] = self.test_fraction
        if self.cv_folds < 0:
            problems["cv_folds"] = self.cv_folds
        for name in ("epochs", "max_iterations", "n_components", "power_iterations", "histogram_bins"):
            if getattr(self, name) <= 0:
                problems[name] = getattr(self, name)
        if self.learning_rate <= 0:
            problems["learning_rate"] = self.learning_rate
        if self.l2_penalty < 0:
            problems["l2_penalty"] = self.l2_penalty
        if problems:
            raise InvalidConfigurationError(
                f"Invalid engine configuration: {', '.join(sorted(problems))}",
                details=problems,
            )
        return self


# Default configuration used when callers pass none
DEFAULT_CONFIG = EngineConfig()


__all__ = ["DEFAULT_CONFIG", "EngineConfig"]

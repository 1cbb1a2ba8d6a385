r"""Closed-form linear regression with optional ridge penalty and validation.

Coefficients solve the (regularized) normal equation

.. math::
    \beta = (X^\top X + \lambda D)^{-1} X^\top y

where :math:`X` carries a leading column of ones and :math:`D` is the identity
with :math:`D_{00} = 0`, so the intercept is never penalized. Rows where the
target or any feature does not parse as a number are excluded before fitting.

Validation runs either a single shuffled train/test split or contiguous k-fold
cross-validation, selected by the fold count (0 or 1 means a single split).
"""

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal, Self

import numpy as np
import pandas as pd
from loguru import logger

from tabex.data.dataset import Dataset
from tabex.exceptions import InvalidConfigurationError, NoTrainableRowsError
from tabex.utils.config import EngineConfig
from tabex.utils.random import RandomSource, resolve_rng

from .artifacts import Artifact, as_tuple
from .base_analyser import BaseAnalyser
from .linalg import SINGULAR_TOLERANCE, inverse, mat_mul, transpose


@dataclass(frozen=True)
class FitMetrics(Artifact):
    r"""Goodness-of-fit on one set of rows.

    - :math:`R^2 = 1 - SS_{res}/SS_{tot}` with :math:`SS_{tot}` taken around the
      sample mean and replaced by 1 when it is zero (constant target).
    - :math:`\text{RMSE} = \sqrt{SS_{res}/n}`.
    """

    r2: float
    rmse: float
    n_obs: int


def evaluate(y_true: Sequence[float] | np.ndarray, y_pred: Sequence[float] | np.ndarray) -> FitMetrics:
    """Compute :class:`FitMetrics` for predictions ``y_pred`` against ``y_true``."""
    y_true = np.asarray(y_true, dtype=float).ravel()
    y_pred = np.asarray(y_pred, dtype=float).ravel()
    n = y_true.size
    if n == 0:
        raise NoTrainableRowsError("Cannot evaluate on an empty set of rows", {"stage": "evaluate"})
    ss_res = float(((y_true - y_pred) ** 2).sum())
    ss_tot = float(((y_true - y_true.mean()) ** 2).sum()) or 1.0
    return FitMetrics(r2=1.0 - ss_res / ss_tot, rmse=math.sqrt(ss_res / n), n_obs=n)


def design_matrix(features: np.ndarray) -> np.ndarray:
    """Prepend the bias column of ones to a feature matrix."""
    features = np.asarray(features, dtype=float)
    if features.ndim == 1:
        features = features.reshape(-1, 1)
    return np.hstack([np.ones((features.shape[0], 1)), features])


def solve_normal_equation(
    x: np.ndarray,
    y: np.ndarray,
    ridge_lambda: float = 0.0,
    tolerance: float = SINGULAR_TOLERANCE,
) -> np.ndarray:
    """Return ``beta`` (intercept first) for design matrix ``x`` and target ``y``.

    Raises:
        SingularMatrixError: If the (regularized) Gram matrix is not invertible.
    """
    xt = transpose(x)
    gram = mat_mul(xt, x)
    if ridge_lambda:
        penalty = np.full(gram.shape[0], float(ridge_lambda))
        penalty[0] = 0.0
        gram = gram + np.diag(penalty)
    beta = mat_mul(mat_mul(inverse(gram, tolerance), xt), np.asarray(y, dtype=float).reshape(-1, 1))
    return beta.ravel()


@dataclass(frozen=True)
class ValidationResult(Artifact):
    """Out-of-sample evaluation attached to a :class:`LinearModel`.

    Attributes:
        method: ``"holdout"`` for a single shuffled split, ``"kfold"`` for cross-validation.
        n_folds: Folds actually evaluated (1 for a holdout split).
        train: Metrics on the training rows (averaged over folds for k-fold).
        test: Metrics on the held-out rows (averaged over folds); ``None`` when
            the split left no test rows.
        folds: Per-fold held-out metrics (k-fold only).
    """

    method: Literal["holdout", "kfold"]
    n_folds: int
    train: FitMetrics
    test: FitMetrics | None = None
    folds: tuple[FitMetrics, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        return cls(
            method=data["method"],
            n_folds=int(data["n_folds"]),
            train=FitMetrics.from_dict(data["train"]),
            test=FitMetrics.from_dict(data["test"]) if data.get("test") is not None else None,
            folds=tuple(FitMetrics.from_dict(f) for f in data.get("folds", [])),
        )


@dataclass(frozen=True)
class LinearModel(Artifact):
    """Fitted linear model.

    Attributes:
        target: Target column name.
        features: Feature column names, in coefficient order.
        intercept: Bias term.
        coefficients: One weight per feature.
        metrics: Fit metrics. In-sample for a plain fit, on the training
            partition for a holdout split, mean held-out metrics for k-fold.
        ridge_lambda: Penalty used (0 for ordinary least squares).
        n_excluded: Rows dropped by the numeric row filter.
        validation: Out-of-sample evaluation, if requested.
    """

    target: str
    features: tuple[str, ...]
    intercept: float
    coefficients: tuple[float, ...]
    metrics: FitMetrics
    ridge_lambda: float = 0.0
    n_excluded: int = 0
    validation: ValidationResult | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        return cls(
            target=data["target"],
            features=tuple(data["features"]),
            intercept=data["intercept"],
            coefficients=tuple(data["coefficients"]),
            metrics=FitMetrics.from_dict(data["metrics"]),
            ridge_lambda=data.get("ridge_lambda", 0.0),
            n_excluded=data.get("n_excluded", 0),
            validation=ValidationResult.from_dict(data["validation"]) if data.get("validation") else None,
        )

    @property
    def beta(self) -> np.ndarray:
        """Intercept followed by the coefficients."""
        return np.asarray([self.intercept, *self.coefficients], dtype=float)

    def predict(self, features: np.ndarray | Sequence[Sequence[float]]) -> np.ndarray:
        """Predict targets for a numeric feature matrix (columns in :attr:`features` order)."""
        return design_matrix(np.asarray(features, dtype=float)) @ self.beta

    def coefficient_table(self) -> pd.DataFrame:
        return pd.DataFrame(
            {"term": ["intercept", *self.features], "coefficient": [self.intercept, *self.coefficients]},
        ).set_index("term")


def shuffle_split(
    n: int,
    test_fraction: float,
    rng: RandomSource = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Shuffle ``range(n)`` uniformly and cut at ``floor(n * (1 - test_fraction))``.

    Returns:
        ``(train_idx, test_idx)``
    """
    if not 0.0 <= test_fraction < 1.0:
        raise InvalidConfigurationError(
            f"test_fraction must be in [0, 1), got {test_fraction}",
            {"test_fraction": test_fraction},
        )
    order = resolve_rng(rng).permutation(n)
    cut = math.floor(n * (1 - test_fraction))
    return order[:cut], order[cut:]


def kfold_blocks(n: int, k: int) -> list[tuple[np.ndarray, np.ndarray]]:
    """Contiguous k-fold partition of ``range(n)``.

    Each block holds ``floor(n / k)`` rows; remainder rows belong to no fold.
    Folds with an empty train or test part are skipped.

    Returns:
        List of ``(train_idx, test_idx)`` pairs.
    """
    if k < 2:
        raise InvalidConfigurationError(f"k-fold needs at least 2 folds, got {k}", {"cv_folds": k})
    size = n // k
    blocks = [np.arange(i * size, (i + 1) * size) for i in range(k)]
    folds = []
    for i, test in enumerate(blocks):
        train = np.concatenate([b for j, b in enumerate(blocks) if j != i])
        if test.size and train.size:
            folds.append((train, test))
    return folds


def _mean_metrics(metrics: Sequence[FitMetrics]) -> FitMetrics:
    return FitMetrics(
        r2=float(np.mean([m.r2 for m in metrics])),
        rmse=float(np.mean([m.rmse for m in metrics])),
        n_obs=int(sum(m.n_obs for m in metrics)),
    )


class LinearRegressionAnalyzer(BaseAnalyser):
    """Closed-form (ridge) linear regression on dataset columns.

    Example:
        >>> ds = Dataset.from_records([{"x": x, "y": 2 * x + 1} for x in range(1, 5)])
        >>> model = ds.make_regression_analyzer(["x"], "y").fit().result()
        >>> round(model.intercept, 6), round(model.coefficients[0], 6), round(model.metrics.r2, 6)
        (1.0, 2.0, 1.0)

        Cross-validated variant:

        >>> cfg = ds.config.replace(cv_folds=2)
        >>> LinearRegressionAnalyzer(ds, ["x"], "y", config=cfg).fit(validate=True).result().validation.method
        'kfold'
    """

    def __init__(
        self,
        dataset: Dataset,
        features: Sequence[str],
        target: str,
        *,
        ridge_lambda: float | None = None,
        rng: RandomSource = None,
        config: EngineConfig | None = None,
    ) -> None:
        self._dataset = dataset
        self._features = list(features)
        self._target = target
        self._config = config or dataset.config
        self._ridge_lambda = self._config.ridge_lambda if ridge_lambda is None else float(ridge_lambda)
        if self._ridge_lambda < 0:
            raise InvalidConfigurationError(
                f"ridge_lambda must be non-negative, got {self._ridge_lambda}",
                {"ridge_lambda": self._ridge_lambda},
            )
        self._rng = resolve_rng(rng)
        self._model: LinearModel | None = None

    def _fit_arrays(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        return solve_normal_equation(design_matrix(x), y, self._ridge_lambda, self._config.singular_tolerance)

    def _score(self, beta: np.ndarray, x: np.ndarray, y: np.ndarray) -> FitMetrics:
        return evaluate(y, design_matrix(x) @ beta)

    def fit(
        self,
        *,
        validate: bool = False,
        cv_folds: int | None = None,
        test_fraction: float | None = None,
    ) -> Self:
        """Fit the model.

        Args:
            validate: Run holdout or k-fold validation instead of a plain in-sample fit.
            cv_folds: Fold count override; 0 or 1 selects a single shuffled split.
            test_fraction: Held-out share for the single split.

        Raises:
            NoTrainableRowsError: If no row has parseable values for every column.
            SingularMatrixError: If the Gram matrix cannot be inverted.
        """
        rows = self._dataset.numeric_rows([*self._features, self._target])
        if rows.is_empty:
            raise NoTrainableRowsError(
                "No valid rows for training",
                {
                    "stage": "linear_regression",
                    "target": self._target,
                    "dropped_by_column": dict(rows.dropped_by_column),
                },
            )
        x, y = rows.values[:, :-1], rows.values[:, -1]

        if not validate:
            beta = self._fit_arrays(x, y)
            metrics, validation = self._score(beta, x, y), None
        else:
            folds = self._config.cv_folds if cv_folds is None else cv_folds
            if folds < 0:
                raise InvalidConfigurationError(f"cv_folds must be >= 0, got {folds}", {"cv_folds": folds})
            if folds >= 2:
                beta, metrics, validation = self._cross_validate(x, y, folds)
            else:
                fraction = self._config.test_fraction if test_fraction is None else test_fraction
                beta, metrics, validation = self._holdout(x, y, fraction)

        self._model = LinearModel(
            target=self._target,
            features=tuple(self._features),
            intercept=float(beta[0]),
            coefficients=as_tuple(beta[1:]),
            metrics=metrics,
            ridge_lambda=self._ridge_lambda,
            n_excluded=rows.n_dropped,
            validation=validation,
        )
        logger.info(
            "Fitted linear model for {} on {} rows ({} excluded): r2={:.4f} rmse={:.4f}",
            self._target,
            rows.n_kept,
            rows.n_dropped,
            metrics.r2,
            metrics.rmse,
        )
        return self

    def _holdout(
        self, x: np.ndarray, y: np.ndarray, test_fraction: float
    ) -> tuple[np.ndarray, FitMetrics, ValidationResult]:
        train_idx, test_idx = shuffle_split(len(y), test_fraction, self._rng)
        if train_idx.size == 0:
            raise NoTrainableRowsError(
                "Train partition is empty",
                {"stage": "train_test_split", "n_rows": len(y), "test_fraction": test_fraction},
            )
        beta = self._fit_arrays(x[train_idx], y[train_idx])
        train = self._score(beta, x[train_idx], y[train_idx])
        test = self._score(beta, x[test_idx], y[test_idx]) if test_idx.size else None
        return beta, train, ValidationResult(method="holdout", n_folds=1, train=train, test=test)

    def _cross_validate(self, x: np.ndarray, y: np.ndarray, k: int) -> tuple[np.ndarray, FitMetrics, ValidationResult]:
        betas, train_scores, test_scores = [], [], []
        for fold, (train_idx, test_idx) in enumerate(kfold_blocks(len(y), k)):
            beta = self._fit_arrays(x[train_idx], y[train_idx])
            betas.append(beta)
            train_scores.append(self._score(beta, x[train_idx], y[train_idx]))
            test_scores.append(self._score(beta, x[test_idx], y[test_idx]))
            logger.debug("Fold {}: r2={:.4f} rmse={:.4f}", fold, test_scores[-1].r2, test_scores[-1].rmse)
        if not betas:
            raise InvalidConfigurationError(
                f"{k} folds leave no non-empty partition for {len(y)} rows",
                {"cv_folds": k, "n_rows": len(y)},
            )
        test = _mean_metrics(test_scores)
        validation = ValidationResult(
            method="kfold",
            n_folds=len(betas),
            train=_mean_metrics(train_scores),
            test=test,
            folds=tuple(test_scores),
        )
        return np.mean(betas, axis=0), test, validation

    def result(self) -> LinearModel:
        if self._model is None:
            raise ValueError("Model not fitted. Call fit() first.")
        return self._model


__all__ = [
    "FitMetrics",
    "LinearModel",
    "LinearRegressionAnalyzer",
    "ValidationResult",
    "design_matrix",
    "evaluate",
    "kfold_blocks",
    "shuffle_split",
    "solve_normal_equation",
]

r"""Binary logistic regression trained by full-batch gradient descent.

Each epoch computes :math:`p = \sigma(X\theta)` for the design matrix
:math:`X` (bias column first), the binary cross-entropy

.. math::
    L = -\frac{1}{n}\sum_i y_i \log(p_i + \epsilon) + (1 - y_i)\log(1 - p_i + \epsilon),
    \quad \epsilon = 10^{-12}

and the update :math:`\theta \leftarrow \theta - \eta\,(X^\top(p - y)/n + \lambda\theta)`.

The weight decay :math:`\lambda\theta` applies to every weight *including the
bias*. Ridge regression (:mod:`tabex.analysis.regression`) exempts its
intercept; the two penalties intentionally differ.
"""

from collections.abc import Hashable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Self

import numpy as np
import pandas as pd
from loguru import logger
from scipy.special import expit

from tabex.data.dataset import Dataset
from tabex.data.values import is_missing
from tabex.exceptions import NoTrainableRowsError
from tabex.utils.config import EngineConfig

from .artifacts import Artifact, as_tuple
from .base_analyser import BaseAnalyser
from .regression import design_matrix


LOG_EPSILON = 1e-12


def _literal_label(value: Any) -> int | None:
    """Return 0/1 for a literal binary label (numeric or string), else None."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int | float | np.integer | np.floating):
        return int(value) if value in (0, 1) else None
    if isinstance(value, str) and value.strip() in ("0", "1"):
        return int(value.strip())
    return None


def binary_label_mapping(values: Iterable[Any]) -> dict[str, int] | None:
    """Derive the label mapping for a target column.

    With exactly two distinct non-missing values, they map to 0 and 1 in
    first-seen order, unless they already are the literals 0 and 1, in which
    case ``None`` (identity) is returned. Any other column also returns
    ``None``: only literal 0/1 cells are then usable.
    """
    distinct: dict[str, Any] = {}
    for value in values:
        if not is_missing(value):
            distinct.setdefault(str(value), value)
    if len(distinct) != 2:
        return None
    literals = {_literal_label(v) for v in distinct.values()}
    if literals == {0, 1}:
        return None
    return {label: code for code, label in enumerate(distinct)}


def encode_labels(values: Iterable[Any], mapping: Mapping[str, int] | None) -> np.ndarray:
    """Encode target cells as 0.0/1.0, with ``nan`` for cells that cannot be used."""
    out = []
    for value in values:
        if is_missing(value):
            out.append(np.nan)
        elif mapping is not None:
            out.append(float(mapping[str(value)]) if str(value) in mapping else np.nan)
        else:
            label = _literal_label(value)
            out.append(np.nan if label is None else float(label))
    return np.asarray(out, dtype=float)


def binary_cross_entropy(y: np.ndarray, p: np.ndarray, eps: float = LOG_EPSILON) -> float:
    return float(-np.mean(y * np.log(p + eps) + (1 - y) * np.log(1 - p + eps)))


@dataclass(frozen=True)
class LogisticModel(Artifact):
    """Fitted binary classifier.

    Attributes:
        target: Target column name.
        features: Feature column names.
        theta: Bias weight followed by one weight per feature.
        accuracy: In-sample accuracy at the decision threshold.
        label_mapping: Text form of each target value -> 0/1, or ``None`` when the
            target already held literal 0/1 labels.
        loss_history: Cross-entropy before each epoch's update.
        n_obs: Training rows.
        n_excluded: Rows dropped by the feature filter or the label mapping.
        threshold: Decision threshold on the predicted probability.
    """

    target: str
    features: tuple[str, ...]
    theta: tuple[float, ...]
    accuracy: float
    label_mapping: dict[str, int] | None = None
    loss_history: tuple[float, ...] = ()
    n_obs: int = 0
    n_excluded: int = 0
    threshold: float = 0.5

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        mapping = data.get("label_mapping")
        return cls(
            target=data["target"],
            features=tuple(data["features"]),
            theta=tuple(data["theta"]),
            accuracy=data["accuracy"],
            label_mapping=dict(mapping) if mapping is not None else None,
            loss_history=tuple(data.get("loss_history", ())),
            n_obs=data.get("n_obs", 0),
            n_excluded=data.get("n_excluded", 0),
            threshold=data.get("threshold", 0.5),
        )

    @property
    def bias(self) -> float:
        return self.theta[0]

    @property
    def weights(self) -> tuple[float, ...]:
        return self.theta[1:]

    @property
    def final_loss(self) -> float | None:
        return self.loss_history[-1] if self.loss_history else None

    def predict_proba(self, features: np.ndarray | Sequence[Sequence[float]]) -> np.ndarray:
        """Probability of class 1 for each row of a numeric feature matrix."""
        return expit(design_matrix(np.asarray(features, dtype=float)) @ np.asarray(self.theta))

    def predict(self, features: np.ndarray | Sequence[Sequence[float]]) -> np.ndarray:
        """Predicted 0/1 class codes."""
        return (self.predict_proba(features) >= self.threshold).astype(int)

    def decode(self, codes: Iterable[int]) -> list[Hashable]:
        """Translate 0/1 codes back to target labels.

        Labels come back in their text form, as keyed in :attr:`label_mapping`, so a
        numeric two-class target such as ``{2, 1}`` decodes to ``"2"`` and ``"1"``.
        The text keys keep the mapping JSON-serializable.
        """
        if self.label_mapping is None:
            return [int(c) for c in codes]
        inverse = {code: label for label, code in self.label_mapping.items()}
        return [inverse[int(c)] for c in codes]


class LogisticRegressionTrainer(BaseAnalyser):
    """Train a :class:`LogisticModel` on dataset columns.

    Example:
        >>> trainer = ds.make_logistic_trainer(["hours_studied"], "passed")
        >>> model = trainer.fit(epochs=2000).result()
        >>> model.accuracy, model.label_mapping
    """

    def __init__(
        self,
        dataset: Dataset,
        features: Sequence[str],
        target: str,
        config: EngineConfig | None = None,
    ) -> None:
        self._dataset = dataset
        self._features = list(features)
        self._target = target
        self._config = config or dataset.config
        self._model: LogisticModel | None = None

    def training_data(self) -> tuple[np.ndarray, np.ndarray, dict[str, int] | None, int]:
        """Return ``(x, y, label_mapping, n_excluded)`` after row filtering.

        Raises:
            NoTrainableRowsError: If no row survives feature parsing and label mapping.
        """
        target_cells = self._dataset.column(self._target)
        mapping = binary_label_mapping(target_cells.tolist())
        rows = self._dataset.numeric_rows(self._features)
        y = encode_labels(target_cells.loc[rows.index].tolist(), mapping)
        usable = ~np.isnan(y)
        if not usable.any():
            raise NoTrainableRowsError(
                "No valid rows for training",
                {
                    "stage": "logistic_regression",
                    "target": self._target,
                    "dropped_by_column": dict(rows.dropped_by_column),
                    "unlabeled_rows": int((~usable).sum()),
                },
            )
        n_excluded = rows.n_total - int(usable.sum())
        return rows.values[usable], y[usable], mapping, n_excluded

    def fit(
        self,
        *,
        epochs: int | None = None,
        learning_rate: float | None = None,
        l2_penalty: float | None = None,
    ) -> Self:
        """Run gradient descent for a fixed number of epochs.

        Args:
            epochs: Number of full-batch updates (config default when omitted).
            learning_rate: Step size.
            l2_penalty: Weight decay applied to all weights including the bias.
        """
        cfg = self._config.replace(
            **{
                k: v
                for k, v in {"epochs": epochs, "learning_rate": learning_rate, "l2_penalty": l2_penalty}.items()
                if v is not None
            },
        )
        x, y, mapping, n_excluded = self.training_data()
        design = design_matrix(x)
        n = len(y)
        theta = np.zeros(design.shape[1])
        losses = []
        for _ in range(cfg.epochs):
            p = expit(design @ theta)
            losses.append(binary_cross_entropy(y, p))
            grad = design.T @ (p - y) / n + cfg.l2_penalty * theta
            theta = theta - cfg.learning_rate * grad

        predicted = (expit(design @ theta) >= cfg.decision_threshold).astype(float)
        accuracy = float(np.mean(predicted == y))
        self._model = LogisticModel(
            target=self._target,
            features=tuple(self._features),
            theta=as_tuple(theta),
            accuracy=accuracy,
            label_mapping=mapping,
            loss_history=as_tuple(losses),
            n_obs=n,
            n_excluded=n_excluded,
            threshold=cfg.decision_threshold,
        )
        logger.info(
            "Trained logistic model for {} on {} rows ({} excluded): loss={:.4f} accuracy={:.3f}",
            self._target,
            n,
            n_excluded,
            losses[-1],
            accuracy,
        )
        return self

    def result(self) -> LogisticModel:
        if self._model is None:
            raise ValueError("Model not trained. Call fit() first.")
        return self._model

    def predictions(self) -> pd.DataFrame:
        """In-sample probabilities and predicted labels for the training rows."""
        model = self.result()
        x, y, _, _ = self.training_data()
        proba = model.predict_proba(x)
        return pd.DataFrame(
            {"label": y.astype(int), "probability": proba, "predicted": (proba >= model.threshold).astype(int)},
        )


__all__ = [
    "LOG_EPSILON",
    "LogisticModel",
    "LogisticRegressionTrainer",
    "binary_cross_entropy",
    "binary_label_mapping",
    "encode_labels",
]

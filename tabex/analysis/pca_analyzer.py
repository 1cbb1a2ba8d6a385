"""PCA via power iteration on the sample covariance matrix."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Literal, Self

import numpy as np
import pandas as pd
from loguru import logger

from tabex.data.dataset import Dataset
from tabex.data.transforms import center_columns
from tabex.exceptions import InvalidConfigurationError, NoTrainableRowsError
from tabex.utils.config import EngineConfig
from tabex.utils.random import RandomSource, resolve_rng

from .artifacts import Artifact, as_matrix, as_tuple
from .linalg import mat_mul, transpose


@dataclass(frozen=True)
class PCAResult(Artifact):
    """PCA outputs packaged for downstream visualization and reporting.

    Attributes:
        features: Numeric columns the components are expressed in.
        components: ``k`` unit-length component vectors (one weight per feature),
            in extraction order. Signs are oriented so that each vector's largest
            absolute weight is positive.
        eigenvalues: Rayleigh quotient of each component against the covariance
            matrix, i.e. the variance captured along it.
        total_variance: Trace of the covariance matrix.
        scores: Projected coordinates, one ``k``-vector per retained row.
        row_index: Dataset index labels of the retained rows.
    """

    features: tuple[str, ...]
    components: tuple[tuple[float, ...], ...]
    eigenvalues: tuple[float, ...]
    total_variance: float
    scores: tuple[tuple[float, ...], ...]
    row_index: tuple[Any, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        return cls(
            features=tuple(data["features"]),
            components=as_matrix(data["components"]),
            eigenvalues=tuple(data["eigenvalues"]),
            total_variance=data["total_variance"],
            scores=as_matrix(data["scores"]),
            row_index=tuple(data.get("row_index", ())),
        )

    @property
    def n_components(self) -> int:
        return len(self.components)

    @property
    def pc_names(self) -> list[str]:
        return [f"PC{i + 1}" for i in range(self.n_components)]

    @property
    def explained_ratio(self) -> tuple[float, ...]:
        total = self.total_variance or 1.0
        return tuple(ev / total for ev in self.eigenvalues)

    def scores_frame(self) -> pd.DataFrame:
        """Scores with columns ``PC1..PCk`` indexed like the retained rows."""
        return pd.DataFrame(list(self.scores), columns=self.pc_names, index=list(self.row_index) or None)

    def loadings_frame(self) -> pd.DataFrame:
        """Loadings with one row per feature and columns ``PC1..PCk``."""
        return pd.DataFrame(np.asarray(self.components).T, index=list(self.features), columns=self.pc_names)

    def explained_variance_frame(self) -> pd.DataFrame:
        ratio = np.asarray(self.explained_ratio)
        return pd.DataFrame(
            {
                "PC": self.pc_names,
                "variance": list(self.eigenvalues),
                "explained_ratio": ratio,
                "cumulative_ratio": ratio.cumsum(),
            },
        )


def covariance_matrix(centered: np.ndarray) -> np.ndarray:
    """``C[i, j] = sum_r X[r, i] X[r, j] / (n - 1)`` for a mean-centered ``X``; divisor floored at 1."""
    centered = np.asarray(centered, dtype=float)
    return mat_mul(transpose(centered), centered) / ((centered.shape[0] - 1) or 1)


def power_iteration(
    matrix: np.ndarray,
    iterations: int = 500,
    rng: RandomSource = None,
) -> tuple[np.ndarray, float]:
    """Approximate the dominant eigenvector of a symmetric matrix.

    Starts from a random unit vector and repeatedly multiplies and
    renormalizes for a fixed number of iterations. If the product vanishes
    (e.g. a zero matrix) the current vector is kept.

    Returns:
        ``(vector, rayleigh_quotient)``
    """
    vector = resolve_rng(rng).standard_normal(matrix.shape[0])
    vector /= np.linalg.norm(vector) or 1.0
    for _ in range(iterations):
        product = matrix @ vector
        norm = np.linalg.norm(product)
        if norm == 0:
            break
        vector = product / norm
    return vector, float(vector @ matrix @ vector)


def deflate(matrix: np.ndarray, vector: np.ndarray, eigenvalue: float) -> np.ndarray:
    """Hotelling deflation ``C - lambda v v^T`` (returns a new matrix)."""
    return matrix - eigenvalue * np.outer(vector, vector)


def _orient(vector: np.ndarray) -> np.ndarray:
    return -vector if vector[np.argmax(np.abs(vector))] < 0 else vector


def principal_components(
    centered: np.ndarray,
    n_components: int,
    iterations: int = 500,
    rng: RandomSource = None,
) -> tuple[np.ndarray, np.ndarray, float]:
    """Extract ``n_components`` components from mean-centered data.

    Each component is the power-iteration estimate on the working covariance
    copy, which is deflated before the next extraction. Later components are
    only as orthogonal as the power iteration has converged; no explicit
    re-orthogonalization is done.

    Returns:
        ``(components, eigenvalues, total_variance)`` with components as rows.
    """
    cov = covariance_matrix(centered)
    total = float(np.trace(cov))
    generator = resolve_rng(rng)
    working = cov.copy()
    components, eigenvalues = [], []
    for _ in range(n_components):
        vector, _ = power_iteration(working, iterations, generator)
        vector = _orient(vector)
        eigenvalue = float(vector @ cov @ vector)
        components.append(vector)
        eigenvalues.append(eigenvalue)
        working = deflate(working, vector, float(vector @ working @ vector))
    return np.asarray(components), np.asarray(eigenvalues), total


def project(centered: np.ndarray, components: np.ndarray) -> np.ndarray:
    """Row-wise dot product of each centered row with each component."""
    return mat_mul(centered, transpose(components))


class PCAAnalyzer:
    """Analyzer for Principal Component Analysis (PCA).

    Rows with an unparsable cell in any selected column are dropped, the rest
    are mean-centered and decomposed with :func:`principal_components`.

    Example:
        >>> pca = ds.make_pca_analyzer(rng=0).fit(n_components=2).result()
        >>> pca.explained_variance_frame()
        >>> pca.scores_frame().head()
    """

    def __init__(
        self,
        dataset: Dataset,
        columns: Iterable[str] | None = None,
        *,
        rng: RandomSource = None,
        config: EngineConfig | None = None,
    ) -> None:
        """Initialize the PCA analyzer."""
        self._dataset = dataset
        self._columns = list(columns) if columns is not None else dataset.numeric_cols
        self._rng = resolve_rng(rng)
        self._config = config or dataset.config
        self._result: PCAResult | None = None

    def fit(self, n_components: int | None = None, iterations: int | None = None) -> Self:
        """Compute the leading principal components.

        Raises:
            InvalidConfigurationError: If ``n_components`` is outside ``1..len(columns)``.
            NoTrainableRowsError: If no row parses on every selected column.
        """
        k = self._config.n_components if n_components is None else n_components
        iterations = self._config.power_iterations if iterations is None else iterations
        if not self._columns:
            raise InvalidConfigurationError("No numeric columns available for PCA.", {"stage": "pca"})
        if not 1 <= k <= len(self._columns):
            raise InvalidConfigurationError(
                f"n_components must be between 1 and {len(self._columns)}, got {k}",
                {"n_components": k, "n_columns": len(self._columns)},
            )
        if iterations <= 0:
            raise InvalidConfigurationError(
                f"iterations must be positive, got {iterations}", {"iterations": iterations}
            )

        rows = self._dataset.numeric_rows(self._columns)
        if rows.is_empty:
            raise NoTrainableRowsError(
                "No valid rows for PCA",
                {"stage": "pca", "dropped_by_column": dict(rows.dropped_by_column)},
            )
        centered = center_columns(rows.values)
        components, eigenvalues, total = principal_components(centered, k, iterations, self._rng)
        self._result = PCAResult(
            features=tuple(self._columns),
            components=as_matrix(components),
            eigenvalues=as_tuple(eigenvalues),
            total_variance=total,
            scores=as_matrix(project(centered, components)),
            row_index=tuple(rows.index.tolist()),
        )
        logger.info(
            "PCA on {} rows x {} columns: eigenvalues {}", rows.n_kept, len(self._columns), eigenvalues.round(4)
        )
        return self

    def get_loading_vectors(self, component: int | None = None) -> pd.DataFrame | pd.Series:
        """Return loading vectors linking original features to component axes."""
        loadings_df = self.result().loadings_frame()
        if component is None:
            return loadings_df

        if not isinstance(component, int):
            msg = f"Component must be an integer, got {type(component).__name__}"
            raise TypeError(msg)

        pc_name = f"PC{component}"
        if pc_name not in loadings_df.columns:
            msg = f"Component {component} not found. Available: PC1-PC{loadings_df.shape[1]}"
            raise ValueError(msg)

        return loadings_df[pc_name]

    def get_top_loading_features(
        self,
        n_components: int = 3,
        method: Literal["max", "l2"] = "l2",
    ) -> pd.Index:
        """Rank features by aggregated loading strength across leading components."""
        loadings = self.result().loadings_frame()
        pc_cols = [f"PC{i + 1}" for i in range(min(n_components, loadings.shape[1]))]

        method_key = method.lower()
        if method_key == "max":
            importance = loadings[pc_cols].abs().max(axis=1)
        elif method_key == "l2":
            importance = (loadings[pc_cols] ** 2).sum(axis=1).pow(0.5)
        else:
            raise ValueError("method must be one of {'max', 'l2'}")

        return importance.sort_values(ascending=False).index

    def result(self) -> PCAResult:
        if self._result is None:
            raise ValueError("PCA model not fitted. Call fit() first.")
        return self._result


__all__ = [
    "PCAAnalyzer",
    "PCAResult",
    "covariance_matrix",
    "deflate",
    "power_iteration",
    "principal_components",
    "project",
]

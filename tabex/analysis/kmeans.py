"""K-means clustering with Lloyd's algorithm."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Self

import numpy as np
import pandas as pd
from loguru import logger
from scipy.spatial.distance import cdist

from tabex.data.dataset import Dataset
from tabex.exceptions import InvalidConfigurationError, NoTrainableRowsError
from tabex.utils.config import EngineConfig
from tabex.utils.random import RandomSource, resolve_rng

from .artifacts import Artifact, as_matrix
from .base_analyser import BaseAnalyser


@dataclass(frozen=True)
class KMeansResult(Artifact):
    """Final centroids and cluster assignments.

    Attributes:
        features: Feature column names (centroid coordinate order).
        centroids: ``k`` centroid vectors.
        assignments: Cluster index per retained row, in filtered row order.
        row_index: Dataset index labels of the retained rows.
        iterations: Assignment passes performed.
        converged: True when the last pass changed no assignment.
        inertia: Sum of squared distances of rows to their centroid.
    """

    features: tuple[str, ...]
    centroids: tuple[tuple[float, ...], ...]
    assignments: tuple[int, ...]
    row_index: tuple[Any, ...] = ()
    iterations: int = 0
    converged: bool = False
    inertia: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        return cls(
            features=tuple(data["features"]),
            centroids=as_matrix(data["centroids"]),
            assignments=tuple(int(a) for a in data["assignments"]),
            row_index=tuple(data.get("row_index", ())),
            iterations=data.get("iterations", 0),
            converged=data.get("converged", False),
            inertia=data.get("inertia", 0.0),
        )

    @property
    def k(self) -> int:
        return len(self.centroids)

    def cluster_sizes(self) -> list[int]:
        return np.bincount(np.asarray(self.assignments, dtype=int), minlength=self.k).tolist()

    def centroids_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            self.centroids,
            columns=list(self.features),
            index=pd.Index(range(self.k), name="cluster"),
        )


def assign_clusters(points: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Index of the nearest centroid (Euclidean) for each point; the lowest index wins ties."""
    return np.argmin(cdist(points, centroids), axis=1)


def update_centroids(points: np.ndarray, assignments: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Mean of each cluster's members; a cluster without members keeps its centroid."""
    updated = centroids.copy()
    for cluster in range(len(centroids)):
        members = points[assignments == cluster]
        if len(members):
            updated[cluster] = members.mean(axis=0)
    return updated


def initial_centroids(points: np.ndarray, k: int, rng: RandomSource = None) -> np.ndarray:
    """Pick ``k`` seed rows uniformly at random without replacement.

    Row indices are drawn uniformly; a row whose point equals an already chosen
    seed is rejected, so the seeds are distinct points and a value repeated over
    many rows is proportionally more likely to seed a cluster.

    Raises:
        InvalidConfigurationError: If ``k`` is not positive or exceeds the distinct rows.
    """
    n_distinct = len(np.unique(points, axis=0))
    if k <= 0 or k > n_distinct:
        raise InvalidConfigurationError(
            f"k must be between 1 and the number of distinct rows ({n_distinct}), got {k}",
            {"k": k, "distinct_rows": int(n_distinct)},
        )
    chosen: list[int] = []
    seen: set[tuple[float, ...]] = set()
    for idx in resolve_rng(rng).permutation(len(points)):
        key = tuple(points[idx].tolist())
        if key not in seen:
            seen.add(key)
            chosen.append(int(idx))
            if len(chosen) == k:
                break
    return points[chosen].copy()


def lloyd(
    points: np.ndarray,
    centroids: np.ndarray,
    max_iterations: int,
) -> tuple[np.ndarray, np.ndarray, int, bool]:
    """Alternate assignment and update steps until assignments are stable.

    Returns:
        ``(centroids, assignments, iterations, converged)``
    """
    assignments = np.full(len(points), -1)
    for iteration in range(1, max_iterations + 1):
        new_assignments = assign_clusters(points, centroids)
        if np.array_equal(new_assignments, assignments):
            return centroids, assignments, iteration, True
        assignments = new_assignments
        centroids = update_centroids(points, assignments, centroids)
    return centroids, assignments, max_iterations, False


class KMeansAnalyzer(BaseAnalyser):
    """Cluster dataset rows on numeric feature columns.

    Empty clusters are never reseeded: their centroid stays where it was.

    Example:
        >>> result = ds.make_kmeans_analyzer(["age", "salary"], rng=7).fit(k=3).result()
        >>> result.cluster_sizes()
    """

    def __init__(
        self,
        dataset: Dataset,
        features: Sequence[str],
        *,
        rng: RandomSource = None,
        config: EngineConfig | None = None,
    ) -> None:
        self._dataset = dataset
        self._features = list(features)
        self._rng = resolve_rng(rng)
        self._config = config or dataset.config
        self._result: KMeansResult | None = None

    def fit(self, k: int, max_iterations: int | None = None) -> Self:
        """Run k-means.

        Raises:
            NoTrainableRowsError: If no row parses on every feature.
            InvalidConfigurationError: For a non-positive iteration bound or an impossible ``k``.
        """
        max_iterations = self._config.max_iterations if max_iterations is None else max_iterations
        if max_iterations <= 0:
            raise InvalidConfigurationError(
                f"max_iterations must be positive, got {max_iterations}",
                {"max_iterations": max_iterations},
            )
        rows = self._dataset.numeric_rows(self._features)
        if rows.is_empty:
            raise NoTrainableRowsError(
                "No valid rows for clustering",
                {"stage": "kmeans", "dropped_by_column": dict(rows.dropped_by_column)},
            )
        points = rows.values
        seeds = initial_centroids(points, k, self._rng)
        centroids, assignments, iterations, converged = lloyd(points, seeds, max_iterations)
        inertia = float(((points - centroids[assignments]) ** 2).sum())
        self._result = KMeansResult(
            features=tuple(self._features),
            centroids=as_matrix(centroids),
            assignments=tuple(int(a) for a in assignments),
            row_index=tuple(rows.index.tolist()),
            iterations=iterations,
            converged=converged,
            inertia=inertia,
        )
        logger.info(
            "k-means k={} on {} rows: {} after {} iterations, inertia={:.4f}",
            k,
            rows.n_kept,
            "converged" if converged else "stopped",
            iterations,
            inertia,
        )
        return self

    def result(self) -> KMeansResult:
        if self._result is None:
            raise ValueError("Clustering not computed. Call fit() first.")
        return self._result


__all__ = [
    "KMeansAnalyzer",
    "KMeansResult",
    "assign_clusters",
    "initial_centroids",
    "lloyd",
    "update_centroids",
]

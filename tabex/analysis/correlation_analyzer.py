"""Correlation analysis for numeric dataset columns."""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Self

import numpy as np
import pandas as pd

from tabex.data.dataset import Dataset
from tabex.data.values import to_numeric

from .base_analyser import BaseAnalyser


def pearson(a: Iterable[float], b: Iterable[float]) -> float:
    r"""Pearson correlation of two equally long numeric sequences.

    :math:`r = \frac{\sum (a - \bar a)(b - \bar b)}{\sqrt{\sum (a - \bar a)^2}\sqrt{\sum (b - \bar b)^2}}`,
    where a zero denominator is replaced by 1 (so a constant input yields 0).
    See [Wikipedia :: Pearson Correlation](https://en.wikipedia.org/wiki/Pearson_correlation_coefficient).
    """
    a = np.asarray(list(a), dtype=float)
    b = np.asarray(list(b), dtype=float)
    da, db = a - a.mean(), b - b.mean()
    denominator = np.sqrt((da**2).sum()) * np.sqrt((db**2).sum())
    return float((da * db).sum() / (denominator or 1.0))


def paired_values(a: pd.Series, b: pd.Series) -> tuple[np.ndarray, np.ndarray]:
    """Coerce two columns and keep the rows where both parse."""
    x, y = to_numeric(a).to_numpy(), to_numeric(b).to_numpy()
    both = ~(np.isnan(x) | np.isnan(y))
    return x[both], y[both]


@dataclass(frozen=True)
class CorrelationResult:
    """Correlation analysis outputs grouped for reporting.

    Attributes:
        matrix: Pairwise-complete Pearson correlation matrix (rows/cols = numeric columns).
            Pairs with too few complete rows are NaN.
        feature_pairs: DataFrame with columns `feature_a`, `feature_b`, `correlation`,
            `abs_correlation`, `pair`; sorted by strongest absolute correlations.
        n_pairs: Complete-row count per pair, same shape as ``matrix``.
    """

    matrix: pd.DataFrame
    feature_pairs: pd.DataFrame
    n_pairs: pd.DataFrame

    def strong_pairs(self, threshold: float = 0.9) -> pd.DataFrame:
        """Pairs whose absolute correlation exceeds ``threshold``."""
        return self.feature_pairs.loc[self.feature_pairs.abs_correlation > threshold].reset_index(drop=True)


class CorrelationAnalyzer(BaseAnalyser):
    """Analyzer for computing pairwise Pearson correlations.

    Example:
        >>> corr = ds.make_correlation_analyzer().fit().result()
        >>> corr.strong_pairs(0.9)
    """

    def __init__(self, dataset: Dataset, columns: Iterable[str] | None = None, min_pairs: int | None = None):
        """Initialize the correlation analyzer with a dataset."""
        self._dataset = dataset
        self._columns = list(columns) if columns is not None else dataset.numeric_cols
        self._min_pairs = dataset.config.min_paired_rows if min_pairs is None else min_pairs
        self._corr_mat: pd.DataFrame | None = None
        self._n_pairs: pd.DataFrame | None = None

    def get_correlation_matrix(self) -> pd.DataFrame:
        """Compute the pairwise-complete Pearson matrix with :func:`pearson`."""
        if self._corr_mat is None:
            cols = self._columns
            corr = pd.DataFrame(np.eye(len(cols)), index=cols, columns=cols)
            counts = pd.DataFrame(0, index=cols, columns=cols)
            for i, col_a in enumerate(cols):
                for col_b in cols[i + 1 :]:
                    a, b = paired_values(self._dataset.column(col_a), self._dataset.column(col_b))
                    r = pearson(a, b) if len(a) >= self._min_pairs else np.nan
                    corr.loc[col_a, col_b] = corr.loc[col_b, col_a] = r
                    counts.loc[col_a, col_b] = counts.loc[col_b, col_a] = len(a)
            self._corr_mat, self._n_pairs = corr, counts
        return self._corr_mat

    def get_top_correlated_pairs(self, n: int | None = 20) -> pd.DataFrame:
        """Return the strongest absolute Pearson correlations between column pairs.

        The implementation vectorizes the symmetric matrix by masking the upper triangle
        (excluding the diagonal) using :func:`np.triu`, then stacks the remaining
        values for efficient sorting.
        """
        corr_matrix = self.get_correlation_matrix()
        if corr_matrix.shape[0] < 2:
            return pd.DataFrame(columns=["feature_a", "feature_b", "correlation", "abs_correlation", "pair"])
        mask = np.triu(np.ones(corr_matrix.shape, dtype=bool), k=1)

        pairs = (
            corr_matrix.where(mask)
            .melt(ignore_index=False, var_name="feature_b", value_name="correlation")
            .dropna()
            .reset_index()
            .rename(columns={"index": "feature_a"})
            .assign(
                abs_correlation=lambda d: d.correlation.abs(),
                pair=lambda d: d.feature_a + " vs " + d.feature_b,
            )
            .sort_values("abs_correlation", ascending=False, kind="stable")
        )
        if n is not None:
            pairs = pairs.head(n)
        return pairs.reset_index(drop=True)

    def fit(self) -> Self:
        """Compute correlation matrix."""
        self.get_correlation_matrix()

        return self

    def result(self, *, top_n_pairs: int | None = None) -> CorrelationResult:
        if self._corr_mat is None or self._n_pairs is None:
            raise ValueError("Correlations not computed. Call fit() first.")
        return CorrelationResult(
            matrix=self._corr_mat,
            feature_pairs=self.get_top_correlated_pairs(n=top_n_pairs),
            n_pairs=self._n_pairs,
        )


__all__ = ["CorrelationAnalyzer", "CorrelationResult", "paired_values", "pearson"]

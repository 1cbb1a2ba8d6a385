"""Per-column descriptive statistics."""

import math
from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Self

import numpy as np
import pandas as pd

from tabex.data.dataset import Dataset
from tabex.data.schema import ColumnType
from tabex.data.values import is_missing, to_number
from tabex.exceptions import InvalidConfigurationError

from .artifacts import Artifact
from .base_analyser import BaseAnalyser


@dataclass(frozen=True)
class NumericSummary(Artifact):
    r"""Summary of a numeric column.

    Only cells that are non-missing and parse as numbers are counted; all
    statistics other than ``count`` are ``None`` when none do.

    - ``std`` is the sample standard deviation, :math:`\sqrt{\sum (x-\bar x)^2 / (n-1)}`,
      with the divisor floored at 1.
    - Quartiles use a nearest-rank rule on the ascending values ``x``:
      ``q1 = x[floor((n-1)/4)]`` and ``q3 = x[ceil(3(n-1)/4)]`` (no interpolation).
    """

    count: int
    mean: float | None = None
    median: float | None = None
    std: float | None = None
    min: float | None = None
    max: float | None = None
    q1: float | None = None
    q3: float | None = None
    kind: str = ColumnType.NUMERIC.value


@dataclass(frozen=True)
class CategoricalSummary(Artifact):
    """Summary of a categorical column.

    Attributes:
        count: Non-missing cells.
        unique: Distinct non-missing values.
        top: Most frequent value (first encountered wins ties); ``None`` for an empty column.
        top_count: Frequency of ``top``.
    """

    count: int
    unique: int
    top: str | None = None
    top_count: int = 0
    kind: str = ColumnType.CATEGORICAL.value


ColumnSummary = NumericSummary | CategoricalSummary


def summary_from_dict(data: Mapping[str, Any]) -> ColumnSummary:
    """Rebuild either summary kind from its ``to_dict`` output."""
    if data.get("kind") == ColumnType.NUMERIC.value:
        return NumericSummary.from_dict(data)
    return CategoricalSummary.from_dict(data)


def numeric_values(values: Iterable[Any]) -> list[float]:
    """Drop missing cells, coerce the rest and drop what does not parse."""
    out = []
    for value in values:
        if is_missing(value):
            continue
        number = to_number(value)
        if not math.isnan(number):
            out.append(number)
    return out


def summarize_numeric(values: Iterable[Any]) -> NumericSummary:
    nums = sorted(numeric_values(values))
    n = len(nums)
    if n == 0:
        return NumericSummary(count=0)
    arr = np.asarray(nums, dtype=float)
    mean = float(arr.sum() / n)
    mid = n // 2
    median = nums[mid] if n % 2 == 1 else (nums[mid - 1] + nums[mid]) / 2
    variance = float(((arr - mean) ** 2).sum() / (n - 1 or 1))
    return NumericSummary(
        count=n,
        mean=mean,
        median=float(median),
        std=math.sqrt(variance),
        min=nums[0],
        max=nums[-1],
        q1=nums[math.floor((n - 1) / 4)],
        q3=nums[math.ceil((n - 1) * 3 / 4)],
    )


def summarize_categorical(values: Iterable[Any]) -> CategoricalSummary:
    freq = Counter(str(v) for v in values if not is_missing(v))
    if not freq:
        return CategoricalSummary(count=0, unique=0)
    # most_common keeps insertion order among equal counts
    top, top_count = freq.most_common(1)[0]
    return CategoricalSummary(count=sum(freq.values()), unique=len(freq), top=top, top_count=top_count)


def summarize_column(values: Iterable[Any], column_type: ColumnType) -> ColumnSummary:
    """Summarize one column's raw cells according to its inferred type."""
    if column_type is ColumnType.NUMERIC:
        return summarize_numeric(values)
    return summarize_categorical(values)


@dataclass(frozen=True)
class Histogram(Artifact):
    """Equal-width histogram of a numeric column.

    ``edges`` has ``len(counts) + 1`` entries. Bins are half-open except the
    last, which also holds the maximum.
    """

    edges: tuple[float, ...]
    counts: tuple[int, ...]

    def labels(self, decimals: int = 2) -> list[str]:
        pairs = zip(self.edges[:-1], self.edges[1:], strict=True)
        return [f"{lo:.{decimals}f} - {hi:.{decimals}f}" for lo, hi in pairs]


def histogram(values: Iterable[Any], bins: int = 10) -> Histogram:
    """Bin the parseable values of a column into ``bins`` equal-width bins.

    The bin width is ``(max - min) / bins``, replaced by 1 for a constant column.

    Raises:
        InvalidConfigurationError: If ``bins`` is less than 1.
    """
    if bins < 1:
        raise InvalidConfigurationError(f"bins must be at least 1, got {bins}", {"bins": bins})
    nums = np.asarray(numeric_values(values), dtype=float)
    if nums.size == 0:
        return Histogram(edges=(), counts=())
    lo, hi = float(nums.min()), float(nums.max())
    width = (hi - lo) / bins or 1.0
    idx = np.minimum(bins - 1, np.floor((nums - lo) / width).astype(int))
    counts = np.bincount(idx, minlength=bins)
    return Histogram(
        edges=tuple(lo + i * width for i in range(bins + 1)),
        counts=tuple(int(c) for c in counts),
    )


@dataclass(frozen=True)
class SummaryResult(Artifact):
    """Per-column summaries for a dataset.

    Attributes:
        n_rows: Number of records summarized.
        summaries: Column name -> summary, in column order.
    """

    n_rows: int
    summaries: dict[str, ColumnSummary] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        return cls(
            n_rows=int(data["n_rows"]),
            summaries={col: summary_from_dict(s) for col, s in data["summaries"].items()},
        )

    def to_frame(self) -> pd.DataFrame:
        """One row per column with the union of summary fields."""
        rows = [{"column": col, **s.to_dict()} for col, s in self.summaries.items()]
        return pd.DataFrame(rows).set_index("column") if rows else pd.DataFrame()


class DescriptiveAnalyzer(BaseAnalyser):
    """Summarize every column (or a subset) according to the dataset schema.

    Example:
        >>> summary = Dataset.from_csv("people.csv").make_summary_analyzer().fit().result()
        >>> summary.to_frame()[["count", "mean", "median", "top"]]
    """

    def __init__(self, dataset: Dataset, columns: Iterable[str] | None = None) -> None:
        self._dataset = dataset
        self._columns = list(columns) if columns is not None else dataset.columns
        self._result: SummaryResult | None = None

    def fit(self) -> "DescriptiveAnalyzer":
        schema = self._dataset.schema
        summaries = {
            col: summarize_column(self._dataset.column(col).tolist(), schema.get(col, ColumnType.CATEGORICAL))
            for col in self._columns
        }
        self._result = SummaryResult(n_rows=len(self._dataset), summaries=summaries)
        return self

    def histogram(self, column: str, bins: int | None = None) -> Histogram:
        """Histogram of ``column`` using the configured bin count by default."""
        bins = self._dataset.config.histogram_bins if bins is None else bins
        return histogram(self._dataset.column(column).tolist(), bins)

    def result(self) -> SummaryResult:
        if self._result is None:
            raise ValueError("Summaries not computed. Call fit() first.")
        return self._result


__all__ = [
    "CategoricalSummary",
    "ColumnSummary",
    "DescriptiveAnalyzer",
    "Histogram",
    "NumericSummary",
    "SummaryResult",
    "histogram",
    "numeric_values",
    "summarize_categorical",
    "summarize_column",
    "summarize_numeric",
    "summary_from_dict",
]

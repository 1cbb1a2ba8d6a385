"""Rule-based data-quality and modelling suggestions.

Triggering conditions (the wording of the messages is presentation only):

- ``missing``: a column's share of missing cells (for numeric columns also
  unparsable cells) exceeds ``missing_rate_threshold``.
- ``high_variation``: a numeric column's coefficient of variation
  ``std / |mean|`` exceeds ``variation_threshold``; columns with mean 0 are skipped.
- ``outliers``: a numeric column has values with ``|z| > outlier_z`` (sample std, floored at 1).
- ``high_cardinality``: a categorical column has more than
  ``min(max_cardinality, n_rows / 2)`` distinct values.
- ``correlated``: two numeric columns with at least ``min_paired_rows``
  complete rows have ``|r| > correlation_threshold``.
- ``modelling``: a closing hint on which kind of model the columns allow.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Self

import numpy as np
from loguru import logger

from tabex.data.dataset import Dataset
from tabex.data.values import missing_mask

from .base_analyser import BaseAnalyser
from .correlation_analyzer import CorrelationAnalyzer
from .descriptive import CategoricalSummary, NumericSummary, numeric_values, summarize_column


class SuggestionKind(StrEnum):
    MISSING = "missing"
    HIGH_VARIATION = "high_variation"
    OUTLIERS = "outliers"
    HIGH_CARDINALITY = "high_cardinality"
    CORRELATED = "correlated"
    MODELLING = "modelling"


@dataclass(frozen=True)
class Suggestion:
    """One suggestion with the columns that triggered it."""

    kind: SuggestionKind
    columns: tuple[str, ...]
    message: str
    value: float | None = None

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class SuggestionResult:
    suggestions: tuple[Suggestion, ...] = field(default_factory=tuple)

    @property
    def messages(self) -> list[str]:
        return [s.message for s in self.suggestions]

    def of_kind(self, kind: SuggestionKind | str) -> list[Suggestion]:
        return [s for s in self.suggestions if s.kind == kind]


class SuggestionAnalyzer(BaseAnalyser):
    """Scan a dataset for the conditions listed in the module docstring."""

    def __init__(self, dataset: Dataset) -> None:
        self._dataset = dataset
        self._result: SuggestionResult | None = None

    def _numeric_checks(self, col: str, summary: NumericSummary, n_rows: int) -> list[Suggestion]:
        cfg = self._dataset.config
        found = []
        invalid = n_rows - summary.count
        if n_rows and invalid / n_rows > cfg.missing_rate_threshold:
            found.append(
                Suggestion(
                    SuggestionKind.MISSING,
                    (col,),
                    f"Column '{col}' has missing or non-numeric entries: {invalid} missing/invalid values.",
                    invalid / n_rows,
                ),
            )
        if summary.count < 2:
            return found
        if summary.mean:
            variation = summary.std / abs(summary.mean)
            if variation > cfg.variation_threshold:
                found.append(
                    Suggestion(
                        SuggestionKind.HIGH_VARIATION,
                        (col,),
                        f"Column '{col}' varies strongly relative to its mean (cv={variation:.2f}); "
                        "consider a log transform or scaling.",
                        variation,
                    ),
                )
        values = np.asarray(numeric_values(self._dataset.column(col).tolist()))
        n_outliers = int((np.abs((values - summary.mean) / (summary.std or 1.0)) > cfg.outlier_z).sum())
        if n_outliers:
            found.append(
                Suggestion(
                    SuggestionKind.OUTLIERS,
                    (col,),
                    f"Column '{col}' has {n_outliers} extreme outlier(s); consider capping or investigating.",
                    float(n_outliers),
                ),
            )
        return found

    def _categorical_checks(self, col: str, summary: CategoricalSummary, n_rows: int) -> list[Suggestion]:
        cfg = self._dataset.config
        found = []
        n_missing = int(missing_mask(self._dataset.column(col)).sum())
        if n_rows and n_missing / n_rows > cfg.missing_rate_threshold:
            found.append(
                Suggestion(
                    SuggestionKind.MISSING,
                    (col,),
                    f"Column '{col}' has {n_missing} missing values ({n_missing / n_rows:.0%}).",
                    n_missing / n_rows,
                ),
            )
        if summary.unique > min(cfg.max_cardinality, n_rows / 2):
            found.append(
                Suggestion(
                    SuggestionKind.HIGH_CARDINALITY,
                    (col,),
                    f"Column '{col}' is high-cardinality categorical (unique={summary.unique}); "
                    "consider hashing or embedding.",
                    float(summary.unique),
                ),
            )
        return found

    def fit(self) -> Self:
        ds = self._dataset
        cfg = ds.config
        n_rows = len(ds)
        found: list[Suggestion] = []
        if n_rows == 0:
            self._result = SuggestionResult()
            return self

        for col in ds.columns:
            summary = summarize_column(ds.column(col).tolist(), ds.schema[col])
            if isinstance(summary, NumericSummary):
                found.extend(self._numeric_checks(col, summary, n_rows))
            else:
                found.extend(self._categorical_checks(col, summary, n_rows))

        pairs = CorrelationAnalyzer(ds).fit().result().strong_pairs(cfg.correlation_threshold)
        for row in pairs.itertuples(index=False):
            found.append(
                Suggestion(
                    SuggestionKind.CORRELATED,
                    (row.feature_a, row.feature_b),
                    f"Columns '{row.feature_a}' and '{row.feature_b}' are highly correlated "
                    f"(r={row.correlation:.2f}); consider removing one or using PCA.",
                    float(row.correlation),
                ),
            )

        if ds.numeric_cols:
            hint = "You can train a regression model on numeric targets: pick a target column and features."
        else:
            hint = (
                "No numeric columns detected for regression. "
                "If classification is desired, ensure a categorical target exists."
            )
        found.append(Suggestion(SuggestionKind.MODELLING, tuple(ds.numeric_cols), hint))

        self._result = SuggestionResult(tuple(found))
        logger.debug("Generated {} suggestions for {} columns", len(found), len(ds.columns))
        return self

    def result(self) -> SuggestionResult:
        if self._result is None:
            raise ValueError("Suggestions not computed. Call fit() first.")
        return self._result


def generate_suggestions(dataset: Dataset) -> list[str]:
    """Human-readable suggestion strings for ``dataset``."""
    return SuggestionAnalyzer(dataset).fit().result().messages


__all__ = ["Suggestion", "SuggestionAnalyzer", "SuggestionKind", "SuggestionResult", "generate_suggestions"]

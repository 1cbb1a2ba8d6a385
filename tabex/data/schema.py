"""Column type inference."""

import math
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum

import pandas as pd

from .values import is_missing, to_number


class ColumnType(StrEnum):
    """Semantic type assigned to a column by :func:`infer_column_types`."""

    NUMERIC = "numeric"
    CATEGORICAL = "categorical"


@dataclass(frozen=True)
class Schema(Mapping[str, ColumnType]):
    """Ordered mapping from column name to :class:`ColumnType`.

    Computed once per dataset and passed alongside the data instead of being
    re-derived at each access.
    """

    types: dict[str, ColumnType] = field(default_factory=dict)

    def __getitem__(self, column: str) -> ColumnType:
        return self.types[column]

    def __iter__(self) -> Iterator[str]:
        return iter(self.types)

    def __len__(self) -> int:
        return len(self.types)

    @property
    def numeric_cols(self) -> list[str]:
        """Numeric column names in column order."""
        return [col for col, kind in self.types.items() if kind is ColumnType.NUMERIC]

    @property
    def categorical_cols(self) -> list[str]:
        """Categorical column names in column order."""
        return [col for col, kind in self.types.items() if kind is ColumnType.CATEGORICAL]

    def to_dict(self) -> dict[str, str]:
        return {col: str(kind) for col, kind in self.types.items()}

    @classmethod
    def from_dict(cls, data: Mapping[str, str]) -> "Schema":
        return cls({col: ColumnType(kind) for col, kind in data.items()})


def classify_values(values: Iterable[object], threshold: float = 0.8) -> ColumnType:
    """Classify one column's values.

    A column is numeric when at least ``threshold`` of its non-missing values
    parse as numbers. A column without any non-missing value is categorical.
    """
    count = numeric = 0
    for value in values:
        if is_missing(value):
            continue
        count += 1
        if not math.isnan(to_number(value)):
            numeric += 1
    if count == 0:
        return ColumnType.CATEGORICAL
    return ColumnType.NUMERIC if numeric / count >= threshold else ColumnType.CATEGORICAL


def infer_column_types(sample: pd.DataFrame, threshold: float = 0.8) -> Schema:
    """Infer a :class:`Schema` from a sample of records (commonly the whole dataset)."""
    return Schema({str(col): classify_values(sample[col].tolist(), threshold) for col in sample.columns})


__all__ = ["ColumnType", "Schema", "classify_values", "infer_column_types"]

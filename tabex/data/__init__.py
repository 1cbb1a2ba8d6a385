"""Data module: value model, schema inference and the dataset container."""

from .dataset import Dataset
from .schema import ColumnType, Schema, classify_values, infer_column_types
from .values import is_missing, missing_mask, to_number, to_numeric
from .views import NumericRows


__all__ = [
    "ColumnType",
    "Dataset",
    "NumericRows",
    "Schema",
    "classify_values",
    "infer_column_types",
    "is_missing",
    "missing_mask",
    "to_number",
    "to_numeric",
]

"""Numeric analysis engine for interactive tabular-data exploration."""

from loguru import logger

from .data import ColumnType, Dataset, Schema, infer_column_types, is_missing, to_number
from .exceptions import (
    DimensionMismatchError,
    InvalidConfigurationError,
    NoTrainableRowsError,
    SingularMatrixError,
    TabexError,
)
from .utils import DEFAULT_CONFIG, EngineConfig, configure_logging


logger.disable("tabex")

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_CONFIG",
    "ColumnType",
    "Dataset",
    "DimensionMismatchError",
    "EngineConfig",
    "InvalidConfigurationError",
    "NoTrainableRowsError",
    "Schema",
    "SingularMatrixError",
    "TabexError",
    "configure_logging",
    "infer_column_types",
    "is_missing",
    "to_number",
]

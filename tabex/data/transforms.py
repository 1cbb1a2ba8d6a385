"""Cleaning and scaling steps as explicit dataset transformations.

Every function takes a :class:`~tabex.data.dataset.Dataset` and returns a new
one; the input is never mutated. The caller decides whether to keep the
history of intermediate datasets or only the latest one. The engine never
applies any of these on its own behalf.
"""

from collections.abc import Iterable

import numpy as np
import pandas as pd
from loguru import logger
from sklearn.impute import SimpleImputer
from sklearn.preprocessing import MinMaxScaler, StandardScaler

from .dataset import Dataset
from .schema import ColumnType, Schema
from .values import is_missing, to_numeric


def _numeric_targets(dataset: Dataset, columns: Iterable[str] | None) -> list[str]:
    if columns is None:
        return dataset.numeric_cols
    return [col for col in columns if col in dataset.df.columns]


def _coerced(dataset: Dataset, columns: list[str]) -> pd.DataFrame:
    return pd.DataFrame({col: to_numeric(dataset.df[col]) for col in columns}, index=dataset.df.index)


def impute_mean(dataset: Dataset, columns: Iterable[str] | None = None) -> Dataset:
    """Replace missing or unparsable numeric cells with the column mean.

    The mean is taken over the cells that do parse; a column with none is
    filled with 0. Imputed columns are stored as floats.
    """
    targets = _numeric_targets(dataset, columns)
    df = dataset.df.copy()
    if targets:
        imputer = SimpleImputer(strategy="mean", keep_empty_features=True)
        filled = imputer.fit_transform(_coerced(dataset, targets))
        for pos, col in enumerate(targets):
            df[col] = filled[:, pos]
        logger.debug("Mean-imputed columns {}", targets)
    return dataset.with_df(df, schema=dataset.schema)


def trim_strings(dataset: Dataset, columns: Iterable[str] | None = None) -> Dataset:
    """Strip surrounding whitespace from string cells of categorical columns."""
    targets = dataset.categorical_cols if columns is None else list(columns)
    df = dataset.df.copy()
    for col in targets:
        df[col] = df[col].map(lambda v: v.strip() if isinstance(v, str) else v)
    return dataset.with_df(df)


def auto_clean(dataset: Dataset) -> Dataset:
    """Conservative cleaning pass: mean-impute numeric columns, trim categorical strings."""
    return trim_strings(impute_mean(dataset), columns=dataset.categorical_cols)


def standardize(dataset: Dataset, columns: Iterable[str] | None = None) -> Dataset:
    """Z-score numeric columns using [sklearn's StandardScaler](https://scikit-learn.org/stable/modules/generated/sklearn.preprocessing.StandardScaler.html).

    Unparsable cells stay missing (``nan``) and are ignored when fitting the scaler.
    """
    targets = _numeric_targets(dataset, columns)
    df = dataset.df.copy()
    if targets:
        scaled = StandardScaler().fit_transform(_coerced(dataset, targets))
        for pos, col in enumerate(targets):
            df[col] = scaled[:, pos]
    return dataset.with_df(df, schema=dataset.schema)


def min_max_scale(dataset: Dataset, columns: Iterable[str] | None = None) -> Dataset:
    """Rescale numeric columns to ``[0, 1]`` with :class:`sklearn.preprocessing.MinMaxScaler`."""
    targets = _numeric_targets(dataset, columns)
    df = dataset.df.copy()
    if targets:
        scaled = MinMaxScaler().fit_transform(_coerced(dataset, targets))
        for pos, col in enumerate(targets):
            df[col] = scaled[:, pos]
    return dataset.with_df(df, schema=dataset.schema)


def one_hot_encode(dataset: Dataset, columns: Iterable[str]) -> Dataset:
    """Replace categorical columns by 0/1 indicator columns named ``<column>=<value>``.

    Indicator columns follow first-seen value order and are inserted where the
    source column was. Missing cells produce all-zero indicators.
    """
    columns = list(columns)
    df = dataset.df.copy()
    types = dict(dataset.schema)
    for col in columns:
        cells = df[col]
        present = ~cells.map(is_missing).astype(bool)
        labels = pd.unique(cells[present].astype(str))
        position = df.columns.get_loc(col)
        df = df.drop(columns=[col])
        del types[col]
        for offset, label in enumerate(labels):
            name = f"{col}={label}"
            df.insert(position + offset, name, np.where(present & (cells.astype(str) == label), 1.0, 0.0))
        logger.debug("One-hot encoded {} into {} indicator columns", col, len(labels))
    ordered = {str(col): types.get(str(col), ColumnType.NUMERIC) for col in df.columns}
    return dataset.with_df(df, schema=Schema(ordered))


def center_columns(matrix: np.ndarray) -> np.ndarray:
    """Subtract each column's mean from a numeric matrix (returns a new array)."""
    matrix = np.asarray(matrix, dtype=float)
    if matrix.shape[0] == 0:
        return matrix.copy()
    return matrix - matrix.mean(axis=0)


__all__ = [
    "auto_clean",
    "center_columns",
    "impute_mean",
    "min_max_scale",
    "one_hot_encode",
    "standardize",
    "trim_strings",
]

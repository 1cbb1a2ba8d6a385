"""Dataset container shared by every analyzer."""

from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

import numpy as np
import pandas as pd
from loguru import logger

from tabex.utils.config import DEFAULT_CONFIG, EngineConfig
from tabex.utils.random import RandomSource

from .schema import Schema, infer_column_types
from .values import to_numeric
from .views import NumericRows


if TYPE_CHECKING:
    from tabex.analysis.correlation_analyzer import CorrelationAnalyzer
    from tabex.analysis.descriptive import DescriptiveAnalyzer
    from tabex.analysis.kmeans import KMeansAnalyzer
    from tabex.analysis.logistic import LogisticRegressionTrainer
    from tabex.analysis.pca_analyzer import PCAAnalyzer
    from tabex.analysis.regression import LinearRegressionAnalyzer
    from tabex.analysis.suggestions import SuggestionAnalyzer


class Dataset:
    """Immutable collection of records plus the schema inferred from them.

    Records are kept as raw cells in a DataFrame (one row per record, one
    column per field). Nothing is coerced on load: analyzers apply the value
    model when they read a column. Transformations return new instances
    (see :mod:`tabex.data.transforms`).

    Example:
        >>> ds = Dataset.from_records(
        ...     [
        ...         {"age": "34", "salary": "85000", "department": "Engineering"},
        ...         {"age": "28", "salary": "56000", "department": "Product"},
        ...         {"age": "NaN", "salary": "48000", "department": "Support"},
        ...     ]
        ... )
        >>> ds.schema.numeric_cols
        ['age', 'salary']
        >>> model = ds.make_regression_analyzer(["age"], "salary").fit().result()
    """

    def __init__(
        self,
        df: pd.DataFrame | None = None,
        schema: Schema | None = None,
        config: EngineConfig = DEFAULT_CONFIG,
    ) -> None:
        """Initialize the dataset.

        Args:
            df: Raw cells, one row per record.
            schema: Precomputed schema; inferred from ``df`` when omitted.
            config: Engine configuration forwarded to the analyzers made from this dataset.
        """
        self._df: pd.DataFrame | None = df
        self._schema: Schema | None = schema
        self.config = config

    @classmethod
    def from_records(
        cls,
        records: Iterable[Mapping[str, Any]],
        config: EngineConfig = DEFAULT_CONFIG,
    ) -> "Dataset":
        """Build a dataset from row mappings.

        Column order follows first appearance of each key. Records lacking a key
        get a missing cell there.
        """
        records = list(records)
        columns: dict[str, None] = {}
        for record in records:
            columns.update(dict.fromkeys(record))
        df = pd.DataFrame.from_records(records, columns=list(columns)) if records else pd.DataFrame()
        return cls(df.astype(object), config=config)

    @classmethod
    def from_csv(cls, filepath: str | Path, config: EngineConfig = DEFAULT_CONFIG, **kwargs: Any) -> "Dataset":
        """Load a CSV file with every cell kept as its raw string.

        Header names are stripped of surrounding whitespace. Extra keyword
        arguments are forwarded to :func:`pandas.read_csv`.
        """
        df = pd.read_csv(filepath, dtype=str, keep_default_na=False, skip_blank_lines=True, **kwargs)
        df.columns = [str(col).strip() for col in df.columns]
        logger.debug("Loaded {} rows x {} columns from {}", len(df), df.shape[1], filepath)
        return cls(df.astype(object), config=config)

    @property
    def df(self) -> pd.DataFrame:
        """Get the raw DataFrame.

        Raises:
            ValueError: If dataset not loaded
        """
        if self._df is None:
            raise ValueError("Dataset not loaded. Use from_records() or from_csv() to load data.")
        return self._df

    @property
    def schema(self) -> Schema:
        """Column types, inferred on first access."""
        if self._schema is None:
            self._schema = infer_column_types(self.df, threshold=self.config.numeric_threshold)
        return self._schema

    @property
    def columns(self) -> list[str]:
        return [str(col) for col in self.df.columns]

    @property
    def numeric_cols(self) -> list[str]:
        return self.schema.numeric_cols

    @property
    def categorical_cols(self) -> list[str]:
        return self.schema.categorical_cols

    def __len__(self) -> int:
        return len(self.df)

    def column(self, name: str) -> pd.Series:
        """Return the raw cells of ``name``; an unknown column reads as all missing."""
        if name in self.df.columns:
            return self.df[name]
        return pd.Series([np.nan] * len(self.df), index=self.df.index, dtype=object, name=name)

    def to_records(self) -> list[dict[str, Any]]:
        return self.df.to_dict(orient="records")

    def with_df(self, df: pd.DataFrame, schema: Schema | None = None) -> "Dataset":
        """Return a new dataset of the same class wrapping ``df``."""
        return type(self)(df, schema=schema, config=self.config)

    def numeric_rows(self, columns: Sequence[str]) -> NumericRows:
        """Select rows where every column in ``columns`` parses as a number."""
        columns = list(columns)
        # positional so a column selected twice yields two matrix columns
        matrix = np.column_stack(
            [to_numeric(self.column(col)).to_numpy(dtype=float) for col in columns] or [np.empty((len(self.df), 0))]
        )
        invalid = np.isnan(matrix)
        keep = ~invalid.any(axis=1)
        rows = NumericRows(
            values=matrix[keep],
            columns=columns,
            index=self.df.index[keep],
            n_total=len(matrix),
            dropped_by_column={col: int(invalid[:, i].sum()) for i, col in enumerate(columns)},
        )
        if rows.n_dropped:
            logger.debug("Row filter on {} kept {}/{} rows", columns, rows.n_kept, rows.n_total)
        return rows

    # ------------------------------------------------------------------ analyzer factories
    def make_summary_analyzer(self, columns: Iterable[str] | None = None) -> "DescriptiveAnalyzer":
        """Instantiate a descriptive-statistics analyzer for this dataset."""
        from tabex.analysis.descriptive import DescriptiveAnalyzer

        return DescriptiveAnalyzer(self, columns=columns)

    def make_correlation_analyzer(self, columns: Iterable[str] | None = None) -> "CorrelationAnalyzer":
        """Instantiate a correlation analyzer over numeric columns."""
        from tabex.analysis.correlation_analyzer import CorrelationAnalyzer

        return CorrelationAnalyzer(self, columns=columns)

    def make_suggestion_analyzer(self) -> "SuggestionAnalyzer":
        """Instantiate the rule-based suggestion analyzer."""
        from tabex.analysis.suggestions import SuggestionAnalyzer

        return SuggestionAnalyzer(self)

    def make_regression_analyzer(
        self,
        features: Sequence[str],
        target: str,
        *,
        ridge_lambda: float | None = None,
        rng: RandomSource = None,
    ) -> "LinearRegressionAnalyzer":
        """Instantiate a (ridge) linear regression analyzer."""
        from tabex.analysis.regression import LinearRegressionAnalyzer

        return LinearRegressionAnalyzer(self, features, target, ridge_lambda=ridge_lambda, rng=rng)

    def make_logistic_trainer(self, features: Sequence[str], target: str) -> "LogisticRegressionTrainer":
        """Instantiate a binary logistic regression trainer."""
        from tabex.analysis.logistic import LogisticRegressionTrainer

        return LogisticRegressionTrainer(self, features, target)

    def make_kmeans_analyzer(self, features: Sequence[str], *, rng: RandomSource = None) -> "KMeansAnalyzer":
        """Instantiate a k-means analyzer over ``features``."""
        from tabex.analysis.kmeans import KMeansAnalyzer

        return KMeansAnalyzer(self, features, rng=rng)

    def make_pca_analyzer(
        self,
        columns: Iterable[str] | None = None,
        *,
        rng: RandomSource = None,
    ) -> "PCAAnalyzer":
        """Instantiate a PCA analyzer (defaults to every numeric column)."""
        from tabex.analysis.pca_analyzer import PCAAnalyzer

        return PCAAnalyzer(self, columns=columns, rng=rng)


__all__ = ["Dataset"]

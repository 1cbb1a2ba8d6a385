"""Row-filtered numeric views over dataset content."""

from collections.abc import Mapping
from dataclasses import dataclass, field

import numpy as np
import pandas as pd


@dataclass(frozen=True)
class NumericRows:
    """Rows whose selected cells all parse as numbers.

    This is the explicit form of the silent-filter policy: rows with a missing
    or unparsable cell in any selected column are excluded rather than failing
    the whole computation, and the exclusions are counted here.

    Attributes:
        values: Float matrix of the kept rows (``n_kept x len(columns)``).
        columns: Selected column names, in matrix column order.
        index: Dataset index labels of the kept rows.
        n_total: Number of rows before filtering.
        dropped_by_column: Per column, how many rows failed to parse there. A row
            failing several columns is counted once per column.
    """

    values: np.ndarray
    """Float matrix of the kept rows."""
    columns: list[str]
    index: pd.Index
    n_total: int
    dropped_by_column: Mapping[str, int] = field(default_factory=dict)

    @property
    def n_kept(self) -> int:
        return int(self.values.shape[0])

    @property
    def n_dropped(self) -> int:
        return self.n_total - self.n_kept

    @property
    def is_empty(self) -> bool:
        return self.n_kept == 0

    def column(self, name: str) -> np.ndarray:
        """Return the kept values of one selected column."""
        return self.values[:, self.columns.index(name)]

    def to_frame(self) -> pd.DataFrame:
        """Return the kept rows as a float DataFrame."""
        return pd.DataFrame(self.values, columns=self.columns, index=self.index)


__all__ = ["NumericRows"]

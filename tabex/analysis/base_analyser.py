"""Base analyzer class for all analysis components."""

from abc import ABC, abstractmethod
from typing import Any


class BaseAnalyser(ABC):
    """Abstract base class for the analysis components.

    All analyzers must:
    1. Accept a :class:`~tabex.data.Dataset` (plus their column selection) in their constructor
    2. Implement fit() to perform the computation and return self for chaining
    3. Implement result() to return a frozen dataclass with results

    The result() method must return a frozen @dataclass. Results are owned by
    the caller; analyzers keep no state between ``fit()`` calls other than the
    last result.

    ---

    ### Adding a New Analyzer

    ```python
    from dataclasses import dataclass

    from tabex.analysis.artifacts import Artifact
    from tabex.data import Dataset

    @dataclass(frozen=True)
    class MyResult(Artifact):
        '''Results package for MyAnalyzer.'''
        values: tuple[float, ...]

    class MyAnalyzer(BaseAnalyser):
        def __init__(self, dataset: Dataset):
            self._dataset = dataset
            self._result: MyResult | None = None

        def fit(self) -> "MyAnalyzer":
            rows = self._dataset.numeric_rows(self._dataset.numeric_cols)
            # ... computation logic ...
            self._result = MyResult(...)
            return self

        def result(self) -> MyResult:
            if self._result is None:
                raise ValueError("Call fit() first")
            return self._result
    ```

    Then add a ``make_my_analyzer`` factory method to
    :class:`~tabex.data.Dataset` that imports the analyzer lazily.
    """

    @abstractmethod
    def fit(self) -> "BaseAnalyser":
        """Fit the analyzer to the data.

        Returns:
            Self for method chaining.
        """
        ...

    @abstractmethod
    def result(self) -> Any:
        """Return analysis results as a frozen dataclass instance.

        Raises:
            ValueError: If fit() has not been called yet.
        """
        ...

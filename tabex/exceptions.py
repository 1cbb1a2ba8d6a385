"""Error kinds raised by the analysis engine.

All errors are local and recoverable. Each carries a ``details`` mapping with
enough context (column, stage, shapes) for a presentation layer to render a
message. They also derive from :class:`ValueError`, which is what callers of
the analyzers conventionally catch.
"""

from collections.abc import Mapping
from typing import Any


class TabexError(ValueError):
    """Base class for engine errors."""

    def __init__(self, message: str, details: Mapping[str, Any] | None = None) -> None:
        self.message = message
        self.details: dict[str, Any] = dict(details or {})
        super().__init__(self.message)


class DimensionMismatchError(TabexError):
    """Matrix operation on incompatible shapes."""


class SingularMatrixError(TabexError):
    """Inversion hit a pivot below the singularity tolerance."""


class NoTrainableRowsError(TabexError):
    """Every row was filtered out before fitting."""


class InvalidConfigurationError(TabexError):
    """A parameter value makes the requested computation impossible."""


__all__ = [
    "DimensionMismatchError",
    "InvalidConfigurationError",
    "NoTrainableRowsError",
    "SingularMatrixError",
    "TabexError",
]

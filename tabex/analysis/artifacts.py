"""Conversion of result artifacts to and from plain key-value structures."""

import dataclasses
from collections.abc import Mapping
from enum import Enum
from typing import Any, Self

import numpy as np


def to_plain(value: Any) -> Any:
    """Recursively convert dataclasses, tuples and numpy scalars to plain Python types.

    Floats are passed through unchanged, so a round trip preserves every bit.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_plain(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, np.ndarray):
        return [to_plain(v) for v in value.tolist()]
    if isinstance(value, list | tuple):
        return [to_plain(v) for v in value]
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, np.floating):
        return float(value)
    return value


def as_tuple(values: Any) -> tuple[float, ...]:
    return tuple(float(v) for v in values)


def as_matrix(rows: Any) -> tuple[tuple[float, ...], ...]:
    return tuple(as_tuple(row) for row in rows)


class Artifact:
    """Mixin for frozen result dataclasses.

    Subclasses whose fields are not plain scalars or flat sequences override
    :meth:`from_dict`.
    """

    def to_dict(self) -> dict[str, Any]:
        """Serialize to nested dicts/lists of plain Python values."""
        return to_plain(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        """Rebuild an artifact from :meth:`to_dict` output."""
        kwargs = {}
        for f in dataclasses.fields(cls):  # type: ignore[arg-type]
            if f.name not in data:
                continue
            value = data[f.name]
            kwargs[f.name] = tuple(value) if isinstance(value, list) else value
        return cls(**kwargs)


__all__ = ["Artifact", "as_matrix", "as_tuple", "to_plain"]

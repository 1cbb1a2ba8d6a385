"""Missingness and numeric-coercion rules for raw cell values.

Cells arrive as whatever the ingestion layer produced: strings from a CSV,
numbers, ``None`` or pandas' ``NaN`` for absent cells. These two rules decide
how every analyzer sees a cell, so they are applied verbatim everywhere.
"""

import math
import re
from typing import Any

import numpy as np
import pandas as pd


MISSING_TOKENS: frozenset[str] = frozenset({"na", "n/a", "null", "undefined"})

# Anything that cannot be part of a decimal literal is removed before parsing,
# so "$1,200" reads as 1200 and "12 kg" as 12.
_STRIP_RE = re.compile(r"[^0-9eE+.\-]")
# Longest leading decimal literal; trailing garbage ("1-2", "3.4.5") is ignored.
_LEADING_FLOAT_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def _is_absent(value: Any) -> bool:
    if value is None or value is pd.NA or value is pd.NaT:
        return True
    return isinstance(value, float | np.floating) and math.isnan(value)


def is_missing(value: Any) -> bool:
    """Return True for absent, blank or placeholder cells.

    Placeholders (``na``, ``n/a``, ``null``, ``undefined``) match
    case-insensitively but are not trimmed first.
    """
    if _is_absent(value):
        return True
    text = str(value)
    return text.strip() == "" or text.lower() in MISSING_TOKENS


def to_number(value: Any) -> float:
    """Coerce a cell to float, returning ``nan`` when it does not parse.

    The conversion is deliberately lossy: every character that is not a digit,
    sign, decimal point or exponent marker is dropped, then the longest leading
    decimal literal is parsed. Non-finite results become ``nan``.
    """
    if _is_absent(value):
        return math.nan
    match = _LEADING_FLOAT_RE.match(_STRIP_RE.sub("", str(value)))
    if match is None:
        return math.nan
    number = float(match.group(0))
    return number if math.isfinite(number) else math.nan


def missing_mask(values: pd.Series) -> pd.Series:
    """Element-wise :func:`is_missing` over a Series."""
    return values.map(is_missing).astype(bool)


def to_numeric(values: pd.Series) -> pd.Series:
    """Element-wise :func:`to_number` over a Series; missing cells become ``nan``."""
    return values.map(lambda v: math.nan if is_missing(v) else to_number(v)).astype(float)


__all__ = ["MISSING_TOKENS", "is_missing", "missing_mask", "to_number", "to_numeric"]

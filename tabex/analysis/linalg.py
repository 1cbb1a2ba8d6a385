"""Small dense linear-algebra kernel used by regression and PCA.

Matrices are 2-D ``numpy`` float arrays. Inversion is done by Gauss-Jordan
elimination with partial pivoting rather than ``numpy.linalg.inv`` so that
near-singular systems fail with the same tolerance everywhere.
"""

import numpy as np
from loguru import logger

from tabex.exceptions import DimensionMismatchError, SingularMatrixError


SINGULAR_TOLERANCE = 1e-12


def as_matrix(a: object) -> np.ndarray:
    """Coerce ``a`` to a 2-D float array."""
    arr = np.asarray(a, dtype=float)
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    if arr.ndim != 2:
        raise DimensionMismatchError(f"Expected a 2-D matrix, got {arr.ndim} dimensions", {"shape": arr.shape})
    return arr


def transpose(a: object) -> np.ndarray:
    return as_matrix(a).T.copy()


def mat_mul(a: object, b: object) -> np.ndarray:
    """Matrix product ``a @ b``.

    Raises:
        DimensionMismatchError: If ``a`` has a different column count than ``b`` has rows.
    """
    left, right = as_matrix(a), as_matrix(b)
    if left.shape[1] != right.shape[0]:
        raise DimensionMismatchError(
            f"Dimension mismatch: cannot multiply {left.shape} by {right.shape}",
            {"left": left.shape, "right": right.shape},
        )
    return left @ right


def inverse(a: object, tolerance: float = SINGULAR_TOLERANCE) -> np.ndarray:
    """Invert a square matrix by Gauss-Jordan elimination on ``[A | I]``.

    For each column the row with the largest absolute entry among the rows not
    yet used as pivots is swapped into place (first one wins ties).

    Raises:
        DimensionMismatchError: If ``a`` is not square.
        SingularMatrixError: If a chosen pivot's magnitude is below ``tolerance``.
    """
    mat = as_matrix(a)
    n, m = mat.shape
    if n != m:
        raise DimensionMismatchError(f"Only square matrices can be inverted, got {mat.shape}", {"shape": mat.shape})

    aug = np.hstack([mat, np.eye(n)])
    for col in range(n):
        pivot = col + int(np.argmax(np.abs(aug[col:, col])))
        if abs(aug[pivot, col]) < tolerance:
            logger.warning("Singular matrix: pivot {:.3e} in column {}", aug[pivot, col], col)
            raise SingularMatrixError(
                "Matrix singular or nearly singular",
                {"column": col, "pivot": float(aug[pivot, col]), "tolerance": tolerance},
            )
        if pivot != col:
            aug[[col, pivot]] = aug[[pivot, col]]
        aug[col] /= aug[col, col]
        factors = aug[:, col].copy()
        factors[col] = 0.0
        aug -= np.outer(factors, aug[col])
    return aug[:, n:]


__all__ = ["SINGULAR_TOLERANCE", "as_matrix", "inverse", "mat_mul", "transpose"]

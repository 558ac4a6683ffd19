"""Sparse tensor-product basis (design) matrices."""

from __future__ import annotations

from typing import Sequence

import numpy as np
from scipy import sparse
from scipy.interpolate import BSpline

from bsurf.core.errors import InvalidInputError
from bsurf.logging import get_logger

logger = get_logger("bsurf.basis")


def num_basis_functions(knots: np.ndarray, degree: int) -> int:
    """Number of univariate basis functions spanned by ``knots``."""

    return len(knots) - degree - 1


def univariate_basis_matrix(
    x: np.ndarray, knots: np.ndarray, degree: int
) -> sparse.csr_matrix:
    """Evaluate every univariate basis function at ``x``.

    Args:
        x: Evaluation points, shape ``(n,)``, inside ``[knots[0], knots[-1]]``.
        knots: Clamped knot vector.
        degree: Polynomial degree.

    Returns:
        CSR matrix of shape ``(n, len(knots) - degree - 1)``.
    """

    # scipy wants writable buffers; spline knots are stored read-only
    x = np.array(x, dtype=float)
    knots = np.array(knots, dtype=float)
    lo, hi = knots[degree], knots[-degree - 1]
    outside = (x < lo) | (x > hi)
    if np.any(outside):
        raise InvalidInputError(
            f"{int(np.count_nonzero(outside))} point(s) lie outside the spline domain [{lo}, {hi}]"
        )
    return BSpline.design_matrix(x, knots, degree).tocsr()


def _row_entries(
    factor: sparse.csr_matrix, degree: int
) -> tuple[np.ndarray, np.ndarray]:
    """Column indices and values of ``factor`` as ``(n, degree + 1)`` arrays.

    ``BSpline.design_matrix`` stores exactly ``degree + 1`` ascending entries
    per row, zeros included.
    """

    n = factor.shape[0]
    return (
        factor.indices.reshape(n, degree + 1).astype(np.int64),
        factor.data.reshape(n, degree + 1),
    )


def _row_kron(
    left: tuple[np.ndarray, np.ndarray],
    right: tuple[np.ndarray, np.ndarray],
    num_right_columns: int,
) -> tuple[np.ndarray, np.ndarray]:
    """Row-wise Kronecker product ``out[i] = kron(left[i], right[i])`` on row entries."""

    left_idx, left_val = left
    right_idx, right_val = right
    n = left_idx.shape[0]
    indices = left_idx[:, :, np.newaxis] * num_right_columns + right_idx[:, np.newaxis, :]
    values = left_val[:, :, np.newaxis] * right_val[:, np.newaxis, :]
    return indices.reshape(n, -1), values.reshape(n, -1)


def basis_matrix(
    points: np.ndarray,
    knot_vectors: Sequence[np.ndarray],
    degrees: Sequence[int],
) -> sparse.csr_matrix:
    """Assemble the tensor-product basis matrix Φ.

    Row ``i`` holds every tensor-product basis function evaluated at
    ``points[i]``. Columns follow C order over the coefficient grid, so the
    last variable varies fastest. At most ``prod(degree + 1)`` entries per
    row are non-zero.

    Args:
        points: Evaluation points, shape ``(n, d)`` (or ``(n,)`` when ``d == 1``).
        knot_vectors: One clamped knot vector per variable.
        degrees: One degree per variable.

    Returns:
        CSR matrix of shape ``(n, prod(basis counts))``.

    Raises:
        InvalidInputError: If the dimensions disagree or a point lies outside
            the knot span.
    """

    points = np.asarray(points, dtype=float)
    if points.ndim == 1 and len(degrees) == 1:
        points = points[:, np.newaxis]
    if points.ndim != 2 or points.shape[1] != len(knot_vectors):
        raise InvalidInputError(
            f"Expected points of shape (n, {len(knot_vectors)}), got {points.shape}"
        )
    if len(knot_vectors) != len(degrees) or len(degrees) == 0:
        raise InvalidInputError(
            "knot_vectors and degrees must be non-empty and of the same length"
        )

    num_points = points.shape[0]
    entries = None
    num_columns = 1
    for i, (knots, degree) in enumerate(zip(knot_vectors, degrees)):
        factor = univariate_basis_matrix(points[:, i], knots, degree)
        row = _row_entries(factor, degree)
        entries = row if entries is None else _row_kron(entries, row, factor.shape[1])
        num_columns *= factor.shape[1]

    indices, values = entries
    # Columns within a row stay ascending, so the CSR is canonical
    indptr = np.arange(num_points + 1, dtype=np.int64) * indices.shape[1]
    phi = sparse.csr_matrix(
        (values.ravel(), indices.ravel(), indptr), shape=(num_points, num_columns)
    )
    phi.eliminate_zeros()

    logger.debug("Assembled basis matrix %s with %d non-zeros", phi.shape, phi.nnz)
    return phi


__all__ = ["num_basis_functions", "univariate_basis_matrix", "basis_matrix"]

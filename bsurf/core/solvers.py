"""Least-squares solvers for B-spline control-point coefficients.

Three formulations share the right-hand side ``Φᵀy``:

* ``Smoothing.NONE``: ordinary least squares, ``ΦᵀΦ c = Φᵀy``.
* ``Smoothing.REGULARIZATION``: ridge regression, ``(ΦᵀΦ + αI) c = Φᵀy``.
* ``Smoothing.PSPLINE``: penalised splines, ``(ΦᵀΦ + α DᵀD) c = Φᵀy`` where
  ``D`` takes second differences of neighbouring coefficients along each
  variable of the coefficient grid.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
from scipy import sparse
from scipy.sparse.csgraph import structural_rank
from scipy.sparse.linalg import splu

from bsurf.core.errors import (
    CalculationError,
    InvalidConfigurationError,
    InvalidInputError,
    RankDeficiencyError,
)
from bsurf.core.types import Smoothing, validate_alpha
from bsurf.logging import get_logger

logger = get_logger("bsurf.solvers")

# Dense numerical rank checks: on Φ up to this many entries, else on ΦᵀΦ up
# to this many unknowns
DENSE_RANK_CHECK_SIZE = 4_000_000
DENSE_RANK_CHECK_LIMIT = 2000


def control_point_equation_rhs(phi: sparse.spmatrix, y: np.ndarray) -> np.ndarray:
    """Return ``Φᵀy``, the right-hand side shared by every formulation."""

    y = np.asarray(y, dtype=float)
    if y.ndim != 1 or y.shape[0] != phi.shape[0]:
        raise InvalidInputError(
            f"Expected {phi.shape[0]} sample outputs, got array of shape {y.shape}"
        )
    return np.asarray(phi.T @ y, dtype=float).ravel()


def second_order_difference_matrix(grid_shape: Sequence[int]) -> sparse.csr_matrix:
    """Second-order finite-difference operator over a coefficient grid.

    For each variable ``i`` the block ``I ⊗ D_i ⊗ I`` applies the stencil
    ``[1, -2, 1]`` along axis ``i`` of the C-ordered coefficient grid; the
    blocks are stacked vertically. A grid of shape ``(n_1, ..., n_d)`` gives
    ``sum_i (n_i - 2) * prod_{j != i} n_j`` rows.

    Args:
        grid_shape: Number of coefficients per variable.

    Returns:
        CSR matrix with ``prod(grid_shape)`` columns.

    Raises:
        InvalidConfigurationError: If any variable has fewer than three
            coefficients.
    """

    grid_shape = [int(n) for n in grid_shape]
    if any(n < 3 for n in grid_shape):
        raise InvalidConfigurationError(
            "Need at least three coefficients/basis functions per variable for the "
            f"second-order difference penalty, got {tuple(grid_shape)}"
        )

    blocks = []
    for axis, n in enumerate(grid_shape):
        stencil = sparse.diags([1.0, -2.0, 1.0], [0, 1, 2], shape=(n - 2, n))
        before = int(np.prod(grid_shape[:axis], dtype=int))
        after = int(np.prod(grid_shape[axis + 1 :], dtype=int))
        block = sparse.kron(
            sparse.identity(before), sparse.kron(stencil, sparse.identity(after))
        )
        blocks.append(block)
    return sparse.vstack(blocks, format="csr")


def _check_rank(phi: sparse.spmatrix, gram: sparse.spmatrix) -> None:
    """Raise :class:`RankDeficiencyError` if ``ΦᵀΦ`` is singular.

    ``rank(ΦᵀΦ) == rank(Φ)``, so the numerical check runs on Φ itself when it
    is small enough to densify; its condition number is the square root of
    the Gram matrix's.
    """

    num_samples, num_coefficients = phi.shape
    rank = structural_rank(sparse.csr_matrix(phi))
    if rank < num_coefficients:
        raise RankDeficiencyError(
            f"Least-squares system is rank deficient: {num_coefficients} coefficients "
            f"but structural rank {rank}. Add regularization, reduce the number of "
            "basis functions or supply more data"
        )

    if num_samples * num_coefficients <= DENSE_RANK_CHECK_SIZE:
        rank = int(np.linalg.matrix_rank(phi.toarray()))
    elif num_coefficients <= DENSE_RANK_CHECK_LIMIT:
        rank = int(np.linalg.matrix_rank(gram.toarray()))
    else:
        logger.warning(
            "Skipping numerical rank check for %d coefficients; singular systems "
            "are only detected by the factorisation",
            num_coefficients,
        )
        return

    if rank < num_coefficients:
        raise RankDeficiencyError(
            f"Least-squares system is rank deficient: {num_coefficients} "
            f"coefficients but numerical rank {rank}. Add regularization, reduce "
            "the number of basis functions or supply more data"
        )


def _solve(lhs: sparse.spmatrix, rhs: np.ndarray, singular_error: type) -> np.ndarray:
    try:
        factor = splu(sparse.csc_matrix(lhs))
    except RuntimeError as exc:
        raise singular_error(f"Failed to solve for B-spline coefficients: {exc}") from exc

    coefficients = factor.solve(rhs)
    if not np.all(np.isfinite(coefficients)):
        raise CalculationError(
            "Failed to solve for B-spline coefficients: solution is not finite"
        )
    return coefficients


def solve_coefficients(
    phi: sparse.spmatrix,
    y: np.ndarray,
    smoothing: Smoothing | str = Smoothing.NONE,
    alpha: float = 0.0,
    *,
    grid_shape: Sequence[int] | None = None,
) -> np.ndarray:
    """Solve for the coefficient vector of a B-spline.

    Args:
        phi: Basis matrix, one row per sample.
        y: Sample outputs.
        smoothing: Least-squares formulation.
        alpha: Weight of the ridge or P-spline term. ``alpha == 0`` solves the
            ordinary least-squares system regardless of ``smoothing``.
        grid_shape: Coefficients per variable; required for
            ``Smoothing.PSPLINE``.

    Returns:
        Coefficient vector of length ``phi.shape[1]``.

    Raises:
        RankDeficiencyError: If the ordinary least-squares system is singular.
        InvalidConfigurationError: If the P-spline penalty cannot be built.
        CalculationError: If the solve fails numerically.
    """

    smoothing = Smoothing.coerce(smoothing)
    alpha = validate_alpha(alpha)
    rhs = control_point_equation_rhs(phi, y)
    gram = (phi.T @ phi).tocsc()
    num_coefficients = phi.shape[1]

    if smoothing is Smoothing.NONE or alpha == 0.0:
        _check_rank(phi, gram)
        lhs = gram
        singular_error = RankDeficiencyError
    elif smoothing is Smoothing.REGULARIZATION:
        lhs = gram + alpha * sparse.identity(num_coefficients, format="csc")
        singular_error = CalculationError
    elif smoothing is Smoothing.PSPLINE:
        if grid_shape is None:
            raise InvalidConfigurationError(
                "grid_shape is required for P-spline smoothing"
            )
        if int(np.prod(grid_shape, dtype=int)) != num_coefficients:
            raise InvalidConfigurationError(
                f"grid_shape {tuple(grid_shape)} does not match {num_coefficients} coefficients"
            )
        difference = second_order_difference_matrix(grid_shape)
        lhs = gram + alpha * (difference.T @ difference)
        singular_error = CalculationError
    else:  # pragma: no cover - exhaustive over Smoothing
        raise InvalidConfigurationError(f"Unsupported smoothing {smoothing!r}")

    logger.debug(
        "Solving %s system with %d coefficients (alpha=%g)",
        smoothing.value,
        num_coefficients,
        alpha,
    )
    return _solve(lhs, rhs, singular_error)


def residual_sum_of_squares(
    phi: sparse.spmatrix, y: np.ndarray, coefficients: np.ndarray
) -> float:
    """Return ``||Φc - y||²``."""

    residual = np.asarray(phi @ coefficients).ravel() - np.asarray(y, dtype=float)
    return float(residual @ residual)


__all__ = [
    "DENSE_RANK_CHECK_SIZE",
    "DENSE_RANK_CHECK_LIMIT",
    "control_point_equation_rhs",
    "second_order_difference_matrix",
    "solve_coefficients",
    "residual_sum_of_squares",
]

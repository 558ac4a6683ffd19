"""Stateless pipeline that turns a sample table into a B-spline."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Tuple

import numpy as np

from bsurf.bspline import BSpline
from bsurf.core.basis import basis_matrix, num_basis_functions
from bsurf.core.errors import InsufficientDataError, InvalidConfigurationError
from bsurf.core.knots import compute_knot_vectors
from bsurf.core.solvers import residual_sum_of_squares, solve_coefficients
from bsurf.core.types import BuildOptions
from bsurf.data_table import DataTable
from bsurf.logging import get_logger

logger = get_logger("bsurf.pipeline")


def _validate_against_table(table: DataTable, options: BuildOptions) -> None:
    if table.num_samples == 0:
        raise InsufficientDataError("Cannot build a B-spline from an empty sample table")
    if options.num_variables != table.num_variables:
        raise InvalidConfigurationError(
            f"Options describe {options.num_variables} variable(s) but the sample "
            f"table has {table.num_variables}"
        )
    if options.num_basis_functions is not None:
        for i, (count, degree) in enumerate(
            zip(options.num_basis_functions, options.degrees)
        ):
            if count < degree + 1:
                raise InvalidConfigurationError(
                    f"Variable {i}: {count} basis function(s) cannot support degree "
                    f"{degree}; at least {degree + 1} are required"
                )


def fit_bspline_internal(
    table: DataTable,
    options: BuildOptions | Mapping[str, Any] | None = None,
) -> Tuple[BSpline, Dict[str, Any]]:
    """Build a B-spline and report fit diagnostics.

    Args:
        table: Samples to fit.
        options: Build configuration. Mappings are broadcast to the table's
            dimension; ``None`` uses the defaults.

    Returns:
        Tuple containing:
        - The fitted :class:`BSpline`.
        - A dictionary of metadata (options, basis matrix shape, residuals).

    Raises:
        InvalidConfigurationError: If the options do not fit the table.
        InsufficientDataError: If a variable has too few distinct samples.
        RankDeficiencyError: If the unsmoothed system is singular.
    """

    if options is None:
        options = {}
    options = BuildOptions.from_mapping(options, num_variables=table.num_variables)
    _validate_against_table(table, options)

    points = table.x
    targets = table.y

    # 1. Knot vectors, one per variable
    knot_vectors = compute_knot_vectors(
        points,
        options.degrees,
        options.num_basis_functions,
        options.knot_spacing,
        max_segments=options.max_segments,
    )
    grid_shape = tuple(
        num_basis_functions(knots, degree)
        for knots, degree in zip(knot_vectors, options.degrees)
    )

    # 2. Basis matrix over the samples
    phi = basis_matrix(points, knot_vectors, options.degrees)

    # 3. Coefficients
    coefficients = solve_coefficients(
        phi,
        targets,
        options.smoothing,
        options.alpha,
        grid_shape=grid_shape,
    )

    spline = BSpline(options.degrees, knot_vectors, coefficients)
    rss = residual_sum_of_squares(phi, targets, coefficients)
    logger.info(
        "Built B-spline: %d samples, basis %s, smoothing=%s, alpha=%g, rss=%.3e",
        table.num_samples,
        grid_shape,
        options.smoothing.value,
        options.alpha,
        rss,
    )

    metadata: Dict[str, Any] = {
        "options": options,
        "num_samples": table.num_samples,
        "basis_matrix_shape": phi.shape,
        "basis_matrix_nnz": int(phi.nnz),
        "residual_sum_of_squares": rss,
        "rmse": float(np.sqrt(rss / table.num_samples)),
    }
    return spline, metadata


def fit_bspline(
    table: DataTable,
    options: Optional[BuildOptions | Mapping[str, Any]] = None,
) -> BSpline:
    """Build a B-spline from ``table``; see :func:`fit_bspline_internal`."""

    spline, _ = fit_bspline_internal(table, options)
    return spline


__all__ = ["fit_bspline", "fit_bspline_internal"]

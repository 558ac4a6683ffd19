from bsurf.core.basis import basis_matrix, univariate_basis_matrix
from bsurf.core.errors import (
    BSurfError,
    CalculationError,
    InsufficientDataError,
    InvalidConfigurationError,
    InvalidInputError,
    RankDeficiencyError,
)
from bsurf.core.knots import (
    compute_knot_vector,
    compute_knot_vectors,
    extract_unique_sorted,
    is_clamped,
)
from bsurf.core.solvers import (
    control_point_equation_rhs,
    residual_sum_of_squares,
    second_order_difference_matrix,
    solve_coefficients,
)
from bsurf.core.types import BuildOptions, KnotSpacing, Smoothing


__all__ = [
    "basis_matrix",
    "univariate_basis_matrix",
    "BSurfError",
    "CalculationError",
    "InsufficientDataError",
    "InvalidConfigurationError",
    "InvalidInputError",
    "RankDeficiencyError",
    "compute_knot_vector",
    "compute_knot_vectors",
    "extract_unique_sorted",
    "is_clamped",
    "control_point_equation_rhs",
    "residual_sum_of_squares",
    "second_order_difference_matrix",
    "solve_coefficients",
    "BuildOptions",
    "KnotSpacing",
    "Smoothing",
]

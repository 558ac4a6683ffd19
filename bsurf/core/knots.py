"""Knot vector placement for clamped B-spline bases."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from bsurf.core.errors import InsufficientDataError, InvalidConfigurationError
from bsurf.core.types import DEFAULT_MAX_SEGMENTS, KnotSpacing
from bsurf.logging import get_logger

logger = get_logger("bsurf.knots")


def extract_unique_sorted(values: Sequence[float] | np.ndarray) -> np.ndarray:
    """Return the distinct values of ``values`` in ascending order."""

    return np.unique(np.asarray(values, dtype=float))


def _clamp(unique: np.ndarray, interior: np.ndarray, degree: int) -> np.ndarray:
    """Surround ``interior`` knots with ``degree + 1`` copies of each endpoint."""

    return np.concatenate(
        [
            np.full(degree + 1, unique[0]),
            np.asarray(interior, dtype=float),
            np.full(degree + 1, unique[-1]),
        ]
    )


def knot_vector_moving_average(
    unique: np.ndarray, degree: int, num_basis_functions: int
) -> np.ndarray:
    """Place interior knots at moving averages of the sample values.

    A window of ``degree + 2`` consecutive values slides over the sorted
    samples, which makes the knot density follow the sample density. When the
    requested basis count differs from the number of distinct samples, the
    samples are first resampled in rank space to ``num_basis_functions``
    points.
    """

    if num_basis_functions == unique.size:
        points = unique
    else:
        ranks = np.linspace(0.0, unique.size - 1, num_basis_functions)
        points = np.interp(ranks, np.arange(unique.size), unique)

    num_interior = num_basis_functions - degree - 1
    if num_interior == 0:
        return _clamp(unique, np.empty(0), degree)

    window = degree + 2
    interior = np.convolve(points, np.full(window, 1.0 / window), mode="valid")
    return _clamp(unique, interior, degree)


def knot_vector_equidistant(
    unique: np.ndarray, degree: int, num_basis_functions: int
) -> np.ndarray:
    """Place interior knots uniformly between the extreme sample values."""

    num_interior = num_basis_functions - degree - 1
    interior = np.linspace(unique[0], unique[-1], num_interior + 2)[1:-1]
    return _clamp(unique, interior, degree)


def knot_vector_buckets(
    unique: np.ndarray,
    degree: int,
    num_basis_functions: int,
    max_segments: int = DEFAULT_MAX_SEGMENTS,
) -> np.ndarray:
    """Place interior knots on sample values at evenly spaced ranks.

    The number of knot spans is capped at ``max_segments``, so the resulting
    basis can be smaller than ``num_basis_functions``.
    """

    num_interior = min(
        num_basis_functions - degree - 1, max_segments - 1, unique.size - 2
    )
    num_interior = max(num_interior, 0)
    # floor(r + 0.5) keeps neighbouring ranks apart when they differ by >= 1
    ranks = np.linspace(0.0, unique.size - 1, num_interior + 2)[1:-1]
    indices = np.floor(ranks + 0.5).astype(int)
    if num_interior + degree + 1 < num_basis_functions:
        logger.debug(
            "Bucket spacing reduced basis from %d to %d functions",
            num_basis_functions,
            num_interior + degree + 1,
        )
    return _clamp(unique, unique[indices], degree)


def compute_knot_vector(
    values: Sequence[float] | np.ndarray,
    degree: int,
    num_basis_functions: int | None = None,
    spacing: KnotSpacing | str = KnotSpacing.SAMPLE,
    *,
    max_segments: int = DEFAULT_MAX_SEGMENTS,
) -> np.ndarray:
    """Compute a clamped knot vector for one variable.

    Args:
        values: Sample values along the variable; duplicates are allowed.
        degree: Polynomial degree of the basis.
        num_basis_functions: Requested basis size. Defaults to the number of
            distinct sample values.
        spacing: Knot placement policy.
        max_segments: Span cap for :attr:`KnotSpacing.EXPERIMENTAL`.

    Returns:
        A non-decreasing array of length ``basis_count + degree + 1`` whose
        first and last values are each repeated exactly ``degree + 1`` times.

    Raises:
        InsufficientDataError: If fewer than ``degree + 1`` (and fewer than
            two) distinct sample values exist.
        InvalidConfigurationError: If ``num_basis_functions < degree + 1``.
    """

    spacing = KnotSpacing.coerce(spacing)
    unique = extract_unique_sorted(values)
    required = max(degree + 1, 2)
    if unique.size < required:
        raise InsufficientDataError(
            f"Only {unique.size} unique sample values are given. A minimum of "
            f"{required} unique values is required to build a B-spline basis of degree {degree}"
        )

    if num_basis_functions is None:
        num_basis_functions = unique.size
    if num_basis_functions < degree + 1:
        raise InvalidConfigurationError(
            f"Number of basis functions ({num_basis_functions}) must be at least "
            f"degree + 1 = {degree + 1}"
        )

    if spacing is KnotSpacing.SAMPLE:
        knots = knot_vector_moving_average(unique, degree, num_basis_functions)
    elif spacing is KnotSpacing.EQUIDISTANT:
        knots = knot_vector_equidistant(unique, degree, num_basis_functions)
    elif spacing is KnotSpacing.EXPERIMENTAL:
        knots = knot_vector_buckets(unique, degree, num_basis_functions, max_segments)
    else:  # pragma: no cover - exhaustive over KnotSpacing
        raise InvalidConfigurationError(f"Unsupported knot spacing {spacing!r}")

    logger.debug("Knot vector (%s, degree %d): %s", spacing.value, degree, knots)
    return knots


def compute_knot_vectors(
    points: np.ndarray,
    degrees: Sequence[int],
    num_basis_functions: Sequence[int] | None = None,
    spacing: KnotSpacing | str = KnotSpacing.SAMPLE,
    *,
    max_segments: int = DEFAULT_MAX_SEGMENTS,
) -> list[np.ndarray]:
    """Compute one clamped knot vector per column of ``points``.

    Args:
        points: Sample inputs with shape ``(n, d)``.
        degrees: Degree per variable.
        num_basis_functions: Optional basis size per variable.
        spacing: Knot placement policy shared by every variable.
        max_segments: Span cap for :attr:`KnotSpacing.EXPERIMENTAL`.

    Returns:
        List of ``d`` knot vectors.
    """

    points = np.asarray(points, dtype=float)
    if points.ndim != 2 or points.shape[1] != len(degrees):
        raise InvalidConfigurationError(
            f"Expected sample inputs of shape (n, {len(degrees)}), got {points.shape}"
        )
    counts = (
        [None] * len(degrees) if num_basis_functions is None else list(num_basis_functions)
    )
    return [
        compute_knot_vector(
            points[:, i], degree, counts[i], spacing, max_segments=max_segments
        )
        for i, degree in enumerate(degrees)
    ]


def is_clamped(knots: np.ndarray, degree: int) -> bool:
    """Return whether ``knots`` is non-decreasing with ``degree + 1`` end repeats."""

    knots = np.asarray(knots, dtype=float)
    if knots.size < 2 * (degree + 1) or np.any(np.diff(knots) < 0):
        return False
    first = np.count_nonzero(knots == knots[0])
    last = np.count_nonzero(knots == knots[-1])
    return first == degree + 1 and last == degree + 1


__all__ = [
    "extract_unique_sorted",
    "knot_vector_moving_average",
    "knot_vector_equidistant",
    "knot_vector_buckets",
    "compute_knot_vector",
    "compute_knot_vectors",
    "is_clamped",
]

from __future__ import annotations

import numpy as np
import pytest

from bsurf.core.basis import basis_matrix
from bsurf.core.errors import (
    InvalidConfigurationError,
    InvalidInputError,
    RankDeficiencyError,
)
from bsurf.core.knots import compute_knot_vector
from bsurf.core.solvers import (
    control_point_equation_rhs,
    residual_sum_of_squares,
    second_order_difference_matrix,
    solve_coefficients,
)
from bsurf.core.types import KnotSpacing, Smoothing


def _design(x, degree, count, spacing=KnotSpacing.EQUIDISTANT):
    knots = compute_knot_vector(x, degree, count, spacing)
    return basis_matrix(np.asarray(x)[:, np.newaxis], [knots], [degree])


@pytest.fixture
def noisy_design():
    rng = np.random.default_rng(5)
    x = np.linspace(0.0, 1.0, 50)
    y = np.cos(3.0 * x) + rng.normal(scale=0.1, size=x.size)
    return _design(x, 3, 12), y


def test_difference_matrix_one_variable():
    expected = np.array(
        [
            [1.0, -2.0, 1.0, 0.0, 0.0],
            [0.0, 1.0, -2.0, 1.0, 0.0],
            [0.0, 0.0, 1.0, -2.0, 1.0],
        ]
    )
    np.testing.assert_array_equal(second_order_difference_matrix([5]).toarray(), expected)


def test_difference_matrix_annihilates_linear_grid_trends():
    shape = (4, 3)
    difference = second_order_difference_matrix(shape)
    i, j = np.meshgrid(np.arange(4), np.arange(3), indexing="ij")

    assert difference.shape == (2 * 3 + 4 * 1, 12)
    linear = (2.0 + 3.0 * i - 0.5 * j).ravel()
    np.testing.assert_allclose(difference @ linear, 0.0, atol=1e-12)
    curved = (i.astype(float) ** 2).ravel()
    assert np.abs(difference @ curved).max() > 1.0


def test_difference_matrix_needs_three_coefficients_per_variable():
    with pytest.raises(InvalidConfigurationError):
        second_order_difference_matrix([5, 2])


def test_rhs_rejects_mismatched_targets(noisy_design):
    phi, y = noisy_design
    with pytest.raises(InvalidInputError):
        control_point_equation_rhs(phi, y[:-1])


def test_ordinary_least_squares_recovers_cubic(noisy_design):
    phi, _ = noisy_design
    x = np.linspace(0.0, 1.0, 50)
    y = 1.0 - 2.0 * x + 0.5 * x**2 + 3.0 * x**3

    coefficients = solve_coefficients(phi, y, Smoothing.NONE)
    np.testing.assert_allclose(phi @ coefficients, y, atol=1e-9)


def test_singular_system_raises_rank_deficiency():
    phi = _design([0.0, 0.5, 1.0], 1, 5)
    with pytest.raises(RankDeficiencyError):
        solve_coefficients(phi, np.array([0.0, 1.0, 0.0]), Smoothing.NONE)


def test_regularization_solves_singular_system():
    phi = _design([0.0, 0.5, 1.0], 1, 5)
    coefficients = solve_coefficients(
        phi, np.array([0.0, 1.0, 0.0]), Smoothing.REGULARIZATION, 1e-3
    )
    assert coefficients.shape == (5,)
    assert np.all(np.isfinite(coefficients))


@pytest.mark.parametrize("smoothing", [Smoothing.REGULARIZATION, Smoothing.PSPLINE])
def test_zero_alpha_matches_ordinary_least_squares(noisy_design, smoothing):
    phi, y = noisy_design
    plain = solve_coefficients(phi, y, Smoothing.NONE)
    smoothed = solve_coefficients(phi, y, smoothing, 0.0, grid_shape=[12])
    np.testing.assert_array_equal(plain, smoothed)


def test_zero_alpha_still_reports_rank_deficiency():
    phi = _design([0.0, 0.5, 1.0], 1, 5)
    with pytest.raises(RankDeficiencyError):
        solve_coefficients(phi, np.zeros(3), Smoothing.REGULARIZATION, 0.0)


def test_ridge_residual_grows_with_alpha(noisy_design):
    phi, y = noisy_design
    alphas = [0.0, 1e-3, 1e-2, 1e-1, 1.0, 10.0]
    residuals = [
        residual_sum_of_squares(
            phi, y, solve_coefficients(phi, y, Smoothing.REGULARIZATION, alpha)
        )
        for alpha in alphas
    ]
    assert np.all(np.diff(residuals) >= -1e-12)
    assert residuals[-1] > residuals[0]


def test_ridge_shrinks_coefficients(noisy_design):
    phi, y = noisy_design
    small = solve_coefficients(phi, y, Smoothing.REGULARIZATION, 1e-4)
    large = solve_coefficients(phi, y, Smoothing.REGULARIZATION, 100.0)
    assert np.linalg.norm(large) < np.linalg.norm(small)


def test_large_penalty_flattens_second_differences(noisy_design):
    phi, y = noisy_design
    coefficients = solve_coefficients(
        phi, y, Smoothing.PSPLINE, 1e8, grid_shape=[12]
    )
    second_differences = np.diff(coefficients, n=2)
    assert np.abs(second_differences).max() < 1e-4

    unpenalised = solve_coefficients(phi, y, Smoothing.NONE)
    assert np.abs(np.diff(unpenalised, n=2)).max() > 1e-2


def test_pspline_preserves_level_where_ridge_shrinks(noisy_design):
    phi, y = noisy_design
    shifted = y + 5.0

    penalised = solve_coefficients(
        phi, shifted, Smoothing.PSPLINE, 1e4, grid_shape=[12]
    )
    ridge = solve_coefficients(phi, shifted, Smoothing.REGULARIZATION, 1e4)

    np.testing.assert_allclose(np.mean(phi @ penalised), np.mean(shifted), atol=1e-8)
    assert np.mean(phi @ ridge) < 0.5 * np.mean(shifted)


def test_pspline_requires_grid_shape(noisy_design):
    phi, y = noisy_design
    with pytest.raises(InvalidConfigurationError):
        solve_coefficients(phi, y, Smoothing.PSPLINE, 1.0)
    with pytest.raises(InvalidConfigurationError):
        solve_coefficients(phi, y, Smoothing.PSPLINE, 1.0, grid_shape=[3, 3])


def test_negative_alpha_is_rejected(noisy_design):
    phi, y = noisy_design
    with pytest.raises(InvalidConfigurationError):
        solve_coefficients(phi, y, Smoothing.REGULARIZATION, -1.0)

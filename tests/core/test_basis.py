from __future__ import annotations

import numpy as np
import pytest

from bsurf.core.basis import basis_matrix, univariate_basis_matrix
from bsurf.core.errors import InvalidInputError
from bsurf.core.knots import compute_knot_vector
from bsurf.core.types import KnotSpacing


def _knots(degree, count, lo=0.0, hi=1.0):
    return compute_knot_vector(
        np.linspace(lo, hi, 10), degree, count, KnotSpacing.EQUIDISTANT
    )


def _row_sums(matrix):
    return np.asarray(matrix.sum(axis=1)).ravel()


@pytest.mark.parametrize("degree", range(6))
def test_univariate_basis_is_partition_of_unity(degree):
    knots = _knots(degree, degree + 4)
    x = np.linspace(0.0, 1.0, 33)
    phi = univariate_basis_matrix(x, knots, degree)

    assert phi.shape == (33, degree + 4)
    np.testing.assert_allclose(_row_sums(phi), 1.0, atol=1e-12)


def test_tensor_product_columns_follow_c_order():
    rng = np.random.default_rng(3)
    points = rng.uniform(0.0, 1.0, size=(25, 2))
    knots = [_knots(2, 5), _knots(1, 4)]

    phi = basis_matrix(points, knots, [2, 1]).toarray()
    first = univariate_basis_matrix(points[:, 0], knots[0], 2).toarray()
    second = univariate_basis_matrix(points[:, 1], knots[1], 1).toarray()
    expected = (first[:, :, np.newaxis] * second[:, np.newaxis, :]).reshape(25, -1)

    assert phi.shape == (25, 20)
    np.testing.assert_allclose(phi, expected, atol=1e-14)


def test_tensor_product_row_sparsity_is_bounded():
    rng = np.random.default_rng(11)
    points = rng.uniform(0.0, 1.0, size=(40, 3))
    degrees = [1, 2, 3]
    knots = [_knots(d, 8) for d in degrees]

    phi = basis_matrix(points, knots, degrees).tocsr()

    assert phi.shape == (40, 8**3)
    assert np.all(np.diff(phi.indptr) <= 2 * 3 * 4)
    np.testing.assert_allclose(_row_sums(phi), 1.0, atol=1e-12)


def test_three_variable_product_matches_explicit_row_kron(monkeypatch):
    def _no_kron(*args, **kwargs):
        raise AssertionError("tensor rows must be combined without sparse.kron")

    monkeypatch.setattr("bsurf.core.basis.sparse.kron", _no_kron)

    rng = np.random.default_rng(5)
    points = rng.uniform(0.0, 1.0, size=(30, 3))
    degrees = [0, 2, 3]
    knots = [_knots(0, 3), _knots(2, 5), _knots(3, 6)]

    phi = basis_matrix(points, knots, degrees)

    factors = [
        univariate_basis_matrix(points[:, i], knots[i], degrees[i]).toarray()
        for i in range(3)
    ]
    expected = np.stack(
        [np.kron(np.kron(factors[0][r], factors[1][r]), factors[2][r]) for r in range(30)]
    )
    assert phi.shape == (30, 3 * 5 * 6)
    assert phi.has_canonical_format
    assert phi.nnz <= 30 * 1 * 3 * 4
    np.testing.assert_allclose(phi.toarray(), expected, atol=1e-14)


def test_basis_matrix_accepts_flat_points_for_one_variable():
    knots = _knots(3, 6)
    phi = basis_matrix(np.linspace(0.0, 1.0, 7), [knots], [3])
    assert phi.shape == (7, 6)


def test_points_outside_domain_are_rejected():
    knots = _knots(1, 4)
    with pytest.raises(InvalidInputError):
        basis_matrix(np.array([[0.5], [1.5]]), [knots], [1])


def test_dimension_mismatch_is_rejected():
    knots = _knots(1, 4)
    with pytest.raises(InvalidInputError):
        basis_matrix(np.zeros((3, 2)), [knots], [1])

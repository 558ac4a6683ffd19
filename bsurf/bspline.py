"""Immutable tensor-product B-spline returned by the builder."""

from __future__ import annotations

import json
import os
from typing import Any, Mapping, Sequence, Union

import numpy as np
from scipy import sparse
from scipy.interpolate import NdBSpline

from bsurf.core.basis import basis_matrix, num_basis_functions
from bsurf.core.errors import InvalidInputError
from bsurf.core.knots import is_clamped


def _frozen(array: np.ndarray) -> np.ndarray:
    array = np.array(array, dtype=float, copy=True)
    array.setflags(write=False)
    return array


class BSpline:
    """Tensor-product B-spline ``f(x) = Σ_j c_j Π_i B_{i, j_i}(x_i)``.

    Instances are immutable: the degree vector, knot vectors and coefficients
    are copied on construction and exposed as read-only arrays. Coefficients
    are ordered C-style over the coefficient grid (last variable fastest).

    Args:
        degrees: Polynomial degree per variable.
        knot_vectors: Clamped knot vector per variable.
        coefficients: Control-point weights, length ``prod(basis counts)``.
    """

    def __init__(
        self,
        degrees: Sequence[int],
        knot_vectors: Sequence[Sequence[float] | np.ndarray],
        coefficients: Sequence[float] | np.ndarray,
    ) -> None:
        if len(degrees) != len(knot_vectors) or len(degrees) == 0:
            raise InvalidInputError(
                "degrees and knot_vectors must be non-empty and of equal length"
            )
        self._degrees = tuple(int(d) for d in degrees)
        self._knot_vectors = tuple(_frozen(knots) for knots in knot_vectors)
        for knots, degree in zip(self._knot_vectors, self._degrees):
            if not is_clamped(knots, degree):
                raise InvalidInputError(
                    f"Knot vector is not a clamped knot vector of degree {degree}: {knots}"
                )
        self._coefficients = _frozen(np.ravel(coefficients))
        if self._coefficients.size != self.num_coefficients:
            raise InvalidInputError(
                f"Expected {self.num_coefficients} coefficients, got {self._coefficients.size}"
            )

    @property
    def degrees(self) -> tuple[int, ...]:
        return self._degrees

    @property
    def knot_vectors(self) -> tuple[np.ndarray, ...]:
        return self._knot_vectors

    @property
    def coefficients(self) -> np.ndarray:
        return self._coefficients

    @property
    def num_variables(self) -> int:
        return len(self._degrees)

    @property
    def num_basis_functions(self) -> tuple[int, ...]:
        """Number of basis functions (control points) per variable."""

        return tuple(
            num_basis_functions(knots, degree)
            for knots, degree in zip(self._knot_vectors, self._degrees)
        )

    @property
    def num_coefficients(self) -> int:
        return int(np.prod(self.num_basis_functions))

    @property
    def domain(self) -> tuple[tuple[float, float], ...]:
        """``(lower, upper)`` bounds of the spline per variable."""

        return tuple((float(k[0]), float(k[-1])) for k in self._knot_vectors)

    def _as_points(self, x: Any) -> tuple[np.ndarray, bool]:
        """Return ``(points, single)`` with points shaped ``(n, d)``."""

        points = np.asarray(x, dtype=float)
        d = self.num_variables
        if points.ndim == 0:
            if d != 1:
                raise InvalidInputError(f"Expected a point of length {d}, got a scalar")
            return points.reshape(1, 1), True
        if points.ndim == 1:
            if d == 1:
                return points.reshape(-1, 1), False
            if points.size != d:
                raise InvalidInputError(
                    f"Expected a point of length {d}, got length {points.size}"
                )
            return points.reshape(1, d), True
        if points.ndim != 2 or points.shape[1] != d:
            raise InvalidInputError(
                f"Expected points of shape (n, {d}), got {points.shape}"
            )
        return points, False

    def basis_matrix(self, x: Any) -> sparse.csr_matrix:
        """Sparse basis rows at ``x`` (one row per point)."""

        points, _ = self._as_points(x)
        return basis_matrix(points, self._knot_vectors, self._degrees)

    def evaluate(self, x: Any) -> float | np.ndarray:
        """Evaluate the spline.

        Args:
            x: A single point (scalar when there is one variable, otherwise a
                length-``d`` vector) or an array of points of shape ``(n, d)``
                (``(n,)`` for one variable).

        Returns:
            A float for a single point, otherwise an ``(n,)`` array.

        Raises:
            InvalidInputError: If a point lies outside :attr:`domain`.
        """

        points, single = self._as_points(x)
        values = np.asarray(
            basis_matrix(points, self._knot_vectors, self._degrees) @ self._coefficients
        ).ravel()
        return float(values[0]) if single else values

    def __call__(self, x: Any) -> float | np.ndarray:
        return self.evaluate(x)

    def jacobian(self, x: Any) -> np.ndarray:
        """Gradient of the spline with respect to its inputs.

        Returns:
            Array of shape ``(d,)`` for a single point, else ``(n, d)``.
        """

        points, single = self._as_points(x)
        for i, (lo, hi) in enumerate(self.domain):
            if np.any((points[:, i] < lo) | (points[:, i] > hi)):
                raise InvalidInputError(
                    f"Point(s) lie outside the spline domain [{lo}, {hi}] in variable {i}"
                )

        spline = NdBSpline(
            tuple(np.array(knots) for knots in self._knot_vectors),
            np.array(self._coefficients).reshape(self.num_basis_functions),
            self._degrees,
        )
        gradient = np.zeros_like(points)
        for i, degree in enumerate(self._degrees):
            if degree == 0:
                # piecewise constant along this variable
                continue
            nu = np.zeros(self.num_variables, dtype=int)
            nu[i] = 1
            gradient[:, i] = spline(points, nu=nu)
        return gradient[0] if single else gradient

    def to_mapping(self) -> dict[str, Any]:
        """Return a JSON-serialisable mapping of the spline."""

        return {
            "degrees": list(self._degrees),
            "knot_vectors": [knots.tolist() for knots in self._knot_vectors],
            "coefficients": self._coefficients.tolist(),
        }

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> BSpline:
        """Rebuild a spline from :meth:`to_mapping` output."""

        missing = {"degrees", "knot_vectors", "coefficients"} - set(mapping)
        if missing:
            raise InvalidInputError(f"B-spline mapping is missing keys: {sorted(missing)}")
        return cls(mapping["degrees"], mapping["knot_vectors"], mapping["coefficients"])

    def save_json(self, path: Union[str, os.PathLike]) -> None:
        """Write :meth:`to_mapping` to ``path`` as JSON."""

        with open(path, "w", encoding="utf-8") as handle:
            json.dump(self.to_mapping(), handle)

    @classmethod
    def load_json(cls, path: Union[str, os.PathLike]) -> BSpline:
        """Read a spline written by :meth:`save_json`."""

        with open(path, "r", encoding="utf-8") as handle:
            return cls.from_mapping(json.load(handle))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BSpline):
            return NotImplemented
        return (
            self._degrees == other._degrees
            and len(self._knot_vectors) == len(other._knot_vectors)
            and all(
                np.array_equal(a, b)
                for a, b in zip(self._knot_vectors, other._knot_vectors)
            )
            and np.array_equal(self._coefficients, other._coefficients)
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"BSpline(num_variables={self.num_variables}, degrees={self._degrees}, "
            f"num_basis_functions={self.num_basis_functions})"
        )


__all__ = ["BSpline"]

"""Fluent builder wrapping the stateless B-spline pipeline."""

from __future__ import annotations

import copy
import numbers
from typing import Any, Dict, Mapping, Sequence, Tuple

from bsurf.bspline import BSpline
from bsurf.core.errors import InvalidConfigurationError
from bsurf.core.types import (
    DEFAULT_DEGREE,
    DEFAULT_MAX_SEGMENTS,
    BuildOptions,
    KnotSpacing,
    Smoothing,
    broadcast_per_variable,
    validate_alpha,
    validate_degree,
    validate_num_basis_functions,
)
from bsurf.data_table import DataTable
from bsurf.pipelines.bspline_fit import fit_bspline_internal


class BSplineBuilder:
    """Configure and build a B-spline surrogate from a sample table.

    Every setter validates its argument immediately, raises
    :class:`InvalidConfigurationError` on bad input and otherwise returns the
    builder, so calls can be chained::

        spline = (
            BSplineBuilder(table)
            .degree(2)
            .smoothing(Smoothing.PSPLINE)
            .alpha(0.1)
            .build()
        )

    The builder keeps its own copy of ``table``. ``build`` can be called any
    number of times; each call recomputes the spline from the current
    configuration. A builder is not safe for concurrent mutation; use
    :meth:`copy` to hand independent configurations to other threads.
    """

    def __init__(self, table: DataTable) -> None:
        if not isinstance(table, DataTable):
            raise TypeError(f"Expected DataTable, got {type(table)}")
        self._table = table.copy()
        self._degrees: Tuple[int, ...] | None = None
        self._num_basis_functions: Tuple[int, ...] | None = None
        self._knot_spacing = KnotSpacing.SAMPLE
        self._smoothing = Smoothing.NONE
        self._alpha = 0.0
        self._max_segments = DEFAULT_MAX_SEGMENTS

    @classmethod
    def from_options(
        cls, table: DataTable, options: BuildOptions | Mapping[str, Any]
    ) -> BSplineBuilder:
        """Create a builder configured from ``options``.

        Raises:
            TypeError: If the mapping has unrecognised keys.
            InvalidConfigurationError: If any value is invalid.
        """

        if not isinstance(options, BuildOptions):
            unknown = set(options) - BuildOptions.field_names()
            if unknown:
                raise TypeError(f"Unknown build option(s): {sorted(unknown)}")
            options = dict(options)
        else:
            options = options.to_mapping()

        builder = cls(table)
        if options.get("degrees") is not None:
            builder.degree(options["degrees"])
        if options.get("num_basis_functions") is not None:
            builder.num_basis_functions(options["num_basis_functions"])
        if "knot_spacing" in options:
            builder.knot_spacing(options["knot_spacing"])
        if "smoothing" in options:
            builder.smoothing(options["smoothing"])
        if "alpha" in options:
            builder.alpha(options["alpha"])
        if "max_segments" in options:
            builder.max_segments(options["max_segments"])
        return builder

    @property
    def table(self) -> DataTable:
        """The builder's private copy of the samples."""

        return self._table

    @property
    def num_variables(self) -> int:
        return self._table.num_variables

    def alpha(self, alpha: float) -> BSplineBuilder:
        """Set the weight of the regularisation or P-spline term (``>= 0``)."""

        self._alpha = validate_alpha(alpha)
        return self

    def degree(self, degree: int | Sequence[int]) -> BSplineBuilder:
        """Set one degree for every variable, or one degree per variable.

        Degrees must lie in ``[0, 5]``; a sequence must have one entry per
        variable. On error the previous degrees are kept.
        """

        self._degrees = broadcast_per_variable(
            degree, self.num_variables, validate_degree, "degree"
        )
        return self

    def num_basis_functions(self, count: int | Sequence[int]) -> BSplineBuilder:
        """Set the number of basis functions for every variable or per variable."""

        self._num_basis_functions = broadcast_per_variable(
            count, self.num_variables, validate_num_basis_functions, "numBasisFunctions"
        )
        return self

    def knot_spacing(self, spacing: KnotSpacing | str) -> BSplineBuilder:
        """Select the knot placement policy."""

        self._knot_spacing = KnotSpacing.coerce(spacing)
        return self

    def smoothing(self, smoothing: Smoothing | str) -> BSplineBuilder:
        """Select the least-squares formulation."""

        self._smoothing = Smoothing.coerce(smoothing)
        return self

    def max_segments(self, max_segments: int) -> BSplineBuilder:
        """Cap the number of knot spans used by ``KnotSpacing.EXPERIMENTAL``."""

        if (
            isinstance(max_segments, bool)
            or not isinstance(max_segments, numbers.Integral)
            or max_segments < 1
        ):
            raise InvalidConfigurationError(
                f"max_segments must be a positive integer, got {max_segments!r}"
            )
        self._max_segments = int(max_segments)
        return self

    def options(self) -> BuildOptions:
        """Return the resolved configuration, filling unset degrees with defaults."""

        degrees = self._degrees
        if degrees is None:
            degrees = (DEFAULT_DEGREE,) * self.num_variables
        return BuildOptions(
            degrees=degrees,
            num_basis_functions=self._num_basis_functions,
            knot_spacing=self._knot_spacing,
            smoothing=self._smoothing,
            alpha=self._alpha,
            max_segments=self._max_segments,
        )

    def build_with_diagnostics(self) -> Tuple[BSpline, Dict[str, Any]]:
        """Build the spline and return it with fit metadata."""

        return fit_bspline_internal(self._table, self.options())

    def build(self) -> BSpline:
        """Build the B-spline.

        Returns:
            BSpline: A new immutable spline.

        Raises:
            InvalidConfigurationError: If degrees and basis counts conflict.
            InsufficientDataError: If a variable has too few distinct samples.
            RankDeficiencyError: If the unsmoothed system has no unique
                solution.
        """

        spline, _ = self.build_with_diagnostics()
        return spline

    def copy(self) -> BSplineBuilder:
        """Return an independent builder with the same configuration."""

        clone = copy.copy(self)
        clone._table = self._table.copy()
        return clone

    def __repr__(self) -> str:
        return (
            f"BSplineBuilder(num_variables={self.num_variables}, "
            f"num_samples={self._table.num_samples}, degrees={self._degrees}, "
            f"num_basis_functions={self._num_basis_functions}, "
            f"knot_spacing={self._knot_spacing.value}, "
            f"smoothing={self._smoothing.value}, alpha={self._alpha})"
        )


__all__ = ["BSplineBuilder"]

"""Typed containers for B-spline build configuration."""

from __future__ import annotations

import math
import numbers
from dataclasses import asdict, dataclass, fields, replace
from enum import Enum
from typing import Any, Mapping, Sequence

from bsurf.core.errors import InvalidConfigurationError

MAX_DEGREE = 5
DEFAULT_DEGREE = 3
DEFAULT_MAX_SEGMENTS = 10


class KnotSpacing(str, Enum):
    """Knot placement policies.

    ``SAMPLE`` places knots by a moving average over the sample values so the
    knot density follows the sample density. ``EQUIDISTANT`` spaces interior
    knots uniformly between the extreme samples. ``EXPERIMENTAL`` places knots
    on sample values at evenly spaced ranks, capped at a maximum number of
    segments.
    """

    SAMPLE = "sample"
    EQUIDISTANT = "equidistant"
    EXPERIMENTAL = "experimental"

    @classmethod
    def coerce(cls, value: "KnotSpacing | str") -> "KnotSpacing":
        """Return the member matching ``value`` (member, value or name)."""

        return _coerce_enum(cls, value, "knot spacing")


class Smoothing(str, Enum):
    """Formulations of the coefficient least-squares problem."""

    NONE = "none"
    REGULARIZATION = "regularization"
    PSPLINE = "pspline"

    @classmethod
    def coerce(cls, value: "Smoothing | str") -> "Smoothing":
        """Return the member matching ``value`` (member, value or name)."""

        return _coerce_enum(cls, value, "smoothing")


def _coerce_enum(enum_cls, value, label: str):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        key = value.strip().lower()
        for member in enum_cls:
            if key in (member.value, member.name.lower()):
                return member
    choices = [member.value for member in enum_cls]
    raise InvalidConfigurationError(
        f"Unknown {label} {value!r}. Available: {choices}"
    )


def validate_alpha(alpha: Any) -> float:
    """Return ``alpha`` as a float, rejecting negative or non-finite values."""

    if isinstance(alpha, bool) or not isinstance(alpha, numbers.Real):
        raise InvalidConfigurationError(
            f"alpha must be a real number, got {type(alpha).__name__}"
        )
    value = float(alpha)
    if not math.isfinite(value) or value < 0:
        raise InvalidConfigurationError(f"alpha must be non-negative, got {alpha}")
    return value


def validate_degree(degree: Any) -> int:
    """Return ``degree`` as an int in ``[0, MAX_DEGREE]``."""

    if isinstance(degree, bool) or not isinstance(degree, numbers.Integral):
        raise InvalidConfigurationError(
            f"degree must be an integer, got {type(degree).__name__}"
        )
    if not 0 <= degree <= MAX_DEGREE:
        raise InvalidConfigurationError(
            f"Only degrees in range [0, {MAX_DEGREE}] are supported, got {degree}"
        )
    return int(degree)


def validate_num_basis_functions(count: Any) -> int:
    """Return ``count`` as a positive int."""

    if isinstance(count, bool) or not isinstance(count, numbers.Integral):
        raise InvalidConfigurationError(
            f"Number of basis functions must be an integer, got {type(count).__name__}"
        )
    if count < 1:
        raise InvalidConfigurationError(
            f"Number of basis functions must be positive, got {count}"
        )
    return int(count)


def broadcast_per_variable(
    value: Any, num_variables: int, validator, label: str
) -> tuple[int, ...]:
    """Expand a scalar or validate a per-variable sequence.

    Args:
        value: Scalar applied to every variable, or a sequence of length
            ``num_variables``.
        num_variables: Dimension of the sample table.
        validator: Callable validating and normalising one entry.
        label: Option name used in error messages.

    Returns:
        Tuple with one validated entry per variable.

    Raises:
        InvalidConfigurationError: If the sequence length is wrong or any
            entry fails validation. Nothing is applied in that case.
    """

    if isinstance(value, numbers.Integral) and not isinstance(value, bool):
        return (validator(value),) * num_variables
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        try:
            value = list(value)
        except TypeError:
            raise InvalidConfigurationError(
                f"{label} must be an integer or a sequence of integers"
            ) from None
    if len(value) != num_variables:
        raise InvalidConfigurationError(
            f"Inconsistent length on {label} vector: expected {num_variables}, got {len(value)}"
        )
    return tuple(validator(entry) for entry in value)


@dataclass(frozen=True)
class BuildOptions:
    """Resolved configuration for one B-spline build.

    Args:
        degrees: Polynomial degree per variable.
        num_basis_functions: Basis-function count per variable, or ``None``
            to use the number of distinct sample values in each variable.
        knot_spacing: Knot placement policy.
        smoothing: Least-squares formulation used for the coefficients.
        alpha: Weight of the regularisation or P-spline penalty term.
        max_segments: Upper bound on knot spans for ``EXPERIMENTAL`` spacing.
    """

    degrees: tuple[int, ...]
    num_basis_functions: tuple[int, ...] | None = None
    knot_spacing: KnotSpacing = KnotSpacing.SAMPLE
    smoothing: Smoothing = Smoothing.NONE
    alpha: float = 0.0
    max_segments: int = DEFAULT_MAX_SEGMENTS

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "degrees", tuple(validate_degree(d) for d in self.degrees)
        )
        if self.num_basis_functions is not None:
            object.__setattr__(
                self,
                "num_basis_functions",
                tuple(
                    validate_num_basis_functions(n) for n in self.num_basis_functions
                ),
            )
            if len(self.num_basis_functions) != len(self.degrees):
                raise InvalidConfigurationError(
                    "degrees and num_basis_functions must have the same length"
                )
        object.__setattr__(self, "knot_spacing", KnotSpacing.coerce(self.knot_spacing))
        object.__setattr__(self, "smoothing", Smoothing.coerce(self.smoothing))
        object.__setattr__(self, "alpha", validate_alpha(self.alpha))
        if (
            isinstance(self.max_segments, bool)
            or not isinstance(self.max_segments, numbers.Integral)
            or self.max_segments < 1
        ):
            raise InvalidConfigurationError(
                f"max_segments must be a positive integer, got {self.max_segments!r}"
            )
        object.__setattr__(self, "max_segments", int(self.max_segments))

    @property
    def num_variables(self) -> int:
        """Number of input variables the options describe."""

        return len(self.degrees)

    @classmethod
    def field_names(cls) -> set[str]:
        """Return the names of supported configuration fields."""

        return {f.name for f in fields(cls)}

    @classmethod
    def from_mapping(
        cls,
        overrides: BuildOptions | Mapping[str, Any],
        *,
        num_variables: int | None = None,
    ) -> BuildOptions:
        """Build an options instance from a mapping.

        Args:
            overrides: Either an existing :class:`BuildOptions` instance or a
                mapping of field values. Scalar ``degrees`` and
                ``num_basis_functions`` are broadcast to ``num_variables``.
            num_variables: Dimension used to broadcast scalar entries.

        Returns:
            A fully populated :class:`BuildOptions` instance.

        Raises:
            TypeError: If ``overrides`` contains unrecognised keys.
            InvalidConfigurationError: If any value is invalid.
        """

        if isinstance(overrides, cls):
            return overrides
        unknown = set(overrides) - cls.field_names()
        if unknown:
            raise TypeError(f"Unknown build option(s): {sorted(unknown)}")

        values = dict(overrides)
        width = num_variables
        if width is None:
            for key, validator in (
                ("degrees", validate_degree),
                ("num_basis_functions", validate_num_basis_functions),
            ):
                entry = values.get(key)
                if entry is None or isinstance(entry, numbers.Integral):
                    continue
                if isinstance(entry, (str, bytes)) or not hasattr(entry, "__len__"):
                    # non-integer scalars such as 2.0
                    validator(entry)
                width = len(entry)
                break
        if width is None:
            width = 1

        values["degrees"] = broadcast_per_variable(
            values.get("degrees", DEFAULT_DEGREE), width, validate_degree, "degree"
        )
        if values.get("num_basis_functions") is not None:
            values["num_basis_functions"] = broadcast_per_variable(
                values["num_basis_functions"],
                width,
                validate_num_basis_functions,
                "numBasisFunctions",
            )
        return cls(**values)

    def with_overrides(self, **changes: Any) -> BuildOptions:
        """Return a copy with ``changes`` applied."""

        return replace(self, **changes)

    def to_mapping(self) -> dict[str, Any]:
        """Return a mapping representation of the options."""

        mapping = asdict(self)
        mapping["knot_spacing"] = self.knot_spacing.value
        mapping["smoothing"] = self.smoothing.value
        return mapping


__all__ = [
    "MAX_DEGREE",
    "DEFAULT_DEGREE",
    "DEFAULT_MAX_SEGMENTS",
    "KnotSpacing",
    "Smoothing",
    "BuildOptions",
    "validate_alpha",
    "validate_degree",
    "validate_num_basis_functions",
    "broadcast_per_variable",
]

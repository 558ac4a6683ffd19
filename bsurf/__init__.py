# bsurf - B-spline surrogate fitting
"""Build tensor-product B-spline surrogates from scattered samples."""

from bsurf.core import (
    BSurfError,
    InvalidInputError,
    InvalidConfigurationError,
    CalculationError,
    InsufficientDataError,
    RankDeficiencyError,
    BuildOptions,
    KnotSpacing,
    Smoothing,
)
from bsurf.data_table import DataTable, DataTableReadError
from bsurf.bspline import BSpline
from bsurf.interface import BSplineBuilder
from bsurf.pipelines import fit_bspline
from bsurf.logging import configure_logging, get_logger

__version__ = "0.1.0"

__all__ = [
    # Exceptions
    "BSurfError",
    "InvalidInputError",
    "InvalidConfigurationError",
    "CalculationError",
    "InsufficientDataError",
    "RankDeficiencyError",
    "DataTableReadError",
    # Configuration
    "BuildOptions",
    "KnotSpacing",
    "Smoothing",
    # High-level API
    "DataTable",
    "BSpline",
    "BSplineBuilder",
    "fit_bspline",
    # Logging
    "configure_logging",
    "get_logger",
]

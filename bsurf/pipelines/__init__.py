"""Stateless build pipelines."""

from bsurf.pipelines.bspline_fit import fit_bspline, fit_bspline_internal

__all__ = ["fit_bspline", "fit_bspline_internal"]

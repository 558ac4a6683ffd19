"""Public builder interface."""

from bsurf.interface.builder import BSplineBuilder

__all__ = ["BSplineBuilder"]

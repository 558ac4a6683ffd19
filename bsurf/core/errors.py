from __future__ import annotations

"""Centralized error types for the bsurf package."""


class BSurfError(Exception):
    """Base exception for bsurf package."""

    pass


class InvalidInputError(BSurfError):
    """Exception raised for invalid sample data or evaluation inputs."""

    pass


class InvalidConfigurationError(InvalidInputError):
    """Exception raised for invalid builder options."""

    pass


class CalculationError(BSurfError):
    """Exception raised when calculations fail."""

    pass


class InsufficientDataError(CalculationError):
    """Exception raised when the samples cannot support the requested basis."""

    pass


class RankDeficiencyError(CalculationError):
    """Exception raised when the least-squares system has no unique solution."""

    pass


__all__ = [
    "BSurfError",
    "InvalidInputError",
    "InvalidConfigurationError",
    "CalculationError",
    "InsufficientDataError",
    "RankDeficiencyError",
]

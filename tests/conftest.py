"""Shared sample tables for the bsurf test suite."""

import numpy as np
import pytest

from bsurf import DataTable


@pytest.fixture
def quadratic_table():
    """Build the four-sample table of ``y = x**2`` on ``x = 0..3``.

    Returns:
        DataTable: One-variable samples ``(0, 0), (1, 1), (2, 4), (3, 9)``.
    """
    table = DataTable()
    for x in range(4):
        table.add_sample(float(x), float(x * x))
    return table


def bilinear(x, y):
    return 1.0 + x + 2.0 * y + x * y


@pytest.fixture
def bilinear_grid_table():
    """Build a complete 6 x 5 grid sampled from a bilinear function.

    Returns:
        DataTable: Two-variable samples on ``[0, 1] x [0, 2]``.
    """
    table = DataTable()
    for x in np.linspace(0.0, 1.0, 6):
        for y in np.linspace(0.0, 2.0, 5):
            table.add_sample([x, y], bilinear(x, y))
    return table


@pytest.fixture
def noisy_sine_table():
    """Build 60 noisy samples of ``sin(2 pi x)`` on ``[0, 1]``.

    Returns:
        DataTable: One-variable samples with Gaussian noise (seeded).
    """
    rng = np.random.default_rng(7)
    x = np.linspace(0.0, 1.0, 60)
    y = np.sin(2.0 * np.pi * x) + rng.normal(scale=0.2, size=x.size)
    table = DataTable()
    table.add_samples(x, y)
    return table

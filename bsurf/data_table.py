"""In-memory sample table feeding the B-spline builder."""

from __future__ import annotations

import os
from typing import Iterable, Iterator, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from pandas import DataFrame

from bsurf.core.errors import InvalidInputError


class DataTableReadError(Exception):
    """Exception raised when a sample file cannot be read"""

    pass


class DataTable:
    """Ordered collection of ``(x, y)`` samples with a fixed input dimension.

    The first sample fixes the number of input variables; every later sample
    must match it. Samples are stored in insertion order.

    Args:
        allow_duplicates: When ``False``, adding an input vector that is
            already present raises :class:`InvalidInputError`.
    """

    def __init__(self, *, allow_duplicates: bool = True) -> None:
        self.allow_duplicates = allow_duplicates
        self._num_variables: int | None = None
        self._inputs: list[Tuple[float, ...]] = []
        self._outputs: list[float] = []
        self._seen: set[Tuple[float, ...]] = set()

    def add_sample(self, x: Union[float, Sequence[float], np.ndarray], y: float) -> None:
        """Append one sample.

        Args:
            x: Input value (scalar for one variable) or input vector.
            y: Scalar output.

        Raises:
            InvalidInputError: If the dimension is inconsistent, a value is not
                finite, or a duplicate is added while duplicates are disallowed.
        """

        point = np.atleast_1d(np.asarray(x, dtype=float))
        if point.ndim != 1 or point.size == 0:
            raise InvalidInputError("Sample input must be a scalar or a 1-D vector")
        value = float(y)
        if not np.all(np.isfinite(point)) or not np.isfinite(value):
            raise InvalidInputError("Sample values must be finite")

        if self._num_variables is None:
            self._num_variables = point.size
        elif point.size != self._num_variables:
            raise InvalidInputError(
                f"Dimension of sample is incorrect: expected {self._num_variables}, got {point.size}"
            )

        key = tuple(point.tolist())
        if not self.allow_duplicates and key in self._seen:
            raise InvalidInputError(f"Duplicate sample input {key} is not allowed")

        self._seen.add(key)
        self._inputs.append(key)
        self._outputs.append(value)

    def add_samples(
        self, xs: Iterable[Union[float, Sequence[float]]], ys: Iterable[float]
    ) -> None:
        """Append several samples; ``xs`` and ``ys`` must have equal length."""

        xs = list(xs)
        ys = list(ys)
        if len(xs) != len(ys):
            raise InvalidInputError(
                f"Arrays must have same length. Got x: {len(xs)}, y: {len(ys)}"
            )
        for x, y in zip(xs, ys):
            self.add_sample(x, y)

    @property
    def num_variables(self) -> int:
        """Number of input variables, ``0`` for an empty table."""

        return self._num_variables or 0

    @property
    def num_samples(self) -> int:
        return len(self._outputs)

    def __len__(self) -> int:
        return self.num_samples

    def __iter__(self) -> Iterator[Tuple[np.ndarray, float]]:
        for point, value in zip(self._inputs, self._outputs):
            yield np.asarray(point, dtype=float), value

    @property
    def x(self) -> np.ndarray:
        """Sample inputs as an ``(n, d)`` array."""

        return np.asarray(self._inputs, dtype=float).reshape(
            self.num_samples, self.num_variables
        )

    @property
    def y(self) -> np.ndarray:
        """Sample outputs as an ``(n,)`` array."""

        return np.asarray(self._outputs, dtype=float)

    def table_x(self) -> list[np.ndarray]:
        """Distinct sorted input values, one array per variable."""

        inputs = self.x
        return [np.unique(inputs[:, i]) for i in range(self.num_variables)]

    def is_grid_complete(self) -> bool:
        """Return whether the samples cover the full grid of distinct values."""

        if self.num_samples == 0:
            return False
        grid_size = int(np.prod([values.size for values in self.table_x()]))
        return len(self._seen) == grid_size

    def copy(self) -> DataTable:
        """Return an independent copy of the table."""

        clone = DataTable(allow_duplicates=self.allow_duplicates)
        clone._num_variables = self._num_variables
        clone._inputs = list(self._inputs)
        clone._outputs = list(self._outputs)
        clone._seen = set(self._seen)
        return clone

    # pandas interop

    @classmethod
    def from_dataframe(
        cls,
        frame: DataFrame,
        *,
        inputs: Optional[Sequence[str]] = None,
        output: Optional[str] = None,
        allow_duplicates: bool = True,
    ) -> DataTable:
        """Build a table from a DataFrame.

        Args:
            frame: Source data, one row per sample.
            inputs: Input column names. Defaults to every column but ``output``.
            output: Output column name. Defaults to the last column.
            allow_duplicates: Forwarded to the new table.

        Returns:
            A populated :class:`DataTable`.

        Raises:
            InvalidInputError: If columns are missing or contain non-numeric
                or missing values.
        """

        if not isinstance(frame, DataFrame):
            raise TypeError(f"Expected pandas DataFrame, got {type(frame)}")
        if frame.empty:
            raise InvalidInputError("Input DataFrame contains no data")

        output = output if output is not None else frame.columns[-1]
        if inputs is None:
            inputs = [column for column in frame.columns if column != output]
        inputs = list(inputs)
        if not inputs:
            raise InvalidInputError("At least one input column is required")

        missing = set(inputs + [output]) - set(frame.columns)
        if missing:
            raise InvalidInputError(f"Data is missing required columns: {missing}")

        numeric = frame[inputs + [output]].copy()
        for column in numeric.columns:
            if not pd.api.types.is_numeric_dtype(numeric[column]):
                # Remove commas from numeric strings (e.g., "1,200" -> "1200")
                numeric[column] = (
                    numeric[column].astype(str).str.replace(",", "", regex=False)
                )
            # Convert to numeric, coercing invalid values (dashes, empty strings) to NaN
            numeric[column] = pd.to_numeric(numeric[column], errors="coerce")

        if numeric.isna().any().any():
            bad_columns = list(numeric.columns[numeric.isna().any()])
            raise InvalidInputError(
                f"Sample data contains missing or non-numeric values in columns: {bad_columns}"
            )

        table = cls(allow_duplicates=allow_duplicates)
        table.add_samples(
            numeric[inputs].to_numpy(dtype=float), numeric[output].to_numpy(dtype=float)
        )
        return table

    def to_dataframe(
        self, inputs: Optional[Sequence[str]] = None, output: str = "y"
    ) -> DataFrame:
        """Return the samples as a DataFrame with columns ``x0..x{d-1}`` and ``y``."""

        if inputs is None:
            inputs = [f"x{i}" for i in range(self.num_variables)]
        if len(inputs) != self.num_variables:
            raise InvalidInputError(
                f"Expected {self.num_variables} input column names, got {len(inputs)}"
            )
        frame = DataFrame(self.x, columns=list(inputs))
        frame[output] = self.y
        return frame

    def save_csv(self, path: Union[str, os.PathLike]) -> None:
        """Write the samples to ``path`` as CSV."""

        self.to_dataframe().to_csv(path, index=False)

    @classmethod
    def load_csv(
        cls,
        path: Union[str, os.PathLike],
        *,
        inputs: Optional[Sequence[str]] = None,
        output: Optional[str] = None,
        allow_duplicates: bool = True,
    ) -> DataTable:
        """Read samples from a CSV file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            DataTableReadError: If the file cannot be parsed
            InvalidInputError: If the file holds no usable samples
        """

        if not os.path.exists(path):
            raise FileNotFoundError(f"CSV file not found: {path}")
        if not os.path.isfile(path):
            raise DataTableReadError(f"Path is not a file: {path}")
        if os.path.getsize(path) == 0:
            raise InvalidInputError(f"CSV file is empty: {path}")

        try:
            frame = pd.read_csv(path)
        except UnicodeDecodeError as e:
            raise DataTableReadError(
                f"Unable to decode CSV file (check encoding): {path}. Error: {str(e)}"
            ) from e
        except (pd.errors.ParserError, pd.errors.EmptyDataError, OSError) as e:
            raise DataTableReadError(f"Failed to read CSV file: {path}. Error: {str(e)}") from e

        return cls.from_dataframe(
            frame, inputs=inputs, output=output, allow_duplicates=allow_duplicates
        )

    def __repr__(self) -> str:
        return (
            f"DataTable(num_variables={self.num_variables}, "
            f"num_samples={self.num_samples})"
        )


__all__ = ["DataTable", "DataTableReadError"]

"""
Value types for affine vector transformations.
Matrices and vectors are read-only numpy arrays of float64.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence, Union

import numpy as np


def _frozen(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


class Matrix:
    """Immutable square matrix of float64 values."""

    __slots__ = ("_values",)

    def __init__(self, values: np.ndarray):
        array = np.array(values, dtype=np.float64, copy=True)
        if array.ndim != 2 or array.shape[0] != array.shape[1] or array.shape[0] < 1:
            raise ValueError(f"Matrix requires a non-empty square 2-D array, got shape {array.shape}")
        self._values = _frozen(array)

    @classmethod
    def identity(cls, dimension: int) -> "Matrix":
        return cls(np.identity(dimension))

    @property
    def values(self) -> np.ndarray:
        """Read-only view of the underlying array."""
        return self._values

    @property
    def dimension(self) -> int:
        return self._values.shape[0]

    def compose(self, inner: "Matrix") -> "Matrix":
        """Return `self x inner`: the transform that applies `inner` first."""
        return Matrix(self._values @ inner.values)

    def to_rows(self) -> List[List[float]]:
        return self._values.tolist()

    def __eq__(self, other) -> bool:
        if not isinstance(other, Matrix):
            return NotImplemented
        return np.array_equal(self._values, other.values)

    def __hash__(self) -> int:
        return hash(tuple(self._values.ravel().tolist()))

    def __repr__(self) -> str:
        return f"Matrix({self.to_rows()})"


def as_vector(values: Union[np.ndarray, Sequence[float]]) -> np.ndarray:
    """Copy values into a read-only float64 vector."""
    return _frozen(np.array(values, dtype=np.float64, copy=True))


class EmptyChainPolicy(str, Enum):
    """What an empty transformation chain means at a call site."""

    NO_OP = "no_op"  # leave the vector unchanged
    RAISE = "raise"  # reject as a configuration error


@dataclass(frozen=True)
class SingleMatrix:
    """Matrix source holding one matrix literal or nested numeric array."""

    value: object


@dataclass(frozen=True)
class MatrixChain:
    """Matrix source holding an ordered composition chain; element 0 applies first."""

    elements: tuple

    def __len__(self) -> int:
        return len(self.elements)


MatrixSource = Union[SingleMatrix, MatrixChain]

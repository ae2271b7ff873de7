"""
Vector coercion: normalize field and query values into float vectors.

Accepted inputs are one-dimensional numpy arrays of a real dtype (float64,
float32 widened with standard promotion, integers) and lists or tuples of real
numbers. Inputs are never mutated.
"""

from numbers import Real
from typing import Any

import numpy as np

from ..core.errors import VectorTypeError
from .types import as_vector


def _not_a_vector(value: Any) -> VectorTypeError:
    return VectorTypeError(f"object [{value}] of type [{type(value).__name__}] is not an array")


def _array_values(value: np.ndarray) -> np.ndarray:
    if value.ndim != 1:
        raise VectorTypeError(f"array of shape {value.shape} is not a one-dimensional vector")
    if value.dtype == np.bool_ or not (
        np.issubdtype(value.dtype, np.floating) or np.issubdtype(value.dtype, np.integer)
    ):
        raise VectorTypeError(f"array of dtype [{value.dtype}] is not a numeric vector")
    return value


def _sequence_values(value: Any) -> list:
    values = []
    for element in value:
        # bool is an int subclass but never a vector component
        if isinstance(element, (bool, np.bool_)) or not isinstance(element, Real):
            raise _not_a_vector(value)
        try:
            values.append(float(element))
        except OverflowError:
            raise VectorTypeError(f"vector element at [{len(values)}] is too large to convert to a float") from None
    return values


def coerce_vector(value: Any) -> np.ndarray:
    """
    Coerce a field value into a read-only float64 vector.

    Args:
        value: numpy array, list or tuple of real numbers

    Returns:
        New float64 array; the input is left untouched

    Raises:
        VectorTypeError: If the container or any element is not numeric
    """
    if value is None:
        raise VectorTypeError("object [null] is not an array")
    if isinstance(value, np.ndarray):
        return as_vector(_array_values(value).astype(np.float64))
    if isinstance(value, (list, tuple)):
        return as_vector(_sequence_values(value))
    raise _not_a_vector(value)


def coerce_float32_vector(value: Any) -> np.ndarray:
    """Coerce a query literal into a float32 vector (each element narrowed)."""
    if value is None:
        raise VectorTypeError("object [null] is not an array")
    if isinstance(value, np.ndarray):
        array = _array_values(value).astype(np.float32)
    elif isinstance(value, (list, tuple)):
        array = np.array(_sequence_values(value), dtype=np.float32)
    else:
        raise _not_a_vector(value)
    array.setflags(write=False)
    return array

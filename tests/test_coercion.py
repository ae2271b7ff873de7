"""
Vector coercion of field values and query literals.
"""

import numpy as np
import pytest

from affine_search.core.errors import VectorTypeError
from affine_search.vector.coercion import coerce_float32_vector, coerce_vector


def test_list_of_numbers():
    vector = coerce_vector([1, 2.5, -3])
    assert vector.dtype == np.float64
    np.testing.assert_array_equal(vector, [1.0, 2.5, -3.0])


def test_tuple_of_numbers():
    np.testing.assert_array_equal(coerce_vector((1, 2)), [1.0, 2.0])


def test_float32_array_widened():
    """Test that a float32 array is widened to float64."""
    source = np.array([0.5, 1.5], dtype=np.float32)
    vector = coerce_vector(source)
    assert vector.dtype == np.float64
    np.testing.assert_array_equal(vector, [0.5, 1.5])


def test_input_not_mutated():
    """Test that coercion copies instead of aliasing the input."""
    source = np.array([1.0, 2.0])
    vector = coerce_vector(source)
    assert vector is not source
    assert source.flags.writeable
    assert not vector.flags.writeable


@pytest.mark.parametrize("value", [
    "1,2,3",
    42,
    {"a": 1},
    [1, "2"],
    [1, None],
    [True, False],
    None,
])
def test_non_vectors_rejected(value):
    """Test that non-numeric values raise VectorTypeError."""
    with pytest.raises(VectorTypeError):
        coerce_vector(value)


def test_two_dimensional_array_rejected():
    with pytest.raises(VectorTypeError, match="one-dimensional"):
        coerce_vector(np.zeros((2, 2)))


def test_bool_array_rejected():
    with pytest.raises(VectorTypeError):
        coerce_vector(np.array([True, False]))


def test_vector_type_error_is_type_error():
    """Test that host code catching TypeError also catches coercion errors."""
    with pytest.raises(TypeError):
        coerce_vector("abc")


def test_error_message_names_type():
    with pytest.raises(VectorTypeError, match=r"of type \[str\] is not an array"):
        coerce_vector("abc")


def test_float32_query_literal():
    vector = coerce_float32_vector([1, 2.25])
    assert vector.dtype == np.float32
    np.testing.assert_array_equal(vector, np.array([1.0, 2.25], dtype=np.float32))


def test_float32_rejects_strings():
    with pytest.raises(VectorTypeError):
        coerce_float32_vector(["1"])


def test_oversized_integer_rejected():
    """Test that an integer beyond float range is a coercion error."""
    with pytest.raises(VectorTypeError, match="too large"):
        coerce_vector([10 ** 400, 1])
    with pytest.raises(VectorTypeError, match="too large"):
        coerce_float32_vector([1, 10 ** 400])

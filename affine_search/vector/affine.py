"""
Affine transformation of vectors in homogeneous coordinates.

A vector v of length N-1 is augmented to [v, 1], multiplied by the N x N
matrix, and the trailing homogeneous component is dropped. The augmentation
lets one matrix multiplication encode a linear map plus a translation.
"""

from typing import Any, Optional

import numpy as np

from util.logging import logger, summarize_vector
from ..core.errors import DimensionMismatchError
from .chain import resolve_matrix_source
from .coercion import coerce_vector
from .matrix_format import format_matrix
from .types import EmptyChainPolicy, Matrix, as_vector


def augment_vector(vector: np.ndarray) -> np.ndarray:
    """Append the homogeneous coordinate: [v0, ..., vn-1] -> [v0, ..., vn-1, 1]."""
    return np.append(np.asarray(vector, dtype=np.float64), 1.0)


def deaugment_vector(vector: np.ndarray) -> np.ndarray:
    """Drop the homogeneous coordinate."""
    return vector[:-1]


def apply_affine(matrix: Matrix, vector: np.ndarray) -> np.ndarray:
    """
    Apply an N x N affine matrix to a vector of length N-1.

    Args:
        matrix: Effective transformation matrix
        vector: Input vector (float64)

    Returns:
        New read-only float64 vector of length N-1

    Raises:
        DimensionMismatchError: If len(vector) + 1 != N
    """
    if len(vector) + 1 != matrix.dimension:
        raise DimensionMismatchError(
            f"vector of dimension {len(vector)} cannot be transformed by a "
            f"{matrix.dimension}x{matrix.dimension} matrix; expected dimension {matrix.dimension - 1}"
        )

    augmented = augment_vector(vector)
    if logger.is_debug_enabled():
        logger.debug(f"Affine transformation: [{format_matrix(matrix)}] x [{summarize_vector(augmented)}]")

    return as_vector(deaugment_vector(matrix.values @ augmented))


def transform_vector(
    source: Any,
    value: Any,
    empty_chain: EmptyChainPolicy = EmptyChainPolicy.NO_OP,
) -> Optional[np.ndarray]:
    """
    Coerce `value`, resolve `source` and apply the transform.

    Returns None when the source is an empty chain and the policy is NO_OP.
    """
    vector = coerce_vector(value)
    matrix = resolve_matrix_source(source, empty_chain)
    if matrix is None:
        return None

    transformed = apply_affine(matrix, vector)
    if logger.is_debug_enabled():
        logger.debug(f"Transformed: [{summarize_vector(vector)}] to [{summarize_vector(transformed)}]")
    return transformed

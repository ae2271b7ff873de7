"""
Matrix source resolution.

A matrix source is either one matrix (a literal string or a nested numeric
array) or an ordered chain of them. A chain `[M0, M1, ..., Mk-1]` resolves to
`Mk-1 x ... x M1 x M0`, so the first element is applied to the vector first
and the sequence reads in application order.
"""

from numbers import Real
from typing import Any, Optional

import numpy as np

from util.logging import logger
from ..core.errors import (
    AffineTransformationError,
    DimensionMismatchError,
    EmptyChainError,
    VectorTypeError,
)
from .matrix_format import format_matrix, matrix_from_rows, parse_matrix
from .types import EmptyChainPolicy, Matrix, MatrixChain, MatrixSource, SingleMatrix


def _is_numeric_row(value: Any) -> bool:
    if isinstance(value, np.ndarray):
        return value.ndim == 1
    if not isinstance(value, (list, tuple)):
        return False
    return all(isinstance(v, Real) and not isinstance(v, bool) for v in value)


def _is_nested_matrix(value: Any) -> bool:
    if isinstance(value, np.ndarray):
        return value.ndim == 2
    return isinstance(value, (list, tuple)) and len(value) > 0 and all(_is_numeric_row(row) for row in value)


def classify_matrix_source(value: Any) -> MatrixSource:
    """
    Classify a raw field or config value as a single matrix or a chain.

    Raises:
        VectorTypeError: If the value is neither a string nor an array
    """
    if isinstance(value, str) or _is_nested_matrix(value):
        return SingleMatrix(value)
    if isinstance(value, (list, tuple)):
        return MatrixChain(tuple(value))
    raise VectorTypeError(
        f"value [{value}] of type [{type(value).__name__}] cannot be used as a transformation matrix: "
        f"expected a matrix literal or an array of matrix literals"
    )


def _load_matrix(value: Any) -> Matrix:
    if isinstance(value, str):
        return parse_matrix(value)
    if _is_nested_matrix(value):
        return matrix_from_rows(value)
    raise VectorTypeError(
        f"value [{value}] of type [{type(value).__name__}] cannot be cast to a matrix literal nor a nested array"
    )


def _compose_chain(chain: MatrixChain) -> Matrix:
    running = None
    for index, element in enumerate(chain.elements):
        try:
            matrix = _load_matrix(element)
            if running is None:
                running = matrix
                continue
            if matrix.dimension != running.dimension:
                raise DimensionMismatchError(
                    f"cannot compose {matrix.dimension}x{matrix.dimension} matrix after "
                    f"{running.dimension}x{running.dimension} matrix"
                )
            if logger.is_debug_enabled():
                logger.debug(f"Transformation matrix: [{format_matrix(matrix)}] x [{format_matrix(running)}]")
            running = matrix.compose(running)
        except AffineTransformationError as e:
            raise e.at_chain_index(index) from e
    return running


def resolve_matrix_source(
    source: Any,
    empty_chain: EmptyChainPolicy = EmptyChainPolicy.NO_OP,
) -> Optional[Matrix]:
    """
    Resolve a matrix source into the effective transformation matrix.

    Args:
        source: Matrix literal, nested numeric array, or a chain of either
        empty_chain: Policy for an empty chain

    Returns:
        Effective Matrix, or None for an empty chain under EmptyChainPolicy.NO_OP

    Raises:
        ParseError, ShapeError: For malformed matrices (tagged with chain_index)
        DimensionMismatchError: For incompatible chained matrices
        EmptyChainError: For an empty chain under EmptyChainPolicy.RAISE
        VectorTypeError: For values that are not matrix sources
    """
    if not isinstance(source, (SingleMatrix, MatrixChain)):
        source = classify_matrix_source(source)

    if isinstance(source, SingleMatrix):
        return _load_matrix(source.value)

    if len(source) == 0:
        if empty_chain == EmptyChainPolicy.RAISE:
            raise EmptyChainError("transformation matrix chain is empty")
        return None

    return _compose_chain(source)

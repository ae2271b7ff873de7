"""
Matrix parsing, vector coercion, chain resolution and the affine transform.
"""

from .types import Matrix, MatrixChain, SingleMatrix, EmptyChainPolicy
from .matrix_format import parse_matrix, matrix_from_rows, format_matrix
from .coercion import coerce_vector, coerce_float32_vector
from .chain import classify_matrix_source, resolve_matrix_source
from .affine import apply_affine, transform_vector

__all__ = [
    'Matrix',
    'MatrixChain',
    'SingleMatrix',
    'EmptyChainPolicy',
    'parse_matrix',
    'matrix_from_rows',
    'format_matrix',
    'coerce_vector',
    'coerce_float32_vector',
    'classify_matrix_source',
    'resolve_matrix_source',
    'apply_affine',
    'transform_vector'
]

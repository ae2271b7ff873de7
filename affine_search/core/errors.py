"""
Error taxonomy for affine vector transformations.

Every error raised by the transform core derives from AffineTransformationError,
so callers (the ingest pipeline, the HTTP layer) can catch one type. Each class
also derives from the builtin exception that best describes it, which keeps
`except ValueError` / `except TypeError` handlers in host code working.
"""

from typing import Optional


class AffineTransformationError(Exception):
    """Base class for transform failures."""

    def __init__(self, message: str, *, chain_index: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.chain_index = chain_index

    def at_chain_index(self, index: int) -> "AffineTransformationError":
        """Return a copy of this error attributed to chain element `index`."""
        tagged = _copy_error(self, f"chain element [{index}]: {self.message}")
        tagged.chain_index = index
        return tagged


class MissingFieldError(AffineTransformationError, ValueError):
    """A required document field is absent and missing fields are not ignored."""

    def __init__(self, field: str, message: Optional[str] = None, *, chain_index: Optional[int] = None):
        super().__init__(message or f"field [{field}] is null, cannot process it.", chain_index=chain_index)
        self.field = field


class ParseError(AffineTransformationError, ValueError):
    """Matrix literal could not be tokenized into a numeric grid."""


class ShapeError(AffineTransformationError, ValueError):
    """Matrix is empty, ragged or not square."""


class VectorTypeError(AffineTransformationError, TypeError):
    """Value cannot be coerced into a numeric vector or matrix source."""


class DimensionMismatchError(AffineTransformationError, ValueError):
    """Vector length and matrix dimension (or two chained matrices) disagree."""


class ConfigurationError(AffineTransformationError, ValueError):
    """Invalid processor or query-vector configuration."""


class EmptyChainError(ConfigurationError):
    """An empty transformation chain where a matrix is mandatory."""


class EmptyResultError(AffineTransformationError, ValueError):
    """A nested query vector builder completed without a vector."""


def _copy_error(error: AffineTransformationError, message: str) -> AffineTransformationError:
    if isinstance(error, MissingFieldError):
        return MissingFieldError(error.field, message)
    return type(error)(message)

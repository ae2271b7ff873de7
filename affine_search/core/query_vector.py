"""
Query-time affine transformation of the kNN query vector.

The vector comes either from a literal `query_vector` or from a nested
`query_vector_builder` that produces it asynchronously. Either way the result
is transformed and delivered through a single listener callback:

    PENDING -> (AWAITING_NESTED | TRANSFORMING) -> COMPLETED

Failures inside the transform step never raise; they reach the listener's
on_failure, so callers have one error channel for both input modes. Nothing
here imposes a timeout on the nested builder.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, ValidationError

from util.logging import logger
from .errors import ConfigurationError, EmptyResultError
from .listener import ActionListener, FutureActionListener, OnceActionListener
from ..vector.affine import transform_vector
from ..vector.coercion import coerce_float32_vector
from ..vector.types import EmptyChainPolicy

NAME = "affine_transformation"
QUERY_VECTOR_FIELD = "query_vector"
QUERY_VECTOR_BUILDER_FIELD = "query_vector_builder"
TRANSFORMATION_MATRIX_FIELD = "transformation_matrix"


class QueryVectorBuilder(ABC):
    """Produces a query vector asynchronously through a single-shot listener."""

    NAME: str = ""

    @abstractmethod
    async def build_vector(self, listener: ActionListener) -> Any:
        """Complete `listener` exactly once with a vector or a failure."""
        pass

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """Serialize the builder body (without its name)."""
        pass

    @classmethod
    @abstractmethod
    def from_dict(cls, data: Dict[str, Any], registry: Optional[Mapping[str, type]] = None) -> "QueryVectorBuilder":
        """Parse the builder body."""
        pass

    def to_named_dict(self) -> Dict[str, Any]:
        return {self.NAME: self.to_dict()}

    async def build(self) -> Any:
        """Build the vector and return it, raising the failure instead."""
        listener = FutureActionListener()
        await self.build_vector(listener)
        return await listener


class QueryVectorState(str, Enum):
    """Lifecycle of one build_vector call."""

    PENDING = "pending"
    AWAITING_NESTED = "awaiting_nested"
    TRANSFORMING = "transforming"
    COMPLETED = "completed"


_TRANSITIONS = {
    QueryVectorState.PENDING: {QueryVectorState.AWAITING_NESTED, QueryVectorState.TRANSFORMING},
    QueryVectorState.AWAITING_NESTED: {QueryVectorState.TRANSFORMING, QueryVectorState.COMPLETED},
    QueryVectorState.TRANSFORMING: {QueryVectorState.COMPLETED},
    QueryVectorState.COMPLETED: set(),
}


@dataclass
class QueryVectorTask:
    """State of one build_vector call; terminal once COMPLETED."""

    state: QueryVectorState = QueryVectorState.PENDING
    succeeded: Optional[bool] = None
    history: List[QueryVectorState] = field(default_factory=lambda: [QueryVectorState.PENDING])

    def advance(self, state: QueryVectorState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"invalid query vector transition {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def complete(self, succeeded: bool) -> None:
        self.advance(QueryVectorState.COMPLETED)
        self.succeeded = succeeded


class _AffineTransformationSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    query_vector: Optional[List[Any]] = None
    query_vector_builder: Optional[Dict[str, Dict[str, Any]]] = None
    transformation_matrix: Optional[Union[str, List[str]]] = None


def _validate_transformation_matrix(value: Any) -> Union[str, tuple]:
    if value is None:
        raise ConfigurationError(f"[{TRANSFORMATION_MATRIX_FIELD}] cannot be null")
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        return tuple(value)
    raise ConfigurationError(
        f"[{TRANSFORMATION_MATRIX_FIELD}] must be a matrix literal or an array of matrix literals, "
        f"got [{type(value).__name__}]"
    )


class AffineTransformationQueryVectorBuilder(QueryVectorBuilder):
    """Transforms a literal or nested-built query vector by an affine matrix."""

    NAME = NAME

    def __init__(
        self,
        transformation_matrix: Union[str, List[str]],
        query_vector: Optional[Any] = None,
        query_vector_builder: Optional[QueryVectorBuilder] = None,
    ):
        if query_vector is None and query_vector_builder is None:
            raise ConfigurationError(
                f"either [{QUERY_VECTOR_BUILDER_FIELD}] or [{QUERY_VECTOR_FIELD}] must be provided"
            )
        if query_vector is not None and query_vector_builder is not None:
            raise ConfigurationError(
                f"only one of [{QUERY_VECTOR_BUILDER_FIELD}] or [{QUERY_VECTOR_FIELD}] may be provided"
            )
        if query_vector_builder is not None and not isinstance(query_vector_builder, QueryVectorBuilder):
            raise ConfigurationError(
                f"[{QUERY_VECTOR_BUILDER_FIELD}] of type [{type(query_vector_builder).__name__}] is not a query vector builder"
            )

        self.transformation_matrix = _validate_transformation_matrix(transformation_matrix)
        self.query_vector = coerce_float32_vector(query_vector) if query_vector is not None else None
        self.query_vector_builder = query_vector_builder

    async def build_vector(self, listener: ActionListener) -> QueryVectorTask:
        """
        Build the transformed query vector.

        Args:
            listener: Completed exactly once with a float32 vector or a failure

        Returns:
            The finished QueryVectorTask
        """
        task = QueryVectorTask()
        listener = OnceActionListener(listener)

        if self.query_vector_builder is None:
            self._transform(self.query_vector, listener, task)
            return task

        task.advance(QueryVectorState.AWAITING_NESTED)
        nested_name = self.query_vector_builder.NAME
        nested = FutureActionListener()
        try:
            await self.query_vector_builder.build_vector(OnceActionListener(nested))
        except Exception as e:
            if nested.future.done():
                # Already completed; the first outcome stands
                logger.log_transform("query_vector", "failed", {
                    "nested": nested_name,
                    "dropped_error": type(e).__name__,
                    "reason": str(e),
                })
            else:
                nested.on_failure(e)

        try:
            vector = await nested
        except Exception as e:
            logger.log_transform("query_vector", "failed", {"nested": nested_name, "error": type(e).__name__})
            task.complete(False)
            listener.on_failure(e)
            return task

        if vector is None:
            task.complete(False)
            listener.on_failure(EmptyResultError(
                f"[{QUERY_VECTOR_BUILDER_FIELD}] with name [{nested_name}] returned null {QUERY_VECTOR_FIELD}"
            ))
            return task

        self._transform(vector, listener, task)
        return task

    def _transform(self, vector: Any, listener: ActionListener, task: QueryVectorTask) -> None:
        task.advance(QueryVectorState.TRANSFORMING)
        try:
            transformed = transform_vector(self.transformation_matrix, vector, EmptyChainPolicy.RAISE)
            result = transformed.astype(np.float32)
        except Exception as e:
            logger.log_transform("query_vector", "failed", {"error": type(e).__name__, "reason": str(e)})
            task.complete(False)
            listener.on_failure(e)
            return

        logger.log_transform("query_vector", "success", {
            "dimension": len(result),
            "chain_length": len(self.transformation_matrix) if isinstance(self.transformation_matrix, tuple) else 1,
        })
        task.complete(True)
        listener.on_response(result)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {}
        if self.query_vector_builder is not None:
            body[QUERY_VECTOR_BUILDER_FIELD] = self.query_vector_builder.to_named_dict()
        else:
            body[QUERY_VECTOR_FIELD] = self.query_vector.tolist()
        if isinstance(self.transformation_matrix, tuple):
            body[TRANSFORMATION_MATRIX_FIELD] = list(self.transformation_matrix)
        else:
            body[TRANSFORMATION_MATRIX_FIELD] = self.transformation_matrix
        return body

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        registry: Optional[Mapping[str, type]] = None,
    ) -> "AffineTransformationQueryVectorBuilder":
        """
        Parse the serialized form produced by to_dict.

        Raises:
            ConfigurationError: For unknown properties, unknown nested builder
                names, or invalid option combinations
        """
        if not isinstance(data, dict):
            raise ConfigurationError(f"[{NAME}] query vector builder body must be an object")
        try:
            spec = _AffineTransformationSpec(**data)
        except ValidationError as e:
            first = e.errors()[0]
            prop = ".".join(str(p) for p in first["loc"])
            raise ConfigurationError(f"[{NAME}] failed to parse field [{prop}]: {first['msg']}") from e

        nested = None
        if spec.query_vector_builder is not None:
            from .registry import parse_query_vector_builder
            nested = parse_query_vector_builder(spec.query_vector_builder, registry)

        return cls(
            transformation_matrix=spec.transformation_matrix,
            query_vector=spec.query_vector,
            query_vector_builder=nested,
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, AffineTransformationQueryVectorBuilder):
            return NotImplemented
        if (self.query_vector is None) != (other.query_vector is None):
            return False
        if self.query_vector is not None and not np.array_equal(self.query_vector, other.query_vector):
            return False
        return (self.query_vector_builder == other.query_vector_builder
                and self.transformation_matrix == other.transformation_matrix)

    def __hash__(self) -> int:
        vector = tuple(self.query_vector.tolist()) if self.query_vector is not None else None
        return hash((type(self), vector, self.query_vector_builder, self.transformation_matrix))

    def __repr__(self) -> str:
        return f"AffineTransformationQueryVectorBuilder({self.to_dict()})"

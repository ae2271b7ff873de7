"""
Query-time affine_transformation query vector builder.
"""

import asyncio
from unittest.mock import patch

import numpy as np
import pytest

from affine_search.core.errors import (
    ConfigurationError,
    DimensionMismatchError,
    EmptyChainError,
    EmptyResultError,
    VectorTypeError,
)
from affine_search.core.listener import ActionListener
from affine_search.core.query_vector import (
    AffineTransformationQueryVectorBuilder,
    QueryVectorBuilder,
    QueryVectorState,
)
from affine_search.vector.embeddings import TextEmbeddingQueryVectorBuilder

SCALE = "[[2,0,0],[0,2,0],[0,0,1]]"
TRANSLATE = "[[1,0,1],[0,1,1],[0,0,1]]"


class RecordingListener(ActionListener):
    def __init__(self):
        self.responses = []
        self.failures = []

    def on_response(self, response):
        self.responses.append(response)

    def on_failure(self, error):
        self.failures.append(error)


class StaticBuilder(QueryVectorBuilder):
    """Nested builder with a fixed outcome."""

    NAME = "static"

    def __init__(self, vector=None, error=None, raise_error=None, calls=1, raise_after=None):
        self.vector = vector
        self.error = error
        self.raise_error = raise_error
        self.calls = calls
        self.raise_after = raise_after

    async def build_vector(self, listener):
        await asyncio.sleep(0)
        if self.raise_error is not None:
            raise self.raise_error
        for _ in range(self.calls):
            if self.error is not None:
                listener.on_failure(self.error)
            else:
                listener.on_response(self.vector)
        if self.raise_after is not None:
            raise self.raise_after

    def to_dict(self):
        return {"vector": self.vector}

    @classmethod
    def from_dict(cls, data, registry=None):
        return cls(vector=data["vector"])


def run_build(builder):
    listener = RecordingListener()
    task = asyncio.run(builder.build_vector(listener))
    return listener, task


class TestLiteralVector:
    """Test builders with a literal query_vector."""

    def test_scaled_literal(self):
        builder = AffineTransformationQueryVectorBuilder(SCALE, query_vector=[1, 2])
        listener, task = run_build(builder)

        assert listener.failures == []
        assert len(listener.responses) == 1
        result = listener.responses[0]
        assert result.dtype == np.float32
        np.testing.assert_array_equal(result, np.array([2.0, 4.0], dtype=np.float32))
        assert task.history == [QueryVectorState.PENDING, QueryVectorState.TRANSFORMING, QueryVectorState.COMPLETED]
        assert task.succeeded is True

    def test_build_returns_vector(self):
        builder = AffineTransformationQueryVectorBuilder([TRANSLATE, SCALE], query_vector=[1, 2])
        np.testing.assert_array_equal(asyncio.run(builder.build()), [4.0, 6.0])

    def test_empty_chain_fails_through_listener(self):
        """Test that an empty chain is reported through on_failure, not raised."""
        builder = AffineTransformationQueryVectorBuilder([], query_vector=[1, 2])
        listener, task = run_build(builder)

        assert listener.responses == []
        assert len(listener.failures) == 1
        assert isinstance(listener.failures[0], EmptyChainError)
        assert isinstance(listener.failures[0], ConfigurationError)
        assert task.succeeded is False

    def test_dimension_mismatch_fails_through_listener(self):
        builder = AffineTransformationQueryVectorBuilder(SCALE, query_vector=[1, 2, 3])
        listener, _ = run_build(builder)
        assert isinstance(listener.failures[0], DimensionMismatchError)

    def test_build_raises_failure(self):
        builder = AffineTransformationQueryVectorBuilder([], query_vector=[1, 2])
        with pytest.raises(EmptyChainError):
            asyncio.run(builder.build())

    def test_literal_coerced_to_float32(self):
        builder = AffineTransformationQueryVectorBuilder(SCALE, query_vector=[1, 2])
        assert builder.query_vector.dtype == np.float32

    def test_literal_of_strings_rejected(self):
        with pytest.raises(VectorTypeError):
            AffineTransformationQueryVectorBuilder(SCALE, query_vector=["1", "2"])


class TestNestedBuilder:
    """Test builders that obtain the vector from a nested builder."""

    def test_nested_success(self):
        builder = AffineTransformationQueryVectorBuilder(SCALE, query_vector_builder=StaticBuilder([1.0, 2.0]))
        listener, task = run_build(builder)

        np.testing.assert_array_equal(listener.responses[0], [2.0, 4.0])
        assert listener.responses[0].dtype == np.float32
        assert task.history == [
            QueryVectorState.PENDING,
            QueryVectorState.AWAITING_NESTED,
            QueryVectorState.TRANSFORMING,
            QueryVectorState.COMPLETED,
        ]

    def test_nested_failure_propagates_unchanged(self):
        """Test that the nested failure reaches the caller as the same object, without a transform."""
        error = RuntimeError("model unavailable")
        builder = AffineTransformationQueryVectorBuilder(SCALE, query_vector_builder=StaticBuilder(error=error))

        with patch("affine_search.core.query_vector.transform_vector") as mock_transform:
            listener, task = run_build(builder)

        mock_transform.assert_not_called()
        assert listener.responses == []
        assert listener.failures == [error]
        assert listener.failures[0] is error
        assert task.history == [
            QueryVectorState.PENDING,
            QueryVectorState.AWAITING_NESTED,
            QueryVectorState.COMPLETED,
        ]
        assert task.succeeded is False

    def test_nested_raise_routed_to_failure(self):
        error = ValueError("bad nested request")
        builder = AffineTransformationQueryVectorBuilder(SCALE, query_vector_builder=StaticBuilder(raise_error=error))
        listener, _ = run_build(builder)
        assert listener.failures[0] is error

    def test_nested_null_vector(self):
        builder = AffineTransformationQueryVectorBuilder(SCALE, query_vector_builder=StaticBuilder(None))
        listener, _ = run_build(builder)

        assert isinstance(listener.failures[0], EmptyResultError)
        assert str(listener.failures[0]) == "[query_vector_builder] with name [static] returned null query_vector"

    def test_nested_double_completion_keeps_first_outcome(self):
        """Test that a second callback from the nested builder is dropped."""
        builder = AffineTransformationQueryVectorBuilder(
            SCALE, query_vector_builder=StaticBuilder([1.0, 2.0], calls=2)
        )
        listener, task = run_build(builder)

        assert listener.failures == []
        np.testing.assert_array_equal(listener.responses[0], [2.0, 4.0])
        assert task.succeeded is True

    def test_nested_raise_after_callback_is_not_thrown(self):
        """Test that an error raised after the nested callback never escapes build_vector."""
        builder = AffineTransformationQueryVectorBuilder(
            SCALE, query_vector_builder=StaticBuilder([1.0, 2.0], raise_after=ValueError("late"))
        )
        listener, task = run_build(builder)

        assert listener.failures == []
        assert len(listener.responses) == 1
        np.testing.assert_array_equal(listener.responses[0], [2.0, 4.0])
        assert task.history[-1] == QueryVectorState.COMPLETED

    def test_nested_text_embedding(self):
        nested = TextEmbeddingQueryVectorBuilder("hello", provider="hash", dimension=2)
        builder = AffineTransformationQueryVectorBuilder(SCALE, query_vector_builder=nested)

        embedded = np.array(nested._embedding_provider.embed_text("hello"), dtype=np.float64)
        result = asyncio.run(builder.build())
        np.testing.assert_allclose(result, (embedded * 2).astype(np.float32))


class TestConfiguration:
    """Test construction and parsing."""

    def test_neither_input(self):
        with pytest.raises(ConfigurationError, match="must be provided"):
            AffineTransformationQueryVectorBuilder(SCALE)

    def test_both_inputs(self):
        with pytest.raises(ConfigurationError, match="only one of"):
            AffineTransformationQueryVectorBuilder(SCALE, query_vector=[1, 2], query_vector_builder=StaticBuilder([1, 2]))

    def test_null_matrix(self):
        with pytest.raises(ConfigurationError, match=r"\[transformation_matrix\] cannot be null"):
            AffineTransformationQueryVectorBuilder(None, query_vector=[1, 2])

    def test_non_matrix_type(self):
        with pytest.raises(ConfigurationError):
            AffineTransformationQueryVectorBuilder(5, query_vector=[1, 2])

    def test_nested_must_be_builder(self):
        with pytest.raises(ConfigurationError):
            AffineTransformationQueryVectorBuilder(SCALE, query_vector_builder={"static": {}})

    def test_literal_round_trip(self):
        builder = AffineTransformationQueryVectorBuilder([TRANSLATE, SCALE], query_vector=[1.5, 2])
        body = builder.to_dict()
        assert body == {"query_vector": [1.5, 2.0], "transformation_matrix": [TRANSLATE, SCALE]}
        assert AffineTransformationQueryVectorBuilder.from_dict(body) == builder

    def test_nested_round_trip(self):
        builder = AffineTransformationQueryVectorBuilder(
            SCALE, query_vector_builder=TextEmbeddingQueryVectorBuilder("hello", provider="hash", dimension=2)
        )
        parsed = AffineTransformationQueryVectorBuilder.from_dict(builder.to_dict())
        assert parsed == builder
        assert hash(parsed) == hash(builder)

    def test_from_dict_custom_registry(self):
        body = {"query_vector_builder": {"static": {"vector": [1, 2]}}, "transformation_matrix": SCALE}
        builder = AffineTransformationQueryVectorBuilder.from_dict(body, {"static": StaticBuilder})
        assert isinstance(builder.query_vector_builder, StaticBuilder)

    def test_from_dict_unknown_property(self):
        with pytest.raises(ConfigurationError, match="unknown_option"):
            AffineTransformationQueryVectorBuilder.from_dict(
                {"query_vector": [1, 2], "transformation_matrix": SCALE, "unknown_option": 1}
            )

    def test_from_dict_unknown_nested_builder(self):
        with pytest.raises(ConfigurationError, match=r"unknown query vector builder \[nope\]"):
            AffineTransformationQueryVectorBuilder.from_dict(
                {"query_vector_builder": {"nope": {}}, "transformation_matrix": SCALE}
            )

    def test_from_dict_requires_object(self):
        with pytest.raises(ConfigurationError):
            AffineTransformationQueryVectorBuilder.from_dict([SCALE])

    def test_named_dict(self):
        builder = AffineTransformationQueryVectorBuilder(SCALE, query_vector=[1, 2])
        assert list(builder.to_named_dict()) == ["affine_transformation"]

    def test_inequality(self):
        a = AffineTransformationQueryVectorBuilder(SCALE, query_vector=[1, 2])
        b = AffineTransformationQueryVectorBuilder(SCALE, query_vector=[1, 3])
        c = AffineTransformationQueryVectorBuilder(TRANSLATE, query_vector=[1, 2])
        assert a != b
        assert a != c

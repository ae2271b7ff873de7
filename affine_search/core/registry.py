"""
Registry of ingest processors and query vector builders by type name.
"""

from typing import Any, Callable, Dict, Mapping, Optional

from .errors import ConfigurationError
from .ingest import TYPE as AFFINE_PROCESSOR_TYPE, create_processor
from .query_vector import AffineTransformationQueryVectorBuilder, QueryVectorBuilder
from ..vector.embeddings import TextEmbeddingQueryVectorBuilder

PROCESSOR_FACTORIES: Dict[str, Callable[..., Any]] = {
    AFFINE_PROCESSOR_TYPE: create_processor,
}

QUERY_VECTOR_BUILDERS: Dict[str, type] = {
    AffineTransformationQueryVectorBuilder.NAME: AffineTransformationQueryVectorBuilder,
    TextEmbeddingQueryVectorBuilder.NAME: TextEmbeddingQueryVectorBuilder,
}


def parse_query_vector_builder(
    named: Mapping[str, Any],
    registry: Optional[Mapping[str, type]] = None,
) -> QueryVectorBuilder:
    """
    Parse `{"<name>": {...body...}}` into a registered query vector builder.

    Raises:
        ConfigurationError: If the object does not hold exactly one known builder
    """
    registry = registry if registry is not None else QUERY_VECTOR_BUILDERS
    if not isinstance(named, Mapping) or len(named) != 1:
        raise ConfigurationError("query vector builder must be an object with exactly one named builder")

    name, body = next(iter(named.items()))
    builder_cls = registry.get(name)
    if builder_cls is None:
        raise ConfigurationError(f"unknown query vector builder [{name}]")
    return builder_cls.from_dict(body, registry)


def create_ingest_processor(processor_type: str, config: Dict[str, Any], tag: str = None, description: str = None):
    """Create a registered ingest processor by type name."""
    factory = PROCESSOR_FACTORIES.get(processor_type)
    if factory is None:
        raise ConfigurationError(f"No processor type exists with name [{processor_type}]")
    return factory(config, tag=tag, description=description)

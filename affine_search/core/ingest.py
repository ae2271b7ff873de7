"""
Ingest-time affine transformation processor.

Reads a vector field and a transformation matrix field from each document,
transforms the vector and writes the result to the target field. An empty
matrix chain leaves the document unchanged.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from util.logging import logger
from .document import IngestDocument
from .errors import ConfigurationError, MissingFieldError
from ..vector.affine import transform_vector
from ..vector.chain import classify_matrix_source
from ..vector.types import EmptyChainPolicy, MatrixChain

TYPE = "affine_transformation"


class AffineTransformationProcessorConfig(BaseModel):
    """Processor configuration as declared in a pipeline definition."""

    model_config = ConfigDict(extra="forbid", frozen=True, strict=True)

    field: str
    transformation_matrix_field: str
    ignore_missing: bool = False
    target_field: Optional[str] = None
    tag: Optional[str] = None
    description: Optional[str] = None

    @field_validator('field', 'transformation_matrix_field', 'target_field')
    @classmethod
    def path_must_not_be_empty(cls, v):
        if v is not None and not v.strip():
            raise ValueError('field path cannot be empty')
        return v

    @field_validator('ignore_missing', mode='before')
    @classmethod
    def boolean_from_string(cls, v):
        # Pipeline definitions may carry booleans as "true" / "false"
        if isinstance(v, str) and v in ("true", "false"):
            return v == "true"
        return v

    @model_validator(mode='before')
    @classmethod
    def default_target_field(cls, data):
        if isinstance(data, dict) and data.get('target_field') is None and 'field' in data:
            data = {**data, 'target_field': data['field']}
        return data


def _configuration_error(tag: Optional[str], error: ValidationError) -> ConfigurationError:
    first = error.errors()[0]
    prop = ".".join(str(p) for p in first["loc"]) or "config"
    if first["type"] == "missing":
        reason = "required property is missing"
    elif first["type"] == "extra_forbidden":
        reason = "processor does not support this property"
    else:
        reason = first["msg"]
    return ConfigurationError(f"[{TYPE}] [{tag or '_none_'}] [{prop}] {reason}")


class AffineTransformationProcessor:
    """Applies an affine transformation to a vector field of each document."""

    def __init__(self, config: AffineTransformationProcessorConfig):
        self.config = config

    @property
    def type(self) -> str:
        return TYPE

    @property
    def tag(self) -> Optional[str]:
        return self.config.tag

    @property
    def field(self) -> str:
        return self.config.field

    @property
    def ignore_missing(self) -> bool:
        return self.config.ignore_missing

    @property
    def target_field(self) -> str:
        return self.config.target_field

    @property
    def transformation_matrix_field(self) -> str:
        return self.config.transformation_matrix_field

    def execute(self, document: IngestDocument) -> IngestDocument:
        """
        Transform the configured field of one document.

        Args:
            document: Document to process; mutated only on success

        Returns:
            The same document

        Raises:
            MissingFieldError: If a field is absent and ignore_missing is False
            AffineTransformationError: For parse, shape, type or dimension failures
        """
        for path in (self.field, self.transformation_matrix_field):
            if not document.has_field(path):
                if self.ignore_missing:
                    logger.log_ingest_skip(self.tag, path, "missing_field")
                    return document
                raise MissingFieldError(path)

        field_value = document.get_field_value(self.field)
        matrix_source = document.get_field_value(self.transformation_matrix_field)

        source = classify_matrix_source(matrix_source)
        transformed = transform_vector(source, field_value, EmptyChainPolicy.NO_OP)
        if transformed is None:
            logger.log_ingest_skip(self.tag, self.transformation_matrix_field, "empty_chain")
            return document

        document.set_field_value(self.target_field, transformed.tolist())
        logger.log_transform("ingest", "success", {
            "tag": self.tag,
            "field": self.field,
            "target_field": self.target_field,
            "dimension": len(transformed),
            "chain_length": len(source) if isinstance(source, MatrixChain) else 1,
        })
        return document

    def __repr__(self) -> str:
        return f"AffineTransformationProcessor({self.config.model_dump()})"


def create_processor(
    config: Dict[str, Any],
    tag: Optional[str] = None,
    description: Optional[str] = None,
) -> AffineTransformationProcessor:
    """
    Build a processor from a pipeline configuration map.

    Raises:
        ConfigurationError: If a required property is missing, has the wrong
            type, or an unknown property is present
    """
    if not isinstance(config, dict):
        raise ConfigurationError(f"[{TYPE}] processor configuration must be an object")

    values = dict(config)
    if tag is not None:
        values["tag"] = tag
    if description is not None:
        values["description"] = description

    try:
        return AffineTransformationProcessor(AffineTransformationProcessorConfig(**values))
    except ValidationError as e:
        raise _configuration_error(values.get("tag"), e) from e

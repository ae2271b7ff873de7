"""
Embedding providers and the text_embedding query vector builder.
The builder is the nested vector-generation step of an affine query vector.
"""

from abc import ABC, abstractmethod
import asyncio
import hashlib
import struct
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..core.errors import ConfigurationError
from ..core.listener import ActionListener
from ..core.query_vector import QueryVectorBuilder


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    @abstractmethod
    def embed_text(self, text: str) -> list[float]:
        """Generate embedding vector for given text."""
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        pass


class DeterministicHashEmbedding(IEmbeddingProvider):
    """Deterministic hash-based embedding provider.

    Produces reproducible vectors from text without model dependencies.
    Each component is derived from sha256(text || counter), so any
    dimension is filled.
    """

    def __init__(self, dimension: int = 384):
        if dimension < 1:
            raise ValueError(f"dimension must be >= 1, got {dimension}")
        self.dimension = dimension

    def embed_text(self, text: str) -> list[float]:
        """Generate deterministic embedding vector using hash function."""
        vector = []
        counter = 0
        while len(vector) < self.dimension:
            digest = hashlib.sha256(text.encode() + struct.pack(">I", counter)).digest()
            for i in range(0, len(digest), 4):
                if len(vector) >= self.dimension:
                    break
                value = struct.unpack(">I", digest[i:i + 4])[0]
                # Map to [-1, 1)
                vector.append((value / (2**32)) * 2 - 1)
            counter += 1
        return vector

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        return self.dimension


class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Sentence transformers embedding provider using pre-trained models.

    The model is loaded on first use.
    """

    def __init__(self, model_name: str = "all-mpnet-base-v2"):
        self.model_name = model_name
        self._model = None
        self._dimension = None

    @property
    def model(self):
        if self._model is None:
            try:
                from sentence_transformers import SentenceTransformer
            except ImportError:
                raise ImportError("sentence-transformers not installed. Please install affine-search[embeddings].")
            self._model = SentenceTransformer(self.model_name)
        return self._model

    def embed_text(self, text: str) -> list[float]:
        """Generate embedding vector using sentence transformers."""
        embedding = self.model.encode(text, convert_to_tensor=False)
        return embedding.tolist()

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        if self._dimension is None:
            self._dimension = self.model.get_sentence_embedding_dimension()
        return self._dimension


class _TextEmbeddingSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    model_text: str = Field(..., min_length=1)
    provider: Optional[str] = None
    dimension: Optional[int] = Field(None, ge=1)


class TextEmbeddingQueryVectorBuilder(QueryVectorBuilder):
    """Embeds `model_text` with an embedding provider to produce the query vector."""

    NAME = "text_embedding"

    def __init__(
        self,
        model_text: str,
        provider: Optional[str] = None,
        dimension: Optional[int] = None,
        embedding_provider: Optional[IEmbeddingProvider] = None,
    ):
        from ..core.config import EMBED_PROVIDER, VALID_EMBED_PROVIDERS, get_embedding_provider

        self.model_text = model_text
        self.provider = provider or EMBED_PROVIDER
        self.dimension = dimension
        if self.provider not in VALID_EMBED_PROVIDERS:
            raise ConfigurationError(f"[{self.NAME}] unknown embedding provider [{self.provider}]")
        self._embedding_provider = embedding_provider or get_embedding_provider(self.provider, dimension)

    async def build_vector(self, listener: ActionListener) -> None:
        # Model inference blocks, so it runs on the default executor
        loop = asyncio.get_running_loop()
        try:
            vector = await loop.run_in_executor(None, self._embedding_provider.embed_text, self.model_text)
        except Exception as e:
            listener.on_failure(e)
            return
        listener.on_response(vector)

    def to_dict(self) -> Dict[str, Any]:
        body = {"model_text": self.model_text, "provider": self.provider}
        if self.dimension is not None:
            body["dimension"] = self.dimension
        return body

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        registry: Optional[Mapping[str, type]] = None,
    ) -> "TextEmbeddingQueryVectorBuilder":
        if not isinstance(data, dict):
            raise ConfigurationError(f"[{cls.NAME}] query vector builder body must be an object")
        try:
            spec = _TextEmbeddingSpec(**data)
        except ValidationError as e:
            first = e.errors()[0]
            prop = ".".join(str(p) for p in first["loc"])
            raise ConfigurationError(f"[{cls.NAME}] failed to parse field [{prop}]: {first['msg']}") from e
        return cls(model_text=spec.model_text, provider=spec.provider, dimension=spec.dimension)

    def __eq__(self, other) -> bool:
        if not isinstance(other, TextEmbeddingQueryVectorBuilder):
            return NotImplemented
        return (self.model_text, self.provider, self.dimension) == (other.model_text, other.provider, other.dimension)

    def __hash__(self) -> int:
        return hash((type(self), self.model_text, self.provider, self.dimension))

    def __repr__(self) -> str:
        return f"TextEmbeddingQueryVectorBuilder({self.to_dict()})"

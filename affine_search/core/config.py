"""
Runtime configuration for the affine transformation service.
Values are read from the environment once at import time.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# Debug flag enables API docs and verbose error details
DEBUG = os.getenv("DEBUG", "true").lower() == "true"

# Log level for util.logging.StructuredLogger
AFFINE_LOG_LEVEL = os.getenv("AFFINE_LOG_LEVEL", "INFO").upper()

# Embedding provider behind the text_embedding query vector builder
EMBED_PROVIDER = os.getenv("EMBED_PROVIDER", "hash")  # hash|sentence_transformer
EMBED_MODEL_NAME = os.getenv("EMBED_MODEL_NAME", "all-mpnet-base-v2")
EMBED_DIM = int(os.getenv("EMBED_DIM", "384"))

# Version string
VERSION = "0.3.0"

VALID_EMBED_PROVIDERS = ["hash", "sentence_transformer"]
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def get_embedding_provider(provider: str = None, dimension: int = None):
    """Get configured embedding provider implementation."""
    provider = provider or EMBED_PROVIDER

    if provider == "sentence_transformer":
        from ..vector.embeddings import SentenceTransformerEmbedding
        return SentenceTransformerEmbedding(EMBED_MODEL_NAME)

    from ..vector.embeddings import DeterministicHashEmbedding
    return DeterministicHashEmbedding(dimension or EMBED_DIM)


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "true").lower() == "true"


def validate_config():
    """Validate configuration and return any issues."""
    issues = []

    if EMBED_PROVIDER not in VALID_EMBED_PROVIDERS:
        issues.append(f"Invalid EMBED_PROVIDER: {EMBED_PROVIDER}")

    if EMBED_DIM < 1:
        issues.append("EMBED_DIM must be >= 1")

    if AFFINE_LOG_LEVEL not in VALID_LOG_LEVELS:
        issues.append(f"Invalid AFFINE_LOG_LEVEL: {AFFINE_LOG_LEVEL}")

    return issues

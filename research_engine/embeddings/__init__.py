"""Embedding service module."""

from research_engine.embeddings.models import EmbeddingResult
from research_engine.embeddings.service import (
    DEFAULT_EMBEDDING_MODEL,
    EmbeddingService,
    HTTPEmbeddingService,
    MockEmbeddingService,
    create_embedding_service,
    resolve_embedding_model,
)

__all__ = [
    "DEFAULT_EMBEDDING_MODEL",
    "EmbeddingResult",
    "EmbeddingService",
    "HTTPEmbeddingService",
    "MockEmbeddingService",
    "create_embedding_service",
    "resolve_embedding_model",
]

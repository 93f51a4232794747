"""Vector store module."""

from research_engine.vectorstore.models import DocumentRecord, RetrievedMatch
from research_engine.vectorstore.service import VectorStore, cosine_similarity

__all__ = [
    "DocumentRecord",
    "RetrievedMatch",
    "VectorStore",
    "cosine_similarity",
]

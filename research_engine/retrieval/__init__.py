"""Retrieval pipeline module."""

from research_engine.retrieval.models import RetrievedContext, SourceReference
from research_engine.retrieval.retriever import (
    ContextRetriever,
    Retriever,
    assemble_context,
    passes_relevance_gate,
)

__all__ = [
    "ContextRetriever",
    "RetrievedContext",
    "Retriever",
    "SourceReference",
    "assemble_context",
    "passes_relevance_gate",
]

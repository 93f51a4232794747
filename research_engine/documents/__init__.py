"""Corpus document processing module."""

from research_engine.documents.chunker import CharacterChunker, Chunk, ChunkerConfig
from research_engine.documents.ingest import CorpusIngestor
from research_engine.documents.loader import TextFileLoader
from research_engine.documents.models import Document, DocumentMetadata

__all__ = [
    "CharacterChunker",
    "Chunk",
    "ChunkerConfig",
    "CorpusIngestor",
    "Document",
    "DocumentMetadata",
    "TextFileLoader",
]

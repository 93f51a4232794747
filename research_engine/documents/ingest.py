"""Corpus ingestion: chunk, embed, store."""

from uuid import uuid4

from research_engine.documents.chunker import CharacterChunker
from research_engine.documents.models import Document
from research_engine.embeddings.models import EmbeddingResult
from research_engine.embeddings.service import EmbeddingService
from research_engine.logging_config import get_logger
from research_engine.vectorstore.models import DocumentRecord
from research_engine.vectorstore.service import VectorStore

logger = get_logger(__name__)


class CorpusIngestor:
    """Adds documents to the vector store and persists the corpus."""

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_store: VectorStore,
        chunker: CharacterChunker | None = None,
    ) -> None:
        self._embedding_service = embedding_service
        self._vector_store = vector_store
        self._chunker = chunker or CharacterChunker()

    async def ingest(self, document: Document) -> list[DocumentRecord]:
        """Chunk and embed a document, then append and save under the store lock.

        Chunks whose embedding fell back to zeros are stored anyway; they
        score 0 against every query.

        Returns:
            The records added, in chunk order.
        """
        chunks = self._chunker.chunk(document)
        if not chunks:
            logger.info("Document produced no chunks", extra={"source": document.metadata.source})
            return []

        embeddings = self._pin_fallback_width(
            await self._embedding_service.embed_batch([c.content for c in chunks])
        )

        records = [
            DocumentRecord(
                doc_id=uuid4().hex,
                text=chunk.content,
                meta=chunk.to_meta(),
                embedding=result.embedding,
            )
            for chunk, result in zip(chunks, embeddings)
        ]

        await self._vector_store.add_and_save(records)

        fallbacks = sum(1 for result in embeddings if result.fallback)
        logger.info(
            f"Ingested {len(records)} chunks",
            extra={
                "source": document.metadata.source,
                "fallback_embeddings": fallbacks,
                "corpus_size": len(self._vector_store),
            },
        )
        return records

    def _pin_fallback_width(self, results: list[EmbeddingResult]) -> list[EmbeddingResult]:
        """Resize zero-vector fallbacks to the corpus width.

        The width is the store's, or for an empty store that of the first
        live vector in the batch. Fallbacks made before the remote width was
        known would otherwise be rejected as a dimension mismatch.
        """
        width = self._vector_store.dimensions
        if width is None:
            width = next((len(r.embedding) for r in results if not r.fallback), None)
        if width is None:
            return results
        return [
            EmbeddingResult.zeros(r.text, r.model, width)
            if r.fallback and r.dimensions != width
            else r
            for r in results
        ]

"""Retriever interface and implementations."""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from research_engine.embeddings.service import EmbeddingService
from research_engine.logging_config import get_logger
from research_engine.observability.metrics import track_retrieval_request
from research_engine.retrieval.models import RetrievedContext, SourceReference
from research_engine.vectorstore.models import RetrievedMatch
from research_engine.vectorstore.service import VectorStore

logger = get_logger(__name__)

DEFAULT_RELEVANCE_THRESHOLD = 0.35
CONTEXT_SEPARATOR = "\n\n"


def passes_relevance_gate(
    matches: Sequence[RetrievedMatch],
    threshold: float = DEFAULT_RELEVANCE_THRESHOLD,
) -> bool:
    """All-or-nothing gate: the best match must score strictly above threshold."""
    if not matches:
        return False
    return max(match.score for match in matches) > threshold


def assemble_context(matches: Sequence[RetrievedMatch], max_chars: int) -> str:
    """Join ``Source: <source>\\n<text>`` blocks and cut to ``max_chars``.

    The cut is a plain character slice, not sentence-aware.
    """
    blocks = [f"Source: {match.source}\n{match.text}" for match in matches]
    return CONTEXT_SEPARATOR.join(blocks)[:max_chars]


class Retriever(ABC):
    """Abstract base class for retrievers.

    Defines the interface for turning a query into prompt context.
    """

    @abstractmethod
    async def retrieve(
        self,
        query: str,
        top_k: int = 5,
        max_chars: int = 6000,
    ) -> RetrievedContext:
        """Retrieve context for a query.

        Args:
            query: The search query.
            top_k: Maximum number of matches to consider.
            max_chars: Character budget for the assembled context.

        Returns:
            Context text with provenance; empty when nothing is relevant.
        """
        ...


class ContextRetriever(Retriever):
    """Semantic retriever over the in-process vector store.

    Embeds the query, ranks the corpus, applies the relevance gate and
    assembles the attributed context block.
    """

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_store: VectorStore,
        relevance_threshold: float = DEFAULT_RELEVANCE_THRESHOLD,
        embed_timeout: float | None = None,
    ) -> None:
        """Initialize the retriever.

        Args:
            embedding_service: Service for generating embeddings.
            vector_store: Corpus to search.
            relevance_threshold: Best score must exceed this to use any context.
            embed_timeout: Timeout for the query embedding call.
        """
        self._embedding_service = embedding_service
        self._vector_store = vector_store
        self._relevance_threshold = relevance_threshold
        self._embed_timeout = embed_timeout

    async def retrieve(
        self,
        query: str,
        top_k: int = 5,
        max_chars: int = 6000,
    ) -> RetrievedContext:
        """Retrieve gated, attributed context for a query."""
        if not query.strip():
            return RetrievedContext()

        embedding_result = await self._embedding_service.embed(
            query, timeout=self._embed_timeout
        )
        matches = self._vector_store.search(embedding_result.embedding, k=top_k)
        top_score = matches[0].score if matches else None

        if not passes_relevance_gate(matches, self._relevance_threshold):
            track_retrieval_request(0, top_score, gate_passed=False)
            logger.debug(
                "No match cleared the relevance gate",
                extra={
                    "query_length": len(query),
                    "candidates": len(matches),
                    "top_score": top_score,
                },
            )
            return RetrievedContext(top_score=top_score)

        context_text = assemble_context(matches, max_chars)
        sources = [
            SourceReference(doc_id=match.doc_id, source=match.source, score=match.score)
            for match in matches
        ]
        track_retrieval_request(len(matches), top_score, gate_passed=True)

        logger.debug(
            f"Retrieved {len(matches)} matches for query",
            extra={
                "query_length": len(query),
                "top_k": top_k,
                "top_score": top_score,
                "context_chars": len(context_text),
            },
        )

        return RetrievedContext(
            context_text=context_text,
            sources=sources,
            matches=matches,
            top_score=top_score,
        )

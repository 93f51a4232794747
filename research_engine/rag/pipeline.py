"""Research assistant: the handle request handlers work through."""

from research_engine.config import Settings, get_settings
from research_engine.documents.chunker import CharacterChunker
from research_engine.documents.ingest import CorpusIngestor
from research_engine.documents.models import Document
from research_engine.embeddings.service import EmbeddingService, create_embedding_service
from research_engine.llm.client import LLMClient, create_llm_client
from research_engine.llm.models import Message, Role
from research_engine.llm.prompts import ChatPromptTemplate, ReportPromptTemplate
from research_engine.logging_config import get_logger
from research_engine.rag.models import ChatAnswer, ChatQuery, ReportQuery
from research_engine.reports.models import ReportDocument
from research_engine.reports.synthesis import ReportSynthesizer
from research_engine.retrieval.models import RetrievedContext
from research_engine.retrieval.retriever import ContextRetriever
from research_engine.vectorstore.models import DocumentRecord
from research_engine.vectorstore.service import VectorStore

logger = get_logger(__name__)

NO_COMPLETION_REPLY = (
    "I'm sorry, I couldn't generate a response right now. Please try again shortly."
)


class ResearchAssistant:
    """Bundles the corpus, providers, retriever and synthesizer.

    One instance is built at startup and shared by all requests.
    """

    def __init__(
        self,
        settings: Settings,
        vector_store: VectorStore,
        embedding_service: EmbeddingService,
        llm_client: LLMClient,
        chat_prompt: ChatPromptTemplate | None = None,
        chunker: CharacterChunker | None = None,
    ) -> None:
        self.settings = settings
        self.vector_store = vector_store
        self.embedding_service = embedding_service
        self.llm_client = llm_client
        self._chat_prompt = chat_prompt or ChatPromptTemplate()

        self.retriever = ContextRetriever(
            embedding_service=embedding_service,
            vector_store=vector_store,
            relevance_threshold=settings.retrieval.relevance_threshold,
            embed_timeout=settings.embedding.timeout,
        )
        self.synthesizer = ReportSynthesizer(
            llm_client=llm_client,
            prompt_template=ReportPromptTemplate(
                analyst=settings.report.analyst,
                analyst_email=settings.report.analyst_email,
                target_period=settings.report.target_period,
            ),
            completion_timeout=settings.llm.timeout,
        )
        self.ingestor = CorpusIngestor(
            embedding_service=embedding_service,
            vector_store=vector_store,
            chunker=chunker,
        )

    async def retrieve(self, query: str, k: int | None = None) -> RetrievedContext:
        """Retrieve gated context within the chat budget."""
        return await self.retriever.retrieve(
            query,
            top_k=k if k is not None else self.settings.retrieval.top_k,
            max_chars=self.settings.retrieval.chat_context_chars,
        )

    async def synthesize_report(
        self,
        company_name: str,
        user_prompt: str | None,
        context: str,
    ) -> ReportDocument:
        return await self.synthesizer.synthesize(
            company_name,
            user_prompt=user_prompt,
            context=context,
        )

    def build_chat_messages(self, query: ChatQuery, context: str) -> list[Message]:
        """System prompt, then the most recent history, then the user message."""
        limit = self.settings.retrieval.history_limit
        history = query.history[-limit:] if limit > 0 else []
        return [
            Message(role=Role.SYSTEM, content=self._chat_prompt.format(context=context)),
            *history,
            Message(role=Role.USER, content=query.message),
        ]

    async def chat(self, query: ChatQuery) -> ChatAnswer:
        """Answer a chat message with gated corpus context."""
        logger.info(
            "Processing chat message",
            extra={
                "message_length": len(query.message),
                "history_turns": len(query.history),
                "top_k": query.top_k,
            },
        )

        retrieved = await self.retrieve(query.message, k=query.top_k)
        messages = self.build_chat_messages(query, retrieved.context_text)

        reply = await self.llm_client.complete(messages, timeout=self.settings.llm.timeout)
        if reply is None:
            reply = NO_COMPLETION_REPLY

        logger.info(
            "Chat message answered",
            extra={
                "sources_count": len(retrieved.sources),
                "context_chars": len(retrieved.context_text),
            },
        )

        return ChatAnswer(
            reply=reply,
            sources=retrieved.sources,
            context_used=not retrieved.is_empty,
            model=self.llm_client.model_name,
            mock=self.llm_client.mode == "mock",
        )

    async def create_report(self, query: ReportQuery) -> ReportDocument:
        """Retrieve context for a company and synthesize its report."""
        logger.info("Creating report", extra={"company": query.company_name})

        retrieved = await self.retriever.retrieve(
            query.company_name,
            top_k=self.settings.retrieval.report_top_k,
            max_chars=self.settings.retrieval.report_context_chars,
        )
        return await self.synthesize_report(
            query.company_name,
            query.user_prompt,
            retrieved.context_text,
        )

    async def ingest(self, document: Document) -> list[DocumentRecord]:
        return await self.ingestor.ingest(document)

    async def close(self) -> None:
        """Close provider HTTP clients."""
        await self.llm_client.close()
        await self.embedding_service.close()


def build_research_assistant(settings: Settings | None = None) -> ResearchAssistant:
    """Build the assistant, loading the persisted corpus.

    Providers without credentials are built in mock mode.
    """
    settings = settings or get_settings()
    vector_store = VectorStore(settings.vector_store)
    embedding_service = create_embedding_service(settings.embedding)
    llm_client = create_llm_client(settings.llm)

    logger.info(
        "Research assistant ready",
        extra={
            "llm_mode": llm_client.mode,
            "llm_model": llm_client.model_name,
            "embedding_mode": embedding_service.mode,
            "embedding_model": embedding_service.model_name,
            "corpus_size": len(vector_store),
        },
    )

    return ResearchAssistant(
        settings=settings,
        vector_store=vector_store,
        embedding_service=embedding_service,
        llm_client=llm_client,
    )

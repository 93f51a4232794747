"""API routes for chat, reports and corpus management."""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from research_engine.api.dependencies import get_assistant
from research_engine.documents.models import Document, DocumentMetadata
from research_engine.llm.models import Message, Role
from research_engine.rag.models import ChatAnswer, ChatQuery, ReportQuery
from research_engine.rag.pipeline import ResearchAssistant
from research_engine.reports.models import ReportDocument

router = APIRouter(prefix="/api/v1", tags=["Research"])


class ChatRequest(BaseModel):
    """Request body for a chat turn."""

    message: str = Field(min_length=1, description="User message")
    history: list[Message] = Field(default_factory=list, description="Prior turns")
    top_k: int = Field(default=5, ge=1, le=50, description="Matches to consider")


class ChatResponse(BaseModel):
    """Response for a chat turn."""

    response: str = Field(description="Assistant reply")
    message: Message = Field(description="Reply as an assistant message")
    sources: list[dict[str, Any]] = Field(description="Source attributions")
    context_used: bool = Field(description="Whether corpus context was used")
    model: str = Field(description="Model used")
    mock: bool = Field(description="Mock provider reply")


class ReportRequest(BaseModel):
    """Request body for report creation."""

    company_name: str = Field(min_length=1, description="Company to cover")
    prompt: str | None = Field(default=None, description="Instruction for the model")


class ReportResponse(BaseModel):
    """Report document returned to the caller."""

    report_id: str = Field(description="Report identifier")
    company_name: str = Field(description="Company covered")
    structured: bool = Field(description="Whether the model output parsed")
    report: dict[str, Any] | None = Field(description="Structured report, camelCase keys")
    html: str = Field(description="Rendered report HTML")


class IngestRequest(BaseModel):
    """Request body for document ingestion."""

    content: str = Field(min_length=1, description="Document content to ingest")
    source: str = Field(min_length=1, description="Source identifier")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional metadata",
    )


class IngestResponse(BaseModel):
    """Response from document ingestion."""

    success: bool = Field(description="Whether ingestion succeeded")
    chunks_created: int = Field(description="Number of chunks created")
    doc_ids: list[str] = Field(description="Identifiers of the stored chunks")
    source: str = Field(description="Source identifier")


@router.post("/chat", response_model=ChatResponse)
async def chat_endpoint(
    request: ChatRequest,
    assistant: ResearchAssistant = Depends(get_assistant),
) -> ChatResponse:
    """Answer a chat message with corpus context when relevant."""
    answer = await assistant.chat(chat_request_to_query(request))
    return chat_answer_to_response(answer)


@router.post("/reports", response_model=ReportResponse)
async def report_endpoint(
    request: ReportRequest,
    assistant: ResearchAssistant = Depends(get_assistant),
) -> ReportResponse:
    """Generate an equity research report for a company."""
    document = await assistant.create_report(
        ReportQuery(company_name=request.company_name, user_prompt=request.prompt)
    )
    return report_document_to_response(document)


@router.post("/ingest", response_model=IngestResponse)
async def ingest_endpoint(
    request: IngestRequest,
    assistant: ResearchAssistant = Depends(get_assistant),
) -> IngestResponse:
    """Chunk, embed and store a document."""
    document = Document(
        content=request.content,
        metadata=DocumentMetadata(source=request.source, extra=request.metadata),
    )
    records = await assistant.ingest(document)
    return IngestResponse(
        success=True,
        chunks_created=len(records),
        doc_ids=[r.doc_id for r in records],
        source=request.source,
    )


@router.get("/corpus/stats")
async def corpus_stats_endpoint(
    assistant: ResearchAssistant = Depends(get_assistant),
) -> dict[str, Any]:
    """Report corpus size and provider modes."""
    return {
        **assistant.vector_store.stats(),
        "embedding_mode": assistant.embedding_service.mode,
        "llm_mode": assistant.llm_client.mode,
    }


def chat_request_to_query(request: ChatRequest) -> ChatQuery:
    """Convert API ChatRequest to internal ChatQuery."""
    return ChatQuery(message=request.message, history=request.history, top_k=request.top_k)


def chat_answer_to_response(answer: ChatAnswer) -> ChatResponse:
    """Convert internal ChatAnswer to API ChatResponse."""
    return ChatResponse(
        response=answer.reply,
        message=Message(role=Role.ASSISTANT, content=answer.reply),
        sources=[s.model_dump() for s in answer.sources],
        context_used=answer.context_used,
        model=answer.model,
        mock=answer.mock,
    )


def report_document_to_response(document: ReportDocument) -> ReportResponse:
    """Convert internal ReportDocument to API ReportResponse."""
    return ReportResponse(
        report_id=document.report_id,
        company_name=document.company_name,
        structured=document.structured,
        report=document.report.model_dump(by_alias=True) if document.report else None,
        html=document.html,
    )

"""Assistant request and response models."""

from pydantic import BaseModel, Field

from research_engine.llm.models import Message
from research_engine.retrieval.models import SourceReference


class ChatQuery(BaseModel):
    """Input for a chat turn.

    Attributes:
        message: The user's message.
        history: Prior turns, oldest first.
        top_k: Number of corpus matches to consider.
    """

    message: str = Field(min_length=1, description="User message")
    history: list[Message] = Field(default_factory=list, description="Prior turns")
    top_k: int = Field(default=5, ge=1, le=50, description="Matches to consider")


class ChatAnswer(BaseModel):
    """Reply for a chat turn.

    Attributes:
        reply: Assistant reply text.
        sources: Provenance of the context used.
        context_used: Whether any context cleared the relevance gate.
        model: Completion model name.
        mock: True when the completion provider is in mock mode.
    """

    reply: str = Field(description="Assistant reply")
    sources: list[SourceReference] = Field(default_factory=list, description="Provenance")
    context_used: bool = Field(default=False, description="Context cleared the gate")
    model: str = Field(description="Completion model used")
    mock: bool = Field(default=False, description="Mock provider reply")


class ReportQuery(BaseModel):
    """Input for report creation.

    Attributes:
        company_name: Company to cover; also used as the retrieval query.
        user_prompt: Optional instruction passed to the model.
    """

    company_name: str = Field(min_length=1, description="Company to cover")
    user_prompt: str | None = Field(default=None, description="Instruction for the model")

"""Completion client module."""

from research_engine.llm.client import (
    LLMClient,
    MockLLMClient,
    OpenAICompatibleClient,
    create_llm_client,
)
from research_engine.llm.models import GenerationResult, Message, Role
from research_engine.llm.prompts import (
    ChatPromptTemplate,
    PromptTemplate,
    ReportPromptTemplate,
)

__all__ = [
    "ChatPromptTemplate",
    "GenerationResult",
    "LLMClient",
    "Message",
    "MockLLMClient",
    "OpenAICompatibleClient",
    "PromptTemplate",
    "ReportPromptTemplate",
    "Role",
    "create_llm_client",
]

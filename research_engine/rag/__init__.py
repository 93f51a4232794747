"""Research assistant module."""

from research_engine.rag.models import ChatAnswer, ChatQuery, ReportQuery
from research_engine.rag.pipeline import (
    NO_COMPLETION_REPLY,
    ResearchAssistant,
    build_research_assistant,
)

__all__ = [
    "NO_COMPLETION_REPLY",
    "ChatAnswer",
    "ChatQuery",
    "ReportQuery",
    "ResearchAssistant",
    "build_research_assistant",
]

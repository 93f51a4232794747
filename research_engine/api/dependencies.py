"""Request dependencies."""

from fastapi import Request

from research_engine.rag.pipeline import ResearchAssistant, build_research_assistant


def get_assistant(request: Request) -> ResearchAssistant:
    """Return the shared assistant, building it on first use.

    The lifespan normally builds it; the lazy path covers servers started
    without lifespan events.
    """
    assistant: ResearchAssistant | None = getattr(request.app.state, "assistant", None)
    if assistant is None:
        assistant = build_research_assistant()
        request.app.state.assistant = assistant
    return assistant

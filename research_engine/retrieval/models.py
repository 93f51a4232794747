"""Retrieval data models."""

from pydantic import BaseModel, Field

from research_engine.vectorstore.models import RetrievedMatch


class SourceReference(BaseModel):
    """Provenance of a passage included in the context.

    Attributes:
        doc_id: Record identifier.
        source: Source document identifier.
        score: Similarity to the query.
    """

    doc_id: str = Field(description="Record identifier")
    source: str = Field(description="Source document identifier")
    score: float = Field(description="Similarity score")


class RetrievedContext(BaseModel):
    """Bounded, attributed context assembled for a prompt.

    Attributes:
        context_text: Passages joined and cut to the character budget; empty
            when nothing cleared the relevance gate.
        sources: Provenance for every included match.
        matches: The included matches.
        top_score: Best score seen, before gating (None for no matches).
    """

    context_text: str = Field(default="", description="Assembled context")
    sources: list[SourceReference] = Field(default_factory=list, description="Provenance")
    matches: list[RetrievedMatch] = Field(default_factory=list, description="Included matches")
    top_score: float | None = Field(default=None, description="Best score before gating")

    @property
    def is_empty(self) -> bool:
        return not self.context_text

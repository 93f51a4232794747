"""Vector store data models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DocumentRecord(BaseModel):
    """A unit of retrievable knowledge.

    Attributes:
        doc_id: Unique identifier, immutable once created.
        text: Chunked passage content.
        meta: Provenance fields (at least ``source``), passed through untouched.
        embedding: Embedding vector; every record in a store has the same width.
    """

    model_config = ConfigDict(frozen=True)

    doc_id: str = Field(min_length=1, description="Unique record identifier")
    text: str = Field(min_length=1, description="Passage content")
    meta: dict[str, Any] = Field(default_factory=dict, description="Provenance metadata")
    embedding: list[float] = Field(min_length=1, description="Embedding vector")

    @property
    def source(self) -> str:
        """Source identifier, falling back to the document id."""
        return str(self.meta.get("source", self.doc_id))

    @field_validator("text")
    @classmethod
    def _text_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("text must not be blank")
        return value

    def metadata_entry(self) -> dict[str, Any]:
        """Fields written to the metadata file."""
        return {"doc_id": self.doc_id, "text": self.text, "meta": self.meta}


class RetrievedMatch(BaseModel):
    """A document record scored against a query.

    Attributes:
        record: The matched record.
        score: Cosine similarity to the query.
    """

    record: DocumentRecord = Field(description="Matched record")
    score: float = Field(description="Cosine similarity")

    @property
    def doc_id(self) -> str:
        return self.record.doc_id

    @property
    def text(self) -> str:
        return self.record.text

    @property
    def source(self) -> str:
        return self.record.source

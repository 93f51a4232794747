"""Corpus document models."""

from typing import Any

from pydantic import BaseModel, Field


class DocumentMetadata(BaseModel):
    """Provenance of a source document.

    Attributes:
        source: Source identifier shown to users (filing name, path, URL).
        extra: Additional metadata copied onto every chunk.
    """

    source: str = Field(min_length=1, description="Source identifier")
    extra: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional metadata fields",
    )


class Document(BaseModel):
    """A source document before chunking.

    Attributes:
        content: The text content of the document.
        metadata: Associated metadata.
    """

    content: str = Field(description="Text content of the document")
    metadata: DocumentMetadata = Field(description="Document metadata")

    @classmethod
    def from_text(cls, content: str, source: str, **extra: Any) -> "Document":
        """Create a document from text content.

        Args:
            content: The text content.
            source: Source identifier.
            **extra: Additional metadata.

        Returns:
            New Document instance.
        """
        return cls(content=content, metadata=DocumentMetadata(source=source, extra=extra))

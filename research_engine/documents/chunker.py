"""Text chunking for corpus ingestion."""

from typing import Any

from pydantic import BaseModel, Field

from research_engine.documents.models import Document


class Chunk(BaseModel):
    """A passage cut from a document.

    Attributes:
        content: The text content of the chunk.
        source: Source identifier of the parent document.
        index: Position of this chunk in the sequence.
        start_char: Starting character position in original document.
        end_char: Ending character position in original document.
        extra: Metadata inherited from the document.
    """

    content: str = Field(description="Text content of the chunk")
    source: str = Field(description="Parent document source")
    index: int = Field(description="Chunk index in sequence")
    start_char: int = Field(description="Start position in original document")
    end_char: int = Field(description="End position in original document")
    extra: dict[str, Any] = Field(default_factory=dict, description="Inherited metadata")

    def to_meta(self) -> dict[str, Any]:
        """Metadata stored with the chunk's document record."""
        return {
            **self.extra,
            "source": self.source,
            "chunk_index": self.index,
            "start_char": self.start_char,
            "end_char": self.end_char,
        }


class ChunkerConfig(BaseModel):
    """Configuration for text chunking.

    Attributes:
        chunk_size: Target size of each chunk in characters.
        chunk_overlap: Number of characters to overlap between chunks.
        min_chunk_size: Smallest chunk worth breaking at whitespace for.
    """

    chunk_size: int = Field(default=1000, ge=100, description="Target chunk size")
    chunk_overlap: int = Field(default=200, ge=0, description="Overlap between chunks")
    min_chunk_size: int = Field(default=100, ge=10, description="Minimum chunk size")

    def model_post_init(self, __context: Any) -> None:
        """Validate overlap is less than chunk size."""
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be less than chunk_size")


class CharacterChunker:
    """Chunk text by character count with overlap.

    Breaks at the last whitespace inside the window when one exists past
    ``min_chunk_size``.
    """

    def __init__(self, config: ChunkerConfig | None = None) -> None:
        self.config = config or ChunkerConfig()

    def chunk(self, document: Document) -> list[Chunk]:
        """Split document by character count.

        Args:
            document: Document to chunk.

        Returns:
            List of non-empty chunks in document order.
        """
        text = document.content
        if not text.strip():
            return []

        chunks: list[Chunk] = []
        start = 0

        while start < len(text):
            end = min(start + self.config.chunk_size, len(text))

            if end < len(text):
                last_space = text.rfind(" ", start, end)
                if last_space > start + self.config.min_chunk_size:
                    end = last_space + 1

            chunk_text = text[start:end].strip()
            if chunk_text:
                chunks.append(
                    Chunk(
                        content=chunk_text,
                        source=document.metadata.source,
                        index=len(chunks),
                        start_char=start,
                        end_char=end,
                        extra=dict(document.metadata.extra),
                    )
                )

            if end >= len(text):
                break
            # Overlap must still move the window forward.
            start = max(end - self.config.chunk_overlap, start + 1)

        return chunks

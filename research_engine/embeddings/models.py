"""Embedding data models."""

from pydantic import BaseModel, Field, model_validator


class EmbeddingResult(BaseModel):
    """One text's vector, real or degraded.

    A fallback result carries an all-zero vector of the configured width. It
    scores 0 against every record, so retrieval degrades to "no context"
    instead of failing the request.

    Attributes:
        text: The original text that was embedded.
        embedding: The embedding vector.
        model: The model used to generate the embedding.
        dimensions: Number of dimensions in the embedding.
        fallback: True when the vector is a stand-in for a failed remote call.
    """

    text: str = Field(description="Original text")
    embedding: list[float] = Field(description="Embedding vector")
    model: str = Field(description="Model used for embedding")
    dimensions: int = Field(ge=0, description="Vector dimensions")
    fallback: bool = Field(default=False, description="Degraded zero vector")

    @model_validator(mode="after")
    def _check_dimensions(self) -> "EmbeddingResult":
        if self.dimensions != len(self.embedding):
            raise ValueError(
                f"dimensions ({self.dimensions}) does not match "
                f"embedding length ({len(self.embedding)})"
            )
        return self

    @classmethod
    def zeros(cls, text: str, model: str, dimensions: int) -> "EmbeddingResult":
        """Fallback result with an all-zero vector."""
        return cls(
            text=text,
            embedding=[0.0] * dimensions,
            model=model,
            dimensions=dimensions,
            fallback=True,
        )

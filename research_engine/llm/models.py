"""Completion data models."""

from enum import Enum

from pydantic import BaseModel, Field


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """One chat turn, as sent to the completion API and accepted as history."""

    role: Role = Field(description="Message role")
    content: str = Field(description="Message content")

    def to_wire(self) -> dict[str, str]:
        """OpenAI chat-completions message object."""
        return {"role": self.role.value, "content": self.content}


class GenerationResult(BaseModel):
    """Reply from a completion call.

    Token counts are zero when the provider omits usage (and for mock replies).
    """

    content: str = Field(description="Generated text")
    model: str = Field(description="Model used")
    prompt_tokens: int = Field(default=0, description="Prompt token count")
    completion_tokens: int = Field(default=0, description="Completion token count")
    total_tokens: int = Field(default=0, description="Total token count")
    mock: bool = Field(default=False, description="Produced by the mock client")

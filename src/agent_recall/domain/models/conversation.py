"""Chat message models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class MessageRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str

    @classmethod
    def system(cls, content: str) -> "ChatMessage":
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "ChatMessage":
        return cls(role=MessageRole.ASSISTANT, content=content)

    def as_line(self) -> str:
        """Render as ``"role: content"``, the form stored in memory chunks."""
        return f"{self.role.value}: {self.content}"


class GenerationParams(BaseModel):
    """Parameters forwarded to the chat model for one completion."""

    model_config = ConfigDict(frozen=True)

    model: str | None = None
    temperature: float = 0.7
    max_tokens: int | None = None

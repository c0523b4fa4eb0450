"""Conversation message models and the per-turn ``Context``."""

from __future__ import annotations

import time
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter


def now_ms() -> int:
    """Current Unix time in milliseconds."""
    return int(time.time() * 1000)


# ── Content Blocks ─────────────────────────────────────────────────────────────


class TextContent(BaseModel):
    """A plain text block."""

    type: Literal["text"] = "text"
    text: str


class ToolCall(BaseModel):
    """A tool invocation emitted by the assistant."""

    type: Literal["toolCall"] = "toolCall"
    id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


AssistantContent = Annotated[TextContent | ToolCall, Field(discriminator="type")]


# ── Messages ───────────────────────────────────────────────────────────────────


class UserMessage(BaseModel):
    """A user turn. Content is either a bare string or a list of text blocks."""

    role: Literal["user"] = "user"
    content: str | list[TextContent]
    timestamp: int = Field(default_factory=now_ms)
    """Unix millisecond timestamp."""

    def text(self) -> str:
        if isinstance(self.content, str):
            return self.content
        return "".join(block.text for block in self.content)


class AssistantMessage(BaseModel):
    """An assistant turn, possibly carrying tool calls."""

    role: Literal["assistant"] = "assistant"
    content: list[AssistantContent] = Field(default_factory=list)
    timestamp: int = Field(default_factory=now_ms)

    def text(self) -> str:
        return "".join(block.text for block in self.content if isinstance(block, TextContent))

    def text_blocks(self) -> list[TextContent]:
        return [block for block in self.content if isinstance(block, TextContent)]

    def tool_calls(self) -> list[ToolCall]:
        return [block for block in self.content if isinstance(block, ToolCall)]


class ToolResultMessage(BaseModel):
    """
    The result of a tool call.

    ``tool_call_id`` must match the ``id`` of a ``ToolCall`` emitted by an
    earlier ``AssistantMessage`` in the same message sequence.
    """

    role: Literal["toolResult"] = "toolResult"
    tool_call_id: str
    tool_name: str = ""
    content: list[TextContent] = Field(default_factory=list)
    is_error: bool = False
    timestamp: int = Field(default_factory=now_ms)

    def text(self) -> str:
        return "".join(block.text for block in self.content)


# Closed union, discriminated on ``role``.
Message = Annotated[
    UserMessage | AssistantMessage | ToolResultMessage,
    Field(discriminator="role"),
]

message_adapter: TypeAdapter[Message] = TypeAdapter(Message)
"""Validates and (de)serialises a single ``Message`` of any role."""


class Context(BaseModel):
    """The full conversation state submitted to the LLM for one turn."""

    system_prompt: str | None = None
    messages: list[Message] = Field(default_factory=list)


class Session(BaseModel):
    """
    A chat's active conversation head.

    Compaction supersedes a session with a new ``id``; the old transcript stays
    addressable through ``transcript_ref`` for later memory extraction.
    """

    id: str
    chat_id: str
    transcript_ref: str

    def superseded_by(self, new_session_id: str) -> Session:
        """Return the session that replaces this one after compaction."""
        return Session(id=new_session_id, chat_id=self.chat_id, transcript_ref=new_session_id)

"""Models for per-turn context assembly."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class RetrievedChunk(BaseModel):
    """A search hit. Search results arrive sorted by descending ``relevance_score``."""

    text: str
    source_id: str = ""
    """Originating chat or knowledge source."""
    relevance_score: float = 0.0


class StoredMessage(BaseModel):
    """A raw chat turn as persisted by the message store."""

    text: str | None = None
    is_from_agent: bool = False
    timestamp: int | None = None


class RecentMessage(BaseModel):
    """A recent chat turn mapped to an LLM role."""

    role: Literal["user", "assistant"]
    content: str


class ContextOptions(BaseModel):
    """Inputs to ``ContextBuilder.build_context()``."""

    query: str
    chat_id: str
    include_agent_memory: bool = True
    include_feed_history: bool = True
    search_all_chats: bool = False
    """Also search every other chat, not just ``chat_id``."""
    max_recent_messages: int | None = Field(default=None, ge=0)
    """None = ``RetrievalConfig.max_recent_messages`` (20)."""
    max_relevant_chunks: int | None = Field(default=None, ge=0)
    """None = ``RetrievalConfig.max_relevant_chunks`` (5)."""
    query_embedding: list[float] | None = None
    """Precomputed embedding of ``query``; skips the embedding call when set."""


class TurnContext(BaseModel):
    """The assembled per-turn input context."""

    recent_messages: list[RecentMessage] = Field(default_factory=list)
    relevant_knowledge: list[str] = Field(default_factory=list)
    relevant_feed: list[str] = Field(default_factory=list)
    estimated_tokens: int = 0

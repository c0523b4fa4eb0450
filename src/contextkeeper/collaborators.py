"""Narrow interfaces to the services contextkeeper depends on.

Concrete implementations live elsewhere (the host application, or
:mod:`contextkeeper.store` and :mod:`contextkeeper.compaction.summarizer`).
All methods are coroutines; each call is a suspension point.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from contextkeeper.models.message import Message
from contextkeeper.models.retrieval import RetrievedChunk, StoredMessage
from contextkeeper.models.summary import SessionMemoryRequest, SummaryRequest, SummaryResult


@runtime_checkable
class MessageStore(Protocol):
    """Raw per-chat message persistence."""

    async def get_recent_messages(self, chat_id: str, limit: int) -> list[StoredMessage]:
        """Return at most ``limit`` most recent turns, newest last."""
        ...


@runtime_checkable
class EmbeddingProvider(Protocol):
    async def embed_query(self, text: str) -> list[float]:
        """Embed a query. Returns an empty vector when embeddings are disabled."""
        ...


@runtime_checkable
class HybridSearch(Protocol):
    """Keyword + vector fused retrieval. Results are sorted by descending relevance."""

    async def search_knowledge(
        self, query: str, embedding: list[float], *, limit: int
    ) -> list[RetrievedChunk]: ...

    async def search_messages(
        self,
        query: str,
        embedding: list[float],
        *,
        chat_id: str | None = None,
        limit: int,
    ) -> list[RetrievedChunk]:
        """Search stored chat messages; ``chat_id=None`` searches every chat."""
        ...


@runtime_checkable
class Summarizer(Protocol):
    async def summarize_with_fallback(self, request: SummaryRequest) -> SummaryResult:
        """Summarise ``request.messages``. Raises when no summary could be produced."""
        ...


@runtime_checkable
class TranscriptStore(Protocol):
    """Append-only message log keyed by session id."""

    async def append_to_transcript(self, session_id: str, message: Message) -> None: ...

    async def read_transcript(self, session_id: str) -> list[Message]: ...


@runtime_checkable
class DailyLog(Protocol):
    async def write_summary(self, text: str) -> None: ...


@runtime_checkable
class SessionMemoryHook(Protocol):
    async def save_session_memory(self, request: SessionMemoryRequest) -> None:
        """Extract durable memory from a session that is about to be compacted."""
        ...

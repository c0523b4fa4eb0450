"""Per-turn context assembly from recent dialogue, long-term knowledge and chat history."""

from __future__ import annotations

from collections.abc import Awaitable
from typing import TypeVar

import structlog

from contextkeeper.collaborators import EmbeddingProvider, HybridSearch, MessageStore
from contextkeeper.context.reorder import reorder_for_edges, truncate_feed_message
from contextkeeper.fallback import Ok, attempt_async
from contextkeeper.models.config import RetrievalConfig
from contextkeeper.models.retrieval import (
    ContextOptions,
    RecentMessage,
    RetrievedChunk,
    StoredMessage,
    TurnContext,
)
from contextkeeper.tokens.estimator import heuristic_tokens

T = TypeVar("T")


class ContextBuilder:
    """
    Assembles the retrieved context handed to the LLM on each turn.

    Three sources are blended:

    1. **Recent messages** — the last ``max_recent_messages`` stored turns of
       the chat, verbatim.
    2. **Relevant knowledge** — long-term knowledge hits, reordered so the
       best hits sit at both edges of the list.
    3. **Relevant feed** — historical chat excerpts that are not already part
       of the recent messages, truncated to ``feed_message_max_chars``.

    Every source degrades independently: a failing search or embedding call
    is logged and treated as empty, never raised. If the feed ends up empty
    while recent history exists, the latest recent turns are used as the feed.
    """

    def __init__(
        self,
        message_store: MessageStore,
        embedder: EmbeddingProvider,
        search: HybridSearch,
        config: RetrievalConfig | None = None,
    ) -> None:
        self._messages = message_store
        self._embedder = embedder
        self._search = search
        self._config = config or RetrievalConfig()
        self._logger = structlog.get_logger("contextkeeper.context_builder")

    async def build_context(self, options: ContextOptions) -> TurnContext:
        """
        Build the retrieved context for one turn.

        The query embedding is computed at most once and shared by the
        knowledge and feed searches.
        """
        max_recent = (
            options.max_recent_messages
            if options.max_recent_messages is not None
            else self._config.max_recent_messages
        )
        max_chunks = (
            options.max_relevant_chunks
            if options.max_relevant_chunks is not None
            else self._config.max_relevant_chunks
        )

        embedding = options.query_embedding
        if embedding is None:
            embedding = await self._embed(options.query)

        stored = await self._recent(options.chat_id, max_recent)
        recent_messages = [
            RecentMessage(role="assistant" if m.is_from_agent else "user", content=m.text or "")
            for m in stored
        ]

        relevant_knowledge: list[str] = []
        if options.include_agent_memory:
            hits = await self._guarded(
                "knowledge_search_failed",
                self._search.search_knowledge(options.query, embedding, limit=max_chunks),
                [],
            )
            relevant_knowledge = reorder_for_edges([hit.text for hit in hits])

        relevant_feed: list[str] = []
        if options.include_feed_history:
            recent_texts = {m.text for m in stored if m.text}
            relevant_feed = await self._feed(options, embedding, max_chunks, recent_texts)

            if not relevant_feed and stored:
                relevant_feed = self._recent_as_feed(stored, max_chunks)

        all_text = (
            " ".join(m.content for m in recent_messages)
            + " ".join(relevant_knowledge)
            + " ".join(relevant_feed)
        )
        context = TurnContext(
            recent_messages=recent_messages,
            relevant_knowledge=relevant_knowledge,
            relevant_feed=relevant_feed,
            estimated_tokens=heuristic_tokens(len(all_text)),
        )
        self._logger.debug(
            "context_built",
            chat_id=options.chat_id,
            recent=len(recent_messages),
            knowledge=len(relevant_knowledge),
            feed=len(relevant_feed),
            estimated_tokens=context.estimated_tokens,
        )
        return context

    async def _feed(
        self,
        options: ContextOptions,
        embedding: list[float],
        limit: int,
        recent_texts: set[str],
    ) -> list[str]:
        max_chars = self._config.feed_message_max_chars
        feed: list[str] = []

        chat_hits = await self._guarded(
            "feed_search_failed",
            self._search.search_messages(
                options.query, embedding, chat_id=options.chat_id, limit=limit
            ),
            [],
        )
        for hit in chat_hits:
            if hit.text not in recent_texts:
                feed.append(truncate_feed_message(hit.text, max_chars))

        if options.search_all_chats:
            global_hits: list[RetrievedChunk] = await self._guarded(
                "global_feed_search_failed",
                self._search.search_messages(options.query, embedding, limit=limit),
                [],
            )
            existing = set(feed)
            for hit in global_hits:
                truncated = truncate_feed_message(hit.text, max_chars)
                if truncated not in existing:
                    feed.append(f"[From chat {hit.source_id}]: {truncated}")

        return feed

    @staticmethod
    def _recent_as_feed(stored: list[StoredMessage], limit: int) -> list[str]:
        """Degenerate feed: the latest non-empty recent turns, labelled by sender."""
        if limit <= 0:
            return []
        texts = [m for m in stored if m.text][-limit:]
        return [f"[{'Agent' if m.is_from_agent else 'User'}]: {m.text}" for m in texts]

    async def _embed(self, query: str) -> list[float]:
        return await self._guarded("query_embedding_failed", self._embedder.embed_query(query), [])

    async def _recent(self, chat_id: str, limit: int) -> list[StoredMessage]:
        if limit <= 0:
            return []
        return await self._guarded(
            "recent_messages_failed",
            self._messages.get_recent_messages(chat_id, limit),
            [],
        )

    async def _guarded(self, event: str, awaitable: Awaitable[T], default: T) -> T:
        """Await a collaborator call; log ``event`` and return ``default`` on failure."""
        result = await attempt_async(awaitable)
        if isinstance(result, Ok):
            return result.value
        self._logger.warning(event, error=str(result.error))
        return default

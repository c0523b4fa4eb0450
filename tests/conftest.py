"""Shared fixtures for contextkeeper tests."""

from __future__ import annotations

from typing import Any

import pytest

from contextkeeper.compaction.manager import CompactionManager
from contextkeeper.events.bus import ContextEvent, EventBus
from contextkeeper.models.config import CompactionConfig
from contextkeeper.models.message import (
    AssistantMessage,
    Message,
    TextContent,
    ToolCall,
    ToolResultMessage,
    UserMessage,
)
from contextkeeper.models.retrieval import RetrievedChunk, StoredMessage
from contextkeeper.models.summary import (
    SessionMemoryRequest,
    SummarizerCredentials,
    SummaryRequest,
    SummaryResult,
)
from contextkeeper.tokens.estimator import TokenEstimator

# ── Message helpers ────────────────────────────────────────────────────────────


def make_user(text: str = "Hello", timestamp: int = 1_000) -> UserMessage:
    return UserMessage(content=text, timestamp=timestamp)


def make_assistant(
    text: str = "Hi there",
    tool_calls: list[str] | None = None,
    timestamp: int = 1_000,
) -> AssistantMessage:
    """Assistant message with optional tool calls, one per id in ``tool_calls``."""
    content: list[TextContent | ToolCall] = []
    if text:
        content.append(TextContent(text=text))
    for call_id in tool_calls or []:
        content.append(ToolCall(id=call_id, name="lookup", arguments={"q": call_id}))
    return AssistantMessage(content=content, timestamp=timestamp)


def make_tool_result(call_id: str, text: str = "ok", timestamp: int = 1_000) -> ToolResultMessage:
    return ToolResultMessage(
        tool_call_id=call_id,
        tool_name="lookup",
        content=[TextContent(text=text)],
        timestamp=timestamp,
    )


def make_dialogue(turns: int, start_ts: int = 1_000) -> list[Message]:
    """Alternating user/assistant messages, ``turns`` messages in total."""
    messages: list[Message] = []
    for i in range(turns):
        ts = start_ts + i
        if i % 2 == 0:
            messages.append(make_user(f"user message {i}", timestamp=ts))
        else:
            messages.append(make_assistant(f"assistant message {i}", timestamp=ts))
    return messages


# ── Fake collaborators ─────────────────────────────────────────────────────────


class FakeSummarizer:
    """Returns ``summary`` or raises ``error``; records every request."""

    def __init__(self, summary: str = "## User Intent\nTest.", error: Exception | None = None):
        self.summary = summary
        self.error = error
        self.requests: list[SummaryRequest] = []

    async def summarize_with_fallback(self, request: SummaryRequest) -> SummaryResult:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return SummaryResult(summary=self.summary, tokens_used=42, chunks_processed=1)


class FakeTranscriptStore:
    def __init__(self, calls: list[str] | None = None) -> None:
        self.transcripts: dict[str, list[Message]] = {}
        self.calls = calls if calls is not None else []

    async def append_to_transcript(self, session_id: str, message: Message) -> None:
        self.calls.append("append")
        self.transcripts.setdefault(session_id, []).append(message)

    async def read_transcript(self, session_id: str) -> list[Message]:
        return list(self.transcripts.get(session_id, []))


class FakeDailyLog:
    def __init__(self, error: Exception | None = None) -> None:
        self.entries: list[str] = []
        self.error = error

    async def write_summary(self, text: str) -> None:
        if self.error is not None:
            raise self.error
        self.entries.append(text)


class FakeSessionMemory:
    def __init__(self, calls: list[str] | None = None, error: Exception | None = None) -> None:
        self.requests: list[SessionMemoryRequest] = []
        self.calls = calls if calls is not None else []
        self.error = error

    async def save_session_memory(self, request: SessionMemoryRequest) -> None:
        self.calls.append("memory")
        self.requests.append(request)
        if self.error is not None:
            raise self.error


class FakeMessageStore:
    def __init__(self, messages: list[StoredMessage] | None = None, error: Exception | None = None):
        self.messages = messages or []
        self.error = error
        self.limits: list[int] = []

    async def get_recent_messages(self, chat_id: str, limit: int) -> list[StoredMessage]:
        self.limits.append(limit)
        if self.error is not None:
            raise self.error
        return self.messages[-limit:]


class FakeEmbedder:
    def __init__(self, vector: list[float] | None = None, error: Exception | None = None):
        self.vector = vector if vector is not None else [0.1, 0.2, 0.3]
        self.error = error
        self.calls = 0

    async def embed_query(self, text: str) -> list[float]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.vector


class FakeSearch:
    """Canned hits: ``chat_hits`` for chat-scoped searches, ``global_hits`` otherwise."""

    def __init__(
        self,
        knowledge: list[RetrievedChunk] | None = None,
        chat_hits: list[RetrievedChunk] | None = None,
        global_hits: list[RetrievedChunk] | None = None,
        knowledge_error: Exception | None = None,
        feed_error: Exception | None = None,
    ) -> None:
        self.knowledge = knowledge or []
        self.chat_hits = chat_hits or []
        self.global_hits = global_hits or []
        self.knowledge_error = knowledge_error
        self.feed_error = feed_error
        self.embeddings_seen: list[list[float]] = []
        self.message_searches: list[dict[str, Any]] = []

    async def search_knowledge(
        self, query: str, embedding: list[float], *, limit: int
    ) -> list[RetrievedChunk]:
        self.embeddings_seen.append(embedding)
        if self.knowledge_error is not None:
            raise self.knowledge_error
        return self.knowledge[:limit]

    async def search_messages(
        self,
        query: str,
        embedding: list[float],
        *,
        chat_id: str | None = None,
        limit: int,
    ) -> list[RetrievedChunk]:
        self.embeddings_seen.append(embedding)
        self.message_searches.append({"chat_id": chat_id, "limit": limit})
        if self.feed_error is not None:
            raise self.feed_error
        hits = self.chat_hits if chat_id is not None else self.global_hits
        return hits[:limit]


# ── Fixtures ───────────────────────────────────────────────────────────────────


@pytest.fixture
def estimator():
    """TokenEstimator using the heuristic only (no tiktoken download in tests)."""
    e = TokenEstimator()
    e._force_heuristic = True
    return e


@pytest.fixture
def event_bus():
    """EventBus with a .collected list for asserting events."""
    bus = EventBus()
    collected: list[tuple[ContextEvent, dict[str, Any]]] = []

    def _collect(event: ContextEvent, payload: dict[str, Any]) -> None:
        collected.append((event, payload))

    bus.subscribe_all(_collect)
    bus.collected = collected  # type: ignore[attr-defined]
    return bus


@pytest.fixture
def credentials():
    return SummarizerCredentials(api_key="sk-test", provider="anthropic", utility_model="haiku")


@pytest.fixture
def call_log():
    """Shared list that fakes append to, for asserting call order."""
    return []


@pytest.fixture
def summarizer():
    return FakeSummarizer()


@pytest.fixture
def transcripts(call_log):
    return FakeTranscriptStore(call_log)


@pytest.fixture
def daily_log():
    return FakeDailyLog()


@pytest.fixture
def session_memory(call_log):
    return FakeSessionMemory(call_log)


@pytest.fixture
def compaction_config():
    return CompactionConfig(
        enabled=True,
        max_messages=None,
        max_tokens=1_000,
        keep_recent_messages=4,
        memory_flush_enabled=True,
        soft_threshold_tokens=500,
    )


@pytest.fixture
def manager(
    summarizer, transcripts, daily_log, session_memory, compaction_config, estimator, event_bus
):
    """CompactionManager wired to fakes, with deterministic session ids (sess_001, ...)."""
    counter = [0]

    def gen(prefix: str) -> str:
        counter[0] += 1
        return f"{prefix}_{counter[0]:03d}"

    return CompactionManager(
        summarizer,
        transcripts,
        daily_log,
        session_memory,
        config=compaction_config,
        token_estimator=estimator,
        event_bus=event_bus,
        id_generator=gen,
    )

"""Typed payload definitions for each ContextEvent."""

from __future__ import annotations

from typing import TypedDict


class MemoryFlushedPayload(TypedDict):
    """Payload for :attr:`ContextEvent.MEMORY_FLUSHED`."""

    session_id: str
    tokens: int
    """Estimated context tokens at flush time."""
    messages_previewed: int


class CompactionTriggeredPayload(TypedDict):
    """Payload for :attr:`ContextEvent.COMPACTION_TRIGGERED`."""

    session_id: str
    tokens: int
    message_count: int


class CompactionCompletedPayload(TypedDict):
    """Payload for :attr:`ContextEvent.COMPACTION_COMPLETED`."""

    session_id: str
    """The superseded session."""
    new_session_id: str
    """The session whose transcript holds the compacted context."""
    messages_before: int
    messages_after: int


class CompactionAbortedPayload(TypedDict):
    """Payload for :attr:`ContextEvent.COMPACTION_ABORTED`."""

    message_count: int
    cut_index: int
    """The last cut point tried before giving up."""
    reason: str


class SummaryFallbackPayload(TypedDict):
    """Payload for :attr:`ContextEvent.SUMMARY_FALLBACK_USED`."""

    compacted_message_count: int
    error: str

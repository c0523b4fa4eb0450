"""Configuration models for contextkeeper components."""

from __future__ import annotations

from pydantic import BaseModel, Field

from contextkeeper.models.limits import (
    COMPACTION_KEEP_RECENT,
    COMPACTION_MAX_MESSAGES,
    DEFAULT_CONTEXT_WINDOW,
    DEFAULT_MAX_RECENT_MESSAGES,
    DEFAULT_MAX_RELEVANT_CHUNKS,
    DEFAULT_MAX_SUMMARY_TOKENS,
    DEFAULT_MAX_TOKENS,
    DEFAULT_SOFT_THRESHOLD_TOKENS,
    FEED_MESSAGE_MAX_CHARS,
    MEMORY_FLUSH_RECENT_MESSAGES,
)


class CompactionConfig(BaseModel):
    """
    Configuration for the compaction manager.

    Owned by a ``CompactionManager``; may be updated between calls via
    ``CompactionManager.update_config()`` but is read as an immutable snapshot
    during a single compaction pass.
    """

    enabled: bool = True
    """Master switch for both the soft-threshold flush and compaction."""

    max_messages: int | None = Field(
        default=COMPACTION_MAX_MESSAGES,
        ge=1,
        description="Compact once the context holds at least this many messages. None = no limit.",
    )

    max_tokens: int | None = Field(
        default=DEFAULT_MAX_TOKENS,
        ge=1,
        description="Compact once the estimated token count reaches this value. None = no limit.",
    )

    keep_recent_messages: int | None = Field(
        default=COMPACTION_KEEP_RECENT,
        ge=1,
        description="Number of most recent messages preserved verbatim. None = 10.",
    )

    memory_flush_enabled: bool | None = True
    """Write a recent-context summary to the daily log once the soft threshold is crossed."""

    soft_threshold_tokens: int | None = Field(
        default=DEFAULT_SOFT_THRESHOLD_TOKENS,
        ge=1,
        description=(
            "Estimated token count that triggers the non-destructive memory flush. "
            "May exceed max_tokens; compaction still flushes first."
        ),
    )

    summary_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Seconds to wait for the summarizer before using the fallback summary.",
    )

    flush_recent_messages: int = Field(
        default=MEMORY_FLUSH_RECENT_MESSAGES,
        ge=1,
        description="How many of the latest messages are previewed in a memory flush.",
    )


class RetrievalConfig(BaseModel):
    """Defaults for per-turn context assembly."""

    feed_message_max_chars: int = Field(
        default=FEED_MESSAGE_MAX_CHARS,
        ge=1,
        description="Feed hits longer than this are cut and suffixed with '... [truncated]'.",
    )

    max_recent_messages: int = Field(default=DEFAULT_MAX_RECENT_MESSAGES, ge=0)

    max_relevant_chunks: int = Field(default=DEFAULT_MAX_RELEVANT_CHUNKS, ge=0)


class SummarizerConfig(BaseModel):
    """Configuration for the LiteLLM-backed summarizer."""

    default_model: str = "anthropic/claude-haiku-4-5"
    """Model used when the caller does not pass a utility model."""

    fallback_models: list[str] = Field(default_factory=list)
    """Tried in order after the primary model fails."""

    context_window: int = Field(default=DEFAULT_CONTEXT_WINDOW, ge=1_000)

    max_summary_tokens: int = Field(default=DEFAULT_MAX_SUMMARY_TOKENS, ge=64)

    input_fraction: float = Field(
        default=0.75,
        gt=0.0,
        le=0.95,
        description="Share of the context window a single summarization chunk may occupy.",
    )

    temperature: float = Field(default=0.2, ge=0.0, le=2.0)


class StoreConfig(BaseModel):
    """Configuration for the SQLite transcript store."""

    db_path: str = Field(
        default="~/.contextkeeper/transcripts.db",
        description="Path to the SQLite database file. ~ is expanded at runtime.",
    )

    wal_mode: bool = True
    """Use WAL journal mode for better concurrent read performance."""

    connection_timeout: float = 30.0
    """Seconds to wait for the database connection before raising."""


class ContextKeeperConfig(BaseModel):
    """
    Top-level configuration.

    Example::

        config = ContextKeeperConfig(
            compaction=CompactionConfig(max_tokens=50_000, soft_threshold_tokens=30_000),
            retrieval=RetrievalConfig(feed_message_max_chars=1_000),
        )
    """

    compaction: CompactionConfig = Field(default_factory=CompactionConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    summarizer: SummarizerConfig = Field(default_factory=SummarizerConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)

    @classmethod
    def default(cls) -> ContextKeeperConfig:
        """Return a config instance with all defaults."""
        return cls()

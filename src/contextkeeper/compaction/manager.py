"""Compaction orchestration: soft-threshold flush, clean-cut compaction, session rollover.

Per session the manager drives a small state machine::

    Active ──soft──▶ Active+Flushed ──hard──▶ Compacting ──▶ Active (new id)
                                                  │
                                                  └─ no clean cut ──▶ Active (same id)

- **Soft threshold** (``soft_threshold_tokens``) writes a short recent-context
  summary to the daily log. Non-destructive; the session id is unchanged.
- **Hard threshold** (``max_messages`` / ``max_tokens``) replaces the oldest
  messages with one summary message and moves the conversation to a new
  session id whose transcript holds the compacted context.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable
from typing import Any

import structlog

from contextkeeper.collaborators import DailyLog, SessionMemoryHook, Summarizer, TranscriptStore
from contextkeeper.compaction.cut import find_clean_cut
from contextkeeper.compaction.summary import (
    SUMMARY_INSTRUCTIONS,
    build_fallback_message,
    build_summary_message,
    format_memory_flush,
)
from contextkeeper.events.bus import ContextEvent, EventBus
from contextkeeper.fallback import Err, Ok, attempt_async
from contextkeeper.ids import make_id
from contextkeeper.models.config import CompactionConfig
from contextkeeper.models.limits import (
    COMPACTION_KEEP_RECENT,
    DEFAULT_CONTEXT_WINDOW,
    DEFAULT_MAX_SUMMARY_TOKENS,
    FALLBACK_SOFT_THRESHOLD_TOKENS,
)
from contextkeeper.models.message import Context, Message, UserMessage
from contextkeeper.models.summary import (
    SessionMemoryRequest,
    SummarizerCredentials,
    SummaryRequest,
    SummaryResult,
)
from contextkeeper.tokens.estimator import TokenEstimator


class CompactionManager:
    """
    Decides when to flush and when to compact, and performs compaction.

    Guarantees:
    - ``compact_context()`` never keeps a tool result whose tool call was
      compacted away. If no such cut exists within 50 steps the context is
      returned untouched.
    - Summarizer failure (or timeout) never blocks compaction; a fixed-text
      summary is used instead.
    - Within ``compact_and_save_transcript()`` the session-memory hook runs
      before compaction, and the new transcript is written after it.

    The config is owned by the manager and may be changed between calls with
    ``update_config()``; each pass works on a snapshot.

    Example::

        manager = CompactionManager(summarizer, transcripts, daily_log, memory_hook)
        new_id = await manager.check_and_compact(session_id, context, creds, chat_id="42")
        if new_id is not None:
            session_id = new_id
    """

    def __init__(
        self,
        summarizer: Summarizer,
        transcript_store: TranscriptStore,
        daily_log: DailyLog | None = None,
        session_memory: SessionMemoryHook | None = None,
        *,
        config: CompactionConfig | None = None,
        token_estimator: TokenEstimator | None = None,
        event_bus: EventBus | None = None,
        id_generator: Callable[[str], str] | None = None,
    ) -> None:
        self._summarizer = summarizer
        self._transcripts = transcript_store
        self._daily_log = daily_log
        self._session_memory = session_memory
        self._config = config or CompactionConfig()
        self._config_lock = threading.Lock()
        self._estimator = token_estimator or TokenEstimator()
        self._event_bus = event_bus or EventBus()
        self._id_gen = id_generator or make_id
        self._logger = structlog.get_logger("contextkeeper.compaction")

    # ── Config ──────────────────────────────────────────────────────────────────

    def get_config(self) -> CompactionConfig:
        """Return a snapshot of the current config."""
        with self._config_lock:
            return self._config.model_copy()

    def update_config(self, **changes: Any) -> CompactionConfig:
        """
        Shallow-merge ``changes`` into the config and return the new snapshot.

        Raises:
            pydantic.ValidationError: If the merged config is invalid. The
                previous config is kept.
        """
        with self._config_lock:
            merged = {**self._config.model_dump(), **changes}
            self._config = CompactionConfig.model_validate(merged)
            return self._config.model_copy()

    # ── Threshold checks ────────────────────────────────────────────────────────

    def should_flush_memory(
        self,
        context: Context,
        config: CompactionConfig | None = None,
        token_count: int | None = None,
    ) -> bool:
        """
        Return True once the soft threshold is crossed and flushing is enabled.

        Args:
            context: The current context.
            config: Config to evaluate against. Defaults to the manager's.
            token_count: Precomputed estimate; computed heuristically when None.
        """
        config = config or self.get_config()
        if not config.enabled or not config.memory_flush_enabled:
            return False

        tokens = token_count if token_count is not None else self._estimate(context)
        soft_threshold = config.soft_threshold_tokens or FALLBACK_SOFT_THRESHOLD_TOKENS
        if tokens >= soft_threshold:
            self._logger.info("memory_flush_needed", tokens=tokens, soft_threshold=soft_threshold)
            return True
        return False

    def should_compact(
        self,
        context: Context,
        config: CompactionConfig | None = None,
        token_count: int | None = None,
    ) -> bool:
        """Return True once the message or token limit is reached."""
        config = config or self.get_config()
        if not config.enabled:
            return False

        message_count = len(context.messages)
        if config.max_messages and message_count >= config.max_messages:
            self._logger.info(
                "compaction_needed",
                message_count=message_count,
                max_messages=config.max_messages,
            )
            return True

        if config.max_tokens:
            tokens = token_count if token_count is not None else self._estimate(context)
            if tokens >= config.max_tokens:
                self._logger.info("compaction_needed", tokens=tokens, max_tokens=config.max_tokens)
                return True

        return False

    # ── Compaction ──────────────────────────────────────────────────────────────

    async def compact_context(
        self,
        context: Context,
        config: CompactionConfig | None,
        credentials: SummarizerCredentials,
    ) -> Context:
        """
        Replace all but the most recent messages with a single summary message.

        Returns ``context`` itself (not a copy) when there is nothing to
        compact or no clean cut point exists; otherwise a new ``Context``
        whose messages are ``[summary, *recent]``.
        """
        config = config or self.get_config()
        keep_count = config.keep_recent_messages or COMPACTION_KEEP_RECENT
        messages = context.messages

        if len(messages) <= keep_count:
            return context

        search = find_clean_cut(messages, keep_count)
        if not search.clean:
            self._logger.warning(
                "clean_cut_not_found",
                message_count=len(messages),
                cut_index=search.cut_index,
                iterations=search.iterations,
            )
            self._event_bus.publish(
                ContextEvent.COMPACTION_ABORTED,
                {
                    "message_count": len(messages),
                    "cut_index": search.cut_index,
                    "reason": "orphaned_tool_results",
                },
            )
            return context
        if search.cut_index == 0:
            self._logger.info("compaction_nothing_to_compact", message_count=len(messages))
            return context

        old_messages = list(messages[: search.cut_index])
        recent_messages = list(messages[search.cut_index :])
        self._logger.info(
            "compacting_context",
            old_messages=len(old_messages),
            recent_messages=len(recent_messages),
            cut_iterations=search.iterations,
        )

        result = await attempt_async(self._summarize(old_messages, config, credentials))
        summary_message: UserMessage
        if isinstance(result, Ok):
            self._logger.info(
                "summary_created",
                tokens_used=result.value.tokens_used,
                chunks_processed=result.value.chunks_processed,
            )
            summary_message = build_summary_message(old_messages, result.value.summary)
        else:
            self._logger.error("summarization_failed", error=repr(result.error))
            self._event_bus.publish(
                ContextEvent.SUMMARY_FALLBACK_USED,
                {"compacted_message_count": len(old_messages), "error": repr(result.error)},
            )
            summary_message = build_fallback_message(old_messages)

        return Context(
            system_prompt=context.system_prompt,
            messages=[summary_message, *recent_messages],
        )

    async def compact_and_save_transcript(
        self,
        session_id: str,
        context: Context,
        config: CompactionConfig | None,
        credentials: SummarizerCredentials,
        chat_id: str | None = None,
    ) -> str:
        """
        Compact ``context`` into a new session and return the new session id.

        Steps, strictly in order:
        1. If ``chat_id`` is given, run the session-memory hook on the full
           (uncompacted) context.
        2. Compact the context.
        3. Append every resulting message to the new session's transcript.
        """
        new_session_id = self._id_gen("sess")
        self._logger.info(
            "creating_compacted_transcript",
            session_id=session_id,
            new_session_id=new_session_id,
        )

        if chat_id is not None and self._session_memory is not None:
            await self._save_session_memory(
                self._session_memory, session_id, new_session_id, context, chat_id, credentials
            )

        compacted = await self.compact_context(context, config, credentials)

        for message in compacted.messages:
            await self._transcripts.append_to_transcript(new_session_id, message)

        self._event_bus.publish(
            ContextEvent.COMPACTION_COMPLETED,
            {
                "session_id": session_id,
                "new_session_id": new_session_id,
                "messages_before": len(context.messages),
                "messages_after": len(compacted.messages),
            },
        )
        return new_session_id

    async def check_and_compact(
        self,
        session_id: str,
        context: Context,
        credentials: SummarizerCredentials,
        chat_id: str | None = None,
    ) -> str | None:
        """
        Per-turn entry point.

        Flushes recent context to the daily log past the soft threshold, and
        compacts past the hard threshold.

        Returns:
            The new session id if the session was compacted, else None.
        """
        config = self.get_config()
        token_count = self._estimate(context)

        flushed = False
        if self.should_flush_memory(context, config, token_count):
            flushed = await self._flush_memory(session_id, context, config, token_count)

        if not self.should_compact(context, config, token_count):
            return None

        if config.memory_flush_enabled and not flushed:
            await self._flush_memory(session_id, context, config, token_count)

        self._logger.info("auto_compacting", session_id=session_id, tokens=token_count)
        self._event_bus.publish(
            ContextEvent.COMPACTION_TRIGGERED,
            {
                "session_id": session_id,
                "tokens": token_count,
                "message_count": len(context.messages),
            },
        )

        # The session only rolls over when compaction will actually drop messages.
        keep_count = config.keep_recent_messages or COMPACTION_KEEP_RECENT
        if len(context.messages) <= keep_count:
            self._logger.info("compaction_skipped", session_id=session_id, reason="within_keep")
            return None
        search = find_clean_cut(context.messages, keep_count)
        if not search.clean:
            self._logger.warning("compaction_aborted", session_id=session_id)
            self._event_bus.publish(
                ContextEvent.COMPACTION_ABORTED,
                {
                    "message_count": len(context.messages),
                    "cut_index": search.cut_index,
                    "reason": "orphaned_tool_results",
                },
            )
            return None
        if search.cut_index == 0:
            self._logger.info("compaction_skipped", session_id=session_id, reason="cut_at_start")
            return None

        new_session_id = await self.compact_and_save_transcript(
            session_id, context, config, credentials, chat_id
        )
        self._logger.info(
            "compaction_complete", session_id=session_id, new_session_id=new_session_id
        )
        return new_session_id

    # ── Internals ───────────────────────────────────────────────────────────────

    def _estimate(self, context: Context) -> int:
        return self._estimator.estimate_context_tokens(context)

    async def _summarize(
        self,
        old_messages: list[Message],
        config: CompactionConfig,
        credentials: SummarizerCredentials,
    ) -> SummaryResult:
        request = SummaryRequest(
            messages=old_messages,
            api_key=credentials.api_key,
            context_window=config.max_tokens or DEFAULT_CONTEXT_WINDOW,
            max_summary_tokens=DEFAULT_MAX_SUMMARY_TOKENS,
            custom_instructions=SUMMARY_INSTRUCTIONS,
            provider=credentials.provider,
            utility_model=credentials.utility_model,
        )
        return await asyncio.wait_for(
            self._summarizer.summarize_with_fallback(request),
            timeout=config.summary_timeout_seconds,
        )

    async def _flush_memory(
        self,
        session_id: str,
        context: Context,
        config: CompactionConfig,
        token_count: int,
    ) -> bool:
        """Write a recent-context preview to the daily log. Returns False if the write failed."""
        if self._daily_log is None:
            return False

        text, previewed = format_memory_flush(context.messages, config.flush_recent_messages)
        result = await attempt_async(self._daily_log.write_summary(text))
        if isinstance(result, Err):
            self._logger.error(
                "memory_flush_failed", session_id=session_id, error=str(result.error)
            )
            return False

        self._logger.info("memory_flushed", session_id=session_id, messages_previewed=previewed)
        self._event_bus.publish(
            ContextEvent.MEMORY_FLUSHED,
            {"session_id": session_id, "tokens": token_count, "messages_previewed": previewed},
        )
        return True

    async def _save_session_memory(
        self,
        hook: SessionMemoryHook,
        session_id: str,
        new_session_id: str,
        context: Context,
        chat_id: str,
        credentials: SummarizerCredentials,
    ) -> None:
        request = SessionMemoryRequest(
            old_session_id=session_id,
            new_session_id=new_session_id,
            context=context,
            chat_id=chat_id,
            api_key=credentials.api_key,
            provider=credentials.provider,
            utility_model=credentials.utility_model,
        )
        result = await attempt_async(hook.save_session_memory(request))
        if isinstance(result, Err):
            # The old transcript stays addressable, so extraction can be retried later.
            self._logger.error(
                "session_memory_save_failed",
                session_id=session_id,
                chat_id=chat_id,
                error=str(result.error),
            )

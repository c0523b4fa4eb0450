"""Text builders for compaction summaries and soft-threshold memory flushes."""

from __future__ import annotations

from collections.abc import Sequence

from contextkeeper.models.limits import MEMORY_FLUSH_PREVIEW_CHARS
from contextkeeper.models.message import AssistantMessage, Message, UserMessage, now_ms

SUMMARY_INSTRUCTIONS = """\
Output a structured summary using EXACTLY these sections:

## User Intent
What the user is trying to accomplish (1-2 sentences).

## Key Decisions
Bullet list of decisions made and commitments agreed upon.

## Important Context
Critical facts, preferences, constraints, or technical details needed for continuity.

## Actions Taken
What was done: tools used, messages sent, transactions made (with specific values/addresses if relevant).

## Open Items
Unfinished tasks, pending questions, or next steps.

Keep each section concise. Omit a section if empty. Preserve specific names, numbers, and identifiers.\
"""


def _first_timestamp(old_messages: Sequence[Message]) -> int:
    return old_messages[0].timestamp if old_messages else now_ms()


def build_summary_message(old_messages: Sequence[Message], summary: str) -> UserMessage:
    """The synthetic message that replaces ``old_messages`` after a successful summary."""
    return UserMessage(
        content=f"[Auto-compacted {len(old_messages)} messages]\n\n{summary}",
        timestamp=_first_timestamp(old_messages),
    )


def build_fallback_message(old_messages: Sequence[Message]) -> UserMessage:
    """The replacement message used when the summarizer is unavailable."""
    return UserMessage(
        content=f"[Auto-compacted: {len(old_messages)} earlier messages from this conversation]",
        timestamp=_first_timestamp(old_messages),
    )


def _preview(text: str, limit: int = MEMORY_FLUSH_PREVIEW_CHARS) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


def format_memory_flush(messages: Sequence[Message], recent_count: int) -> tuple[str, int]:
    """
    Build the recency-biased summary written to the daily log.

    Only the last ``recent_count`` messages are considered; user turns and
    assistant text are previewed, tool traffic is skipped.

    Returns:
        ``(text, previewed)`` where ``previewed`` is the number of bullet lines.
    """
    lines = ["**Recent Context:**\n"]
    for message in list(messages)[-recent_count:]:
        if isinstance(message, UserMessage):
            lines.append(f"- User: {_preview(message.text())}")
        elif isinstance(message, AssistantMessage):
            blocks = message.text_blocks()
            if blocks:
                lines.append(f"- Assistant: {_preview(blocks[0].text)}")
    return "\n".join(lines), len(lines) - 1

"""Clean cut point search.

A cut at index ``i`` keeps ``messages[i:]`` verbatim and compacts the rest.
The cut is *clean* when no kept ``ToolResultMessage`` refers to a tool call
that would be compacted away (an orphaned tool result).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from contextkeeper.models.limits import CLEAN_CUT_MAX_ITERATIONS
from contextkeeper.models.message import AssistantMessage, Message, ToolResultMessage

logger = structlog.get_logger("contextkeeper.compaction.cut")


@dataclass(frozen=True)
class CutSearch:
    """Outcome of a clean cut search."""

    cut_index: int
    """Last cut index tried. Meaningful as a split point only when ``clean``."""
    iterations: int
    clean: bool


def collect_tool_call_ids(messages: Sequence[Message]) -> set[str]:
    """Return the ids of every tool call emitted in ``messages``."""
    ids: set[str] = set()
    for message in messages:
        if isinstance(message, AssistantMessage):
            ids.update(call.id for call in message.tool_calls() if call.id)
    return ids


def find_orphaned_tool_results(messages: Sequence[Message]) -> list[str]:
    """Return tool call ids referenced by results in ``messages`` but never called there."""
    call_ids = collect_tool_call_ids(messages)
    return [
        message.tool_call_id
        for message in messages
        if isinstance(message, ToolResultMessage)
        and message.tool_call_id
        and message.tool_call_id not in call_ids
    ]


def has_orphaned_tool_results(messages: Sequence[Message]) -> bool:
    return bool(find_orphaned_tool_results(messages))


def find_clean_cut(
    messages: Sequence[Message],
    keep_count: int,
    max_iterations: int = CLEAN_CUT_MAX_ITERATIONS,
) -> CutSearch:
    """
    Walk the cut point backwards from ``len(messages) - keep_count`` until the
    kept suffix holds no orphaned tool results.

    At most ``max_iterations`` decrements are tried, and the cut never moves
    below index 0.
    """
    cut_index = max(0, len(messages) - keep_count)
    iterations = 0
    while cut_index > 0 and iterations < max_iterations:
        if not has_orphaned_tool_results(messages[cut_index:]):
            break
        cut_index -= 1
        iterations += 1

    orphans = find_orphaned_tool_results(messages[cut_index:])
    if orphans:
        logger.debug(
            "clean_cut_search_exhausted",
            cut_index=cut_index,
            iterations=iterations,
            orphaned_tool_call_ids=orphans,
        )
    return CutSearch(cut_index=cut_index, iterations=iterations, clean=not orphans)

"""contextkeeper compaction components."""

from contextkeeper.compaction.cut import (
    CutSearch,
    collect_tool_call_ids,
    find_clean_cut,
    find_orphaned_tool_results,
    has_orphaned_tool_results,
)
from contextkeeper.compaction.manager import CompactionManager
from contextkeeper.compaction.summarizer import LiteLLMSummarizer, LLMReply
from contextkeeper.compaction.summary import (
    SUMMARY_INSTRUCTIONS,
    build_fallback_message,
    build_summary_message,
    format_memory_flush,
)

__all__ = [
    "CompactionManager",
    "CutSearch",
    "LLMReply",
    "LiteLLMSummarizer",
    "SUMMARY_INSTRUCTIONS",
    "build_fallback_message",
    "build_summary_message",
    "collect_tool_call_ids",
    "find_clean_cut",
    "find_orphaned_tool_results",
    "format_memory_flush",
    "has_orphaned_tool_results",
]

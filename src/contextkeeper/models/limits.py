"""Default limits shared by the compaction manager and the context builder."""

from __future__ import annotations

# Compaction triggers
COMPACTION_MAX_MESSAGES: int = 200
COMPACTION_KEEP_RECENT: int = 10
DEFAULT_MAX_TOKENS: int = 96_000
DEFAULT_SOFT_THRESHOLD_TOKENS: int = 64_000
FALLBACK_SOFT_THRESHOLD_TOKENS: int = 50_000

# Upper bound on clean-cut decrements; guarantees termination on pathological
# tool-call nesting.
CLEAN_CUT_MAX_ITERATIONS: int = 50

# Summarizer budget
DEFAULT_CONTEXT_WINDOW: int = 128_000
DEFAULT_MAX_SUMMARY_TOKENS: int = 4_096

# Soft-threshold flush
MEMORY_FLUSH_RECENT_MESSAGES: int = 5
MEMORY_FLUSH_PREVIEW_CHARS: int = 100

# Retrieval
FEED_MESSAGE_MAX_CHARS: int = 2_000
DEFAULT_MAX_RECENT_MESSAGES: int = 20
DEFAULT_MAX_RELEVANT_CHUNKS: int = 5

# Characters per token for the cheap heuristic estimators.
CHARS_PER_TOKEN: int = 4

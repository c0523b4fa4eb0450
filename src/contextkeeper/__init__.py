"""
contextkeeper — conversation-context lifecycle management for LLM agents.

Per turn::

    from contextkeeper import CompactionManager, ContextBuilder, ContextOptions

    turn = await builder.build_context(ContextOptions(query=text, chat_id=chat_id))
    ...  # call the LLM, append the new messages to ``context``
    new_id = await manager.check_and_compact(session_id, context, credentials, chat_id)
    if new_id is not None:
        session_id = new_id
"""

from contextkeeper.collaborators import (
    DailyLog,
    EmbeddingProvider,
    HybridSearch,
    MessageStore,
    SessionMemoryHook,
    Summarizer,
    TranscriptStore,
)
from contextkeeper.compaction import CompactionManager, LiteLLMSummarizer
from contextkeeper.context import ContextBuilder, reorder_for_edges, truncate_feed_message
from contextkeeper.errors import (
    ContextKeeperError,
    SummarizationError,
    TranscriptNotInitializedError,
    TranscriptStoreError,
)
from contextkeeper.events import ContextEvent, EventBus
from contextkeeper.fallback import Err, Ok, Result, attempt, attempt_async, or_else
from contextkeeper.ids import make_id
from contextkeeper.models import (
    AssistantMessage,
    CompactionConfig,
    Context,
    ContextKeeperConfig,
    ContextOptions,
    Message,
    RecentMessage,
    RetrievalConfig,
    RetrievedChunk,
    Session,
    SessionMemoryRequest,
    StoreConfig,
    StoredMessage,
    SummarizerConfig,
    SummarizerCredentials,
    SummaryRequest,
    SummaryResult,
    TextContent,
    ToolCall,
    ToolResultMessage,
    TurnContext,
    UserMessage,
)
from contextkeeper.store import MarkdownDailyLog, SQLiteTranscriptStore
from contextkeeper.tokens import TokenEstimator

__version__ = "0.1.0"

__all__ = [
    # Core
    "CompactionManager",
    "ContextBuilder",
    "TokenEstimator",
    "reorder_for_edges",
    "truncate_feed_message",
    "make_id",
    # Config
    "ContextKeeperConfig",
    "CompactionConfig",
    "RetrievalConfig",
    "SummarizerConfig",
    "StoreConfig",
    # Models
    "TextContent",
    "ToolCall",
    "UserMessage",
    "AssistantMessage",
    "ToolResultMessage",
    "Message",
    "Context",
    "Session",
    "ContextOptions",
    "RecentMessage",
    "RetrievedChunk",
    "StoredMessage",
    "TurnContext",
    "SessionMemoryRequest",
    "SummarizerCredentials",
    "SummaryRequest",
    "SummaryResult",
    # Collaborators
    "DailyLog",
    "EmbeddingProvider",
    "HybridSearch",
    "MessageStore",
    "SessionMemoryHook",
    "Summarizer",
    "TranscriptStore",
    # Adapters
    "LiteLLMSummarizer",
    "MarkdownDailyLog",
    "SQLiteTranscriptStore",
    # Events
    "ContextEvent",
    "EventBus",
    # Errors and fallbacks
    "ContextKeeperError",
    "SummarizationError",
    "TranscriptStoreError",
    "TranscriptNotInitializedError",
    "Ok",
    "Err",
    "Result",
    "attempt",
    "attempt_async",
    "or_else",
]

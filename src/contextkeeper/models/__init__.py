"""contextkeeper data models."""

from contextkeeper.models.config import (
    CompactionConfig,
    ContextKeeperConfig,
    RetrievalConfig,
    StoreConfig,
    SummarizerConfig,
)
from contextkeeper.models.message import (
    AssistantMessage,
    Context,
    Message,
    Session,
    TextContent,
    ToolCall,
    ToolResultMessage,
    UserMessage,
    message_adapter,
)
from contextkeeper.models.retrieval import (
    ContextOptions,
    RecentMessage,
    RetrievedChunk,
    StoredMessage,
    TurnContext,
)
from contextkeeper.models.summary import (
    SessionMemoryRequest,
    SummarizerCredentials,
    SummaryRequest,
    SummaryResult,
)

__all__ = [
    # Config
    "CompactionConfig",
    "ContextKeeperConfig",
    "RetrievalConfig",
    "StoreConfig",
    "SummarizerConfig",
    # Messages
    "TextContent",
    "ToolCall",
    "UserMessage",
    "AssistantMessage",
    "ToolResultMessage",
    "Message",
    "message_adapter",
    "Context",
    "Session",
    # Retrieval
    "ContextOptions",
    "RecentMessage",
    "RetrievedChunk",
    "StoredMessage",
    "TurnContext",
    # Summaries
    "SessionMemoryRequest",
    "SummarizerCredentials",
    "SummaryRequest",
    "SummaryResult",
]

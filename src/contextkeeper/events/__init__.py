"""contextkeeper event bus."""

from contextkeeper.events.bus import ContextEvent, EventBus, Handler
from contextkeeper.events.payloads import (
    CompactionAbortedPayload,
    CompactionCompletedPayload,
    CompactionTriggeredPayload,
    MemoryFlushedPayload,
    SummaryFallbackPayload,
)

__all__ = [
    "CompactionAbortedPayload",
    "CompactionCompletedPayload",
    "CompactionTriggeredPayload",
    "ContextEvent",
    "EventBus",
    "Handler",
    "MemoryFlushedPayload",
    "SummaryFallbackPayload",
]

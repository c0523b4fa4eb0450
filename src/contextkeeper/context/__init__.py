"""contextkeeper per-turn context assembly."""

from contextkeeper.context.builder import ContextBuilder
from contextkeeper.context.reorder import (
    TRUNCATION_SUFFIX,
    reorder_for_edges,
    truncate_feed_message,
)

__all__ = [
    "ContextBuilder",
    "TRUNCATION_SUFFIX",
    "reorder_for_edges",
    "truncate_feed_message",
]

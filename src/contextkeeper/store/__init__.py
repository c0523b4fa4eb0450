"""contextkeeper persistence adapters."""

from contextkeeper.store.daily_log import MarkdownDailyLog
from contextkeeper.store.transcript import SQLiteTranscriptStore

__all__ = ["MarkdownDailyLog", "SQLiteTranscriptStore"]

"""Exception types raised by contextkeeper components."""

from __future__ import annotations


class ContextKeeperError(Exception):
    """Base class for contextkeeper errors."""


class SummarizationError(ContextKeeperError):
    """Raised when every summarizer model failed to produce a summary."""

    def __init__(self, models: list[str], last_error: BaseException | None = None) -> None:
        detail = f": {last_error}" if last_error is not None else ""
        super().__init__(f"Summarization failed for models {models!r}{detail}")
        self.models = models
        self.last_error = last_error


class TranscriptStoreError(ContextKeeperError):
    """Base class for transcript store errors."""


class TranscriptNotInitializedError(TranscriptStoreError):
    """Raised when the transcript store is used before ``initialize()``."""

    def __init__(self) -> None:
        super().__init__("Transcript store is not initialized. Call initialize() first.")

"""Request and result models exchanged with the summarizer and memory hook."""

from __future__ import annotations

from pydantic import BaseModel, Field

from contextkeeper.models.message import Context, Message


class SummarizerCredentials(BaseModel):
    """Credentials and model selection forwarded to the summarizer."""

    api_key: str
    provider: str | None = None
    utility_model: str | None = None


class SummaryRequest(BaseModel):
    """A request to summarise a span of conversation."""

    messages: list[Message]
    api_key: str
    context_window: int
    max_summary_tokens: int
    custom_instructions: str = ""
    provider: str | None = None
    utility_model: str | None = None


class SummaryResult(BaseModel):
    """The summarizer's output."""

    summary: str
    tokens_used: int = 0
    chunks_processed: int = Field(default=1, ge=0)


class SessionMemoryRequest(BaseModel):
    """Handed to the session-memory hook before a session is compacted."""

    old_session_id: str
    new_session_id: str
    context: Context
    chat_id: str
    api_key: str
    provider: str | None = None
    utility_model: str | None = None

"""Token budget estimation: precise tiktoken counts and a cheap character heuristic."""

from __future__ import annotations

import math
import threading
from collections.abc import Sequence
from typing import Any

import structlog

from contextkeeper.fallback import Err, attempt, or_else
from contextkeeper.models.limits import CHARS_PER_TOKEN
from contextkeeper.models.message import (
    AssistantMessage,
    Context,
    Message,
    ToolResultMessage,
    UserMessage,
)


def heuristic_tokens(char_count: int) -> int:
    """Character heuristic: ``ceil(chars / 4)``."""
    return math.ceil(char_count / CHARS_PER_TOKEN)


class TokenEstimator:
    """
    Converts text and conversation context into token counts.

    Two fidelities:

    1. ``estimate_tokens()`` — tiktoken with the GPT-4 family encoding. The
       encoder is loaded lazily on first use and reused for the lifetime of
       this instance. Any tokenizer failure falls back to the heuristic.
    2. ``estimate_context_tokens()`` — ``ceil(chars / 4)`` over the
       conversational text. Cheap enough to call on every turn; used for the
       compaction trigger checks.

    Construct one instance at startup and share it. Encoder initialisation is
    guarded by a lock; reads after initialisation are lock-free.
    """

    def __init__(self, model: str = "gpt-4") -> None:
        self._model = model
        self._encoder: Any = None
        self._init_lock = threading.Lock()
        self._logger = structlog.get_logger("contextkeeper.tokens")
        self._force_heuristic: bool = False
        """Set to True in tests to skip tiktoken entirely."""

    def estimate_tokens(self, text: str) -> int:
        """
        Count tokens precisely, falling back to ``ceil(len(text) / 4)``.

        Never raises.
        """
        if not text:
            return 0
        if self._force_heuristic:
            return heuristic_tokens(len(text))

        result = attempt(self._encode_count, text)
        if isinstance(result, Err):
            self._logger.warning("token_encoding_failed", error=str(result.error))
        return or_else(result, lambda _exc: heuristic_tokens(len(text)))

    def estimate_context_tokens(self, context: Context) -> int:
        """
        Heuristic token count for a whole context.

        Counts the system prompt, user content (string or text blocks) and
        assistant text blocks. Tool calls and tool results are not counted.
        """
        char_count = len(context.system_prompt) if context.system_prompt else 0
        for message in context.messages:
            if isinstance(message, UserMessage):
                if isinstance(message.content, str):
                    char_count += len(message.content)
                else:
                    char_count += sum(len(block.text) for block in message.content)
            elif isinstance(message, AssistantMessage):
                char_count += sum(len(block.text) for block in message.text_blocks())
        return heuristic_tokens(char_count)

    def estimate_message_tokens(self, message: Message) -> int:
        """Precise token count for one message, including tool traffic."""
        return self.estimate_tokens(render_message(message))

    def estimate_messages_tokens(self, messages: Sequence[Message]) -> int:
        """Precise token count for a message sequence."""
        return sum(self.estimate_message_tokens(m) for m in messages)

    def _encode_count(self, text: str) -> int:
        return len(self._get_encoder().encode(text, disallowed_special=()))

    def _get_encoder(self) -> Any:
        encoder = self._encoder
        if encoder is not None:
            return encoder
        with self._init_lock:
            if self._encoder is None:
                import tiktoken

                self._encoder = tiktoken.encoding_for_model(self._model)
                self._logger.debug("tokenizer_loaded", model=self._model)
            return self._encoder


def render_message(message: Message) -> str:
    """Render a message as plain transcript text."""
    if isinstance(message, UserMessage):
        return f"User: {message.text()}"
    if isinstance(message, AssistantMessage):
        lines: list[str] = []
        text = message.text()
        if text:
            lines.append(f"Assistant: {text}")
        for call in message.tool_calls():
            lines.append(f"Assistant called {call.name}({call.arguments})")
        return "\n".join(lines)
    if isinstance(message, ToolResultMessage):
        label = "Tool error" if message.is_error else "Tool result"
        name = f" {message.tool_name}" if message.tool_name else ""
        return f"{label}{name}: {message.text()}"
    raise TypeError(f"Unknown message type: {type(message).__name__}")

"""LiteLLM-backed conversation summarizer with chunking and model fallback.

Messages are rendered as a transcript and split into chunks whose precise
token count fits ``input_fraction`` of the model context window. Each chunk
is summarised independently; when there is more than one chunk the partial
summaries are merged in a final call. Models are tried in order (utility
model, then ``fallback_models``) until one succeeds.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from contextkeeper.errors import SummarizationError
from contextkeeper.models.config import SummarizerConfig
from contextkeeper.models.limits import CHARS_PER_TOKEN
from contextkeeper.models.message import Message
from contextkeeper.models.summary import SummaryRequest, SummaryResult
from contextkeeper.tokens.estimator import TokenEstimator, render_message

logger = structlog.get_logger("contextkeeper.compaction.summarizer")

# Floor for the per-chunk input budget so tiny context windows still make progress.
_MIN_CHUNK_TOKENS: int = 512

CHUNK_PROMPT = """\
You are summarising part of a conversation between a user and an AI agent so
the agent can continue it without the original messages.

{instructions}

<conversation>
{transcript}
</conversation>
"""

MERGE_PROMPT = """\
The following are summaries of consecutive parts of one conversation.
Merge them into a single summary, keeping every concrete name, number and
identifier.

{instructions}

<summaries>
{summaries}
</summaries>
"""


@dataclass
class LLMReply:
    """Text and token usage of one completion."""

    text: str
    tokens_used: int = 0


LLMCall = Callable[..., Awaitable[LLMReply]]


async def litellm_call(
    *,
    model: str,
    messages: list[dict[str, str]],
    max_tokens: int,
    temperature: float,
    api_key: str | None = None,
) -> LLMReply:
    """Call ``litellm.acompletion`` and return the reply text and total tokens."""
    import litellm

    response = await litellm.acompletion(
        model=model,
        messages=messages,
        max_tokens=max_tokens,
        temperature=temperature,
        api_key=api_key,
    )
    usage: Any = getattr(response, "usage", None)
    tokens = int(getattr(usage, "total_tokens", 0) or 0) if usage is not None else 0
    return LLMReply(text=response.choices[0].message.content or "", tokens_used=tokens)


class LiteLLMSummarizer:
    """
    Summarizer implementation for :class:`~contextkeeper.collaborators.Summarizer`.

    Example::

        summarizer = LiteLLMSummarizer(SummarizerConfig(fallback_models=["openai/gpt-4o-mini"]))
        result = await summarizer.summarize_with_fallback(request)
    """

    def __init__(
        self,
        config: SummarizerConfig | None = None,
        token_estimator: TokenEstimator | None = None,
        llm_call: LLMCall | None = None,
    ) -> None:
        self._config = config or SummarizerConfig()
        self._estimator = token_estimator or TokenEstimator()
        self._llm_call = llm_call or litellm_call
        self._logger = logger

    def candidate_models(self, request: SummaryRequest) -> list[str]:
        """Models to try, in order, with the provider prefix applied and duplicates removed."""
        primary = request.utility_model or self._config.default_model
        models: list[str] = []
        for model in [primary, *self._config.fallback_models]:
            if request.provider and "/" not in model:
                model = f"{request.provider}/{model}"
            if model not in models:
                models.append(model)
        return models

    def chunk_budget(self, request: SummaryRequest) -> int:
        """Token budget for the transcript portion of one chunk."""
        window = min(request.context_window, self._config.context_window)
        budget = int(window * self._config.input_fraction)
        budget -= self._estimator.estimate_tokens(request.custom_instructions)
        budget -= request.max_summary_tokens
        return max(_MIN_CHUNK_TOKENS, budget)

    def split_into_chunks(self, messages: Sequence[Message], budget: int) -> list[str]:
        """
        Render ``messages`` and group them into transcript chunks within ``budget`` tokens.

        A single message larger than the budget is cut to fit and becomes its
        own chunk.
        """
        chunks: list[str] = []
        current: list[str] = []
        current_tokens = 0
        max_chars = budget * CHARS_PER_TOKEN

        for message in messages:
            text = render_message(message)
            if not text:
                continue
            tokens = self._estimator.estimate_tokens(text)
            if tokens > budget:
                text = text[:max_chars]
                tokens = self._estimator.estimate_tokens(text)
            if current and current_tokens + tokens > budget:
                chunks.append("\n\n".join(current))
                current, current_tokens = [], 0
            current.append(text)
            current_tokens += tokens

        if current:
            chunks.append("\n\n".join(current))
        return chunks

    async def summarize_with_fallback(self, request: SummaryRequest) -> SummaryResult:
        """
        Summarise ``request.messages``, trying each candidate model in turn.

        Raises:
            SummarizationError: If there is nothing to summarise or every model failed.
        """
        chunks = self.split_into_chunks(request.messages, self.chunk_budget(request))
        models = self.candidate_models(request)
        if not chunks:
            raise SummarizationError(models, ValueError("no summarisable content"))

        last_error: Exception | None = None
        for model in models:
            try:
                return await self._summarize_chunks(model, chunks, request)
            except Exception as exc:
                last_error = exc
                self._logger.warning("summarizer_model_failed", model=model, error=str(exc))

        raise SummarizationError(models, last_error)

    async def _summarize_chunks(
        self, model: str, chunks: list[str], request: SummaryRequest
    ) -> SummaryResult:
        tokens_used = 0
        partials: list[str] = []
        for transcript in chunks:
            prompt = CHUNK_PROMPT.format(
                instructions=request.custom_instructions, transcript=transcript
            )
            reply = await self._complete(model, prompt, request)
            tokens_used += reply.tokens_used
            partials.append(reply.text.strip())

        if len(partials) == 1:
            summary = partials[0]
        else:
            prompt = MERGE_PROMPT.format(
                instructions=request.custom_instructions,
                summaries="\n\n---\n\n".join(partials),
            )
            reply = await self._complete(model, prompt, request)
            tokens_used += reply.tokens_used
            summary = reply.text.strip()

        if not summary:
            raise ValueError(f"model {model!r} returned an empty summary")

        self._logger.debug(
            "summary_generated", model=model, chunks=len(chunks), tokens_used=tokens_used
        )
        return SummaryResult(summary=summary, tokens_used=tokens_used, chunks_processed=len(chunks))

    async def _complete(self, model: str, prompt: str, request: SummaryRequest) -> LLMReply:
        return await self._llm_call(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=request.max_summary_tokens,
            temperature=self._config.temperature,
            api_key=request.api_key or None,
        )

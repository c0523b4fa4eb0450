"""Tests for LiteLLMSummarizer with an injected completion function."""

from __future__ import annotations

from typing import Any

import pytest

from contextkeeper.compaction.summarizer import LiteLLMSummarizer, LLMReply
from contextkeeper.errors import SummarizationError
from contextkeeper.models.config import SummarizerConfig
from contextkeeper.models.message import AssistantMessage
from contextkeeper.models.summary import SummaryRequest
from tests.conftest import make_assistant, make_dialogue, make_tool_result, make_user


class FakeLLM:
    """Records calls; fails for models listed in ``failing``."""

    def __init__(self, reply: str = "## User Intent\nSummary.", failing: set[str] | None = None):
        self.reply = reply
        self.failing = failing or set()
        self.calls: list[dict[str, Any]] = []

    async def __call__(self, **kwargs: Any) -> LLMReply:
        self.calls.append(kwargs)
        if kwargs["model"] in self.failing:
            raise RuntimeError(f"{kwargs['model']} unavailable")
        return LLMReply(text=self.reply, tokens_used=10)


def _request(messages, **overrides) -> SummaryRequest:
    values: dict[str, Any] = {
        "messages": messages,
        "api_key": "sk-test",
        "context_window": 2_000,
        "max_summary_tokens": 100,
        "provider": "anthropic",
        "utility_model": "haiku",
    }
    values.update(overrides)
    return SummaryRequest(**values)


def _summarizer(estimator, llm, **config) -> LiteLLMSummarizer:
    return LiteLLMSummarizer(SummarizerConfig(**config), token_estimator=estimator, llm_call=llm)


class TestCandidateModels:
    def test_provider_prefix_applied(self, estimator):
        summarizer = _summarizer(estimator, FakeLLM(), fallback_models=["openai/gpt-4o-mini"])
        models = summarizer.candidate_models(_request(make_dialogue(2)))
        assert models == ["anthropic/haiku", "openai/gpt-4o-mini"]

    def test_default_model_when_no_utility_model(self, estimator):
        summarizer = _summarizer(estimator, FakeLLM())
        models = summarizer.candidate_models(_request(make_dialogue(2), utility_model=None))
        assert models == ["anthropic/claude-haiku-4-5"]

    def test_duplicates_removed(self, estimator):
        summarizer = _summarizer(estimator, FakeLLM(), fallback_models=["anthropic/haiku"])
        assert summarizer.candidate_models(_request(make_dialogue(2))) == ["anthropic/haiku"]


class TestChunking:
    def test_budget_subtracts_instructions_and_output(self, estimator):
        summarizer = _summarizer(estimator, FakeLLM())
        request = _request(make_dialogue(2), custom_instructions="x" * 400)
        # 2000 * 0.75 - 100 (instructions) - 100 (summary)
        assert summarizer.chunk_budget(request) == 1_300

    def test_budget_has_floor(self, estimator):
        summarizer = _summarizer(estimator, FakeLLM())
        request = _request(make_dialogue(2), context_window=1_000, max_summary_tokens=4_096)
        assert summarizer.chunk_budget(request) == 512

    def test_small_history_is_one_chunk(self, estimator):
        summarizer = _summarizer(estimator, FakeLLM())
        chunks = summarizer.split_into_chunks(make_dialogue(4), budget=1_000)
        assert len(chunks) == 1
        assert chunks[0].startswith("User: user message 0")

    def test_splits_when_budget_exceeded(self, estimator):
        summarizer = _summarizer(estimator, FakeLLM())
        messages = [make_user("a" * 400), make_user("b" * 400), make_user("c" * 400)]
        chunks = summarizer.split_into_chunks(messages, budget=150)
        assert len(chunks) == 3

    def test_oversized_message_is_cut(self, estimator):
        summarizer = _summarizer(estimator, FakeLLM())
        chunks = summarizer.split_into_chunks([make_user("z" * 100)], budget=10)
        assert chunks == [("User: " + "z" * 100)[:40]]

    def test_tool_traffic_rendered(self, estimator):
        summarizer = _summarizer(estimator, FakeLLM())
        messages = [make_assistant("checking", tool_calls=["t1"]), make_tool_result("t1", "42")]
        chunk = summarizer.split_into_chunks(messages, budget=1_000)[0]
        assert "Assistant called lookup" in chunk
        assert "Tool result lookup: 42" in chunk


class TestSummarizeWithFallback:
    async def test_single_chunk_single_call(self, estimator):
        llm = FakeLLM()
        summarizer = _summarizer(estimator, llm)

        result = await summarizer.summarize_with_fallback(_request(make_dialogue(4)))

        assert result.summary == "## User Intent\nSummary."
        assert result.chunks_processed == 1
        assert result.tokens_used == 10
        assert len(llm.calls) == 1
        call = llm.calls[0]
        assert call["model"] == "anthropic/haiku"
        assert call["api_key"] == "sk-test"
        assert call["max_tokens"] == 100
        assert "User: user message 0" in call["messages"][0]["content"]

    async def test_multiple_chunks_are_merged(self, estimator):
        llm = FakeLLM()
        summarizer = _summarizer(estimator, llm)
        messages = [make_user("a" * 4_000), make_user("b" * 4_000)]

        result = await summarizer.summarize_with_fallback(_request(messages))

        assert result.chunks_processed == 2
        assert len(llm.calls) == 3
        assert "<summaries>" in llm.calls[-1]["messages"][0]["content"]
        assert result.tokens_used == 30

    async def test_falls_back_to_next_model(self, estimator):
        llm = FakeLLM(failing={"anthropic/haiku"})
        summarizer = _summarizer(estimator, llm, fallback_models=["openai/gpt-4o-mini"])

        result = await summarizer.summarize_with_fallback(_request(make_dialogue(4)))

        assert result.summary.startswith("## User Intent")
        assert [c["model"] for c in llm.calls] == ["anthropic/haiku", "openai/gpt-4o-mini"]

    async def test_all_models_failing_raises(self, estimator):
        llm = FakeLLM(failing={"anthropic/haiku", "openai/gpt-4o-mini"})
        summarizer = _summarizer(estimator, llm, fallback_models=["openai/gpt-4o-mini"])

        with pytest.raises(SummarizationError) as exc_info:
            await summarizer.summarize_with_fallback(_request(make_dialogue(4)))

        assert exc_info.value.models == ["anthropic/haiku", "openai/gpt-4o-mini"]
        assert isinstance(exc_info.value.last_error, RuntimeError)

    async def test_empty_reply_counts_as_failure(self, estimator):
        summarizer = _summarizer(estimator, FakeLLM(reply="   "))
        with pytest.raises(SummarizationError):
            await summarizer.summarize_with_fallback(_request(make_dialogue(4)))

    async def test_nothing_to_summarise_raises(self, estimator):
        llm = FakeLLM()
        summarizer = _summarizer(estimator, llm)
        with pytest.raises(SummarizationError):
            await summarizer.summarize_with_fallback(_request([AssistantMessage(content=[])]))
        assert llm.calls == []

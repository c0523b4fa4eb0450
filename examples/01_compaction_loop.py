"""
Example 01: Compaction Loop
===========================

Drives CompactionManager.check_and_compact() over a growing conversation:
- Soft threshold: a recent-context preview is appended to the daily log
- Hard threshold: old messages are summarised and the session id rolls over
- The compacted context is persisted to a SQLite transcript

The summarizer is a local stub so the example runs without an API key.
Swap it for LiteLLMSummarizer() to summarise with a real model.

Run:
    uv run python examples/01_compaction_loop.py
"""

import asyncio
import sys
import tempfile
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


class StubSummarizer:
    async def summarize_with_fallback(self, request):
        from contextkeeper import SummaryResult

        return SummaryResult(
            summary=(
                "## User Intent\nPlan a trip to Lisbon.\n\n"
                f"## Important Context\n{len(request.messages)} earlier turns covered flights."
            )
        )


async def main() -> None:
    from contextkeeper import (
        AssistantMessage,
        CompactionConfig,
        CompactionManager,
        Context,
        ContextEvent,
        EventBus,
        MarkdownDailyLog,
        SQLiteTranscriptStore,
        StoreConfig,
        SummarizerCredentials,
        TextContent,
        UserMessage,
    )

    print("=== contextkeeper Compaction Loop Example ===\n")

    workdir = Path(tempfile.mkdtemp(prefix="contextkeeper_"))
    transcripts = SQLiteTranscriptStore(StoreConfig(db_path=str(workdir / "transcripts.db")))
    await transcripts.initialize()

    bus = EventBus()

    def on_compacted(event, p):
        print(f"  *** {p['session_id']} -> {p['new_session_id']}")

    bus.subscribe(ContextEvent.COMPACTION_COMPLETED, on_compacted)

    manager = CompactionManager(
        StubSummarizer(),
        transcripts,
        MarkdownDailyLog(workdir / "memory"),
        config=CompactionConfig(
            max_messages=None,
            max_tokens=400,  # Tiny limits so compaction happens quickly
            soft_threshold_tokens=250,
            keep_recent_messages=4,
        ),
        event_bus=bus,
    )
    credentials = SummarizerCredentials(api_key="unused")

    session_id = "sess_demo"
    context = Context(system_prompt="You are a travel assistant.")

    try:
        for turn in range(12):
            context.messages.append(
                UserMessage(content=f"Turn {turn}: what about hotels near the river? " * 3)
            )
            reply = TextContent(text=f"Here are options for turn {turn}. " * 3)
            context.messages.append(AssistantMessage(content=[reply]))

            new_id = await manager.check_and_compact(session_id, context, credentials, "chat-1")
            if new_id is not None:
                session_id = new_id
                context = Context(
                    system_prompt=context.system_prompt,
                    messages=await transcripts.read_transcript(new_id),
                )
            print(f"Turn {turn:2d}: session={session_id} messages={len(context.messages)}")
    finally:
        await transcripts.close()

    print(f"\nDaily log written under {workdir / 'memory'}")


if __name__ == "__main__":
    asyncio.run(main())

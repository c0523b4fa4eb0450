"""
Example 02: Per-turn Context
============================

Builds the retrieved context for one turn with ContextBuilder, using
in-memory stand-ins for the message store, embedder and hybrid search.

Run:
    uv run python examples/02_turn_context.py
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


class InMemoryMessages:
    def __init__(self, messages):
        self._messages = messages

    async def get_recent_messages(self, chat_id, limit):
        return self._messages[-limit:]


class ConstantEmbedder:
    async def embed_query(self, text):
        return [float(len(text))]


class CannedSearch:
    async def search_knowledge(self, query, embedding, *, limit):
        from contextkeeper import RetrievedChunk

        facts = ["User prefers aisle seats.", "User is vegetarian.", "User lives in Porto."]
        return [RetrievedChunk(text=f, relevance_score=1 - i / 10) for i, f in enumerate(facts)]

    async def search_messages(self, query, embedding, *, chat_id=None, limit):
        from contextkeeper import RetrievedChunk

        if chat_id is None:
            return [RetrievedChunk(text="Booked the Lisbon train in March.", source_id="chat-7")]
        return [RetrievedChunk(text="Last time we compared two hotels.", source_id=chat_id)]


async def main() -> None:
    from contextkeeper import ContextBuilder, ContextOptions, StoredMessage

    print("=== contextkeeper Turn Context Example ===\n")

    builder = ContextBuilder(
        InMemoryMessages(
            [
                StoredMessage(text="Can you find me a hotel?", is_from_agent=False),
                StoredMessage(text="Sure, which city?", is_from_agent=True),
            ]
        ),
        ConstantEmbedder(),
        CannedSearch(),
    )

    turn = await builder.build_context(
        ContextOptions(query="Lisbon, near the river", chat_id="chat-1", search_all_chats=True)
    )

    print("Recent messages:")
    for message in turn.recent_messages:
        print(f"  {message.role}: {message.content}")
    print("Relevant knowledge (best hits at the edges):")
    for text in turn.relevant_knowledge:
        print(f"  {text}")
    print("Relevant feed:")
    for text in turn.relevant_feed:
        print(f"  {text}")
    print(f"\nEstimated tokens: {turn.estimated_tokens}")


if __name__ == "__main__":
    asyncio.run(main())

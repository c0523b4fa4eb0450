"""In-process pub/sub event bus for context lifecycle events."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Any

import structlog

from contextkeeper.fallback import Err, attempt

Handler = Callable[["ContextEvent", dict[str, Any]], None | Awaitable[None]]


class ContextEvent(StrEnum):
    """All event types published by contextkeeper components.

    Typed payload definitions live in :mod:`contextkeeper.events.payloads`.

    ``MEMORY_FLUSHED``
        :class:`~contextkeeper.events.payloads.MemoryFlushedPayload` —
        ``session_id: str``, ``tokens: int``, ``messages_previewed: int``

    ``COMPACTION_TRIGGERED``
        :class:`~contextkeeper.events.payloads.CompactionTriggeredPayload` —
        ``session_id: str``, ``tokens: int``, ``message_count: int``

    ``COMPACTION_COMPLETED``
        :class:`~contextkeeper.events.payloads.CompactionCompletedPayload` —
        ``session_id: str``, ``new_session_id: str``, ``messages_before: int``,
        ``messages_after: int``

    ``COMPACTION_ABORTED``
        :class:`~contextkeeper.events.payloads.CompactionAbortedPayload` —
        ``message_count: int``, ``cut_index: int``, ``reason: str``

    ``SUMMARY_FALLBACK_USED``
        :class:`~contextkeeper.events.payloads.SummaryFallbackPayload` —
        ``compacted_message_count: int``, ``error: str``
    """

    MEMORY_FLUSHED = "memory.flushed"

    COMPACTION_TRIGGERED = "compaction.triggered"
    COMPACTION_COMPLETED = "compaction.completed"
    COMPACTION_ABORTED = "compaction.aborted"

    SUMMARY_FALLBACK_USED = "summary.fallback_used"


class EventBus:
    """
    In-process pub/sub for compaction and memory-flush notifications.

    Handlers run inside ``publish()``. A handler that returns a coroutine has
    it scheduled on the running loop; with no running loop the coroutine is
    discarded. A failing handler is logged and never reaches the publisher,
    so observers cannot break a compaction pass.

    Example::

        bus = EventBus()

        def on_compaction(event, payload):
            print(f"{payload['session_id']} -> {payload['new_session_id']}")

        bus.subscribe(ContextEvent.COMPACTION_COMPLETED, on_compaction)
    """

    def __init__(self, logger: structlog.BoundLogger | None = None) -> None:
        self._by_event: dict[ContextEvent, list[Handler]] = {}
        self._wildcard: list[Handler] = []
        self._pending: set[asyncio.Task[None]] = set()
        self._logger = logger or structlog.get_logger("contextkeeper.events")

    def subscribe(self, event: ContextEvent, handler: Handler) -> None:
        """Call ``handler`` for every ``event``. ``handler`` may be sync or async."""
        self._by_event.setdefault(event, []).append(handler)

    def subscribe_all(self, handler: Handler) -> None:
        """Call ``handler`` for every event type."""
        self._wildcard.append(handler)

    def unsubscribe(self, event: ContextEvent, handler: Handler) -> None:
        """Remove ``handler`` from ``event``. Unknown handlers are ignored."""
        handlers = self._by_event.get(event)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def publish(self, event: ContextEvent, payload: dict[str, Any]) -> None:
        """Deliver ``payload`` to the handlers of ``event``, then to wildcard handlers."""
        for handler in [*self._by_event.get(event, ()), *self._wildcard]:
            result = attempt(handler, event, payload)
            if isinstance(result, Err):
                self._log_failure(event, handler, result.error)
            elif asyncio.iscoroutine(result.value):
                self._schedule(event, handler, result.value)

    async def drain(self) -> None:
        """Wait for every scheduled async handler to finish."""
        while self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    def _schedule(self, event: ContextEvent, handler: Handler, coro: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            self._logger.debug("event_handler_dropped", event=str(event), reason="no_event_loop")
            return

        task = loop.create_task(coro)
        self._pending.add(task)

        def _done(finished: asyncio.Task[None]) -> None:
            self._pending.discard(finished)
            if not finished.cancelled() and finished.exception() is not None:
                self._log_failure(event, handler, finished.exception())

        task.add_done_callback(_done)

    def _log_failure(
        self, event: ContextEvent, handler: Handler, error: BaseException | None
    ) -> None:
        self._logger.error(
            "event_handler_error",
            event=str(event),
            handler=getattr(handler, "__qualname__", repr(handler)),
            error=str(error),
        )

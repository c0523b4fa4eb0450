"""Markdown daily log for soft-threshold memory flushes."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

import structlog


class MarkdownDailyLog:
    """
    Appends timestamped entries to ``<directory>/YYYY-MM-DD.md`` (UTC dates).

    Example::

        log = MarkdownDailyLog("~/.contextkeeper/memory")
        await log.write_summary("**Recent Context:**\\n- User: hi")
    """

    def __init__(
        self,
        directory: str | Path,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._directory = Path(directory).expanduser()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = asyncio.Lock()
        self._logger = structlog.get_logger("contextkeeper.store.daily_log")

    def path_for(self, moment: datetime) -> Path:
        """The log file that entries written at ``moment`` go to."""
        return self._directory / f"{moment:%Y-%m-%d}.md"

    async def write_summary(self, text: str) -> None:
        """Append ``text`` as a new entry in today's log file."""
        moment = self._clock()
        entry = f"## Memory flush {moment:%H:%M:%S} UTC\n\n{text.rstrip()}\n\n"
        path = self.path_for(moment)
        async with self._lock:
            await asyncio.to_thread(self._append, path, entry)
        self._logger.debug("daily_log_written", path=str(path), chars=len(entry))

    @staticmethod
    def _append(path: Path, entry: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as fh:
            fh.write(entry)

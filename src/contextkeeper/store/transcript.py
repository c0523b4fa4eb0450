"""Append-only SQLite-backed session transcripts."""

from __future__ import annotations

from pathlib import Path

import aiosqlite
import structlog

from contextkeeper.errors import TranscriptNotInitializedError
from contextkeeper.models.config import StoreConfig
from contextkeeper.models.message import Message, message_adapter

_SCHEMA = """
CREATE TABLE IF NOT EXISTS transcript_entries (
    session_id TEXT NOT NULL,
    seq        INTEGER NOT NULL,
    role       TEXT NOT NULL,
    timestamp  INTEGER NOT NULL,
    payload    TEXT NOT NULL,
    PRIMARY KEY (session_id, seq)
);
"""


class SQLiteTranscriptStore:
    """
    Per-session, append-only message log.

    Entries are never updated or deleted. A compacted session gets a fresh
    session id; the superseded transcript stays readable.

    Usage::

        store = SQLiteTranscriptStore(StoreConfig(db_path="~/.contextkeeper/t.db"))
        await store.initialize()
        try:
            await store.append_to_transcript("sess_01J...", message)
            messages = await store.read_transcript("sess_01J...")
        finally:
            await store.close()
    """

    def __init__(self, config: StoreConfig | None = None) -> None:
        self._config = config or StoreConfig()
        self._db_path = str(Path(self._config.db_path).expanduser())
        self._conn: aiosqlite.Connection | None = None
        self._logger = structlog.get_logger("contextkeeper.store.transcript")

    async def initialize(self) -> None:
        """
        Open the database connection and apply the schema.

        Raises:
            aiosqlite.Error: If the database cannot be opened or the schema fails.
        """
        if self._conn is not None:
            return
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = await aiosqlite.connect(self._db_path, timeout=self._config.connection_timeout)
        try:
            if self._config.wal_mode and self._db_path != ":memory:":
                await conn.execute("PRAGMA journal_mode=WAL")
            await conn.execute("PRAGMA synchronous=NORMAL")
            await conn.executescript(_SCHEMA)
            await conn.commit()
        except Exception:
            await conn.close()
            raise
        self._conn = conn
        self._logger.info("transcript_store_initialized", db_path=self._db_path)

    async def close(self) -> None:
        """Close the database connection. Safe to call twice."""
        if self._conn is None:
            return
        await self._conn.close()
        self._conn = None

    def _conn_or_raise(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise TranscriptNotInitializedError()
        return self._conn

    async def append_to_transcript(self, session_id: str, message: Message) -> None:
        """Append ``message`` to the end of the session's transcript."""
        conn = self._conn_or_raise()
        payload = message_adapter.dump_json(message).decode()
        await conn.execute(
            """
            INSERT INTO transcript_entries (session_id, seq, role, timestamp, payload)
            VALUES (
                ?,
                (SELECT COALESCE(MAX(seq), 0) + 1 FROM transcript_entries WHERE session_id = ?),
                ?, ?, ?
            )
            """,
            (session_id, session_id, message.role, message.timestamp, payload),
        )
        await conn.commit()

    async def read_transcript(self, session_id: str) -> list[Message]:
        """Return every message of the session in append order. Unknown sessions are empty."""
        conn = self._conn_or_raise()
        async with conn.execute(
            "SELECT payload FROM transcript_entries WHERE session_id = ? ORDER BY seq ASC",
            (session_id,),
        ) as cursor:
            rows = await cursor.fetchall()
        return [message_adapter.validate_json(row[0]) for row in rows]

    async def count(self, session_id: str) -> int:
        """Number of messages in the session's transcript."""
        conn = self._conn_or_raise()
        async with conn.execute(
            "SELECT COUNT(*) FROM transcript_entries WHERE session_id = ?", (session_id,)
        ) as cursor:
            row = await cursor.fetchone()
        return int(row[0]) if row else 0

"""SQLite spool for events the producer could not hand to the broker."""

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import aiosqlite

from meupaozin.messaging.models import Event

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS undelivered_event (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    topic         TEXT    NOT NULL,
    key           TEXT,
    payload       TEXT    NOT NULL,
    headers       TEXT    NOT NULL DEFAULT '{}',
    reason        TEXT    NOT NULL,
    status        TEXT    NOT NULL DEFAULT 'pending',
    attempts      INTEGER NOT NULL DEFAULT 0,
    created_at    REAL    NOT NULL,
    delivered_at  REAL
);

CREATE INDEX IF NOT EXISTS idx_ue_status_created ON undelivered_event(status, created_at);
"""


@dataclass(frozen=True)
class SpooledEvent:
    """Row from the spool. `payload` is the wire payload, timestamp included."""

    id: int
    topic: str
    key: str | None
    payload: dict[str, Any]
    headers: dict[str, str]
    reason: str
    attempts: int
    created_at: float


def _row_to_spooled(row: tuple) -> SpooledEvent:
    return SpooledEvent(
        id=row[0],
        topic=row[1],
        key=row[2],
        payload=json.loads(row[3]),
        headers=json.loads(row[4] or "{}"),
        reason=row[5],
        attempts=row[6],
        created_at=row[7],
    )


class FallbackJournal:
    """SQLite-backed spool for degraded-mode publishes. One connection per instance."""

    def __init__(self, db_path: Path, busy_timeout: int = 5000) -> None:
        self._db_path = db_path
        self._busy_timeout = busy_timeout
        self._conn: aiosqlite.Connection | None = None

    async def _ensure_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = await aiosqlite.connect(str(self._db_path))
            await self._conn.execute("PRAGMA journal_mode=WAL")
            await self._conn.execute("PRAGMA synchronous=NORMAL")
            await self._conn.execute(f"PRAGMA busy_timeout={self._busy_timeout}")
            await self._conn.executescript(_SCHEMA)
            await self._conn.commit()
        return self._conn

    async def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    async def append(self, event: Event, wire_payload: dict[str, Any], reason: str) -> int:
        """Spool an event and return its row id."""
        conn = await self._ensure_conn()
        cursor = await conn.execute(
            """
            INSERT INTO undelivered_event (topic, key, payload, headers, reason, status, created_at)
            VALUES (?, ?, ?, ?, ?, 'pending', ?)
            """,
            (
                event.topic,
                event.key,
                json.dumps(wire_payload, ensure_ascii=False),
                json.dumps(dict(event.headers), ensure_ascii=False),
                reason,
                time.time(),
            ),
        )
        await conn.commit()
        return cursor.lastrowid or 0

    async def fetch_pending(self, limit: int = 50) -> list[SpooledEvent]:
        """Oldest pending events first."""
        conn = await self._ensure_conn()
        cursor = await conn.execute(
            """
            SELECT id, topic, key, payload, headers, reason, attempts, created_at
            FROM undelivered_event
            WHERE status = 'pending'
            ORDER BY created_at, id
            LIMIT ?
            """,
            (limit,),
        )
        rows = await cursor.fetchall()
        return [_row_to_spooled(row) for row in rows]

    async def mark_delivered(self, event_id: int) -> None:
        conn = await self._ensure_conn()
        await conn.execute(
            "UPDATE undelivered_event SET status = 'delivered', delivered_at = ?, "
            "attempts = attempts + 1 WHERE id = ?",
            (time.time(), event_id),
        )
        await conn.commit()

    async def mark_attempt_failed(self, event_id: int) -> None:
        """Count a failed replay; the event stays pending."""
        conn = await self._ensure_conn()
        await conn.execute(
            "UPDATE undelivered_event SET attempts = attempts + 1 WHERE id = ?",
            (event_id,),
        )
        await conn.commit()

    async def count_pending(self) -> int:
        conn = await self._ensure_conn()
        cursor = await conn.execute(
            "SELECT COUNT(*) FROM undelivered_event WHERE status = 'pending'"
        )
        row = await cursor.fetchone()
        return int(row[0]) if row else 0

"""Persist chain events and raffle snapshots to SQLite."""

from __future__ import annotations

import dataclasses
import json
import threading
from enum import Enum
from typing import Any, Dict, List, Optional

from core import get_logger
from core.constants import DatabaseDefaults
from core.exceptions import DatabaseError
from database.connection import OptimizedSQLitePool
from ledger.chain import Chain, Event

logger = get_logger(__name__)


def _encode_value(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, Enum):
        return value.value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    raise TypeError(f"cannot encode {type(value).__name__}")


def encode_args(args: Dict[str, Any]) -> str:
    return json.dumps(args, default=_encode_value, sort_keys=True)


def _row_to_event(row) -> Dict[str, Any]:
    return {
        "id": row[0],
        "tx_index": row[1],
        "emitter": row[2],
        "name": row[3],
        "args": json.loads(row[4]),
        "timestamp": row[5],
    }


class EventJournal:
    """Append-only copy of the chain event log.

    ``attach`` buffers every committed event; ``flush`` writes the buffer
    in a single database transaction. Reverted transactions never reach
    the buffer because the chain only notifies listeners on commit.
    """

    def __init__(self, pool: OptimizedSQLitePool) -> None:
        self.pool = pool
        self._buffer: List[Event] = []
        self._lock = threading.Lock()

    def attach(self, chain: Chain) -> None:
        chain.subscribe(self._on_event)

    def _on_event(self, event: Event) -> None:
        with self._lock:
            self._buffer.append(event)

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._buffer)

    async def record_many(self, events: List[Event]) -> int:
        if not events:
            return 0
        rows = [
            (event.tx_index, event.emitter, event.name, encode_args(event.args), event.timestamp)
            for event in events
        ]
        async with self.pool.connection() as conn:
            await conn.execute("BEGIN")
            try:
                await conn.executemany(
                    """
                    INSERT INTO chain_events (tx_index, emitter, name, args, block_timestamp)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    rows,
                )
            except Exception as exc:
                await conn.rollback()
                raise DatabaseError(f"failed to journal {len(rows)} events") from exc
            else:
                await conn.commit()
        return len(rows)

    async def flush(self) -> int:
        """Write buffered events. Returns how many were written."""
        with self._lock:
            events, self._buffer = self._buffer, []
        try:
            written = await self.record_many(events)
        except DatabaseError:
            with self._lock:
                self._buffer = events + self._buffer
            raise
        if written:
            logger.debug(f"Journaled {written} event(s)")
        return written

    async def events(
        self,
        emitter: Optional[str] = None,
        name: Optional[str] = None,
        after_id: int = 0,
        limit: int = DatabaseDefaults.JOURNAL_PAGE_SIZE,
    ) -> List[Dict[str, Any]]:
        query = (
            "SELECT id, tx_index, emitter, name, args, block_timestamp "
            "FROM chain_events WHERE id > ?"
        )
        params: List[Any] = [after_id]
        if emitter is not None:
            query += " AND emitter = ?"
            params.append(emitter)
        if name is not None:
            query += " AND name = ?"
            params.append(name)
        query += " ORDER BY id LIMIT ?"
        params.append(limit)
        async with self.pool.connection() as conn:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
        return [_row_to_event(row) for row in rows]

    async def count(self, name: Optional[str] = None) -> int:
        async with self.pool.connection() as conn:
            if name is None:
                cursor = await conn.execute("SELECT COUNT(*) FROM chain_events")
            else:
                cursor = await conn.execute("SELECT COUNT(*) FROM chain_events WHERE name = ?", (name,))
            row = await cursor.fetchone()
        return row[0]

    async def save_raffle_snapshot(self, summary: Dict[str, Any]) -> int:
        """Store a raffle summary (see ``Raffle.summary``) and return its row id."""
        async with self.pool.connection() as conn:
            await conn.execute("BEGIN")
            try:
                cursor = await conn.execute(
                    """
                    INSERT INTO raffle_snapshots (raffle_id, address, status, summary)
                    VALUES (?, ?, ?, ?)
                    """,
                    (
                        summary["raffle_id"],
                        summary["address"],
                        summary["status"],
                        json.dumps(summary, default=_encode_value, sort_keys=True),
                    ),
                )
            except Exception:
                await conn.rollback()
                raise
            else:
                await conn.commit()
                return cursor.lastrowid

    async def latest_snapshot(self, raffle_id: int) -> Optional[Dict[str, Any]]:
        async with self.pool.connection() as conn:
            cursor = await conn.execute(
                "SELECT summary FROM raffle_snapshots WHERE raffle_id = ? ORDER BY id DESC LIMIT 1",
                (raffle_id,),
            )
            row = await cursor.fetchone()
        return json.loads(row[0]) if row else None

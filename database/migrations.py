"""Database schema migrations."""

from __future__ import annotations

from .connection import OptimizedSQLitePool


SCHEMA_SQL: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS chain_events (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        tx_index INTEGER NOT NULL,
        emitter TEXT NOT NULL,
        name TEXT NOT NULL,
        args TEXT NOT NULL,
        block_timestamp INTEGER NOT NULL,
        recorded_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_chain_events_emitter ON chain_events(emitter, id);",
    "CREATE INDEX IF NOT EXISTS idx_chain_events_name ON chain_events(name, id);",
    "CREATE INDEX IF NOT EXISTS idx_chain_events_tx ON chain_events(tx_index);",
    """
    CREATE TABLE IF NOT EXISTS raffle_snapshots (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        raffle_id INTEGER NOT NULL,
        address TEXT NOT NULL,
        status TEXT NOT NULL,
        summary TEXT NOT NULL,
        taken_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_raffle_snapshots_raffle ON raffle_snapshots(raffle_id, id);",
)


async def run_migrations(pool: OptimizedSQLitePool) -> None:
    async with pool.connection() as conn:
        await conn.execute("BEGIN")
        try:
            for statement in SCHEMA_SQL:
                await conn.execute(statement)
        except Exception:
            await conn.rollback()
            raise
        else:
            await conn.commit()

"""Tests for the SQLite event journal."""

import asyncio
import threading

import pytest

from conftest import end, enter
from database import OptimizedSQLitePool, run_migrations
from randomness import serve_pending
from services.event_journal import EventJournal, encode_args
from core.constants import RaffleType
from core.exceptions import InvalidParameter


async def _journal(tmp_path):
    pool = OptimizedSQLitePool(str(tmp_path / "journal.sqlite"), pool_size=2)
    await pool.init_pool()
    await run_migrations(pool)
    return pool, EventJournal(pool)


def test_encode_args_handles_chain_values():
    """Test bytes, enums and dataclasses become JSON."""
    encoded = encode_args({"data": b"\x01\x02", "kind": RaffleType.YOLO, "ids": (1, 2)})
    assert encoded == '{"data": "0x0102", "ids": [1, 2], "kind": 1}'


@pytest.mark.asyncio
async def test_journal_records_committed_events(tmp_path, chain, market, open_raffle, players, rng):
    """Test committed events are flushed and queryable by emitter and name."""
    pool, journal = await _journal(tmp_path)
    try:
        journal.attach(chain)
        raffle = open_raffle()
        enter(raffle, players[0], 1)
        with pytest.raises(InvalidParameter):
            enter(raffle, players[0], 0)
        end(chain, raffle)
        raffle.close(sender=market.deployer)
        serve_pending(market.provider, market.airnode, rng)
        raffle.finish(sender=market.deployer)

        assert journal.pending > 0
        written = await journal.flush()
        assert written > 0
        assert journal.pending == 0

        entered = await journal.events(emitter=raffle.address, name="RaffleEntered")
        assert len(entered) == 1
        assert entered[0]["args"]["participant"] == players[0]
        assert await journal.count("RaffleFinished") == 1
        assert await journal.count() == written

        page = await journal.events(limit=2)
        later = await journal.events(after_id=page[-1]["id"], limit=2)
        assert later[0]["id"] > page[-1]["id"]
    finally:
        await pool.close()


@pytest.mark.asyncio
async def test_raffle_snapshots(tmp_path, market, open_raffle):
    """Test the latest snapshot of a raffle is returned."""
    pool, journal = await _journal(tmp_path)
    try:
        raffle = open_raffle()
        first = await journal.save_raffle_snapshot(raffle.summary())
        second = await journal.save_raffle_snapshot(raffle.summary())
        assert second > first

        snapshot = await journal.latest_snapshot(raffle.raffle_id)
        assert snapshot["address"] == raffle.address
        assert snapshot["status"] == "OPEN"
        assert await journal.latest_snapshot(99) is None
    finally:
        await pool.close()


@pytest.mark.asyncio
async def test_flush_keeps_events_emitted_meanwhile(tmp_path, chain, usd, players):
    """Test events committed on another thread during flushes all reach the database."""
    pool, journal = await _journal(tmp_path)
    try:
        journal.attach(chain)
        before = len(chain.events)

        def transfers():
            for _ in range(200):
                usd.transfer(players[1], 1, sender=players[0])

        worker = threading.Thread(target=transfers)
        worker.start()
        while worker.is_alive():
            await journal.flush()
            await asyncio.sleep(0)
        worker.join()
        await journal.flush()

        assert journal.pending == 0
        assert await journal.count() == len(chain.events) - before
        assert await journal.count("Transfer") == 200
    finally:
        await pool.close()

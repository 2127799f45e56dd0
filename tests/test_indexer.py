"""Tests for EventDatabase and EventIndexer."""

from collections.abc import Awaitable, Callable
from pathlib import Path

import pytest

from scrollpay.exceptions import TransferFailed
from scrollpay.host.chain import Host
from scrollpay.indexer.database import EventDatabase
from scrollpay.indexer.indexer import EventIndexer
from scrollpay.ledger.core import PaymentLedger
from scrollpay.models import EventName
from scrollpay.units import ONE_USDC

MERCHANT = "0x000000000000000000000000000000000000beef"
CLIENT = "0x00000000000000000000000000000000000a11ce"


@pytest.mark.asyncio
async def test_database_creates_schema(tmp_path: Path) -> None:
    async with EventDatabase(str(tmp_path / "nested" / "events.db")) as db:
        cursor = await db.db.execute("SELECT version FROM schema_version")
        row = await cursor.fetchone()
        assert row[0] == 1

    with pytest.raises(RuntimeError):
        _ = db.db


@pytest.mark.asyncio
async def test_database_rejects_newer_schema(tmp_path: Path) -> None:
    path = str(tmp_path / "events.db")
    async with EventDatabase(path) as db:
        await db.db.execute("INSERT INTO schema_version (version) VALUES (99)")
        await db.db.commit()

    with pytest.raises(RuntimeError, match="schema version 99"):
        await EventDatabase(path).connect()


@pytest.mark.asyncio
async def test_sync_indexes_only_committed_events(
    tmp_path: Path,
    host: Host,
    ledger: PaymentLedger,
    fund: Callable[..., Awaitable[None]],
) -> None:
    await fund(CLIENT, 10 * ONE_USDC)
    await ledger.process_payment(CLIENT, MERCHANT, 5 * ONE_USDC)
    with pytest.raises(TransferFailed):
        await ledger.process_payment(CLIENT, MERCHANT, 50 * ONE_USDC)

    async with EventDatabase(str(tmp_path / "events.db")) as db:
        indexer = EventIndexer(host, db)

        assert await indexer.last_indexed_seq() == -1
        assert await indexer.sync() == 1
        assert await indexer.sync() == 0

        (event,) = await indexer.get_events(EventName.PAYMENT_PROCESSED)
        assert event.seq == 0
        assert event.emitter == ledger.address
        assert event.args == {
            "payment_id": 0,
            "merchant": MERCHANT,
            "client": CLIENT,
            "amount": 5 * ONE_USDC,
        }


@pytest.mark.asyncio
async def test_sync_is_incremental(
    tmp_path: Path,
    host: Host,
    ledger: PaymentLedger,
    fund: Callable[..., Awaitable[None]],
) -> None:
    await fund(CLIENT, 10 * ONE_USDC)

    async with EventDatabase(str(tmp_path / "events.db")) as db:
        indexer = EventIndexer(host, db)
        await ledger.process_payment(CLIENT, MERCHANT, ONE_USDC)
        await indexer.sync()

        await ledger.pause(ledger.owner)
        await ledger.unpause(ledger.owner)
        assert await indexer.sync() == 2
        assert await indexer.last_indexed_seq() == 2

        events = await indexer.get_events()
        assert [e.name for e in events] == [
            EventName.PAYMENT_PROCESSED,
            EventName.PAUSED,
            EventName.UNPAUSED,
        ]
        assert await indexer.get_events(EventName.PAUSED, limit=5) == [events[1]]

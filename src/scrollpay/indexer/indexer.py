"""Event indexer: copies committed host events into SQLite.

Only committed events ever reach the host log, so a reverted operation
never appears in the index. Sync is incremental from the highest indexed
seq and idempotent (INSERT OR IGNORE on seq).
"""

from __future__ import annotations

import asyncio
import json

from scrollpay.host.chain import Host
from scrollpay.indexer.database import EventDatabase
from scrollpay.logging import get_logger
from scrollpay.models import EventName, LedgerEvent

logger = get_logger(__name__)


class EventIndexer:
    """Incremental event sink and query interface.

    Args:
        host: Source of committed events.
        database: Connected EventDatabase.
        interval: Seconds between sync passes when run as a loop.
    """

    def __init__(self, host: Host, database: EventDatabase, interval: float = 5.0) -> None:
        self._host = host
        self._database = database
        self._interval = interval
        self._running = False

    async def last_indexed_seq(self) -> int:
        """Highest indexed seq, or -1 when the index is empty."""
        cursor = await self._database.db.execute("SELECT MAX(seq) FROM events")
        row = await cursor.fetchone()
        return -1 if row is None or row[0] is None else int(row[0])

    async def sync(self) -> int:
        """Index all committed events after the last indexed one. Returns rows inserted."""
        start = await self.last_indexed_seq() + 1
        events = self._host.events_since(start)
        if not events:
            return 0

        data = [
            (e.seq, e.name.value, e.emitter, e.timestamp, json.dumps(e.args, sort_keys=True))
            for e in events
        ]
        cursor = await self._database.db.executemany(
            "INSERT OR IGNORE INTO events (seq, name, emitter, timestamp, args) "
            "VALUES (?, ?, ?, ?, ?)",
            data,
        )
        await self._database.db.commit()

        logger.debug("events_indexed", first_seq=start, count=len(data), inserted=cursor.rowcount)
        return cursor.rowcount

    async def get_events(
        self, name: EventName | None = None, limit: int = 100
    ) -> list[LedgerEvent]:
        """Return indexed events in seq order, optionally filtered by name."""
        if name is None:
            cursor = await self._database.db.execute(
                "SELECT seq, name, emitter, timestamp, args FROM events ORDER BY seq LIMIT ?",
                (limit,),
            )
        else:
            cursor = await self._database.db.execute(
                "SELECT seq, name, emitter, timestamp, args FROM events "
                "WHERE name = ? ORDER BY seq LIMIT ?",
                (name.value, limit),
            )
        rows = await cursor.fetchall()
        return [
            LedgerEvent(
                seq=row[0],
                name=EventName(row[1]),
                emitter=row[2],
                timestamp=row[3],
                args=json.loads(row[4]),
            )
            for row in rows
        ]

    async def start(self) -> None:
        """Sync every interval until stop() is called."""
        self._running = True
        logger.info("indexer_started", interval=self._interval)
        while self._running:
            try:
                await self.sync()
                await asyncio.sleep(self._interval)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("indexer_sync_error", error=str(e), exc_info=True)
                await asyncio.sleep(self._interval)
        logger.info("indexer_stopped")

    async def stop(self) -> None:
        self._running = False

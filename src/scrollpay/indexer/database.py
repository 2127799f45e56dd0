"""SQLite store for the event index.

One row per committed host event, keyed by its log sequence number. The
connection runs in WAL mode so API reads do not block the indexer's writes.
"""

from pathlib import Path
from typing import Self

import aiosqlite

from scrollpay.logging import get_logger

logger = get_logger(__name__)

SCHEMA_VERSION = 1

_SCHEMA = (
    "CREATE TABLE IF NOT EXISTS schema_version (version INTEGER PRIMARY KEY)",
    """
    CREATE TABLE IF NOT EXISTS events (
        seq INTEGER PRIMARY KEY,
        name TEXT NOT NULL,
        emitter TEXT NOT NULL,
        timestamp INTEGER NOT NULL,
        args TEXT NOT NULL  -- JSON object, keys sorted
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_events_name_seq ON events(name, seq)",
)


class EventDatabase:
    """Owns the aiosqlite connection of the event index.

    Usage:
        async with EventDatabase("data/events.db") as database:
            indexer = EventIndexer(host, database)
    """

    def __init__(self, db_path: str = "data/events.db") -> None:
        self._path = Path(db_path)
        self._connection: aiosqlite.Connection | None = None

    @property
    def db(self) -> aiosqlite.Connection:
        """The open connection. Raises RuntimeError before connect()."""
        if self._connection is None:
            raise RuntimeError(f"event database {self._path} is not connected")
        return self._connection

    async def connect(self) -> None:
        """Open the file (creating its directory) and bring the schema up to date."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        connection = await aiosqlite.connect(self._path)
        await connection.execute("PRAGMA journal_mode=WAL")
        await connection.execute("PRAGMA synchronous=NORMAL")
        for statement in _SCHEMA:
            await connection.execute(statement)

        cursor = await connection.execute("SELECT MAX(version) FROM schema_version")
        row = await cursor.fetchone()
        version = row[0] if row is not None else None
        if version is None:
            await connection.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,)
            )
        elif version > SCHEMA_VERSION:
            await connection.close()
            raise RuntimeError(
                f"{self._path} has schema version {version}, this build supports {SCHEMA_VERSION}"
            )
        await connection.commit()

        self._connection = connection
        logger.info("event_db_connected", db_path=str(self._path), schema_version=SCHEMA_VERSION)

    async def close(self) -> None:
        if self._connection is None:
            return
        await self._connection.close()
        self._connection = None
        logger.info("event_db_closed", db_path=str(self._path))

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

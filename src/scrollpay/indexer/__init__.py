"""Event index -- SQLite persistence of committed ledger and oracle events."""

from scrollpay.indexer.database import EventDatabase
from scrollpay.indexer.indexer import EventIndexer

__all__ = ["EventDatabase", "EventIndexer"]

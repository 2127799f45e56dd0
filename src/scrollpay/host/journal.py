"""Undo log backing the journaled participants of a Host.

Participants write through an UndoLog, which records the previous value of
every key or attribute it overwrites. A snapshot is just the current log
length, and rolling back replays only the entries written after it, so the
cost of a transaction follows what it touches, not how much state exists.

Usage:
    log = UndoLog()
    mark = log.mark()
    log.set_item(balances, alice, 10)
    log.rollback(mark)   # balances is back to what it was
"""

from collections.abc import MutableMapping
from typing import Any

_MISSING = object()


class UndoLog:
    """Ordered record of overwritten values since the last commit."""

    def __init__(self) -> None:
        self._entries: list[tuple[bool, Any, Any, Any]] = []

    def __len__(self) -> int:
        return len(self._entries)

    def mark(self) -> int:
        return len(self._entries)

    def set_item(self, mapping: MutableMapping, key: Any, value: Any) -> None:
        self._entries.append((False, mapping, key, mapping.get(key, _MISSING)))
        mapping[key] = value

    def pop_item(self, mapping: MutableMapping, key: Any) -> Any:
        """Remove key and return its value. Raises KeyError if absent."""
        value = mapping[key]
        self._entries.append((False, mapping, key, value))
        del mapping[key]
        return value

    def set_attr(self, obj: Any, name: str, value: Any) -> None:
        self._entries.append((True, obj, name, getattr(obj, name)))
        setattr(obj, name, value)

    def rollback(self, mark: int) -> None:
        """Undo every write made after mark, newest first."""
        while len(self._entries) > mark:
            is_attr, target, key, previous = self._entries.pop()
            if is_attr:
                setattr(target, key, previous)
            elif previous is _MISSING:
                target.pop(key, None)
            else:
                target[key] = previous

    def commit(self) -> None:
        """Forget all entries; nothing before this point can be rolled back."""
        self._entries.clear()

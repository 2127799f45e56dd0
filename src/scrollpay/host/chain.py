"""Host execution model: sequential, all-or-nothing transactions.

Every state-mutating operation runs inside Host.atomic(). The outermost
transaction holds the host lock, so no two operations interleave even when
their external calls await. Each journaled participant is snapshotted on
entry and restored if any exception (cancellation included) escapes.
Events emitted inside a transaction reach the event log only on commit.

Usage:
    host = Host(ManualClock())
    host.register(token)
    async with host.atomic():
        await token.transfer(alice, bob, 10)
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any, Protocol

from scrollpay.host.clock import SystemClock
from scrollpay.logging import get_logger
from scrollpay.models import EventName, LedgerEvent

logger = get_logger(__name__)


class Clock(Protocol):
    def now(self) -> int: ...


class Journaled(Protocol):
    """State owner whose state can be captured and put back.

    snapshot() runs on entry to every transaction and savepoint, so it must
    not scale with the amount of state held. commit() runs once the
    outermost transaction commits; snapshots taken before it are then dead.
    """

    def snapshot(self) -> Any: ...

    def restore(self, snapshot: Any) -> None: ...

    def commit(self) -> None: ...


EventListener = Callable[[LedgerEvent], None]


class Host:
    """Shared execution context for all on-ledger components.

    Args:
        clock: Block time source. Defaults to the wall clock.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()
        self._participants: list[Journaled] = []
        self._lock = asyncio.Lock()
        self._owner_task: asyncio.Task | None = None
        self._pending: list[tuple[EventName, str, int, dict[str, Any]]] = []
        self._events: list[LedgerEvent] = []
        self._listeners: list[EventListener] = []

    @property
    def clock(self) -> Clock:
        return self._clock

    def now(self) -> int:
        """Current block time in seconds."""
        return self._clock.now()

    def register(self, participant: Journaled) -> None:
        """Include a participant's state in every future transaction."""
        self._participants.append(participant)

    @property
    def in_transaction(self) -> bool:
        return self._owner_task is not None

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        """Run the enclosed block as one transaction (or a savepoint if nested)."""
        task = asyncio.current_task()
        if self._owner_task is not None and self._owner_task is task:
            async with self._savepoint():
                yield
            return

        async with self._lock:
            self._owner_task = task
            try:
                async with self._savepoint():
                    yield
                self._commit()
            finally:
                self._owner_task = None
                self._pending.clear()

    @asynccontextmanager
    async def _savepoint(self) -> AsyncIterator[None]:
        snapshots = [p.snapshot() for p in self._participants]
        pending_mark = len(self._pending)
        try:
            yield
        except BaseException as exc:
            for participant, snapshot in zip(self._participants, snapshots):
                participant.restore(snapshot)
            dropped = len(self._pending) - pending_mark
            del self._pending[pending_mark:]
            logger.debug(
                "transaction_reverted",
                error=type(exc).__name__,
                dropped_events=dropped,
            )
            raise

    def emit(self, emitter: str, name: EventName, **args: Any) -> None:
        """Record an event; buffered until the enclosing transaction commits."""
        entry = (name, emitter, self.now(), args)
        if self._owner_task is None:
            self._append(*entry)
            return
        self._pending.append(entry)

    def _commit(self) -> None:
        for participant in self._participants:
            participant.commit()
        pending, self._pending = self._pending, []
        for entry in pending:
            self._append(*entry)

    def _append(
        self, name: EventName, emitter: str, timestamp: int, args: dict[str, Any]
    ) -> None:
        event = LedgerEvent(
            seq=len(self._events),
            name=name,
            emitter=emitter,
            timestamp=timestamp,
            args=dict(args),
        )
        self._events.append(event)
        for listener in self._listeners:
            try:
                listener(event)
            except Exception:
                logger.error(
                    "event_listener_failed",
                    event=name.value,
                    seq=event.seq,
                    exc_info=True,
                )

    def subscribe(self, listener: EventListener) -> None:
        """Call listener with every committed event from now on."""
        self._listeners.append(listener)

    def events(self, name: EventName | None = None) -> list[LedgerEvent]:
        """Return committed events, optionally filtered by name."""
        if name is None:
            return list(self._events)
        return [e for e in self._events if e.name == name]

    def events_since(self, seq: int) -> list[LedgerEvent]:
        """Return committed events with seq >= the given value."""
        return self._events[seq:]

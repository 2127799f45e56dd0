"""Ownership and pause capabilities shared by the oracle and the ledger."""

from typing import Any

from scrollpay.exceptions import ContractNotPaused, ContractPaused, NotOwner
from scrollpay.host.chain import Host
from scrollpay.logging import get_logger
from scrollpay.models import EventName

logger = get_logger(__name__)


class Ownable:
    """Single-owner access control for one component."""

    def __init__(self, host: Host, emitter: str, owner: str) -> None:
        self._host = host
        self._emitter = emitter
        self._owner = owner
        host.register(self)

    @property
    def owner(self) -> str:
        return self._owner

    def require_owner(self, caller: str) -> None:
        if caller != self._owner:
            raise NotOwner(f"{caller} is not the owner of {self._emitter}")

    async def transfer_ownership(self, caller: str, new_owner: str) -> None:
        async with self._host.atomic():
            self.require_owner(caller)
            previous, self._owner = self._owner, new_owner
            self._host.emit(
                self._emitter,
                EventName.OWNERSHIP_TRANSFERRED,
                previous_owner=previous,
                new_owner=new_owner,
            )
        logger.info("ownership_transferred", component=self._emitter, new_owner=new_owner)

    def snapshot(self) -> Any:
        return self._owner

    def restore(self, snapshot: Any) -> None:
        self._owner = snapshot

    def commit(self) -> None:
        pass


class PauseController:
    """Global pause switch; payment-creating operations fail closed while paused."""

    def __init__(self, host: Host, ownable: Ownable, emitter: str) -> None:
        self._host = host
        self._ownable = ownable
        self._emitter = emitter
        self._paused = False
        host.register(self)

    @property
    def paused(self) -> bool:
        return self._paused

    def require_not_paused(self) -> None:
        if self._paused:
            raise ContractPaused(f"{self._emitter} is paused")

    async def pause(self, caller: str) -> None:
        async with self._host.atomic():
            self._ownable.require_owner(caller)
            self.require_not_paused()
            self._paused = True
            self._host.emit(self._emitter, EventName.PAUSED, account=caller)
        logger.warning("component_paused", component=self._emitter, caller=caller)

    async def unpause(self, caller: str) -> None:
        async with self._host.atomic():
            self._ownable.require_owner(caller)
            if not self._paused:
                raise ContractNotPaused(f"{self._emitter} is not paused")
            self._paused = False
            self._host.emit(self._emitter, EventName.UNPAUSED, account=caller)
        logger.info("component_unpaused", component=self._emitter, caller=caller)

    def snapshot(self) -> Any:
        return self._paused

    def restore(self, snapshot: Any) -> None:
        self._paused = snapshot

    def commit(self) -> None:
        pass

"""Tests for Ownable and PauseController."""

import pytest

from scrollpay.exceptions import ContractNotPaused, ContractPaused, NotOwner
from scrollpay.host.access import Ownable, PauseController
from scrollpay.host.chain import Host
from scrollpay.models import EventName

OWNER = "0x00000000000000000000000000000000000000f0"
STRANGER = "0x0000000000000000000000000000000000000bad"
EMITTER = "0x00000000000000000000000000000000000000b2"


@pytest.fixture
def ownable(host: Host) -> Ownable:
    return Ownable(host, EMITTER, OWNER)


@pytest.fixture
def pause(host: Host, ownable: Ownable) -> PauseController:
    return PauseController(host, ownable, EMITTER)


def test_require_owner(ownable: Ownable) -> None:
    ownable.require_owner(OWNER)
    with pytest.raises(NotOwner):
        ownable.require_owner(STRANGER)


@pytest.mark.asyncio
async def test_transfer_ownership_emits_event(host: Host, ownable: Ownable) -> None:
    await ownable.transfer_ownership(OWNER, STRANGER)

    assert ownable.owner == STRANGER
    (event,) = host.events(EventName.OWNERSHIP_TRANSFERRED)
    assert event.args == {"previous_owner": OWNER, "new_owner": STRANGER}
    with pytest.raises(NotOwner):
        ownable.require_owner(OWNER)


@pytest.mark.asyncio
async def test_transfer_ownership_requires_owner(host: Host, ownable: Ownable) -> None:
    with pytest.raises(NotOwner):
        await ownable.transfer_ownership(STRANGER, STRANGER)

    assert ownable.owner == OWNER
    assert host.events() == []


@pytest.mark.asyncio
async def test_pause_and_unpause(host: Host, pause: PauseController) -> None:
    await pause.pause(OWNER)
    assert pause.paused
    with pytest.raises(ContractPaused):
        pause.require_not_paused()

    await pause.unpause(OWNER)
    assert not pause.paused
    pause.require_not_paused()

    assert [e.name for e in host.events()] == [EventName.PAUSED, EventName.UNPAUSED]


@pytest.mark.asyncio
async def test_pause_twice_fails(pause: PauseController) -> None:
    await pause.pause(OWNER)

    with pytest.raises(ContractPaused):
        await pause.pause(OWNER)


@pytest.mark.asyncio
async def test_unpause_when_not_paused_fails(pause: PauseController) -> None:
    with pytest.raises(ContractNotPaused):
        await pause.unpause(OWNER)


@pytest.mark.asyncio
async def test_pause_requires_owner(host: Host, pause: PauseController) -> None:
    with pytest.raises(NotOwner):
        await pause.pause(STRANGER)

    assert not pause.paused
    assert host.events() == []

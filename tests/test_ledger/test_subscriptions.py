"""Tests for subscriptions and batched subscription processing.

Verifies:
- Creation charges the first cycle immediately
- Processing charges a subscription at most once per interval
- Underfunded subscriptions are skipped without failing the batch
- Batches are bounded and resume from a wrapping cursor
"""

from collections.abc import Awaitable, Callable

import pytest

from scrollpay.exceptions import ContractPaused, InvalidAmount, TransferFailed
from scrollpay.host.chain import Host
from scrollpay.host.clock import ManualClock
from scrollpay.ledger.core import PaymentLedger
from scrollpay.models import EventName
from scrollpay.tokens.memory import InMemoryToken
from scrollpay.units import ONE_USDC

MERCHANT = "0x000000000000000000000000000000000000beef"
ALICE = "0x00000000000000000000000000000000000a11ce"
BOB = "0x0000000000000000000000000000000000000b0b"
CAROL = "0x000000000000000000000000000000000000ca01"
KEEPER = "0x00000000000000000000000000000000000000d4"
MONTH = 30 * 24 * 3600
FEE = 10 * ONE_USDC

Fund = Callable[..., Awaitable[None]]


@pytest.mark.asyncio
async def test_create_charges_first_cycle(
    ledger: PaymentLedger,
    stable: InMemoryToken,
    host: Host,
    clock: ManualClock,
    fund: Fund,
) -> None:
    await fund(ALICE, 100 * ONE_USDC)

    subscription_id = await ledger.create_subscription(ALICE, MERCHANT, FEE, MONTH)

    subscription = ledger.get_subscription(subscription_id)
    assert subscription_id == 0
    assert subscription.subscriber == ALICE
    assert subscription.last_payment == clock.now()
    assert ledger.merchant_balance(MERCHANT) == FEE
    assert await stable.balance_of(ALICE) == 90 * ONE_USDC
    assert ledger.payment_count == 1

    names = [e.name for e in host.events()]
    assert names == [EventName.SUBSCRIPTION_CREATED, EventName.PAYMENT_PROCESSED]
    assert host.events(EventName.PAYMENT_PROCESSED)[0].args["subscription_id"] == 0


@pytest.mark.asyncio
async def test_create_requires_funds_and_valid_terms(
    ledger: PaymentLedger, host: Host, fund: Fund
) -> None:
    with pytest.raises(TransferFailed):
        await ledger.create_subscription(ALICE, MERCHANT, FEE, MONTH)
    assert ledger.subscription_count == 0
    assert host.events() == []

    await fund(ALICE, 100 * ONE_USDC)
    with pytest.raises(InvalidAmount):
        await ledger.create_subscription(ALICE, MERCHANT, FEE, 0)
    with pytest.raises(InvalidAmount):
        await ledger.create_subscription(ALICE, MERCHANT, 0, MONTH)


@pytest.mark.asyncio
async def test_process_charges_once_per_interval(
    ledger: PaymentLedger, clock: ManualClock, fund: Fund
) -> None:
    await fund(ALICE, 100 * ONE_USDC)
    await ledger.create_subscription(ALICE, MERCHANT, FEE, MONTH)

    run = await ledger.process_subscriptions(KEEPER)
    assert run.charged == []
    assert run.scanned == 1

    clock.advance(MONTH)
    first = await ledger.process_subscriptions(KEEPER)
    second = await ledger.process_subscriptions(KEEPER)

    assert first.charged == [0]
    assert second.charged == []
    assert ledger.merchant_balance(MERCHANT) == 2 * FEE
    assert ledger.get_subscription(0).last_payment == clock.now()


@pytest.mark.asyncio
async def test_underfunded_subscription_is_skipped(
    ledger: PaymentLedger,
    stable: InMemoryToken,
    clock: ManualClock,
    fund: Fund,
) -> None:
    await fund(ALICE, FEE)
    await fund(BOB, 100 * ONE_USDC)
    await ledger.create_subscription(ALICE, MERCHANT, FEE, MONTH)
    await ledger.create_subscription(BOB, MERCHANT, FEE, MONTH)
    clock.advance(MONTH)

    run = await ledger.process_subscriptions(KEEPER)

    assert run.charged == [1]
    assert run.skipped == [0]
    assert ledger.merchant_balance(MERCHANT) == 3 * FEE

    await fund(ALICE, FEE)
    retry = await ledger.process_subscriptions(KEEPER)
    assert retry.charged == [0]


@pytest.mark.asyncio
async def test_revoked_allowance_is_skipped(
    ledger: PaymentLedger, stable: InMemoryToken, clock: ManualClock, fund: Fund
) -> None:
    await fund(ALICE, 100 * ONE_USDC)
    await ledger.create_subscription(ALICE, MERCHANT, FEE, MONTH)
    await stable.approve(ALICE, ledger.address, 0)
    clock.advance(MONTH)

    run = await ledger.process_subscriptions(KEEPER)

    assert run.skipped == [0]
    assert await stable.balance_of(ALICE) == 90 * ONE_USDC


@pytest.mark.asyncio
async def test_batches_resume_from_cursor(
    ledger: PaymentLedger, clock: ManualClock, fund: Fund
) -> None:
    for subscriber in (ALICE, BOB, CAROL):
        await fund(subscriber, 100 * ONE_USDC)
        await ledger.create_subscription(subscriber, MERCHANT, FEE, MONTH)
    clock.advance(MONTH)

    first = await ledger.process_subscriptions(KEEPER, limit=2)
    assert first.charged == [0, 1]
    assert first.next_cursor == 2

    second = await ledger.process_subscriptions(KEEPER, limit=2)
    assert second.charged == [2]
    assert second.scanned == 2
    assert second.next_cursor == 1


@pytest.mark.asyncio
async def test_process_with_no_subscriptions(ledger: PaymentLedger) -> None:
    run = await ledger.process_subscriptions(KEEPER)

    assert run.scanned == 0
    assert run.charged == []


@pytest.mark.asyncio
async def test_process_rejects_invalid_batch(ledger: PaymentLedger) -> None:
    with pytest.raises(InvalidAmount):
        await ledger.process_subscriptions(KEEPER, limit=0)


@pytest.mark.asyncio
async def test_paused_ledger_rejects_subscriptions(
    ledger: PaymentLedger, fund: Fund
) -> None:
    await fund(ALICE, 100 * ONE_USDC)
    await ledger.pause(ledger.owner)

    with pytest.raises(ContractPaused):
        await ledger.create_subscription(ALICE, MERCHANT, FEE, MONTH)
    with pytest.raises(ContractPaused):
        await ledger.process_subscriptions(KEEPER)

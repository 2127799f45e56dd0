"""Shared test fixtures for the ScrollPay ledger.

Every component shares one Host driven by a ManualClock, the manual feed
starts with a fresh 2000 USD/ETH round, and the swap router is seeded with
reserves of both tokens.
"""

from collections.abc import Awaitable, Callable

import pytest

from scrollpay.config import LedgerSettings, OracleSettings, SwapSettings
from scrollpay.host.chain import Host
from scrollpay.host.clock import ManualClock
from scrollpay.ledger.core import PaymentLedger
from scrollpay.oracle.manual_feed import ManualPriceFeed
from scrollpay.oracle.price_oracle import PriceOracle
from scrollpay.swap.simulated import SimulatedSwapRouter
from scrollpay.tokens.memory import InMemoryToken

START_TIME = 1_700_000_000
ETH_PRICE = 2000 * 10**8


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(START_TIME)


@pytest.fixture
def host(clock: ManualClock) -> Host:
    return Host(clock)


@pytest.fixture
def feed(clock: ManualClock) -> ManualPriceFeed:
    """Manual feed with one fresh round at 2000.00000000."""
    feed = ManualPriceFeed()
    feed.push(ETH_PRICE, clock.now())
    return feed


@pytest.fixture
def oracle_settings() -> OracleSettings:
    return OracleSettings()


@pytest.fixture
def oracle(host: Host, feed: ManualPriceFeed, oracle_settings: OracleSettings) -> PriceOracle:
    return PriceOracle(host, feed, oracle_settings)


@pytest.fixture
def stable(host: Host) -> InMemoryToken:
    return InMemoryToken(host, "USDC", 6)


@pytest.fixture
def native(host: Host) -> InMemoryToken:
    return InMemoryToken(host, "WETH", 18)


@pytest.fixture
def swap_settings() -> SwapSettings:
    return SwapSettings()


@pytest.fixture
def router(
    host: Host,
    oracle: PriceOracle,
    native: InMemoryToken,
    stable: InMemoryToken,
    swap_settings: SwapSettings,
) -> SimulatedSwapRouter:
    router = SimulatedSwapRouter(host, oracle, native, stable, swap_settings)
    stable.mint(router.address, 1_000_000 * 10**6)
    native.mint(router.address, 500 * 10**18)
    return router


@pytest.fixture
def ledger_settings() -> LedgerSettings:
    return LedgerSettings()


@pytest.fixture
def ledger(
    host: Host,
    oracle: PriceOracle,
    stable: InMemoryToken,
    native: InMemoryToken,
    router: SimulatedSwapRouter,
    ledger_settings: LedgerSettings,
    swap_settings: SwapSettings,
) -> PaymentLedger:
    return PaymentLedger(
        host=host,
        oracle=oracle,
        token=stable,
        native=native,
        router=router,
        settings=ledger_settings,
        swap_settings=swap_settings,
    )


@pytest.fixture
def fund(
    stable: InMemoryToken, ledger: PaymentLedger
) -> Callable[..., Awaitable[None]]:
    """Mint stable tokens to an account and approve the ledger to pull them."""

    async def _fund(account: str, amount: int, allowance: int | None = None) -> None:
        stable.mint(account, amount)
        await stable.approve(account, ledger.address, amount if allowance is None else allowance)

    return _fund

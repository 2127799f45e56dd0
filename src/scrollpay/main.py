"""Entry point for the ScrollPay ledger service.

Wires all components together and serves the HTTP API. The subscription
keeper and the event indexer run as background tasks in the same asyncio
event loop, managed by FastAPI's lifespan context manager.

Handles SIGINT/SIGTERM for graceful shutdown and SIGUSR1 for an emergency
pause of the ledger.

Component wiring order (in build_components):
1. Host (clock, transactions, event log)
2. PriceFeed (manual simulation feed or ccxt exchange ticker)
3. PriceOracle
4. Stable and wrapped-native token ledgers (in-memory)
5. SimulatedSwapRouter (seeded with reserves)
6. PaymentLedger
7. SubscriptionKeeper
8. EventDatabase + EventIndexer (optional)
"""

import asyncio
import signal
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from scrollpay.config import AppSettings
from scrollpay.host.chain import Clock, Host
from scrollpay.indexer.database import EventDatabase
from scrollpay.indexer.indexer import EventIndexer
from scrollpay.keeper import SubscriptionKeeper
from scrollpay.ledger.core import PaymentLedger
from scrollpay.logging import get_logger, setup_logging
from scrollpay.oracle.exchange_feed import ExchangePriceFeed
from scrollpay.oracle.feed import PriceFeed
from scrollpay.oracle.manual_feed import ManualPriceFeed
from scrollpay.oracle.price_oracle import PriceOracle
from scrollpay.swap.simulated import SimulatedSwapRouter
from scrollpay.tokens.memory import InMemoryToken
from scrollpay.units import NATIVE_DECIMALS, PRICE_DECIMALS, STABLE_DECIMALS, format_units


def build_components(settings: AppSettings, clock: Clock | None = None) -> dict[str, Any]:
    """Build all components from settings.

    Does NOT connect the exchange feed or the event database; that happens
    in the lifespan (API mode) or run() (headless mode).

    Args:
        settings: Application-wide settings.
        clock: Block time source; the wall clock by default.

    Returns:
        Dict mapping component names to instances.
    """
    host = Host(clock)

    feed: PriceFeed
    if settings.oracle.feed_mode == "exchange":
        feed = ExchangePriceFeed(settings.oracle)
    else:
        feed = ManualPriceFeed(settings.oracle.symbol)
        feed.push(settings.oracle.initial_price, host.now())
        get_logger("scrollpay.main").info(
            "manual_feed_seeded",
            symbol=settings.oracle.symbol,
            price=str(format_units(settings.oracle.initial_price, PRICE_DECIMALS)),
        )

    oracle = PriceOracle(host, feed, settings.oracle)

    stable = InMemoryToken(host, "USDC", STABLE_DECIMALS)
    native = InMemoryToken(host, "WETH", NATIVE_DECIMALS)

    router = SimulatedSwapRouter(host, oracle, native, stable, settings.swap)
    stable.mint(router.address, settings.swap.simulated_stable_reserve)
    native.mint(router.address, settings.swap.simulated_native_reserve)

    ledger = PaymentLedger(
        host=host,
        oracle=oracle,
        token=stable,
        native=native,
        router=router,
        settings=settings.ledger,
        swap_settings=settings.swap,
    )

    keeper = SubscriptionKeeper(
        ledger, settings.keeper, batch_size=settings.ledger.subscription_batch_size
    )

    database: EventDatabase | None = None
    indexer: EventIndexer | None = None
    if settings.indexer.enabled:
        database = EventDatabase(settings.indexer.db_path)
        indexer = EventIndexer(host, database, interval=settings.indexer.interval)

    return {
        "host": host,
        "feed": feed,
        "oracle": oracle,
        "stable": stable,
        "native": native,
        "router": router,
        "ledger": ledger,
        "keeper": keeper,
        "database": database,
        "indexer": indexer,
    }


async def _refresh_manual_feed(feed: ManualPriceFeed, host: Host, price: int, interval: int) -> None:
    """Republish the simulated price so the manual feed never goes stale."""
    while True:
        await asyncio.sleep(interval)
        feed.push(price, host.now())


async def _start_services(components: dict[str, Any], settings: AppSettings) -> list[asyncio.Task]:
    """Connect external resources and start background loops."""
    feed = components["feed"]
    if isinstance(feed, ExchangePriceFeed):
        await feed.connect()
    if components["database"] is not None:
        await components["database"].connect()

    tasks: list[asyncio.Task] = []
    if isinstance(feed, ManualPriceFeed):
        tasks.append(asyncio.create_task(_refresh_manual_feed(
            feed,
            components["host"],
            settings.oracle.initial_price,
            max(1, settings.oracle.heartbeat_period // 2),
        )))
    if settings.keeper.enabled:
        tasks.append(asyncio.create_task(components["keeper"].start()))
    if components["indexer"] is not None:
        tasks.append(asyncio.create_task(components["indexer"].start()))
    return tasks


async def _stop_services(components: dict[str, Any], tasks: list[asyncio.Task]) -> None:
    await components["keeper"].stop()
    if components["indexer"] is not None:
        await components["indexer"].stop()

    for task in tasks:
        task.cancel()
    for task in tasks:
        try:
            await task
        except asyncio.CancelledError:
            pass

    if components["indexer"] is not None:
        await components["indexer"].sync()
    if components["database"] is not None:
        await components["database"].close()
    feed = components["feed"]
    if isinstance(feed, ExchangePriceFeed):
        await feed.close()


def _setup_signal_handlers(
    components: dict[str, Any],
    owner: str,
    stop_event: asyncio.Event | None = None,
    graceful: bool = True,
) -> None:
    """Register OS signal handlers.

    SIGINT/SIGTERM stop the background loops gracefully (skipped with
    graceful=False, when uvicorn owns those signals).
    SIGUSR1 pauses the ledger (payment-creating operations fail closed).

    Must be called after the asyncio event loop is running.
    """
    logger = get_logger("scrollpay.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        asyncio.create_task(components["keeper"].stop())
        if components["indexer"] is not None:
            asyncio.create_task(components["indexer"].stop())
        if stop_event is not None:
            stop_event.set()

    def _emergency_handler() -> None:
        logger.critical("emergency_pause_signal_received")
        if not components["ledger"].paused:
            asyncio.create_task(components["ledger"].pause(owner))

    if graceful:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _graceful_handler)

    loop.add_signal_handler(signal.SIGUSR1, _emergency_handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage component lifecycle within the FastAPI application."""
    logger = get_logger("scrollpay.main")
    settings = app.state.settings
    components = app.state.components

    app.state.host = components["host"]
    app.state.oracle = components["oracle"]
    app.state.ledger = components["ledger"]
    app.state.indexer = components["indexer"]
    app.state.tokens = {t.symbol: t for t in (components["stable"], components["native"])}
    app.state.faucet = settings.oracle.feed_mode == "manual"

    tasks = await _start_services(components, settings)
    _setup_signal_handlers(components, settings.ledger.owner, graceful=False)

    logger.info(
        "lifespan_started",
        feed_mode=settings.oracle.feed_mode,
        keeper=settings.keeper.enabled,
        indexer=settings.indexer.enabled,
    )

    yield

    await _stop_services(components, tasks)
    logger.info("scrollpay_stopped")


async def run() -> None:
    """Run the service, with the HTTP API when API_ENABLED (default) or headless."""
    settings = AppSettings()

    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("scrollpay.main")

    components = build_components(settings)

    if settings.api.enabled:
        from scrollpay.api.app import create_app

        app = create_app(lifespan=lifespan)
        app.state.settings = settings
        app.state.components = components

        logger.info("starting_with_api", host=settings.api.host, port=settings.api.port)

        config = uvicorn.Config(
            app,
            host=settings.api.host,
            port=settings.api.port,
            log_level="warning",
        )
        server = uvicorn.Server(config)
        await server.serve()
    else:
        logger.info("starting_headless", keeper_interval=settings.keeper.interval)
        stop_event = asyncio.Event()
        tasks = await _start_services(components, settings)
        _setup_signal_handlers(components, settings.ledger.owner, stop_event)
        try:
            await stop_event.wait()
        finally:
            await _stop_services(components, tasks)
            logger.info("scrollpay_stopped")


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()

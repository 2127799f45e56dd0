"""Subscription keeper -- the external actor that drives recurring charges.

The ledger never schedules anything itself. The keeper calls
process_subscriptions every interval; a subscription skipped for lack of
funds is simply picked up again on a later run.
"""

from __future__ import annotations

import asyncio

from scrollpay.config import KeeperSettings, LedgerSettings
from scrollpay.exceptions import ContractPaused
from scrollpay.ledger.core import PaymentLedger
from scrollpay.logging import get_logger
from scrollpay.models import SubscriptionRun

logger = get_logger(__name__)


class SubscriptionKeeper:
    """Periodically processes subscriptions in bounded batches.

    Args:
        ledger: The payment ledger to drive.
        settings: Keeper address (transaction sender) and run interval.
        batch_size: Subscriptions scanned per run. Defaults to the ledger's.
    """

    def __init__(
        self,
        ledger: PaymentLedger,
        settings: KeeperSettings | None = None,
        batch_size: int | None = None,
    ) -> None:
        self._ledger = ledger
        self._settings = settings or KeeperSettings()
        self._batch_size = batch_size or LedgerSettings().subscription_batch_size
        self._running = False
        self._runs = 0
        self._last_run: SubscriptionRun | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def last_run(self) -> SubscriptionRun | None:
        return self._last_run

    async def run_once(self) -> SubscriptionRun | None:
        """Process one batch. Returns None when the ledger is paused."""
        try:
            run = await self._ledger.process_subscriptions(
                self._settings.address, limit=self._batch_size
            )
        except ContractPaused:
            logger.info("keeper_skipped_paused")
            return None
        self._runs += 1
        self._last_run = run
        if run.charged or run.skipped:
            logger.info(
                "keeper_run",
                run=self._runs,
                charged=run.charged,
                skipped=run.skipped,
            )
        return run

    async def start(self) -> None:
        """Run until stop() is called. Errors are logged and the loop continues."""
        self._running = True
        logger.info("keeper_started", interval=self._settings.interval)
        while self._running:
            try:
                await self.run_once()
                await asyncio.sleep(self._settings.interval)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("keeper_run_error", error=str(e), exc_info=True)
                await asyncio.sleep(self._settings.interval)
        logger.info("keeper_stopped")

    async def stop(self) -> None:
        self._running = False

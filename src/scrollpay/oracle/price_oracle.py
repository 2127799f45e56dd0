"""Price resolution with staleness detection and an owner-set fallback.

Resolution is evaluated fresh on every call (no caching):

1. Query the feed. If the query fails, serve the fallback while it is
   younger than one heartbeat, otherwise fail with InvalidPriceFeed.
2. A reading older than one heartbeat is stale. A stale reading is replaced
   by the fallback only inside the grace window after expiry, and only if
   the fallback was set no more than one heartbeat before the reading.
   Otherwise StalePriceData.
3. A fresh reading must have a positive answer and a non-zero timestamp
   (InvalidPrice) and must not come from an incomplete round
   (StalePriceData).

Conversions between the 18-decimal native asset and the 6-decimal stable
token go through the resolved 8-decimal price with truncating integer
division, so round trips are lossy.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from scrollpay.config import OracleSettings
from scrollpay.exceptions import InvalidPrice, InvalidPriceFeed, StalePriceData
from scrollpay.host.access import Ownable
from scrollpay.host.chain import Host
from scrollpay.logging import get_logger
from scrollpay.models import ConversionDirection, EventName, FallbackPrice, PriceFeedReading
from scrollpay.oracle.feed import PriceFeed, query_feed
from scrollpay.units import DECIMAL_GAP

logger = get_logger(__name__)


class PriceOracle:
    """Resilient price source for native/stable conversions.

    Args:
        host: Shared execution context (clock, transactions, events).
        feed: Primary price feed. None is rejected.
        settings: Heartbeat, grace period, precision, address and owner.
    """

    def __init__(
        self,
        host: Host,
        feed: PriceFeed | None,
        settings: OracleSettings | None = None,
    ) -> None:
        if feed is None:
            raise InvalidPriceFeed("price feed is required")
        self._host = host
        self._feed = feed
        self._settings = settings or OracleSettings()
        self._fallback = FallbackPrice()
        self._ownable = Ownable(host, self.address, self._settings.owner)
        host.register(self)

    @property
    def address(self) -> str:
        return self._settings.address

    @property
    def owner(self) -> str:
        return self._ownable.owner

    @property
    def feed(self) -> PriceFeed:
        return self._feed

    @property
    def heartbeat_period(self) -> int:
        return self._settings.heartbeat_period

    @property
    def grace_period(self) -> int:
        return self._settings.grace_period

    @property
    def fallback(self) -> FallbackPrice:
        """A copy of the current fallback state."""
        return replace(self._fallback)

    async def resolve_price(self) -> int:
        """Return the current price with 8 decimals.

        Raises:
            InvalidPriceFeed: Feed unreachable and no recent fallback.
            StalePriceData: Reading too old without a valid fallback, or an
                incomplete round.
            InvalidPrice: Non-positive answer or zero timestamp.
        """
        now = self._host.now()
        heartbeat = self._settings.heartbeat_period
        result = await query_feed(self._feed)

        if not result.ok:
            if self._fallback.price > 0 and now <= self._fallback.last_update + heartbeat:
                logger.info("price_fallback_used", reason="feed_unreachable", price=self._fallback.price)
                return self._fallback.price
            raise InvalidPriceFeed(f"feed unreachable: {result.error}")

        reading = result.reading
        assert reading is not None

        if now > reading.updated_at + heartbeat:
            if self._fallback_covers(reading, now):
                logger.info(
                    "price_fallback_used",
                    reason="feed_stale",
                    price=self._fallback.price,
                    reading_age=now - reading.updated_at,
                )
                return self._fallback.price
            raise StalePriceData(
                f"reading from {reading.updated_at} is {now - reading.updated_at}s old"
            )

        if reading.answer <= 0:
            raise InvalidPrice(f"feed answer {reading.answer} is not positive")
        if reading.updated_at == 0:
            raise InvalidPrice("feed round has no timestamp")
        if reading.answered_in_round < reading.round_id:
            raise StalePriceData(
                f"round {reading.round_id} answered in older round {reading.answered_in_round}"
            )
        return reading.answer

    def _fallback_covers(self, reading: PriceFeedReading, now: int) -> bool:
        heartbeat = self._settings.heartbeat_period
        within_grace = now <= reading.updated_at + heartbeat + self._settings.grace_period
        recent_enough = self._fallback.last_update + heartbeat >= reading.updated_at
        return self._fallback.price > 0 and within_grace and recent_enough

    async def is_healthy(self) -> bool:
        """True iff the feed answers with a fresh, positive, timestamped reading. Never raises."""
        result = await query_feed(self._feed)
        if not result.ok:
            return False
        reading = result.reading
        assert reading is not None
        return (
            reading.answer > 0
            and reading.updated_at != 0
            and self._host.now() <= reading.updated_at + self._settings.heartbeat_period
        )

    async def convert(self, amount: int, direction: ConversionDirection) -> int:
        """Convert between native (18 decimals) and stable (6 decimals) base units.

        Zero converts to zero without querying the feed.
        """
        if amount == 0:
            return 0
        if amount < 0:
            raise ValueError(f"amount must be non-negative: {amount}")

        price = await self.resolve_price()
        scale = 10**self._settings.price_precision
        if direction is ConversionDirection.ETH_TO_USDC:
            return amount * price // scale // DECIMAL_GAP
        return amount * DECIMAL_GAP * scale // price

    async def eth_to_usdc(self, amount: int) -> int:
        return await self.convert(amount, ConversionDirection.ETH_TO_USDC)

    async def usdc_to_eth(self, amount: int) -> int:
        return await self.convert(amount, ConversionDirection.USDC_TO_ETH)

    async def update_fallback_price(self, caller: str, price: int) -> None:
        """Owner-only: set the fallback price and stamp it with the current time."""
        async with self._host.atomic():
            self._ownable.require_owner(caller)
            if price <= 0:
                raise InvalidPrice("fallback price must be positive")
            self._fallback = FallbackPrice(price=price, last_update=self._host.now())
            self._host.emit(
                self.address,
                EventName.FALLBACK_PRICE_UPDATED,
                price=price,
                timestamp=self._fallback.last_update,
            )
        logger.info("fallback_price_updated", price=price, caller=caller)

    async def transfer_ownership(self, caller: str, new_owner: str) -> None:
        await self._ownable.transfer_ownership(caller, new_owner)

    def snapshot(self) -> Any:
        return replace(self._fallback)

    def restore(self, snapshot: Any) -> None:
        self._fallback = snapshot

    def commit(self) -> None:
        pass

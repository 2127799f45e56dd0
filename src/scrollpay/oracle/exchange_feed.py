"""Price feed backed by an exchange ticker via ccxt async.

Each successful ticker fetch becomes a new local round: the last traded
price scaled to 8 decimals is the answer and the ticker timestamp is the
update time. A ticker without a timestamp yields updated_at = 0, which the
oracle treats as a stale reading.
"""

from __future__ import annotations

import ccxt.async_support as ccxt_async

from scrollpay.config import OracleSettings
from scrollpay.exceptions import FeedUnavailable
from scrollpay.logging import get_logger
from scrollpay.models import PriceFeedReading
from scrollpay.oracle.feed import PriceFeed
from scrollpay.units import parse_units

logger = get_logger(__name__)


class ExchangePriceFeed(PriceFeed):
    """Concrete feed reading a ccxt exchange ticker."""

    def __init__(self, settings: OracleSettings, exchange: ccxt_async.Exchange | None = None) -> None:
        self._settings = settings
        if exchange is None:
            exchange_cls = getattr(ccxt_async, settings.exchange_id)
            exchange = exchange_cls({"enableRateLimit": True})
        self._exchange = exchange
        self._round_id = 0

    @property
    def description(self) -> str:
        return f"{self._settings.symbol} ({self._settings.exchange_id})"

    @property
    def decimals(self) -> int:
        return self._settings.price_precision

    async def connect(self) -> None:
        """Load markets so symbol lookups are validated up front."""
        logger.info("connecting_price_exchange", exchange=self._settings.exchange_id)
        markets = await self._exchange.load_markets()
        if self._settings.symbol not in markets:
            raise FeedUnavailable(
                f"{self._settings.symbol} not listed on {self._settings.exchange_id}"
            )
        logger.info(
            "price_exchange_connected",
            exchange=self._settings.exchange_id,
            symbol=self._settings.symbol,
        )

    async def close(self) -> None:
        """Release ccxt async resources. Must be called to avoid session leaks."""
        await self._exchange.close()
        logger.info("price_exchange_closed", exchange=self._settings.exchange_id)

    async def latest_round_data(self) -> PriceFeedReading:
        ticker = await self._exchange.fetch_ticker(self._settings.symbol)
        last = ticker.get("last")
        if last is None:
            raise FeedUnavailable(f"no last price in {self._settings.symbol} ticker")

        answer = parse_units(str(last), self.decimals)
        timestamp_ms = ticker.get("timestamp")
        updated_at = int(timestamp_ms) // 1000 if timestamp_ms is not None else 0

        self._round_id += 1
        reading = PriceFeedReading(
            round_id=self._round_id,
            answer=answer,
            started_at=updated_at,
            updated_at=updated_at,
            answered_in_round=self._round_id,
        )
        logger.debug(
            "exchange_round_read",
            symbol=self._settings.symbol,
            round_id=reading.round_id,
            answer=reading.answer,
            updated_at=reading.updated_at,
        )
        return reading

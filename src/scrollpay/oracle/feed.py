"""Price feed interface and the result type the oracle consumes.

The oracle never assumes a feed call succeeds: query_feed() turns every
outcome into a FeedResult that carries either a reading or a failure reason.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from scrollpay.logging import get_logger
from scrollpay.models import PriceFeedReading

logger = get_logger(__name__)


class PriceFeed(ABC):
    """Abstract external price-reporting capability (untrusted, may fail)."""

    @property
    def decimals(self) -> int:
        return 8

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable pair name, e.g. "ETH / USD"."""
        ...

    @abstractmethod
    async def latest_round_data(self) -> PriceFeedReading:
        """Return the latest round.

        Raises:
            Exception: Any failure of the underlying source.
        """
        ...


@dataclass(frozen=True)
class FeedResult:
    """Outcome of one feed query: a reading, or the reason there is none."""

    reading: PriceFeedReading | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.reading is not None


async def query_feed(feed: PriceFeed) -> FeedResult:
    """Query a feed, converting any failure into a FeedResult."""
    try:
        reading = await feed.latest_round_data()
    except Exception as exc:
        logger.warning(
            "price_feed_query_failed",
            feed=feed.description,
            error=f"{type(exc).__name__}: {exc}",
        )
        return FeedResult(error=f"{type(exc).__name__}: {exc}")
    return FeedResult(reading=reading)

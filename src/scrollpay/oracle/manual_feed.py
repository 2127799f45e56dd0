"""In-process price feed with directly settable rounds."""

from scrollpay.exceptions import FeedUnavailable
from scrollpay.models import PriceFeedReading
from scrollpay.oracle.feed import PriceFeed


class ManualPriceFeed(PriceFeed):
    """Feed whose rounds are pushed by hand.

    Used by the simulated environment and by tests. A failure can be
    injected with fail() to model an unreachable or reverting feed.
    """

    def __init__(self, description: str = "ETH / USD") -> None:
        self._description = description
        self._reading: PriceFeedReading | None = None
        self._failure: Exception | None = None

    @property
    def description(self) -> str:
        return self._description

    def push(
        self,
        answer: int,
        updated_at: int,
        answered_in_round: int | None = None,
    ) -> PriceFeedReading:
        """Publish a new round and return it.

        Args:
            answer: Price with 8 decimals (may be zero or negative).
            updated_at: Round timestamp in seconds.
            answered_in_round: Defaults to the new round id.
        """
        round_id = (self._reading.round_id + 1) if self._reading is not None else 1
        self._reading = PriceFeedReading(
            round_id=round_id,
            answer=answer,
            started_at=updated_at,
            updated_at=updated_at,
            answered_in_round=round_id if answered_in_round is None else answered_in_round,
        )
        return self._reading

    def fail(self, error: Exception | None = None) -> None:
        """Make every query raise until recover() is called."""
        self._failure = error or FeedUnavailable(f"{self._description} feed reverted")

    def recover(self) -> None:
        self._failure = None

    async def latest_round_data(self) -> PriceFeedReading:
        if self._failure is not None:
            raise self._failure
        if self._reading is None:
            raise FeedUnavailable(f"{self._description} feed has no rounds")
        return self._reading

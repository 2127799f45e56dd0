"""Price oracle layer -- feeds, fallback-aware price resolution and conversion."""

from scrollpay.oracle.feed import FeedResult, PriceFeed, query_feed
from scrollpay.oracle.manual_feed import ManualPriceFeed
from scrollpay.oracle.price_oracle import PriceOracle

__all__ = ["FeedResult", "ManualPriceFeed", "PriceFeed", "PriceOracle", "query_feed"]

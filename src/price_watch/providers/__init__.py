"""Upstream collaborators of the price watch service.

- SpotPriceSource: current token price from the price API
- CoinGeckoHistorySource: 30-day price history via CoinGecko
- ExplorerClient: address subscriptions with the explorer watch service
- FcmPushTransport / LoggingPushTransport: push delivery

Example:
    async with SpotPriceSource(url) as source:
        snapshot = await source.fetch_price()
        print(f"${snapshot.price}")
"""
from price_watch.providers.explorer import ExplorerClient
from price_watch.providers.price_sources import (CoinGeckoHistorySource,
                                                 SpotPriceSource)
from price_watch.providers.push import (FcmPushTransport, LoggingPushTransport,
                                        PushTransportABC)

__all__ = [
    "CoinGeckoHistorySource",
    "ExplorerClient",
    "FcmPushTransport",
    "LoggingPushTransport",
    "PushTransportABC",
    "SpotPriceSource",
]

"""Scheduled refresh jobs that keep the price cache current."""
import logging

from price_watch.core.exceptions import PriceSourceError
from price_watch.providers.price_sources import (CoinGeckoHistorySource,
                                                 SpotPriceSource)
from price_watch.services.price_cache import PriceCache

logger = logging.getLogger(__name__)


class PriceRefresher:
    """Polls the price sources and overwrites the cache on success.

    On failure the cache keeps its previous value (stale but available) and
    the failure is only logged; the next scheduled run is the retry.
    """

    def __init__(
        self,
        cache: PriceCache,
        spot_source: SpotPriceSource,
        history_source: CoinGeckoHistorySource,
    ) -> None:
        self._cache = cache
        self._spot_source = spot_source
        self._history_source = history_source

    async def refresh_spot(self) -> bool:
        try:
            snapshot = await self._spot_source.fetch_price()
        except PriceSourceError as exc:
            logger.warning("Spot price refresh failed, keeping cached value: %s", exc)
            return False
        self._cache.set_spot_price(snapshot.price, snapshot.observed_at)
        logger.debug("Spot price refreshed: %s", snapshot.price)
        return True

    async def refresh_history(self) -> bool:
        try:
            points = await self._history_source.fetch_history()
        except PriceSourceError as exc:
            logger.warning("Price history refresh failed, keeping cached value: %s", exc)
            return False
        self._cache.set_history(points)
        logger.debug("Price history refreshed: %d points", len(points))
        return True

"""Spot price and 30-day history sources."""
import os

import httpx
from pydantic import ValidationError

from price_watch.core.exceptions import PriceSourceError
from price_watch.providers.base import HttpProviderABC
from price_watch.providers.models import (CoinGeckoMarketChart,
                                          CoinGeckoMarketChartParams,
                                          SpotPriceResponse)
from price_watch.schemas import PricePoint, PriceSnapshot

_SOURCE_EXCEPTIONS: tuple[type[Exception], ...] = (
    httpx.HTTPError,
    ValidationError,
    ValueError,
)


class SpotPriceSource(HttpProviderABC):
    """Reads the current token price from the configured price API.

    The endpoint answers {"data": {"PriceUSD": <decimal>}}; the snake_case
    spelling "price_usd" is accepted too.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(timeout=timeout, client=client)
        self._url = url

    async def fetch_price(self) -> PriceSnapshot:
        """Fetch the spot price. Raises PriceSourceError on any failure."""
        if not self._url:
            raise PriceSourceError("Token price URL is not configured")
        try:
            response = await self._client.get(self._url)
            response.raise_for_status()
            payload = SpotPriceResponse.model_validate(response.json())
        except _SOURCE_EXCEPTIONS as exc:
            raise PriceSourceError(f"Spot price request failed: {exc}") from exc
        return PriceSnapshot(price=payload.data.price_usd)


class CoinGeckoHistorySource(HttpProviderABC):
    """Price history for one coin via CoinGecko's market_chart endpoint.

    Uses the CoinGecko ID of the token (e.g. "amber") and a fixed lookback
    window in days.
    """

    BASE_URL = "https://api.coingecko.com/api/v3"
    PRO_BASE_URL = "https://pro-api.coingecko.com/api/v3"

    def __init__(
        self,
        coin_id: str = "amber",
        *,
        days: int = 30,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the CoinGecko history source.

        Args:
            coin_id: CoinGecko ID of the tracked token.
            days: Lookback window of the history series.
            api_key: CoinGecko API key. Defaults to COINGECKO_API_KEY env var.
            base_url: Override the API base URL; defaults to public or Pro by key.
            timeout: Request timeout in seconds.
            client: Optional pre-built AsyncClient.
        """
        self._api_key = api_key or os.getenv("COINGECKO_API_KEY")
        headers: dict[str, str] = {}
        if self._api_key:
            headers["x-cg-pro-api-key"] = self._api_key
        base = base_url or (self.PRO_BASE_URL if self._api_key else self.BASE_URL)
        super().__init__(base, headers=headers, timeout=timeout, client=client)
        self._coin_id = coin_id.lower()
        self._days = days

    async def fetch_history(self) -> list[PricePoint]:
        """Fetch the (timestamp_ms, price) series ordered as CoinGecko returns it."""
        params = CoinGeckoMarketChartParams(days=self._days).model_dump()
        try:
            response = await self._client.get(
                f"/coins/{self._coin_id}/market_chart", params=params
            )
            response.raise_for_status()
            chart = CoinGeckoMarketChart.model_validate(response.json())
        except _SOURCE_EXCEPTIONS as exc:
            raise PriceSourceError(f"History request failed: {exc}") from exc
        return [PricePoint(timestamp=int(ts), price=price) for ts, price in chart.prices]

"""Models for upstream payloads (price sources, explorer actions, push messages)."""
from decimal import Decimal
from typing import Any

from pydantic import AliasChoices, BaseModel, Field


class SpotPriceData(BaseModel):
    price_usd: Decimal = Field(validation_alias=AliasChoices("PriceUSD", "price_usd"))


class SpotPriceResponse(BaseModel):
    """Body of the token price endpoint: {"data": {"PriceUSD": ...}}."""

    data: SpotPriceData


class CoinGeckoMarketChartParams(BaseModel):
    """Params for /coins/{id}/market_chart (history refresh)."""

    vs_currency: str = "usd"
    days: int = 30


class CoinGeckoMarketChart(BaseModel):
    """Only the price series is used; volumes and market caps are ignored."""

    prices: list[tuple[float, Decimal]] = Field(default_factory=list)


class ExplorerAction(BaseModel):
    """JSON body POSTed to the explorer's /watch endpoint."""

    id: str
    action: str
    url: str | None = None
    addresses: list[str] | None = None


class PushMessage(BaseModel):
    """Platform-neutral push message handed to a transport."""

    title: str
    body: str
    token: str
    android_channel_id: str
    android_data: dict[str, str] = Field(default_factory=dict)
    apns_data: dict[str, Any] = Field(default_factory=dict)

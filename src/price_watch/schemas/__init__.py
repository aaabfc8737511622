"""Pydantic schemas for API and runtime use. Not persisted to DB."""
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from price_watch.db.models import NotificationState, Threshold
from price_watch.utils import is_valid_address, utcnow


class PriceSnapshot(BaseModel):
    """Latest spot price as held in the cache."""

    price: Decimal
    observed_at: datetime = Field(default_factory=utcnow)


class PricePoint(BaseModel):
    """One (timestamp, price) sample of the price history."""

    timestamp: int  # Unix milliseconds, as returned by CoinGecko
    price: Decimal


class HistoryPrices(BaseModel):
    """Response body for the historical prices endpoint."""

    prices: list[tuple[int, float]] = Field(default_factory=list)


class NotificationOut(BaseModel):
    title: str
    body: str
    sent: bool
    timestamp: datetime


class WatcherOut(BaseModel):
    """Watcher as returned to clients."""

    push_token: str
    device_id: str | None = None
    threshold: int
    token_price: float | None = None
    tx_notification: NotificationState
    price_notification: NotificationState
    addresses: list[str] = Field(default_factory=list)
    historical_notifications: list[NotificationOut] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class StatusOut(BaseModel):
    status: str = "OK"


def _validate_addresses(addresses: list[str] | None) -> list[str] | None:
    if addresses is None:
        return None
    for address in addresses:
        if not is_valid_address(address):
            raise ValueError(f"incorrect address: {address}")
    return addresses


def _normalize_notification(value: object) -> object:
    return value.upper() if isinstance(value, str) else value


class CreateWatcherRequest(BaseModel):
    push_token: str = Field(min_length=1)
    device_id: str | None = None


class UpdateWatcherRequest(BaseModel):
    """Every field except push_token is optional; absent means leave unchanged."""

    push_token: str = Field(min_length=1)
    addresses: list[str] | None = None
    threshold: Threshold | None = None
    tx_notification: NotificationState | None = None
    price_notification: NotificationState | None = None

    @field_validator("addresses")
    @classmethod
    def check_addresses(cls, v: list[str] | None) -> list[str] | None:
        return _validate_addresses(v)

    @field_validator("tx_notification", "price_notification", mode="before")
    @classmethod
    def upper_notification(cls, v: object) -> object:
        return _normalize_notification(v)


class DeleteWatcherRequest(BaseModel):
    push_token: str = Field(min_length=1)


class DeleteWatcherAddressesRequest(BaseModel):
    push_token: str = Field(min_length=1)
    addresses: list[str] = Field(min_length=1)

    @field_validator("addresses")
    @classmethod
    def check_addresses(cls, v: list[str]) -> list[str]:
        return _validate_addresses(v)


__all__ = [
    "CreateWatcherRequest",
    "DeleteWatcherAddressesRequest",
    "DeleteWatcherRequest",
    "HistoryPrices",
    "NotificationOut",
    "PricePoint",
    "PriceSnapshot",
    "StatusOut",
    "UpdateWatcherRequest",
    "WatcherOut",
]

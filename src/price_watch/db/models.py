"""Database models for the price watch service.

Only watcher state and its notification history are persisted. Prices live in
the in-process price cache and are never stored in the database.
"""
from datetime import datetime
from decimal import Decimal
from enum import Enum, IntEnum

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from price_watch.utils import utcnow

NOTIFICATION_HISTORY_LIMIT = 10_000


class NotificationState(str, Enum):
    """On/off switch for a notification channel."""

    ON = "ON"
    OFF = "OFF"


class Threshold(IntEnum):
    """Allowed alert thresholds, in percent."""

    FIVE = 5
    EIGHT = 8
    TEN = 10


class Watcher(SQLModel, table=True):
    """A subscriber tracking one push destination."""

    id: int | None = Field(default=None, primary_key=True)
    push_token: str = Field(unique=True, index=True)  # base64 of the raw token
    device_id: str | None = Field(default=None, index=True)
    threshold: int = Field(default=Threshold.FIVE.value)
    token_price: Decimal | None = Field(default=None, max_digits=38, decimal_places=18)
    tx_notification: NotificationState = Field(default=NotificationState.ON)
    price_notification: NotificationState = Field(default=NotificationState.ON)
    addresses: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class NotificationRecord(SQLModel, table=True):
    """One dispatched alert, kept for the watcher's notification history."""

    id: int | None = Field(default=None, primary_key=True)
    watcher_id: int = Field(foreign_key="watcher.id", index=True)
    title: str
    body: str
    sent: bool = False
    timestamp: datetime = Field(default_factory=utcnow, index=True)

"""In-process cache for the latest spot price and the price-history blob."""
import json
from datetime import datetime
from decimal import Decimal
from typing import Any

from price_watch.schemas import PricePoint, PriceSnapshot
from price_watch.utils import utcnow

SPOT_PRICE_KEY = "apiPrice"
HISTORY_KEY = "cgPrices"


class PriceCache:
    """Key-value store of the spot price snapshot and the JSON history series.

    Written only by the refresh jobs and read by the alert engine and request
    handlers. Each key is last-writer-wins; nothing else is coordinated.
    """

    def __init__(self) -> None:
        """Initialize empty cache."""
        self._store: dict[str, Any] = {}

    def get(self, key: str) -> Any | None:
        return self._store.get(key)

    def set(self, key: str, value: Any) -> None:
        self._store[key] = value

    def set_spot_price(self, price: Decimal, observed_at: datetime | None = None) -> None:
        """Overwrite the cached spot price."""
        self.set(SPOT_PRICE_KEY, PriceSnapshot(price=price, observed_at=observed_at or utcnow()))

    def get_spot_snapshot(self) -> PriceSnapshot | None:
        return self.get(SPOT_PRICE_KEY)

    def get_spot_price(self) -> Decimal | None:
        """Latest spot price, or None if nothing was ever cached.

        A cached zero comes back as Decimal("0"), never as None.
        """
        snapshot = self.get_spot_snapshot()
        return snapshot.price if snapshot is not None else None

    def set_history(self, points: list[PricePoint]) -> None:
        """Replace the history blob wholesale, stored as a JSON [[ts, price], ...] string."""
        self.set(HISTORY_KEY, json.dumps([[p.timestamp, str(p.price)] for p in points]))

    def get_history(self) -> list[PricePoint] | None:
        """Decode the cached history, or None if nothing was ever cached."""
        raw = self.get(HISTORY_KEY)
        if raw is None:
            return None
        return [PricePoint(timestamp=ts, price=Decimal(price)) for ts, price in json.loads(raw)]

    def clear(self) -> None:
        """Clear all cached data."""
        self._store.clear()

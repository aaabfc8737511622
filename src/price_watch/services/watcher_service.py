"""Watcher operations behind the HTTP layer.

All methods take the raw push token as sent by the device and encode it
before touching the registry.
"""
import logging
from collections.abc import Iterable

from price_watch.core.exceptions import (ConflictError, MissingBaselineError,
                                         NotFoundError,
                                         ReconciliationFailure)
from price_watch.db.models import NotificationState, Threshold, Watcher
from price_watch.db.repository import WatcherRepository
from price_watch.schemas import NotificationOut, PricePoint, WatcherOut
from price_watch.services.price_cache import PriceCache
from price_watch.services.reconciler import AddressReconciler
from price_watch.utils import encode_push_token

logger = logging.getLogger(__name__)


class WatcherService:
    """Create, read, update and delete watchers; address changes go through the reconciler."""

    def __init__(
        self,
        repository: WatcherRepository,
        cache: PriceCache,
        reconciler: AddressReconciler,
    ) -> None:
        self._repository = repository
        self._cache = cache
        self._reconciler = reconciler

    async def _require(self, encoded: str) -> Watcher:
        watcher = await self._repository.get_by_token(encoded)
        if watcher is None:
            raise NotFoundError("watcher not found")
        return watcher

    async def get_watcher(self, push_token: str) -> WatcherOut:
        watcher = await self._require(encode_push_token(push_token))
        notifications = await self._repository.get_notifications(watcher.id)
        return WatcherOut(
            push_token=watcher.push_token,
            device_id=watcher.device_id,
            threshold=watcher.threshold,
            token_price=float(watcher.token_price) if watcher.token_price is not None else None,
            tx_notification=watcher.tx_notification,
            price_notification=watcher.price_notification,
            addresses=watcher.addresses or [],
            historical_notifications=[
                NotificationOut(title=n.title, body=n.body, sent=n.sent, timestamp=n.timestamp)
                for n in notifications
            ],
            created_at=watcher.created_at,
            updated_at=watcher.updated_at,
        )

    def get_history_prices(self) -> list[PricePoint]:
        return self._cache.get_history() or []

    async def create_watcher(self, push_token: str, device_id: str | None = None) -> Watcher:
        """Register a watcher with default settings and the cached spot price as baseline.

        Raises:
            ConflictError: The push token is already registered.
            MissingBaselineError: No spot price is cached yet; nothing is created.
        """
        encoded = encode_push_token(push_token)
        if await self._repository.get_by_token(encoded) is not None:
            raise ConflictError("watcher for this token already exists")

        price = self._cache.get_spot_price()
        if price is None:
            raise MissingBaselineError("Price data not found")

        if device_id:
            previous = await self._repository.get_by_device_id(device_id)
            if previous is not None:
                logger.info("Replacing watcher %s for device %s", previous.id, device_id)
                await self._remove(previous)

        watcher = await self._repository.create(
            Watcher(
                push_token=encoded,
                device_id=device_id,
                threshold=Threshold.FIVE.value,
                token_price=price,
                tx_notification=NotificationState.ON,
                price_notification=NotificationState.ON,
                addresses=[],
            )
        )
        logger.info("Created watcher %s", watcher.id)
        return watcher

    async def update_watcher(
        self,
        push_token: str,
        *,
        addresses: Iterable[str] | None = None,
        threshold: Threshold | int | None = None,
        tx_notification: NotificationState | None = None,
        price_notification: NotificationState | None = None,
    ) -> None:
        """Apply only the fields that are present; each is its own field-level write.

        Raises:
            NotFoundError: No watcher for the token.
            ReconciliationFailure: The explorer rejected new addresses; the
                threshold and flag writes have already been applied.
            ValueError: threshold is not 5, 8 or 10.
        """
        encoded = encode_push_token(push_token)
        await self._require(encoded)

        if threshold is not None:
            await self._repository.update_fields(encoded, threshold=Threshold(threshold).value)
        if tx_notification:
            await self._repository.update_fields(encoded, tx_notification=tx_notification)
        if price_notification:
            await self._repository.update_fields(encoded, price_notification=price_notification)
        # Addresses last: an explorer failure must not drop the field writes above.
        if addresses:
            await self._reconciler.reconcile(encoded, addresses)

    async def delete_watcher(self, push_token: str) -> None:
        watcher = await self._require(encode_push_token(push_token))
        await self._remove(watcher)

    async def delete_watcher_addresses(self, push_token: str, addresses: Iterable[str]) -> set[str]:
        return await self._reconciler.release(encode_push_token(push_token), addresses)

    async def _remove(self, watcher: Watcher) -> None:
        """Delete a watcher; failing to unsubscribe its addresses is only logged."""
        if watcher.addresses:
            try:
                await self._reconciler.release(watcher.push_token, watcher.addresses)
            except ReconciliationFailure as exc:
                logger.warning("Could not unsubscribe addresses of watcher %s: %s", watcher.id, exc)
        await self._repository.delete(watcher.push_token)

"""Address subscription reconciliation against the explorer watch service."""
import logging
from collections.abc import Iterable

from price_watch.core.exceptions import (ExplorerError, NotFoundError,
                                         ReconciliationFailure)
from price_watch.db.models import Watcher
from price_watch.db.repository import WatcherRepository
from price_watch.providers.explorer import ExplorerClient

logger = logging.getLogger(__name__)


class AddressReconciler:
    """Dedups requested addresses against a watcher's set before touching the explorer.

    The persisted address set only changes after the explorer accepted the
    call, so a failed subscribe or unsubscribe leaves the record as it was.
    """

    def __init__(self, repository: WatcherRepository, explorer: ExplorerClient) -> None:
        self._repository = repository
        self._explorer = explorer

    async def _load(self, push_token: str) -> Watcher:
        watcher = await self._repository.get_by_token(push_token)
        if watcher is None:
            raise NotFoundError("watcher not found")
        return watcher

    async def reconcile(self, push_token: str, requested: Iterable[str]) -> set[str]:
        """Subscribe the addresses the watcher does not track yet.

        Args:
            push_token: Encoded push token of the watcher.
            requested: Desired addresses; duplicates and known ones are ignored.

        Returns:
            The newly subscribed addresses (empty when nothing was new).

        Raises:
            NotFoundError: No watcher for the token.
            ReconciliationFailure: The explorer rejected the subscribe call.
        """
        watcher = await self._load(push_token)
        existing = set(watcher.addresses or [])
        new_addresses = set(requested) - existing
        if not new_addresses:
            return set()

        try:
            await self._explorer.subscribe(new_addresses)
        except ExplorerError as exc:
            logger.warning("Subscribe failed for watcher %s: %s", watcher.id, exc)
            raise ReconciliationFailure(str(exc)) from exc

        await self._repository.update_fields(
            push_token, addresses=sorted(existing | new_addresses)
        )
        logger.info("Watcher %s subscribed %d new addresses", watcher.id, len(new_addresses))
        return new_addresses

    async def release(self, push_token: str, addresses: Iterable[str]) -> set[str]:
        """Unsubscribe addresses the watcher tracks and drop them from its set.

        Returns:
            The addresses actually removed.

        Raises:
            NotFoundError: No watcher for the token.
            ReconciliationFailure: The explorer rejected the unsubscribe call.
        """
        watcher = await self._load(push_token)
        existing = set(watcher.addresses or [])
        removed = set(addresses) & existing
        if not removed:
            return set()

        try:
            await self._explorer.unsubscribe(removed)
        except ExplorerError as exc:
            logger.warning("Unsubscribe failed for watcher %s: %s", watcher.id, exc)
            raise ReconciliationFailure(str(exc)) from exc

        await self._repository.update_fields(push_token, addresses=sorted(existing - removed))
        return removed

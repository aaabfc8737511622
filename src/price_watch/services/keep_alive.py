"""Explorer keep-alive loop: announce, re-subscribe everything, then check liveness."""
import asyncio
import logging
from collections.abc import Awaitable, Callable

from price_watch.core.exceptions import ExplorerError
from price_watch.db.repository import WatcherRepository
from price_watch.providers.explorer import ExplorerClient

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class ExplorerKeepAlive:
    """Keeps the explorer session and its address subscriptions alive.

    One session is: init (retried every retry_interval until it succeeds),
    bulk re-subscribe of every address in the registry, then a check every
    interval. When checks keep failing past max_retries the session is reset
    and the loop starts over with init.
    """

    def __init__(
        self,
        explorer: ExplorerClient,
        repository: WatcherRepository,
        callback_url: str,
        *,
        interval: float = 30.0,
        max_retries: int = 6,
        retry_interval: float = 5.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._explorer = explorer
        self._repository = repository
        self._callback_url = callback_url
        self._interval = interval
        self._max_retries = max_retries
        self._retry_interval = retry_interval
        self._sleep = sleep

    async def run(self) -> None:
        """Run until cancelled."""
        while True:
            await self.announce()
            await self.resubscribe_all()
            await self.monitor()
            logger.warning("Explorer session lost, re-initializing")

    async def announce(self) -> None:
        """Send init until the explorer accepts it."""
        while True:
            try:
                await self._explorer.init(self._callback_url)
                return
            except ExplorerError as exc:
                logger.error("Explorer init failed: %s", exc)
                await self._sleep(self._retry_interval)

    async def resubscribe_all(self) -> int:
        """Subscribe every known address, one bulk call per registry page.

        Returns:
            Number of addresses the explorer accepted.
        """
        accepted = 0
        async for watchers in self._repository.iter_pages():
            addresses = {a for w in watchers for a in (w.addresses or [])}
            if not addresses:
                continue
            try:
                await self._explorer.subscribe(addresses)
                accepted += len(addresses)
            except ExplorerError as exc:
                logger.error("Bulk re-subscribe of %d addresses failed: %s", len(addresses), exc)
        logger.info("Re-subscribed %d addresses with the explorer", accepted)
        return accepted

    async def monitor(self) -> None:
        """Check liveness every interval; return once retries are exhausted."""
        tries = self._max_retries
        while True:
            try:
                await self._explorer.check()
            except ExplorerError as exc:
                logger.error("Explorer check failed (%d retries left): %s", tries, exc)
                if tries == 0:
                    return
                tries -= 1
                await self._sleep(self._retry_interval)
                continue
            tries = self._max_retries
            await self._sleep(self._interval)

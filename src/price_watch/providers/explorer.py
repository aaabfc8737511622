"""Client for the explorer's address-watching service."""
import logging
from collections.abc import Iterable

import httpx

from price_watch.core.exceptions import ExplorerError
from price_watch.providers.base import HttpProviderABC
from price_watch.providers.models import ExplorerAction

logger = logging.getLogger(__name__)


class ExplorerClient(HttpProviderABC):
    """Sends watch actions (init, subscribe, unsubscribe, check) to the explorer.

    Every action is a JSON POST to {explorer_url}/watch carrying the service's
    explorer id. Any transport error or non-2xx answer raises ExplorerError.
    """

    def __init__(
        self,
        explorer_url: str,
        explorer_id: str,
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(explorer_url.rstrip("/"), timeout=timeout, client=client)
        self._explorer_id = explorer_id

    @property
    def explorer_id(self) -> str:
        return self._explorer_id

    async def init(self, callback_url: str) -> None:
        """Announce the service and the callback URL for transaction events."""
        await self._post(ExplorerAction(id=self._explorer_id, action="init", url=callback_url))

    async def subscribe(self, addresses: Iterable[str]) -> None:
        await self._post(
            ExplorerAction(id=self._explorer_id, action="subscribe", addresses=sorted(addresses))
        )

    async def unsubscribe(self, addresses: Iterable[str]) -> None:
        await self._post(
            ExplorerAction(id=self._explorer_id, action="unsubscribe", addresses=sorted(addresses))
        )

    async def check(self) -> None:
        """Liveness check; raises when the explorer has dropped our session."""
        await self._post(ExplorerAction(id=self._explorer_id, action="check"))

    async def _post(self, action: ExplorerAction) -> None:
        body = action.model_dump(exclude_none=True)
        logger.debug("Explorer %s request: %s", action.action, body)
        try:
            response = await self._client.post("/watch", json=body)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ExplorerError(f"Explorer {action.action} failed: {exc}") from exc

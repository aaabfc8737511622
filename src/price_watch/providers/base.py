"""Base class for upstream HTTP clients (price sources, explorer, push)."""
from abc import ABC

import httpx


class HttpProviderABC(ABC):
    """Owns one httpx.AsyncClient and closes it with the provider.

    Pass `client` to reuse an existing AsyncClient (e.g. one built on
    httpx.MockTransport in tests); a client passed in is still closed by close().
    """

    def __init__(
        self,
        base_url: str = "",
        *,
        headers: dict[str, str] | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            headers={"Accept": "application/json", **(headers or {})},
            timeout=timeout,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "HttpProviderABC":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        """Async context manager exit - calls close()."""
        await self.close()

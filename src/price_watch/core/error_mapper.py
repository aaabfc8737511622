"""Domain concept for mapping watcher exceptions to HTTP responses."""
import asyncio
from dataclasses import dataclass

import httpx
from fastapi import HTTPException

from price_watch.core.exceptions import (ConflictError, MissingBaselineError,
                                         NotFoundError, ReconciliationFailure)


@dataclass(frozen=True)
class WatcherErrorMapper:
    """Maps service exceptions to HTTP (status_code, detail).

    Inject this into routers so every watcher endpoint reports errors the
    same way, with the resource and upstream names filled in.
    """

    resource_name: str = "Watcher"
    api_name: str = "Explorer"

    def to_http(self, exc: Exception) -> tuple[int, str]:
        """Map a service exception to (status_code, detail) for HTTP responses.

        Args:
            exc: The exception raised by the service layer.

        Returns:
            (status_code, detail) suitable for HTTPException(status_code=..., detail=...).
        """
        if isinstance(exc, NotFoundError):
            return (404, str(exc) or f"{self.resource_name} not found")
        if isinstance(exc, ConflictError):
            return (409, str(exc) or f"{self.resource_name} already exists")
        if isinstance(exc, MissingBaselineError):
            return (503, str(exc) or "Price data not found")
        if isinstance(exc, ReconciliationFailure):
            return (502, str(exc) or f"{self.api_name} error")
        if isinstance(exc, ValueError):
            return (400, str(exc) or "Invalid request")
        if isinstance(exc, httpx.HTTPStatusError):
            if exc.response.status_code >= 500:
                return (502, f"{self.api_name} error")
            return (exc.response.status_code, f"{self.api_name} error")
        if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
            return (504, f"Request to {self.api_name} timed out")
        return (500, "Internal server error")

    def raise_http(self, exc: Exception) -> None:
        """Map service exception to HTTP and raise HTTPException. Never returns."""
        status_code, detail = self.to_http(exc)
        raise HTTPException(status_code=status_code, detail=detail) from exc

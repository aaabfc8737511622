"""Watcher routes: registration, settings, addresses and price history."""
import logging
from urllib.parse import unquote

from dependency_injector.wiring import inject
from fastapi import APIRouter, HTTPException

from price_watch.container import ErrorMapperDep, WatcherServiceDep
from price_watch.core.exceptions import PriceWatchError
from price_watch.schemas import (CreateWatcherRequest,
                                 DeleteWatcherAddressesRequest,
                                 DeleteWatcherRequest, HistoryPrices,
                                 StatusOut, UpdateWatcherRequest, WatcherOut)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["watchers"])


@router.get("/watcher/{token}", response_model=WatcherOut)
@inject
async def get_watcher(
    token: str,
    service: WatcherServiceDep,
    errors: ErrorMapperDep,
) -> WatcherOut:
    """Get a watcher by its raw (URL-encoded) push token."""
    push_token = unquote(token)
    if not push_token:
        raise HTTPException(status_code=400, detail="invalid params")
    try:
        return await service.get_watcher(push_token)
    except PriceWatchError as exc:
        errors.raise_http(exc)


@router.get("/watcher-historical-prices", response_model=HistoryPrices)
@inject
async def get_watcher_history_prices(service: WatcherServiceDep) -> HistoryPrices:
    """Cached 30-day price history; empty until the first successful refresh."""
    points = service.get_history_prices()
    return HistoryPrices(prices=[(p.timestamp, float(p.price)) for p in points])


@router.post("/watcher", response_model=StatusOut)
@inject
async def create_watcher(
    body: CreateWatcherRequest,
    service: WatcherServiceDep,
    errors: ErrorMapperDep,
) -> StatusOut:
    try:
        await service.create_watcher(body.push_token, body.device_id)
    except PriceWatchError as exc:
        errors.raise_http(exc)
    return StatusOut()


@router.put("/watcher", response_model=StatusOut)
@inject
async def update_watcher(
    body: UpdateWatcherRequest,
    service: WatcherServiceDep,
    errors: ErrorMapperDep,
) -> StatusOut:
    """Update addresses, threshold or notification flags; omitted fields are left unchanged."""
    try:
        await service.update_watcher(
            body.push_token,
            addresses=body.addresses,
            threshold=body.threshold,
            tx_notification=body.tx_notification,
            price_notification=body.price_notification,
        )
    except PriceWatchError as exc:
        errors.raise_http(exc)
    return StatusOut()


@router.delete("/watcher", response_model=StatusOut)
@inject
async def delete_watcher(
    body: DeleteWatcherRequest,
    service: WatcherServiceDep,
    errors: ErrorMapperDep,
) -> StatusOut:
    try:
        await service.delete_watcher(body.push_token)
    except PriceWatchError as exc:
        errors.raise_http(exc)
    return StatusOut()


@router.delete("/watcher-addresses", response_model=StatusOut)
@inject
async def delete_watcher_addresses(
    body: DeleteWatcherAddressesRequest,
    service: WatcherServiceDep,
    errors: ErrorMapperDep,
) -> StatusOut:
    try:
        await service.delete_watcher_addresses(body.push_token, body.addresses)
    except PriceWatchError as exc:
        errors.raise_http(exc)
    return StatusOut()

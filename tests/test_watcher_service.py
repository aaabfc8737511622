from decimal import Decimal

import pytest

from price_watch.core.exceptions import (ConflictError, MissingBaselineError,
                                         NotFoundError, ReconciliationFailure)
from price_watch.db.models import NotificationState
from price_watch.schemas import PricePoint
from price_watch.services.reconciler import AddressReconciler
from price_watch.services.watcher_service import WatcherService
from price_watch.utils import encode_push_token

ADDR_A = "0x" + "a" * 40
ADDR_B = "0x" + "b" * 40


@pytest.fixture
def service(repository, cache, explorer):
    return WatcherService(repository, cache, AddressReconciler(repository, explorer))


async def test_create_uses_cached_price_and_defaults(service, cache):
    cache.set_spot_price(Decimal("0.0123"))

    watcher = await service.create_watcher("raw-token", device_id="dev-1")

    assert watcher.push_token == encode_push_token("raw-token")
    assert watcher.threshold == 5
    assert watcher.token_price == Decimal("0.0123")
    assert watcher.tx_notification == NotificationState.ON
    assert watcher.price_notification == NotificationState.ON
    assert watcher.addresses == []


async def test_create_without_cached_price_creates_nothing(service, repository):
    with pytest.raises(MissingBaselineError):
        await service.create_watcher("raw-token")

    assert await repository.get_by_token(encode_push_token("raw-token")) is None


async def test_create_rejects_known_token(service, cache, make_watcher):
    await make_watcher("raw-token")
    cache.set_spot_price(Decimal("1"))

    with pytest.raises(ConflictError):
        await service.create_watcher("raw-token")


async def test_create_replaces_previous_watcher_of_device(
    service, cache, repository, explorer_stub, make_watcher
):
    old = await make_watcher("old-token", device_id="dev-1", addresses=[ADDR_A])
    cache.set_spot_price(Decimal("1"))

    await service.create_watcher("new-token", device_id="dev-1")

    assert await repository.get_by_token(old.push_token) is None
    assert (await repository.get_by_device_id("dev-1")).push_token == encode_push_token("new-token")
    assert explorer_stub.calls("unsubscribe")[0]["addresses"] == [ADDR_A]


async def test_get_watcher_includes_history(service, repository, make_watcher):
    watcher = await make_watcher("raw-token", token_price="0.5")
    await repository.add_notification(watcher.id, "Price Alert", "older", True)
    await repository.add_notification(watcher.id, "Price Alert", "newer", False)

    out = await service.get_watcher("raw-token")

    assert out.token_price == 0.5
    assert [n.body for n in out.historical_notifications] == ["newer", "older"]


async def test_get_unknown_watcher(service):
    with pytest.raises(NotFoundError):
        await service.get_watcher("ghost")


async def test_update_applies_only_present_fields(service, repository, make_watcher):
    watcher = await make_watcher("raw-token", threshold=5)

    await service.update_watcher("raw-token", threshold=10)
    await service.update_watcher("raw-token", tx_notification=NotificationState.OFF)

    stored = await repository.get_by_token(watcher.push_token)
    assert stored.threshold == 10
    assert stored.tx_notification == NotificationState.OFF
    assert stored.price_notification == NotificationState.ON
    assert stored.token_price == Decimal("100")


async def test_update_rejects_unsupported_threshold(service, make_watcher):
    await make_watcher("raw-token")

    with pytest.raises(ValueError):
        await service.update_watcher("raw-token", threshold=7)


async def test_update_addresses_goes_through_explorer(
    service, repository, explorer_stub, make_watcher
):
    watcher = await make_watcher("raw-token")

    await service.update_watcher("raw-token", addresses=[ADDR_B, ADDR_A])

    assert explorer_stub.calls("subscribe")[0]["addresses"] == [ADDR_A, ADDR_B]
    assert (await repository.get_by_token(watcher.push_token)).addresses == [ADDR_A, ADDR_B]


async def test_explorer_outage_does_not_drop_field_updates(
    service, repository, explorer_stub, make_watcher
):
    watcher = await make_watcher("raw-token", threshold=5, addresses=[ADDR_A])
    explorer_stub.fail_actions.add("subscribe")

    with pytest.raises(ReconciliationFailure):
        await service.update_watcher(
            "raw-token",
            addresses=[ADDR_B],
            threshold=10,
            price_notification=NotificationState.OFF,
        )

    stored = await repository.get_by_token(watcher.push_token)
    assert stored.threshold == 10
    assert stored.price_notification == NotificationState.OFF
    assert stored.addresses == [ADDR_A]

async def test_delete_survives_explorer_outage(
    service, repository, explorer_stub, make_watcher
):
    watcher = await make_watcher("raw-token", addresses=[ADDR_A])
    await repository.add_notification(watcher.id, "Price Alert", "body", True)
    explorer_stub.fail_actions.add("unsubscribe")

    await service.delete_watcher("raw-token")

    assert await repository.get_by_token(watcher.push_token) is None
    assert await repository.get_notifications(watcher.id) == []


async def test_delete_watcher_addresses(service, repository, make_watcher):
    watcher = await make_watcher("raw-token", addresses=[ADDR_A, ADDR_B])

    removed = await service.delete_watcher_addresses("raw-token", [ADDR_A])

    assert removed == {ADDR_A}
    assert (await repository.get_by_token(watcher.push_token)).addresses == [ADDR_B]


async def test_history_prices_default_to_empty(service, cache):
    assert service.get_history_prices() == []

    cache.set_history([PricePoint(timestamp=1, price=Decimal("0.01"))])

    assert service.get_history_prices() == [PricePoint(timestamp=1, price=Decimal("0.01"))]

import asyncio
from decimal import Decimal

import pytest

from price_watch.core.exceptions import MissingBaselineError
from price_watch.db.models import NotificationState
from price_watch.db.repository import WatcherRepository
from price_watch.providers.push import PushTransportABC
from price_watch.services.alert_engine import (ALERT_TITLE, AlertEngine,
                                               alert_body, evaluate_move)
from price_watch.services.notifications import NotificationDispatcher


@pytest.fixture
def engine_under_test(cache, repository, dispatcher):
    return AlertEngine(cache, repository, dispatcher)


@pytest.mark.parametrize("threshold", [5, 8, 10])
def test_move_exactly_at_threshold_triggers(threshold):
    up = evaluate_move(Decimal(100 + threshold), Decimal("100"), threshold)
    down = evaluate_move(Decimal(100 - threshold), Decimal("100"), threshold)

    assert up.triggered and up.direction == 1
    assert down.triggered and down.direction == -1


@pytest.mark.parametrize("threshold", [5, 8, 10])
def test_move_just_below_threshold_is_quiet(threshold):
    current = Decimal("100") + Decimal(threshold) - Decimal("0.001")
    assert not evaluate_move(current, Decimal("100"), threshold).triggered


def test_trigger_uses_unrounded_percentage():
    # 4.996% rounds to 5.00 for display but does not reach the threshold
    move = evaluate_move(Decimal("104.996"), Decimal("100"), 5)

    assert not move.triggered
    assert move.rounded_percentage == 5.0


@pytest.mark.parametrize("baseline", [None, Decimal("0")])
def test_missing_baseline_raises(baseline):
    with pytest.raises(MissingBaselineError):
        evaluate_move(Decimal("1"), baseline, 5)


def test_alert_body_formats_both_directions():
    up = evaluate_move(Decimal("106"), Decimal("100"), 5)
    down = evaluate_move(Decimal("0.0088"), Decimal("0.01"), 10)

    assert alert_body(up) == "🚀 AMB Price changed on +6.0%! Current price $106.00000"
    assert alert_body(down) == "🔻 AMB Price changed on -12.0%! Current price $0.00880"


async def test_upward_move_alerts_and_rolls_baseline(
    engine_under_test, cache, repository, transport, make_watcher
):
    watcher = await make_watcher("device-token-1", token_price="100", threshold=5)
    cache.set_spot_price(Decimal("106"))

    report = await engine_under_test.run_tick()

    assert report.alerts == 1
    [message] = transport.messages
    assert message.token == "device-token-1"
    assert message.title == ALERT_TITLE
    assert message.body == "🚀 AMB Price changed on +6.0%! Current price $106.00000"
    assert message.apns_data == {"type": "price-alert", "percentage": 6.0}
    assert message.android_data == {"type": "price-alert", "percentage": "6.0"}

    stored = await repository.get_by_token(watcher.push_token)
    assert stored.token_price == Decimal("106")
    [record] = await repository.get_notifications(watcher.id)
    assert record.sent is True
    assert record.body == message.body


async def test_quiet_move_still_rolls_baseline(
    engine_under_test, cache, repository, transport, make_watcher
):
    watcher = await make_watcher("device-token-2", token_price="100", threshold=10)
    cache.set_spot_price(Decimal("95"))

    report = await engine_under_test.run_tick()

    assert report.alerts == 0
    assert transport.messages == []
    stored = await repository.get_by_token(watcher.push_token)
    assert stored.token_price == Decimal("95")
    assert await repository.get_notifications(watcher.id) == []


async def test_delivery_failure_is_recorded_and_baseline_still_moves(
    engine_under_test, cache, repository, transport, make_watcher
):
    watcher = await make_watcher("device-token-3", token_price="100")
    cache.set_spot_price(Decimal("90"))
    transport.fail = True

    report = await engine_under_test.run_tick()

    [outcome] = report.outcomes
    assert outcome.alerted and not outcome.delivered and outcome.baseline_updated
    stored = await repository.get_by_token(watcher.push_token)
    assert stored.token_price == Decimal("90")
    [record] = await repository.get_notifications(watcher.id)
    assert record.sent is False


async def test_missing_spot_price_leaves_baseline_alone(
    engine_under_test, repository, transport, make_watcher
):
    watcher = await make_watcher("device-token-4", token_price="100")

    report = await engine_under_test.run_tick()

    assert len(report.failures) == 1
    assert transport.messages == []
    stored = await repository.get_by_token(watcher.push_token)
    assert stored.token_price == Decimal("100")


async def test_watcher_without_baseline_does_not_block_others(
    engine_under_test, cache, repository, transport, make_watcher
):
    broken = await make_watcher("no-baseline", token_price=None)
    healthy = await make_watcher("healthy", token_price="100")
    cache.set_spot_price(Decimal("110"))

    report = await engine_under_test.run_tick()

    assert [o.push_token for o in report.failures] == [broken.push_token]
    assert [m.token for m in transport.messages] == ["healthy"]
    assert (await repository.get_by_token(broken.push_token)).token_price is None
    assert (await repository.get_by_token(healthy.push_token)).token_price == Decimal("110")


async def test_watchers_with_tx_notification_off_are_skipped(
    engine_under_test, cache, repository, transport, make_watcher
):
    muted = await make_watcher(
        "muted", token_price="100", tx_notification=NotificationState.OFF
    )
    cache.set_spot_price(Decimal("200"))

    report = await engine_under_test.run_tick()

    assert report.outcomes == []
    assert transport.messages == []
    assert (await repository.get_by_token(muted.push_token)).token_price == Decimal("100")


async def test_tick_walks_every_page(cache, engine, dispatcher, transport, make_watcher):
    small_pages = WatcherRepository(engine, page_size=2)
    for i in range(5):
        await make_watcher(f"paged-{i}", token_price="100")
    cache.set_spot_price(Decimal("150"))

    report = await AlertEngine(cache, small_pages, dispatcher).run_tick()

    assert len(report.outcomes) == 5
    assert sorted(m.token for m in transport.messages) == [f"paged-{i}" for i in range(5)]


class ExplodingTransport(PushTransportABC):
    """Fails with an error the dispatcher does not translate."""

    async def send(self, message):
        raise RuntimeError("malformed provider response")


class GatedTransport(PushTransportABC):
    """Holds every send until `expected` sends are in flight at once."""

    def __init__(self, expected: int) -> None:
        self.expected = expected
        self.in_flight = 0
        self.all_in = asyncio.Event()

    async def send(self, message):
        self.in_flight += 1
        if self.in_flight >= self.expected:
            self.all_in.set()
        await self.all_in.wait()
        return "msg"


async def test_unexpected_transport_error_still_rolls_baseline(cache, repository, make_watcher):
    watcher = await make_watcher("device-token-5", token_price="100")
    cache.set_spot_price(Decimal("110"))
    engine = AlertEngine(cache, repository, NotificationDispatcher(ExplodingTransport(), "alerts"))

    report = await engine.run_tick()

    [outcome] = report.outcomes
    assert outcome.alerted and not outcome.delivered and outcome.baseline_updated
    assert outcome.error is None
    assert (await repository.get_by_token(watcher.push_token)).token_price == Decimal("110")
    [record] = await repository.get_notifications(watcher.id)
    assert record.sent is False


async def test_history_write_failure_still_rolls_baseline(
    engine_under_test, cache, repository, transport, make_watcher, monkeypatch
):
    watcher = await make_watcher("device-token-6", token_price="100")
    cache.set_spot_price(Decimal("80"))

    async def broken_add_notification(*args, **kwargs):
        raise RuntimeError("database is locked")

    monkeypatch.setattr(repository, "add_notification", broken_add_notification)

    report = await engine_under_test.run_tick()

    [outcome] = report.outcomes
    assert outcome.delivered and outcome.baseline_updated
    assert len(transport.messages) == 1
    assert (await repository.get_by_token(watcher.push_token)).token_price == Decimal("80")


async def test_tick_evaluates_all_pages_concurrently(cache, engine, make_watcher):
    small_pages = WatcherRepository(engine, page_size=2)
    for i in range(5):
        await make_watcher(f"fanout-{i}", token_price="100")
    cache.set_spot_price(Decimal("150"))
    gated = GatedTransport(expected=5)
    alert_engine = AlertEngine(cache, small_pages, NotificationDispatcher(gated, "alerts"))

    # Sequential pages would never get all five sends in flight together.
    report = await asyncio.wait_for(alert_engine.run_tick(), timeout=5)

    assert report.alerts == 5
    assert all(o.delivered for o in report.outcomes)

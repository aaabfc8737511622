from datetime import datetime, timedelta, timezone

import pytest

from price_watch.db.models import NotificationState
from price_watch.db.repository import WatcherRepository

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


async def test_notification_history_keeps_newest_records(repository, make_watcher, monkeypatch):
    monkeypatch.setattr("price_watch.db.repository.NOTIFICATION_HISTORY_LIMIT", 3)
    watcher = await make_watcher("tok")
    other = await make_watcher("other")
    await repository.add_notification(other.id, "Price Alert", "other-0", True, T0)

    for i in range(5):
        await repository.add_notification(
            watcher.id, "Price Alert", f"alert-{i}", True, T0 + timedelta(minutes=i)
        )

    history = await repository.get_notifications(watcher.id)
    assert [n.body for n in history] == ["alert-4", "alert-3", "alert-2"]
    assert [n.body for n in await repository.get_notifications(other.id)] == ["other-0"]


async def test_pages_do_not_skip_watchers_muted_mid_iteration(engine, make_watcher):
    paged = WatcherRepository(engine, page_size=2)
    watchers = [await make_watcher(f"tok-{i}") for i in range(5)]

    seen = []
    async for page in paged.iter_pages(tx_notification=NotificationState.ON):
        seen.extend(w.push_token for w in page)
        if len(seen) == 2:
            # A request switches off an already-visited watcher between pages.
            await paged.update_fields(watchers[0].push_token, tx_notification=NotificationState.OFF)

    assert seen == [w.push_token for w in watchers]


async def test_update_fields_rejects_unknown_columns(repository, make_watcher):
    watcher = await make_watcher("tok")

    with pytest.raises(ValueError):
        await repository.update_fields(watcher.push_token, push_token="other")


async def test_update_fields_reports_missing_watcher(repository):
    assert await repository.update_fields("bm9ib2R5", threshold=8) is False

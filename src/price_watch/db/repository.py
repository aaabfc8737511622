"""Watcher persistence: point lookups, paginated listing, field-level updates.

SQLModel sessions are synchronous; every public method runs its query in a
worker thread via asyncio.to_thread so callers stay on the event loop.
"""
import asyncio
import logging
from collections.abc import AsyncIterator
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, update
from sqlalchemy.engine import Engine
from sqlmodel import Session, col, select

from price_watch.db.models import (NOTIFICATION_HISTORY_LIMIT,
                                   NotificationRecord, NotificationState,
                                   Watcher)
from price_watch.utils import utcnow

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100

# Columns callers may write through update_fields; the rest are managed here.
_UPDATABLE_FIELDS = frozenset(
    {
        "device_id",
        "threshold",
        "token_price",
        "tx_notification",
        "price_notification",
        "addresses",
    }
)


class WatcherRepository:
    """Sole owner of persisted watcher state. Tokens passed in are already encoded."""

    def __init__(self, engine: Engine, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        self._engine = engine
        self._page_size = page_size

    def _session(self) -> Session:
        return Session(self._engine, expire_on_commit=False)

    # ---- Reads ----
    async def get_by_token(self, push_token: str) -> Watcher | None:
        """Point lookup by encoded push token."""
        return await asyncio.to_thread(self._get_one_sync, Watcher.push_token == push_token)

    async def get_by_device_id(self, device_id: str) -> Watcher | None:
        """Point lookup by device id."""
        return await asyncio.to_thread(self._get_one_sync, Watcher.device_id == device_id)

    async def list_watchers(
        self,
        after_id: int = 0,
        *,
        tx_notification: NotificationState | None = None,
    ) -> list[Watcher]:
        """Up to page_size watchers with id > after_id, ordered by id; empty past the end."""
        return await asyncio.to_thread(self._list_sync, after_id, tx_notification)

    async def iter_pages(
        self, *, tx_notification: NotificationState | None = None
    ) -> AsyncIterator[list[Watcher]]:
        """Yield successive non-empty pages until the listing is exhausted.

        Pages are keyed on the last id seen, so rows that change or disappear
        between pages do not shift later watchers out of the iteration.
        """
        last_id = 0
        while True:
            watchers = await self.list_watchers(last_id, tx_notification=tx_notification)
            if not watchers:
                return
            yield watchers
            last_id = watchers[-1].id

    async def get_notifications(self, watcher_id: int) -> list[NotificationRecord]:
        """Notification history for a watcher, newest first."""
        return await asyncio.to_thread(self._notifications_sync, watcher_id)

    # ---- Writes ----
    async def create(self, watcher: Watcher) -> Watcher:
        return await asyncio.to_thread(self._create_sync, watcher)

    async def update_fields(self, push_token: str, **fields: Any) -> bool:
        """Write only the given columns; returns False when no watcher matched.

        Field-level writes let a baseline update from the alert tick and a
        threshold update from a request land on the same record without
        overwriting each other.
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
        if not fields:
            return True
        return await asyncio.to_thread(self._update_sync, push_token, fields)

    async def delete(self, push_token: str) -> bool:
        """Delete a watcher and its notification history."""
        return await asyncio.to_thread(self._delete_sync, push_token)

    async def add_notification(
        self,
        watcher_id: int,
        title: str,
        body: str,
        sent: bool,
        timestamp: datetime | None = None,
    ) -> None:
        """Append a history record, trimming the oldest beyond the per-watcher limit."""
        await asyncio.to_thread(
            self._add_notification_sync, watcher_id, title, body, sent, timestamp or utcnow()
        )

    # ---- Sync implementations ----
    def _get_one_sync(self, condition) -> Watcher | None:  # noqa: ANN001
        with self._session() as session:
            return session.exec(select(Watcher).where(condition)).first()

    def _list_sync(
        self, after_id: int, tx_notification: NotificationState | None
    ) -> list[Watcher]:
        statement = select(Watcher).where(col(Watcher.id) > after_id).order_by(col(Watcher.id))
        if tx_notification is not None:
            statement = statement.where(Watcher.tx_notification == tx_notification)
        statement = statement.limit(self._page_size)
        with self._session() as session:
            return list(session.exec(statement).all())

    def _notifications_sync(self, watcher_id: int) -> list[NotificationRecord]:
        statement = (
            select(NotificationRecord)
            .where(NotificationRecord.watcher_id == watcher_id)
            .order_by(col(NotificationRecord.timestamp).desc(), col(NotificationRecord.id).desc())
        )
        with self._session() as session:
            return list(session.exec(statement).all())

    def _create_sync(self, watcher: Watcher) -> Watcher:
        with self._session() as session:
            session.add(watcher)
            session.commit()
            session.refresh(watcher)
            return watcher

    def _update_sync(self, push_token: str, fields: dict[str, Any]) -> bool:
        statement = (
            update(Watcher)
            .where(Watcher.push_token == push_token)
            .values(**fields, updated_at=utcnow())
        )
        with self._session() as session:
            result = session.exec(statement)  # type: ignore[call-overload]
            session.commit()
            return result.rowcount > 0

    def _delete_sync(self, push_token: str) -> bool:
        with self._session() as session:
            watcher = session.exec(select(Watcher).where(Watcher.push_token == push_token)).first()
            if watcher is None:
                return False
            session.exec(  # type: ignore[call-overload]
                delete(NotificationRecord).where(NotificationRecord.watcher_id == watcher.id)
            )
            session.delete(watcher)
            session.commit()
            return True

    def _add_notification_sync(
        self, watcher_id: int, title: str, body: str, sent: bool, timestamp: datetime
    ) -> None:
        with self._session() as session:
            session.add(
                NotificationRecord(
                    watcher_id=watcher_id,
                    title=title,
                    body=body,
                    sent=sent,
                    timestamp=timestamp,
                )
            )
            session.flush()
            count = session.exec(
                select(func.count())
                .select_from(NotificationRecord)
                .where(NotificationRecord.watcher_id == watcher_id)
            ).one()
            if count > NOTIFICATION_HISTORY_LIMIT:
                stale_ids = session.exec(
                    select(NotificationRecord.id)
                    .where(NotificationRecord.watcher_id == watcher_id)
                    .order_by(col(NotificationRecord.timestamp).desc(), col(NotificationRecord.id).desc())
                    .offset(NOTIFICATION_HISTORY_LIMIT)
                ).all()
                session.exec(  # type: ignore[call-overload]
                    delete(NotificationRecord).where(col(NotificationRecord.id).in_(stale_ids))
                )
                logger.debug("Trimmed %d notification records for watcher %s", len(stale_ids), watcher_id)
            session.commit()

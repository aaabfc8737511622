"""Database package: models, sessions and the watcher repository."""
from price_watch.db.models import (NotificationRecord, NotificationState,
                                   Threshold, Watcher)
from price_watch.db.repository import WatcherRepository

__all__ = [
    "NotificationRecord",
    "NotificationState",
    "Threshold",
    "Watcher",
    "WatcherRepository",
]

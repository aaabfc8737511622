"""Service layer: price cache, alert ticks, dispatch, reconciliation and scheduling."""
from price_watch.services.alert_engine import AlertEngine, TickReport
from price_watch.services.keep_alive import ExplorerKeepAlive
from price_watch.services.notifications import NotificationDispatcher
from price_watch.services.price_cache import PriceCache
from price_watch.services.price_refresher import PriceRefresher
from price_watch.services.reconciler import AddressReconciler
from price_watch.services.scheduler import TaskSupervisor
from price_watch.services.watcher_service import WatcherService

__all__ = [
    "AddressReconciler",
    "AlertEngine",
    "ExplorerKeepAlive",
    "NotificationDispatcher",
    "PriceCache",
    "PriceRefresher",
    "TaskSupervisor",
    "TickReport",
    "WatcherService",
]

"""Core exceptions and error mapping."""
from price_watch.core.error_mapper import WatcherErrorMapper
from price_watch.core.exceptions import (ConflictError, DeliveryFailure,
                                         ExplorerError, MissingBaselineError,
                                         NotFoundError, PriceSourceError,
                                         PriceWatchError,
                                         ReconciliationFailure)

__all__ = [
    "ConflictError",
    "DeliveryFailure",
    "ExplorerError",
    "MissingBaselineError",
    "NotFoundError",
    "PriceSourceError",
    "PriceWatchError",
    "ReconciliationFailure",
    "WatcherErrorMapper",
]

"""Domain exceptions for price alerting, delivery and address reconciliation."""


class PriceWatchError(Exception):
    """Base class for every error raised by the price_watch core."""


class MissingBaselineError(PriceWatchError):
    """No cached spot price, or a watcher without a usable baseline price."""


class DeliveryFailure(PriceWatchError):
    """The push transport failed or returned no message id."""


class ReconciliationFailure(PriceWatchError):
    """The explorer rejected a subscribe/unsubscribe; nothing was persisted."""


class ConflictError(PriceWatchError):
    """A watcher for this push token already exists."""


class NotFoundError(PriceWatchError):
    """The addressed watcher does not exist."""


class PriceSourceError(PriceWatchError):
    """A price source failed; refresh jobs keep the stale cached value."""


class ExplorerError(PriceWatchError):
    """The explorer watch service returned an error or was unreachable."""

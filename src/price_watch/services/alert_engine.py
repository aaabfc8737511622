"""Alert evaluation: per-tick price movement check for every active watcher.

Each tick loads the watchers with tx_notification ON, evaluates them
concurrently and waits for all of them. For every watcher whose evaluation
gets as far as computing a percentage, the baseline price is rolled forward
to the current spot price, alert or not, delivered or not. Alerts therefore
fire on movement since the previous tick, not since the watcher was created.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from decimal import Decimal

from price_watch.core.exceptions import DeliveryFailure, MissingBaselineError
from price_watch.db.models import NotificationState, Watcher
from price_watch.db.repository import WatcherRepository
from price_watch.services.notifications import NotificationDispatcher
from price_watch.services.price_cache import PriceCache
from price_watch.utils import decode_push_token, format_price, round_percentage

logger = logging.getLogger(__name__)

ALERT_TITLE = "Price Alert"
ALERT_TYPE = "price-alert"
TOKEN_SYMBOL = "AMB"


@dataclass(frozen=True)
class PriceMove:
    """Movement of the spot price against one watcher's baseline."""

    percentage: Decimal
    rounded_percentage: float
    rounded_price: str
    direction: int  # +1 up alert, -1 down alert, 0 no alert

    @property
    def triggered(self) -> bool:
        return self.direction != 0


@dataclass
class WatcherOutcome:
    """Result of evaluating one watcher in a tick."""

    push_token: str
    alerted: bool = False
    delivered: bool = False
    baseline_updated: bool = False
    error: str | None = None


@dataclass
class TickReport:
    """Per-watcher outcomes of one tick."""

    outcomes: list[WatcherOutcome] = field(default_factory=list)

    @property
    def alerts(self) -> int:
        return sum(1 for o in self.outcomes if o.alerted)

    @property
    def failures(self) -> list[WatcherOutcome]:
        return [o for o in self.outcomes if o.error is not None]


def evaluate_move(current: Decimal, baseline: Decimal | None, threshold: int) -> PriceMove:
    """Compare the current price with a baseline.

    The trigger uses the signed, unrounded percentage against +threshold and
    -threshold; the rounded magnitude is only for display.

    Raises:
        MissingBaselineError: baseline is unset or zero.
    """
    if baseline is None or baseline == 0:
        raise MissingBaselineError("Watcher has no baseline price")
    percentage = (current - baseline) / baseline * 100
    if percentage >= threshold:
        direction = 1
    elif percentage <= -threshold:
        direction = -1
    else:
        direction = 0
    return PriceMove(
        percentage=percentage,
        rounded_percentage=float(abs(round_percentage(percentage))),
        rounded_price=format_price(current),
        direction=direction,
    )


def alert_body(move: PriceMove) -> str:
    if move.direction > 0:
        return (
            f"🚀 {TOKEN_SYMBOL} Price changed on +{move.rounded_percentage}%! "
            f"Current price ${move.rounded_price}"
        )
    return (
        f"🔻 {TOKEN_SYMBOL} Price changed on -{move.rounded_percentage}%! "
        f"Current price ${move.rounded_price}"
    )


class AlertEngine:
    """Runs alert ticks over the watcher registry."""

    def __init__(
        self,
        cache: PriceCache,
        repository: WatcherRepository,
        dispatcher: NotificationDispatcher,
    ) -> None:
        self._cache = cache
        self._repository = repository
        self._dispatcher = dispatcher

    async def run_tick(self) -> TickReport:
        """Evaluate every watcher with tx_notification ON; never fails as a whole.

        The registry is read page by page, then all watchers are evaluated in
        one fan-out so a slow push on one page does not hold back the next.
        """
        report = TickReport()
        watchers: list[Watcher] = []
        async for page in self._repository.iter_pages(tx_notification=NotificationState.ON):
            watchers.extend(page)

        results = await asyncio.gather(
            *(self.evaluate_watcher(w) for w in watchers),
            return_exceptions=True,
        )
        for watcher, result in zip(watchers, results):
            if isinstance(result, BaseException):
                logger.error(
                    "Alert evaluation crashed for watcher %s", watcher.id, exc_info=result
                )
                result = WatcherOutcome(push_token=watcher.push_token, error=repr(result))
            report.outcomes.append(result)
        logger.info(
            "Alert tick done: %d watchers, %d alerts, %d failures",
            len(report.outcomes),
            report.alerts,
            len(report.failures),
        )
        return report

    async def evaluate_watcher(self, watcher: Watcher) -> WatcherOutcome:
        """Evaluate one watcher. Missing price data fails only this unit."""
        outcome = WatcherOutcome(push_token=watcher.push_token)
        current = self._cache.get_spot_price()
        try:
            if current is None:
                raise MissingBaselineError("Price data not found")
            move = evaluate_move(current, watcher.token_price, watcher.threshold)
        except MissingBaselineError as exc:
            logger.warning("Skipping watcher %s: %s", watcher.id, exc)
            outcome.error = str(exc)
            return outcome

        if move.triggered:
            outcome.alerted = True
            outcome.delivered = await self._notify(watcher, move)

        await self._repository.update_fields(watcher.push_token, token_price=current)
        outcome.baseline_updated = True
        return outcome

    async def _notify(self, watcher: Watcher, move: PriceMove) -> bool:
        """Send the alert and record it; never raises, so the baseline write always follows."""
        body = alert_body(move)
        data = {"type": ALERT_TYPE, "percentage": move.rounded_percentage}
        sent = False
        try:
            await self._dispatcher.send(
                ALERT_TITLE, body, decode_push_token(watcher.push_token), data
            )
            sent = True
        except DeliveryFailure as exc:
            logger.warning("Price alert to watcher %s not delivered: %s", watcher.id, exc)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Price alert to watcher %s failed", watcher.id)

        try:
            await self._repository.add_notification(watcher.id, ALERT_TITLE, body, sent)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Could not record notification for watcher %s", watcher.id)
        return sent

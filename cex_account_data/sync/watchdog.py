"""
Stale-order watchdog.

Locally submitted orders are tracked until the user data stream confirms
them with an execution report. If the oldest one stays unconfirmed for
longer than the threshold the stream is considered silently broken and
the watchdog escalates, once per episode, so the worker can reconnect.
"""

import asyncio
import inspect
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from ..core import get_logger

logger = get_logger(__name__)


class TrackState(str, Enum):
    """Lifecycle of a tracked order."""

    SUBMITTED = "submitted"
    WATCHED = "watched"
    CONFIRMED = "confirmed"
    ESCALATED = "escalated"


@dataclass
class TrackedOrder:
    """An order waiting for its first execution report."""

    order_id: int
    submitted_at: float
    state: TrackState = TrackState.SUBMITTED

    def age(self, now: float) -> float:
        return now - self.submitted_at


class OrderTracker:
    """
    Oldest-first list of orders awaiting stream confirmation.

    Thread safe: orders may be registered from the thread that submits
    them while the dispatcher confirms them from the event loop.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._orders: dict[int, TrackedOrder] = {}
        self._lock = threading.Lock()

    def track(self, order_id: int) -> TrackedOrder:
        """
        Register a submitted order.

        Re-tracking an order keeps its original submission time.
        """
        with self._lock:
            entry = self._orders.get(order_id)
            if entry is None:
                entry = TrackedOrder(order_id=order_id, submitted_at=self._clock())
                self._orders[order_id] = entry
            return entry

    def confirm(self, order_id: int) -> bool:
        """
        Mark an order as seen on the stream and stop tracking it.

        Returns:
            True if the order was being tracked
        """
        with self._lock:
            entry = self._orders.pop(order_id, None)
        if entry is None:
            return False
        entry.state = TrackState.CONFIRMED
        return True

    def oldest(self) -> Optional[TrackedOrder]:
        """Oldest unconfirmed order, None if nothing is tracked."""
        with self._lock:
            # dicts keep insertion order, which is submission order
            for entry in self._orders.values():
                return entry
        return None

    def __contains__(self, order_id: int) -> bool:
        with self._lock:
            return order_id in self._orders

    def __len__(self) -> int:
        with self._lock:
            return len(self._orders)

    def clear(self) -> None:
        with self._lock:
            self._orders.clear()

    def now(self) -> float:
        return self._clock()


StaleCallback = Callable[[TrackedOrder], Union[Awaitable[Any], Any]]


class StaleOrderWatchdog:
    """
    Periodic staleness check over an OrderTracker.

    Example:
        >>> watchdog = StaleOrderWatchdog(tracker, threshold=10.0, on_stale=force_reconnect)
        >>> watchdog.start()
        >>> ...
        >>> await watchdog.stop()
    """

    def __init__(
        self,
        tracker: OrderTracker,
        threshold: float,
        on_stale: StaleCallback,
        interval: float = 1.0,
        account: str = "default",
    ):
        """
        Initialize the watchdog.

        Args:
            tracker: Orders awaiting confirmation
            threshold: Seconds an order may stay unconfirmed
            on_stale: Called with the stale entry on escalation; may be async
            interval: Seconds between checks
            account: Account name used in log lines
        """
        self._tracker = tracker
        self._threshold = threshold
        self._on_stale = on_stale
        self._interval = interval
        self._account = account

        self._escalated: Optional[TrackedOrder] = None
        self._task: Optional[asyncio.Task] = None
        self.escalations = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def in_episode(self) -> bool:
        """True between an escalation and the end of its episode."""
        return self._escalated is not None

    def reset(self) -> None:
        """End the current episode (called after a reconnect)."""
        self._escalated = None

    async def check(self) -> Optional[TrackedOrder]:
        """
        Run one staleness check.

        Returns:
            The entry escalated by this check, or None
        """
        if self._escalated is not None and self._escalated.order_id not in self._tracker:
            # The stale order got confirmed after all
            logger.info(
                f"account={self._account} order_id={self._escalated.order_id} "
                f"confirmed after escalation"
            )
            self._escalated = None

        oldest = self._tracker.oldest()
        if oldest is None:
            return None

        if oldest.state == TrackState.SUBMITTED:
            oldest.state = TrackState.WATCHED

        if self._escalated is not None:
            return None

        age = oldest.age(self._tracker.now())
        if age <= self._threshold:
            return None

        oldest.state = TrackState.ESCALATED
        self._escalated = oldest
        self.escalations += 1
        logger.warning(
            f"account={self._account} order_id={oldest.order_id} unconfirmed for "
            f"{age:.1f}s (threshold {self._threshold}s), forcing reconnect"
        )

        result = self._on_stale(oldest)
        if inspect.isawaitable(result):
            await result
        return oldest

    def start(self) -> None:
        """Start the periodic check task."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the periodic check task."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

    async def _run(self) -> None:
        try:
            while True:
                await asyncio.sleep(self._interval)
                try:
                    await self.check()
                except Exception as e:
                    logger.error(f"account={self._account} watchdog check failed: {e!r}")
        except asyncio.CancelledError:
            logger.debug(f"account={self._account} watchdog cancelled")
            raise

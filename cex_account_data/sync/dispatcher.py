"""
Event Dispatcher.

Single consumer of the frame queue. Decodes each frame and routes it to
the store, the order tracker and the completed order archive. A frame
that fails to decode or apply is logged and skipped; the loop keeps
going with the next one.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Optional, Union

from ..core import get_logger
from ..core.exceptions import DataError, ParseError
from ..core.models import OpenOrder, OrderStatus
from ..exchange.binance.events import (
    AccountInfoEvent,
    BalanceDeltaEvent,
    BalancePositionEvent,
    OrderExecutionEvent,
    UserDataEvent,
    parse_event,
)
from .completed_orders import CompletedOrderCache
from .store import AccountStateStore
from .watchdog import OrderTracker

logger = get_logger(__name__)

FillCallback = Callable[[OpenOrder], Union[Awaitable[Any], Any]]


def _frame_preview(frame: Union[str, bytes, dict], limit: int = 120) -> str:
    text = frame if isinstance(frame, str) else repr(frame)
    return text if len(text) <= limit else f"{text[:limit]}..."


class EventDispatcher:
    """
    Routes user data events into the account mirror.

    | event                   | action                                   |
    |-------------------------|------------------------------------------|
    | outboundAccountPosition | upsert absolute balances                 |
    | balanceUpdate           | add delta to free balance                |
    | outboundAccountInfo     | replace account state                    |
    | executionReport         | upsert order, confirm, archive if closed |
    """

    def __init__(
        self,
        store: AccountStateStore,
        completed_orders: Optional[CompletedOrderCache] = None,
        tracker: Optional[OrderTracker] = None,
        on_order_filled: Optional[FillCallback] = None,
        account: str = "default",
    ):
        """
        Initialize the dispatcher.

        Args:
            store: Account mirror to mutate
            completed_orders: Archive for orders leaving the book
            tracker: Orders awaiting confirmation from the stream
            on_order_filled: Called with the final record of each filled order
            account: Account name used in log lines
        """
        self._store = store
        self._completed = completed_orders
        self._tracker = tracker
        self._on_order_filled = on_order_filled
        self._account = account

        # Counters
        self.processed = 0
        self.failed = 0
        self.ignored = 0

    def get_statistics(self) -> dict[str, int]:
        return {
            "processed": self.processed,
            "failed": self.failed,
            "ignored": self.ignored,
        }

    async def run(self, queue: asyncio.Queue) -> None:
        """Drain the queue forever, one frame at a time, in arrival order."""
        try:
            while True:
                frame = await queue.get()
                try:
                    await self.dispatch(frame)
                except Exception as e:
                    self.failed += 1
                    logger.error(
                        f"account={self._account} unexpected error handling frame "
                        f"{_frame_preview(frame)}: {e!r}"
                    )
                finally:
                    queue.task_done()
        except asyncio.CancelledError:
            logger.debug(f"account={self._account} dispatcher cancelled")
            raise

    async def dispatch(self, frame: Union[str, bytes, dict]) -> bool:
        """
        Decode and apply one frame.

        Returns:
            True if the frame changed the mirror
        """
        try:
            event = parse_event(frame)
        except ParseError as e:
            self.failed += 1
            logger.error(
                f"account={self._account} failed to parse {e.event_type or 'frame'}: {e}"
            )
            return False

        if event is None:
            self.ignored += 1
            logger.debug(f"account={self._account} ignoring unhandled event type")
            return False

        try:
            filled = self._apply(event)
        except DataError as e:
            self.failed += 1
            logger.error(
                f"account={self._account} failed to apply {event.event_type}"
                f"{self._order_context(event)}: {e}"
            )
            return False

        self.processed += 1

        if filled is not None and self._on_order_filled is not None:
            try:
                result = self._on_order_filled(filled)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    f"account={self._account} fill callback failed for "
                    f"order_id={filled.order_id}: {e!r}"
                )
        return True

    def _apply(self, event: UserDataEvent) -> Optional[OpenOrder]:
        """Mutate the mirror; returns the final record of a filled order."""
        if isinstance(event, BalancePositionEvent):
            self._store.apply_balance_position(event.balances)
        elif isinstance(event, BalanceDeltaEvent):
            self._store.apply_balance_delta(event)
        elif isinstance(event, AccountInfoEvent):
            self._store.set_account_state(event.to_account_state())
        elif isinstance(event, OrderExecutionEvent):
            return self._apply_execution(event)
        return None

    def _apply_execution(self, event: OrderExecutionEvent) -> Optional[OpenOrder]:
        order, removed = self._store.upsert_order(event)

        if self._tracker is not None:
            self._tracker.confirm(order.order_id)

        logger.debug(
            f"account={self._account} event=executionReport symbol={order.symbol} "
            f"order_id={order.order_id} status={order.status}"
        )

        if not removed:
            return None

        if self._completed is not None:
            self._completed.add(order)

        if order.status == OrderStatus.FILLED.value:
            return order
        return None

    @staticmethod
    def _order_context(event: UserDataEvent) -> str:
        if isinstance(event, OrderExecutionEvent):
            return f" symbol={event.symbol} order_id={event.order_id}"
        return ""

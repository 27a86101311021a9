"""
Account data worker.

Supervises one account's user data session as an explicit state machine:

    DISCONNECTED -> BOOTSTRAPPING -> STREAMING -> DISCONNECTED -> ...

A failed bootstrap is retried after ``bootstrap_retry_delay``; a broken
stream stops the keepalive and restarts the cycle after
``reconnect_delay``. The dispatcher drains the frame queue for the whole
lifetime of the worker, across reconnects. ``stop()`` moves the worker
to STOPPED from any state.
"""

import asyncio
from enum import Enum
from typing import Any, Optional

from ..config.models import SyncConfig
from ..core import get_logger
from ..core.exceptions import ExchangeError, StreamError
from ..core.models import OpenOrder
from ..exchange.binance.user_stream import UserDataStream
from .bootstrap import AccountDataProvider, SessionBootstrapper
from .completed_orders import CompletedOrderCache
from .dispatcher import EventDispatcher
from .keepalive import ListenKeyKeepalive
from .store import AccountStateStore
from .watchdog import OrderTracker, StaleOrderWatchdog, TrackedOrder

logger = get_logger(__name__)


class WorkerState(str, Enum):
    """Supervisor states."""

    DISCONNECTED = "disconnected"
    BOOTSTRAPPING = "bootstrapping"
    STREAMING = "streaming"
    STOPPED = "stopped"


class AccountDataWorker:
    """
    Keeps an AccountStateStore in sync with the exchange.

    Example:
        >>> worker = AccountDataWorker(rest_api, store, UserDataStream("main"), SyncConfig())
        >>> await worker.start()
        >>> await worker.wait_ready(timeout=30)
        >>> store.get_balance("USDT")
        >>> await worker.stop()
    """

    def __init__(
        self,
        provider: AccountDataProvider,
        store: AccountStateStore,
        stream: UserDataStream,
        config: Optional[SyncConfig] = None,
        completed_orders: Optional[CompletedOrderCache] = None,
        tracker: Optional[OrderTracker] = None,
        account: str = "default",
    ):
        """
        Initialize the worker.

        Args:
            provider: REST client (listen keys and snapshots)
            store: Mirror kept in sync
            stream: User data stream reader
            config: Timing and sizing settings
            completed_orders: Archive of orders that left the book
            tracker: Orders awaiting stream confirmation
            account: Account name used in log lines
        """
        self._config = config or SyncConfig()
        self._provider = provider
        self._store = store
        self._stream = stream
        self._account = account

        self.completed_orders = completed_orders or CompletedOrderCache(
            ttl=self._config.completed_order_ttl,
            max_size=self._config.completed_order_max_size,
        )
        self.tracker = tracker or OrderTracker()

        wallet = self._config.wallet
        symbol = self._config.isolated_symbol

        self._bootstrapper = SessionBootstrapper(provider, store, wallet, symbol, account)
        self._keepalive = ListenKeyKeepalive(
            provider,
            interval=self._config.keepalive_interval,
            wallet=wallet,
            symbol=symbol,
            account=account,
        )
        self._dispatcher = EventDispatcher(
            store,
            completed_orders=self.completed_orders,
            tracker=self.tracker,
            on_order_filled=self._on_order_filled if self._config.reconcile_after_fill else None,
            account=account,
        )
        self._watchdog = StaleOrderWatchdog(
            self.tracker,
            threshold=self._config.order_track_threshold,
            on_stale=self._on_stale_order,
            interval=self._config.watchdog_interval,
            account=account,
        )

        self._state = WorkerState.DISCONNECTED
        self._listen_key: Optional[str] = None
        self._queue: Optional[asyncio.Queue] = None
        self._stopping: Optional[asyncio.Event] = None
        self._ready: Optional[asyncio.Event] = None
        self._supervisor_task: Optional[asyncio.Task] = None
        self._dispatcher_task: Optional[asyncio.Task] = None
        self._reconcile_tasks: set[asyncio.Task] = set()

        # Counters
        self.sessions = 0
        self.reconnects = 0
        self.bootstrap_failures = 0
        self.reconciles_skipped = 0

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def account(self) -> str:
        return self._account

    @property
    def store(self) -> AccountStateStore:
        return self._store

    @property
    def dispatcher(self) -> EventDispatcher:
        return self._dispatcher

    @property
    def is_running(self) -> bool:
        return self._supervisor_task is not None and not self._supervisor_task.done()

    def _set_state(self, state: WorkerState) -> None:
        if state != self._state:
            logger.info(f"account={self._account} state {self._state.value} -> {state.value}")
            self._state = state

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Start the dispatcher, the supervisor and the watchdog."""
        if self.is_running:
            logger.warning(f"account={self._account} worker already running")
            return

        self._queue = asyncio.Queue(maxsize=self._config.queue_size)
        self._stopping = asyncio.Event()
        self._ready = asyncio.Event()
        self._state = WorkerState.DISCONNECTED

        self._dispatcher_task = asyncio.create_task(self._dispatcher.run(self._queue))
        self._supervisor_task = asyncio.create_task(self._supervise())
        if self._config.enable_watchdog:
            self._watchdog.start()

        logger.info(f"account={self._account} worker started ({self._config.wallet.value} wallet)")

    async def stop(self) -> None:
        """
        Stop every task of the worker and close the session.

        The listen key is deleted on a best-effort basis.
        """
        if self._state == WorkerState.STOPPED:
            return

        self._set_state(WorkerState.STOPPED)
        if self._stopping is not None:
            self._stopping.set()

        await self._watchdog.stop()
        await self._stream.close()
        await self._cancel(self._supervisor_task)
        await self._keepalive.stop()
        await self._cancel(self._dispatcher_task)
        await self._cancel_reconciles()
        self._supervisor_task = None
        self._dispatcher_task = None

        if self._listen_key is not None:
            try:
                await self._provider.delete_listen_key(
                    self._listen_key,
                    self._config.wallet,
                    self._config.isolated_symbol,
                )
            except ExchangeError as e:
                logger.warning(f"account={self._account} failed to delete listen key: {e}")
            self._listen_key = None

        logger.info(f"account={self._account} worker stopped")

    async def wait_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until the first snapshot has been committed.

        Returns:
            True if ready, False on timeout
        """
        if self._ready is None:
            return self._store.is_ready
        try:
            await asyncio.wait_for(self._ready.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False

    @staticmethod
    async def _cancel(task: Optional[asyncio.Task]) -> None:
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _cancel_reconciles(self) -> None:
        for task in list(self._reconcile_tasks):
            await self._cancel(task)

    async def _pause(self, delay: float) -> None:
        """Sleep, waking early when the worker is stopped."""
        if delay <= 0 or self._stopping is None:
            await asyncio.sleep(0)
            return
        try:
            await asyncio.wait_for(self._stopping.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    # =========================================================================
    # Supervisor
    # =========================================================================

    async def _supervise(self) -> None:
        try:
            while not self._stopping.is_set():
                listen_key = await self._bootstrap_once()
                if listen_key is None:
                    await self._pause(self._config.bootstrap_retry_delay)
                    continue

                await self._stream_session(listen_key)
                if self._stopping.is_set():
                    break

                # Frames of the finished session land before the next snapshot replaces them
                await self._queue.join()
                await self._cancel_reconciles()

                self.reconnects += 1
                logger.error(
                    f"account={self._account} subscribe data stream broken, "
                    f"retry after {self._config.reconnect_delay}s"
                )
                await self._pause(self._config.reconnect_delay)
        except asyncio.CancelledError:
            logger.debug(f"account={self._account} supervisor cancelled")
            raise

    async def _bootstrap_once(self) -> Optional[str]:
        """BOOTSTRAPPING step; returns the listen key or None on failure."""
        self._set_state(WorkerState.BOOTSTRAPPING)
        try:
            listen_key = await self._bootstrapper.bootstrap()
        except Exception as e:
            self.bootstrap_failures += 1
            self._set_state(WorkerState.DISCONNECTED)
            logger.error(
                f"account={self._account} failed to init session: {e!r}, "
                f"retry after {self._config.bootstrap_retry_delay}s"
            )
            return None

        self._listen_key = listen_key
        self._ready.set()
        return listen_key

    async def _stream_session(self, listen_key: str) -> None:
        """STREAMING step; returns once the stream is gone."""
        # Orders tracked against the previous session cannot be confirmed any more
        self.tracker.clear()
        self._watchdog.reset()

        self._keepalive.start(listen_key)
        self._set_state(WorkerState.STREAMING)
        self.sessions += 1
        try:
            await self._stream.subscribe(listen_key, self._queue)
        except StreamError as e:
            logger.warning(f"account={self._account} stream ended: {e}")
        except Exception as e:
            logger.error(f"account={self._account} unexpected stream failure: {e!r}")
        finally:
            await self._keepalive.stop()
            if self._state != WorkerState.STOPPED:
                self._set_state(WorkerState.DISCONNECTED)

    # =========================================================================
    # Callbacks
    # =========================================================================

    async def _on_stale_order(self, entry: TrackedOrder) -> None:
        if self._state == WorkerState.STREAMING:
            await self._stream.close()

    def _on_order_filled(self, order: OpenOrder) -> None:
        revision = self._store.revision
        task = asyncio.create_task(self._reconcile_account(order, revision))
        self._reconcile_tasks.add(task)
        task.add_done_callback(self._reconcile_tasks.discard)

    async def _reconcile_account(self, order: OpenOrder, revision: int) -> None:
        """
        Refresh the account state from REST after a fill.

        The REST state is dropped if the stream changed the store while the
        request was in flight.
        """
        try:
            state = await self._provider.get_wallet_account(
                self._config.wallet, self._config.isolated_symbol
            )
        except ExchangeError as e:
            logger.error(
                f"account={self._account} reconcile after order_id={order.order_id} failed: {e}"
            )
            return
        if not self._store.set_account_state(state, expected_revision=revision):
            self.reconciles_skipped += 1
            logger.debug(
                f"account={self._account} reconcile after order_id={order.order_id} "
                f"skipped, store changed since revision {revision}"
            )
            return
        logger.debug(f"account={self._account} account state reconciled after order_id={order.order_id}")

    # =========================================================================
    # Public helpers
    # =========================================================================

    def track_order(self, order_id: int) -> None:
        """Watch a locally submitted order until the stream reports it."""
        self.tracker.track(order_id)

    def stats(self) -> dict[str, Any]:
        """Worker statistics."""
        return {
            "account": self._account,
            "state": self._state.value,
            "sessions": self.sessions,
            "reconnects": self.reconnects,
            "bootstrap_failures": self.bootstrap_failures,
            "reconciles_skipped": self.reconciles_skipped,
            "received_frames": self._stream.received_frames,
            "dropped_frames": self._stream.dropped_frames,
            "tracked_orders": len(self.tracker),
            "watchdog_escalations": self._watchdog.escalations,
            "completed_orders": self.completed_orders.size,
            **self._dispatcher.get_statistics(),
        }

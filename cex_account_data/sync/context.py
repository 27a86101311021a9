"""
Per-account context.

Bundles everything needed to operate one Binance account: its REST
client, its mirrored state, the completed order archive, the order
tracker and the worker that keeps them in sync.
"""

from typing import Optional

from ..config.models import AccountConfig, SyncConfig
from ..core import get_logger
from ..core.exceptions import NotFoundError
from ..core.models import AccountSnapshot, Balance, OpenOrder
from ..exchange.binance.rest_api import BinanceRestAPI
from ..exchange.binance.user_stream import UserDataStream
from .completed_orders import CompletedOrderCache
from .store import AccountStateStore
from .watchdog import OrderTracker
from .worker import AccountDataWorker

logger = get_logger(__name__)


class AccountContext:
    """
    One account's client, mirror and worker.

    Example:
        >>> ctx = AccountContext.from_config(account_config, sync_config)
        >>> await ctx.start()
        >>> order = await ctx.order_status("BTCUSDT", 12345)
        >>> await ctx.close()
    """

    def __init__(
        self,
        name: str,
        rest_client: BinanceRestAPI,
        worker: AccountDataWorker,
    ):
        self.name = name
        self.rest_client = rest_client
        self.worker = worker

    @classmethod
    def from_config(cls, account: AccountConfig, sync: SyncConfig) -> "AccountContext":
        """Build a context from configuration."""
        exchange = account.exchange
        rest_client = BinanceRestAPI(
            api_key=exchange.api_key,
            api_secret=exchange.api_secret,
            testnet=exchange.testnet,
            recv_window=exchange.recv_window,
            timeout=exchange.request_timeout,
            max_retries=exchange.max_retries,
            retry_delay=exchange.retry_delay,
        )
        stream = UserDataStream(
            account=account.name,
            testnet=exchange.testnet,
            push_timeout=sync.push_timeout,
            ping_interval=sync.ping_interval,
        )
        worker = AccountDataWorker(
            rest_client,
            AccountStateStore(account=account.name),
            stream,
            config=sync,
            completed_orders=CompletedOrderCache(
                ttl=sync.completed_order_ttl,
                max_size=sync.completed_order_max_size,
            ),
            tracker=OrderTracker(),
            account=account.name,
        )
        return cls(account.name, rest_client, worker)

    # =========================================================================
    # Shortcuts
    # =========================================================================

    @property
    def store(self) -> AccountStateStore:
        return self.worker.store

    @property
    def completed_orders(self) -> CompletedOrderCache:
        return self.worker.completed_orders

    @property
    def tracker(self) -> OrderTracker:
        return self.worker.tracker

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        await self.rest_client.connect()
        await self.rest_client.sync_time()
        await self.worker.start()

    async def close(self) -> None:
        """Stop the worker, close the REST session and drop the mirror."""
        await self.worker.stop()
        await self.rest_client.close()
        self.store.clear()
        self.completed_orders.clear()

    # =========================================================================
    # Queries
    # =========================================================================

    def snapshot(self) -> AccountSnapshot:
        return self.store.snapshot()

    def balance(self, asset: str) -> Optional[Balance]:
        return self.store.get_balance(asset)

    async def order_status(self, symbol: str, order_id: int) -> OpenOrder:
        """
        Current state of an order.

        Looks at the open orders first, then the completed order archive,
        and finally asks the exchange.

        Raises:
            NotFoundError: If the exchange does not know the order either
        """
        try:
            return self.store.order_status(symbol, order_id)
        except NotFoundError:
            pass

        completed = self.completed_orders.get(symbol, order_id)
        if completed is not None:
            return completed

        logger.debug(f"account={self.name} symbol={symbol} order_id={order_id} not cached, querying")
        return await self.rest_client.get_order(symbol, order_id=order_id)

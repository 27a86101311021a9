"""
Coin state worker.

Periodically pulls the wallet configuration of every coin (deposit and
withdraw switches per network) so callers can check whether an asset is
withdrawable without hitting the API each time.
"""

import asyncio
import threading
from typing import Optional, Protocol

from ..core import get_logger
from ..core.exceptions import ExchangeError
from ..core.models import CoinInfo

logger = get_logger(__name__)


class CoinInfoProvider(Protocol):
    async def get_all_coin_info(self) -> list[CoinInfo]:
        ...


class CoinStateWorker:
    """
    Cached copy of ``/sapi/v1/capital/config/getall``.

    Example:
        >>> worker = CoinStateWorker(rest_api, interval=60)
        >>> await worker.start()
        >>> worker.get_one("BTC").withdrawable
        True
    """

    def __init__(self, provider: CoinInfoProvider, interval: float = 60.0):
        self._provider = provider
        self._interval = interval
        self._lock = threading.Lock()
        self._snapshot: list[CoinInfo] = []
        self._by_coin: dict[str, CoinInfo] = {}
        self._task: Optional[asyncio.Task] = None

    async def update(self) -> bool:
        """
        Refresh the cache once.

        Returns:
            True if the refresh succeeded; on failure the previous copy stays
        """
        try:
            coins = await self._provider.get_all_coin_info()
        except ExchangeError as e:
            logger.error(f"get all coin info failed: {e}")
            return False

        by_coin = {c.coin: c for c in coins}
        with self._lock:
            self._snapshot = coins
            self._by_coin = by_coin
        logger.debug(f"Coin state refreshed: {len(coins)} coins")
        return True

    async def start(self) -> None:
        """Fetch once, then keep refreshing in the background."""
        await self.update()
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
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
                await self.update()
        except asyncio.CancelledError:
            logger.debug("Coin state worker cancelled")
            raise

    def all_info(self) -> list[CoinInfo]:
        """Copies of every coin's configuration."""
        with self._lock:
            return [c.model_copy(deep=True) for c in self._snapshot]

    def get_one(self, coin: str) -> Optional[CoinInfo]:
        """Copy of one coin's configuration, None if unknown."""
        with self._lock:
            info = self._by_coin.get(coin)
            return info.model_copy(deep=True) if info is not None else None

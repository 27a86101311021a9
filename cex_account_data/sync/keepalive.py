"""
Listen-key keepalive loop.

A listen key expires 60 minutes after its last keepalive. While a stream
session is up, this loop refreshes the key on a fixed interval. Failures
are logged and the loop carries on; a key that really expired shows up
as a broken stream instead.
"""

import asyncio
from typing import Optional

from ..core import get_logger
from ..core.exceptions import ExchangeError
from ..core.models import WalletType
from .bootstrap import AccountDataProvider

logger = get_logger(__name__)


class ListenKeyKeepalive:
    """Periodic ``keep_alive_listen_key`` for one listen key."""

    def __init__(
        self,
        provider: AccountDataProvider,
        interval: float = 30 * 60,
        wallet: WalletType = WalletType.SPOT,
        symbol: Optional[str] = None,
        account: str = "default",
    ):
        self._provider = provider
        self._interval = interval
        self._wallet = wallet
        self._symbol = symbol
        self._account = account

        self._task: Optional[asyncio.Task] = None
        self._listen_key: Optional[str] = None
        self.successes = 0
        self.failures = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, listen_key: str) -> None:
        """Start refreshing a key, replacing any loop already running."""
        if self.is_running:
            self._task.cancel()
        self._listen_key = listen_key
        self._task = asyncio.create_task(self._run(listen_key))

    async def stop(self) -> None:
        """Stop the loop; no further keepalive is sent for the key."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        self._listen_key = None

    async def refresh(self, listen_key: str) -> bool:
        """
        Send one keepalive.

        Returns:
            True on success, False if the call failed (already logged)
        """
        try:
            await self._provider.keep_alive_listen_key(listen_key, self._wallet, self._symbol)
        except ExchangeError as e:
            self.failures += 1
            logger.error(f"account={self._account} failed to keep listen key alive: {e}")
            return False
        self.successes += 1
        logger.debug(f"account={self._account} listen key kept alive")
        return True

    async def _run(self, listen_key: str) -> None:
        try:
            while True:
                await asyncio.sleep(self._interval)
                await self.refresh(listen_key)
        except asyncio.CancelledError:
            logger.debug(f"account={self._account} keepalive loop cancelled")
            raise

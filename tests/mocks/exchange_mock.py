"""
Mock exchange services for testing.

Simulates the REST provider and the user data stream without network access.
"""

import asyncio
from typing import Optional

import websockets
from websockets.protocol import State

from cex_account_data.core.exceptions import StreamError, UpstreamError
from cex_account_data.core.models import AccountState, Balance, OpenOrder, WalletType


class MockAccountProvider:
    """
    Scriptable stand-in for BinanceRestAPI.

    Example:
        >>> provider = MockAccountProvider()
        >>> provider.balances = [Balance(asset="BTC", free="1.0", locked="0")]
        >>> provider.fail_listen_key = 2  # first two creations fail
    """

    def __init__(self):
        self.balances: list[Balance] = [
            Balance(asset="BTC", free="1.00000000", locked="0.00000000"),
            Balance(asset="USDT", free="10.0", locked="0.0"),
        ]
        self.orders: list[OpenOrder] = []
        # Balances per get_wallet_account call; falls back to self.balances
        self.balance_history: list[list[Balance]] = []
        # Seconds get_wallet_account waits after reading balances
        self.account_delay = 0.0

        # Number of upcoming calls that should fail
        self.fail_listen_key = 0
        self.fail_account = 0
        self.fail_keepalive = 0

        self.listen_keys_created: list[str] = []
        self.keepalive_calls: list[str] = []
        self.deleted_keys: list[str] = []
        self.account_calls = 0
        self.open_order_calls = 0
        self.wallets_seen: list[WalletType] = []

    async def create_listen_key(
        self,
        wallet: WalletType = WalletType.SPOT,
        symbol: Optional[str] = None,
    ) -> str:
        self.wallets_seen.append(wallet)
        if self.fail_listen_key > 0:
            self.fail_listen_key -= 1
            raise UpstreamError("listen key refused", status=500)
        key = f"key-{len(self.listen_keys_created) + 1}"
        self.listen_keys_created.append(key)
        return key

    async def keep_alive_listen_key(
        self,
        listen_key: str,
        wallet: WalletType = WalletType.SPOT,
        symbol: Optional[str] = None,
    ) -> bool:
        if self.fail_keepalive > 0:
            self.fail_keepalive -= 1
            raise UpstreamError("keepalive refused", status=400)
        self.keepalive_calls.append(listen_key)
        return True

    async def delete_listen_key(
        self,
        listen_key: str,
        wallet: WalletType = WalletType.SPOT,
        symbol: Optional[str] = None,
    ) -> bool:
        self.deleted_keys.append(listen_key)
        return True

    async def get_wallet_account(
        self,
        wallet: WalletType = WalletType.SPOT,
        symbol: Optional[str] = None,
    ) -> AccountState:
        self.account_calls += 1
        if self.fail_account > 0:
            self.fail_account -= 1
            raise UpstreamError("account refused", status=503)
        balances = self.balance_history.pop(0) if self.balance_history else self.balances
        state = AccountState(
            can_trade=True,
            account_type="SPOT",
            balances=[b.model_copy() for b in balances],
            permissions=["SPOT"],
        )
        if self.account_delay:
            await asyncio.sleep(self.account_delay)
        return state

    async def get_wallet_open_orders(
        self,
        wallet: WalletType = WalletType.SPOT,
        symbol: Optional[str] = None,
    ) -> list[OpenOrder]:
        self.open_order_calls += 1
        return [o.model_copy() for o in self.orders]


class ScriptedStream:
    """
    Stand-in for UserDataStream driven by per-session scripts.

    Each call to ``subscribe`` takes the next script: a list of frames to
    queue, then either break (raise StreamError) or block until ``close()``.
    """

    def __init__(self, sessions: Optional[list[tuple[list, bool]]] = None):
        """
        Args:
            sessions: (frames, break_after) per session; once exhausted,
                sessions block until closed
        """
        self._sessions = list(sessions or [])
        self._closed: Optional[asyncio.Event] = None
        self.listen_keys: list[str] = []
        self.close_calls = 0
        self.received_frames = 0
        self.dropped_frames = 0
        self.connected = asyncio.Event()

    async def subscribe(self, listen_key: str, queue: asyncio.Queue) -> None:
        self.listen_keys.append(listen_key)
        self._closed = asyncio.Event()
        frames, break_after = self._sessions.pop(0) if self._sessions else ([], False)

        for frame in frames:
            self.received_frames += 1
            await queue.put(frame)

        self.connected.set()
        if break_after:
            raise StreamError("connection reset by peer")

        await self._closed.wait()
        raise StreamError("stream closed")

    async def close(self) -> None:
        self.close_calls += 1
        if self._closed is not None:
            self._closed.set()


class FakeWebSocket:
    """
    Minimal websocket connection: serves queued frames, then reports closed.
    """

    def __init__(self, frames: list[str]):
        self._frames = list(frames)
        self._closed = asyncio.Event()
        self.state = State.OPEN
        self.recv_calls = 0

    async def recv(self) -> str:
        self.recv_calls += 1
        if self._frames:
            return self._frames.pop(0)
        await self._closed.wait()
        raise websockets.ConnectionClosed(None, None)

    async def ping(self):
        loop = asyncio.get_running_loop()
        waiter = loop.create_future()
        waiter.set_result(0.0)
        return waiter

    async def close(self) -> None:
        self.state = State.CLOSED
        self._closed.set()

"""
Binance user data stream subscriber.

Connects to the user data WebSocket for a listen key and hands every raw
frame to a bounded queue. A frame that cannot be queued within the push
timeout is dropped so a slow consumer never stalls the socket reader.
"""

import asyncio
from typing import Optional

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import WebSocketException
from websockets.protocol import State

from ...core import get_logger
from ...core.exceptions import StreamError
from .constants import SPOT_WS_TESTNET_URL, SPOT_WS_URL

logger = get_logger(__name__)


class UserDataStream:
    """
    Reader for one user data stream connection at a time.

    ``subscribe`` runs until the connection fails or is closed and always
    ends by raising ``StreamError``; the caller decides whether to
    reconnect.

    Example:
        >>> stream = UserDataStream(account="main")
        >>> queue = asyncio.Queue(maxsize=256)
        >>> try:
        ...     await stream.subscribe(listen_key, queue)
        ... except StreamError:
        ...     pass  # bootstrap again
    """

    def __init__(
        self,
        account: str = "default",
        testnet: bool = False,
        push_timeout: float = 1.0,
        ping_interval: float = 30.0,
        pong_timeout: float = 10.0,
        base_url: Optional[str] = None,
    ):
        """
        Initialize UserDataStream.

        Args:
            account: Account name used in log lines
            testnet: Use testnet URL if True
            push_timeout: Seconds to wait for queue space before dropping a frame
            ping_interval: Seconds between websocket pings
            pong_timeout: Seconds to wait for a pong before giving up the connection
            base_url: Override the websocket base URL
        """
        self._account = account
        self._base_url = base_url or (SPOT_WS_TESTNET_URL if testnet else SPOT_WS_URL)
        self._push_timeout = push_timeout
        self._ping_interval = ping_interval
        self._pong_timeout = pong_timeout

        self._ws: Optional[ClientConnection] = None
        self._ping_task: Optional[asyncio.Task] = None

        # Counters
        self.received_frames = 0
        self.dropped_frames = 0

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def is_connected(self) -> bool:
        """Check if the stream connection is open."""
        return self._ws is not None and self._ws.state == State.OPEN

    def stream_url(self, listen_key: str) -> str:
        """WebSocket URL for a listen key."""
        return f"{self._base_url}/ws/{listen_key}"

    # =========================================================================
    # Subscription
    # =========================================================================

    async def subscribe(self, listen_key: str, queue: asyncio.Queue) -> None:
        """
        Stream frames of a listen key into a queue until the stream breaks.

        Args:
            listen_key: Listen key from the bootstrap
            queue: Bounded queue drained by the dispatcher

        Raises:
            StreamError: When connecting or reading fails, or the
                connection is closed (also after ``close()``)
        """
        url = self.stream_url(listen_key)
        logger.info(f"account={self._account} connecting user data stream")

        try:
            self._ws = await websockets.connect(
                url,
                ping_interval=None,  # Own ping loop below
                ping_timeout=None,
            )
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            raise StreamError(f"Failed to connect user data stream: {e!r}") from e

        logger.info(f"account={self._account} user data stream connected")
        self._ping_task = asyncio.create_task(self._ping_loop(self._ws))

        try:
            await self._read_loop(self._ws, queue)
        finally:
            await self._cleanup()

    async def _read_loop(self, ws: ClientConnection, queue: asyncio.Queue) -> None:
        """Read frames forever; return only by raising StreamError."""
        while True:
            try:
                frame = await ws.recv()
            except websockets.ConnectionClosed as e:
                logger.error(f"account={self._account} user data stream closed: {e}")
                raise StreamError(f"User data stream closed: {e}") from e
            except OSError as e:
                logger.error(f"account={self._account} read message error: {e!r}")
                raise StreamError(f"Read message error: {e!r}") from e

            self.received_frames += 1
            await self._push(queue, frame)

    async def _push(self, queue: asyncio.Queue, frame: str | bytes) -> bool:
        """
        Queue a frame, dropping it if no space frees up in time.

        Returns:
            True if the frame was queued
        """
        try:
            await asyncio.wait_for(queue.put(frame), timeout=self._push_timeout)
            return True
        except asyncio.TimeoutError:
            self.dropped_frames += 1
            logger.error(
                f"account={self._account} failed to insert message, queue full "
                f"for {self._push_timeout}s (dropped={self.dropped_frames})"
            )
            return False

    async def _ping_loop(self, ws: ClientConnection) -> None:
        """Ping the server; close the connection when pongs stop coming."""
        try:
            while ws.state == State.OPEN:
                await asyncio.sleep(self._ping_interval)
                try:
                    pong_waiter = await ws.ping()
                    await asyncio.wait_for(pong_waiter, timeout=self._pong_timeout)
                    logger.debug(f"account={self._account} ping/pong ok")
                except asyncio.TimeoutError:
                    logger.warning(f"account={self._account} pong timeout, closing stream")
                    await ws.close()
                    return
                except websockets.ConnectionClosed:
                    return
        except asyncio.CancelledError:
            logger.debug(f"account={self._account} ping loop cancelled")
            raise

    async def close(self) -> None:
        """
        Force the current connection closed.

        A ``subscribe`` in progress then raises ``StreamError``.
        """
        ws = self._ws
        if ws is not None:
            logger.info(f"account={self._account} closing user data stream")
            try:
                await ws.close()
            except OSError as e:
                logger.debug(f"account={self._account} error closing stream: {e!r}")

    async def _cleanup(self) -> None:
        if self._ping_task and not self._ping_task.done():
            self._ping_task.cancel()
            try:
                await self._ping_task
            except asyncio.CancelledError:
                pass
        self._ping_task = None

        if self._ws is not None:
            try:
                await self._ws.close()
            except OSError as e:
                logger.debug(f"account={self._account} error closing stream: {e!r}")
            self._ws = None

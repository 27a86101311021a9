"""
Binance REST API client.

Async client for the account endpoints the synchronizer needs: listen key
management for every wallet, account and open-order snapshots, order
status, margin account details and wallet coin configuration.
"""

import asyncio
from typing import Any, Optional

import aiohttp

from ...core import get_logger
from ...core.exceptions import (
    AuthenticationError,
    ConnectionError,
    ExchangeError,
    NotFoundError,
    RateLimitError,
    UpstreamError,
)
from ...core.models import (
    AccountState,
    Balance,
    CoinInfo,
    CrossMarginAccount,
    OpenOrder,
    WalletType,
)
from .auth import BinanceAuth
from .constants import (
    AUTH_ERROR_CODES,
    BINANCE_ERROR_CODES,
    DEFAULT_RECV_WINDOW,
    LISTEN_KEY_PATHS,
    PRIVATE_ENDPOINTS,
    PUBLIC_ENDPOINTS,
    RATE_LIMIT_ERROR_CODES,
    SPOT_REST_URL,
    SPOT_TESTNET_URL,
)

logger = get_logger(__name__)


class BinanceRestAPI:
    """
    Binance REST API client for account data.

    Example:
        >>> async with BinanceRestAPI(api_key="...", api_secret="...") as api:
        ...     listen_key = await api.create_listen_key()
        ...     state = await api.get_account()
        ...     orders = await api.get_open_orders()
    """

    def __init__(
        self,
        api_key: str = "",
        api_secret: str = "",
        testnet: bool = False,
        recv_window: int = DEFAULT_RECV_WINDOW,
        timeout: float = 5.0,
        max_retries: int = 3,
        retry_delay: float = 1.0,
    ):
        """
        Initialize BinanceRestAPI.

        Args:
            api_key: Binance API key
            api_secret: Binance API secret
            testnet: Use testnet URL if True
            recv_window: Milliseconds a signed request stays valid
            timeout: Request timeout in seconds
            max_retries: Maximum number of retries for transient errors
            retry_delay: Initial delay between retries (exponential backoff)
        """
        self._base_url = SPOT_TESTNET_URL if testnet else SPOT_REST_URL
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None
        self._auth: Optional[BinanceAuth] = None

        if api_key and api_secret:
            self._auth = BinanceAuth(api_key, api_secret, recv_window)

        self._testnet = testnet
        self._max_retries = max_retries
        self._retry_delay = retry_delay

    @property
    def base_url(self) -> str:
        """REST base URL in use."""
        return self._base_url

    # =========================================================================
    # Lifecycle Management
    # =========================================================================

    async def connect(self) -> None:
        """Create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            logger.debug(f"Connected to {self._base_url}")

    async def close(self) -> None:
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
            logger.debug("Session closed")

    async def __aenter__(self) -> "BinanceRestAPI":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # =========================================================================
    # Internal Request Methods
    # =========================================================================

    async def _request(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        signed: bool = False,
        api_key_required: bool = False,
    ) -> Any:
        """
        Send HTTP request to Binance API with retry logic.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            path: API endpoint path
            params: Request parameters
            signed: Whether to sign the request
            api_key_required: Whether to include API key header (without signature)

        Returns:
            Decoded JSON body (dict or list)

        Raises:
            ConnectionError: Connection failed after retries
            AuthenticationError: Credentials missing or rejected
            RateLimitError: Rate limit exceeded after retries
            UpstreamError: Any other non-success response
        """
        if method not in ("GET", "POST", "PUT", "DELETE"):
            raise ValueError(f"Unsupported HTTP method: {method}")

        if self._session is None or self._session.closed:
            await self.connect()

        url = f"{self._base_url}{path}"
        original_params = dict(params) if params else {}

        for attempt in range(self._max_retries + 1):
            headers = {}
            request_params = original_params

            # Re-sign on each attempt, the timestamp must be fresh
            if signed:
                if self._auth is None:
                    raise AuthenticationError("API key and secret required for signed requests")
                request_params = self._auth.sign_params(original_params)
                headers = self._auth.get_headers()
            elif api_key_required:
                if self._auth is None:
                    raise AuthenticationError("API key required for this request")
                headers = self._auth.get_headers()

            logger.debug(f"Request: {method} {path} (attempt {attempt + 1}/{self._max_retries + 1})")

            try:
                async with self._session.request(
                    method, url, params=request_params, headers=headers
                ) as resp:
                    return await self._handle_response(resp)

            except RateLimitError as e:
                if attempt < self._max_retries:
                    delay = max(self._retry_delay * (2 ** attempt), 1.0)
                    logger.warning(
                        f"Rate limited on {path}: {e}. "
                        f"Retrying in {delay:.1f}s (attempt {attempt + 1}/{self._max_retries})"
                    )
                    await asyncio.sleep(delay)
                    continue
                raise

            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                if attempt < self._max_retries:
                    delay = self._retry_delay * (2 ** attempt)
                    logger.warning(
                        f"Network error on {path}: {e!r}. "
                        f"Retrying in {delay:.1f}s (attempt {attempt + 1}/{self._max_retries})"
                    )
                    await asyncio.sleep(delay)
                    continue
                logger.error(f"Connection error after {self._max_retries + 1} attempts: {e!r}")
                raise ConnectionError(f"Failed to connect to Binance: {e!r}") from e

        raise ExchangeError(f"Request failed after {self._max_retries + 1} attempts")

    async def _handle_response(self, response: aiohttp.ClientResponse) -> Any:
        """
        Decode a response and raise on any non-success outcome.

        Args:
            response: aiohttp response object

        Returns:
            Parsed JSON body

        Raises:
            RateLimitError: HTTP 429/418 or a rate limit error code
            AuthenticationError: Rejected credentials
            UpstreamError: Any other non-2xx response
        """
        status = response.status
        logger.debug(f"Response status: {status}")

        if status in (418, 429):
            retry_after = response.headers.get("Retry-After", "1")
            raise RateLimitError(
                f"Rate limited (HTTP {status}). Retry after: {retry_after}s",
                retry_after=int(retry_after) if retry_after.isdigit() else 1,
                status=status,
                code=str(status),
            )

        try:
            data = await response.json(content_type=None)
        except ValueError:
            text = await response.text()
            if status >= 400:
                raise UpstreamError(f"HTTP {status}: {text}", status=status)
            return {}

        if isinstance(data, dict) and "code" in data and "msg" in data:
            code = data["code"]
            if status >= 400 or (isinstance(code, int) and code < 0):
                self._raise_exception(code, data["msg"], status)

        if status >= 400:
            raise UpstreamError(f"HTTP {status}: {data}", status=status)

        return data

    def _raise_exception(self, code: int, msg: str, status: int) -> None:
        """
        Raise the exception matching a Binance error code.

        Args:
            code: Binance error code
            msg: Error message
            status: HTTP status
        """
        name = BINANCE_ERROR_CODES.get(code, "ERROR")
        error_info = f"[{code}] {name}: {msg}"

        if code in AUTH_ERROR_CODES:
            raise AuthenticationError(error_info, status=status, code=str(code))
        if code in RATE_LIMIT_ERROR_CODES:
            raise RateLimitError(error_info, status=status, code=str(code))
        raise UpstreamError(error_info, status=status, code=str(code))

    # =========================================================================
    # Public API
    # =========================================================================

    async def get_server_time(self) -> int:
        """
        Get Binance server time.

        Returns:
            Server time in milliseconds
        """
        data = await self._request("GET", PUBLIC_ENDPOINTS["SERVER_TIME"].path)
        return int(data["serverTime"])

    async def sync_time(self) -> None:
        """Synchronize signed request timestamps with Binance server time."""
        try:
            server_time_ms = await self.get_server_time()
        except (ExchangeError, KeyError, ValueError) as e:
            logger.warning(f"Failed to sync time: {e}")
            return
        if self._auth:
            self._auth.set_time_offset(server_time_ms)
            logger.info(f"Time synced, offset: {self._auth.time_offset}ms")

    # =========================================================================
    # User Data Stream
    # =========================================================================

    def _listen_key_params(
        self,
        wallet: WalletType,
        symbol: Optional[str],
        listen_key: Optional[str] = None,
    ) -> dict:
        params = {}
        if wallet == WalletType.ISOLATED_MARGIN:
            if not symbol:
                raise ValueError("symbol is required for isolated margin listen keys")
            params["symbol"] = symbol
        if listen_key is not None:
            params["listenKey"] = listen_key
        return params

    async def create_listen_key(
        self,
        wallet: WalletType = WalletType.SPOT,
        symbol: Optional[str] = None,
    ) -> str:
        """
        Create a new listen key for the user data stream.

        Args:
            wallet: Wallet the stream is opened for
            symbol: Isolated margin symbol (isolated wallet only)

        Returns:
            Listen key string

        Raises:
            UpstreamError: If the exchange refuses the request
        """
        data = await self._request(
            "POST",
            LISTEN_KEY_PATHS[wallet],
            params=self._listen_key_params(wallet, symbol),
            api_key_required=True,
        )
        try:
            return data["listenKey"]
        except (KeyError, TypeError) as e:
            raise UpstreamError(f"No listenKey in response: {data}") from e

    async def keep_alive_listen_key(
        self,
        listen_key: str,
        wallet: WalletType = WalletType.SPOT,
        symbol: Optional[str] = None,
    ) -> bool:
        """
        Extend a listen key's validity by 60 minutes.

        Args:
            listen_key: The listen key to keep alive
            wallet: Wallet the key belongs to
            symbol: Isolated margin symbol (isolated wallet only)

        Returns:
            True if successful
        """
        await self._request(
            "PUT",
            LISTEN_KEY_PATHS[wallet],
            params=self._listen_key_params(wallet, symbol, listen_key),
            api_key_required=True,
        )
        return True

    async def delete_listen_key(
        self,
        listen_key: str,
        wallet: WalletType = WalletType.SPOT,
        symbol: Optional[str] = None,
    ) -> bool:
        """
        Close a listen key, ending its stream.

        Returns:
            True if successful
        """
        await self._request(
            "DELETE",
            LISTEN_KEY_PATHS[wallet],
            params=self._listen_key_params(wallet, symbol, listen_key),
            api_key_required=True,
        )
        return True

    # =========================================================================
    # Private API - Spot Account
    # =========================================================================

    async def get_account(self) -> AccountState:
        """
        Get current spot account information.

        Returns:
            AccountState with all balances
        """
        data = await self._request(
            "GET",
            PRIVATE_ENDPOINTS["ACCOUNT"].path,
            signed=True,
        )
        return AccountState.from_binance(data)

    async def get_open_orders(self, symbol: str | None = None) -> list[OpenOrder]:
        """
        Get all open spot orders.

        Args:
            symbol: Trading pair (optional, returns all if None)

        Returns:
            List of open orders
        """
        params = {"symbol": symbol} if symbol else {}
        data = await self._request(
            "GET",
            PRIVATE_ENDPOINTS["OPEN_ORDERS"].path,
            params,
            signed=True,
        )
        return [OpenOrder.from_binance(o) for o in data]

    async def get_order(
        self,
        symbol: str,
        order_id: int | None = None,
        client_order_id: str | None = None,
    ) -> OpenOrder:
        """
        Query the status of one order.

        Args:
            symbol: Trading pair
            order_id: Exchange order ID
            client_order_id: Client order ID

        Returns:
            The order as the exchange currently reports it

        Raises:
            NotFoundError: If the exchange does not know the order
        """
        params: dict = {"symbol": symbol}
        if order_id is not None:
            params["orderId"] = order_id
        elif client_order_id:
            params["origClientOrderId"] = client_order_id
        else:
            raise ValueError("Either order_id or client_order_id required")

        try:
            data = await self._request(
                "GET",
                PRIVATE_ENDPOINTS["ORDER_GET"].path,
                params,
                signed=True,
            )
        except UpstreamError as e:
            if e.code == "-2013":
                raise NotFoundError(
                    f"Order not found: {symbol} {order_id or client_order_id}"
                ) from e
            raise
        return OpenOrder.from_binance(data)

    # =========================================================================
    # Private API - Margin
    # =========================================================================

    async def get_cross_margin_account(self) -> CrossMarginAccount:
        """Get cross-margin account details."""
        data = await self._request(
            "GET",
            PRIVATE_ENDPOINTS["MARGIN_ACCOUNT"].path,
            signed=True,
        )
        return CrossMarginAccount.from_binance(data)

    async def get_isolated_margin_account(self, symbol: str) -> dict:
        """
        Get isolated margin details for one symbol.

        Returns:
            The raw ``assets[0]`` entry (``baseAsset``/``quoteAsset`` blocks)

        Raises:
            NotFoundError: If the pair has no isolated margin account
        """
        data = await self._request(
            "GET",
            PRIVATE_ENDPOINTS["ISOLATED_MARGIN_ACCOUNT"].path,
            {"symbols": symbol},
            signed=True,
        )
        assets = data.get("assets") or []
        if not assets:
            raise NotFoundError(f"No isolated margin account for {symbol}")
        return assets[0]

    async def get_margin_open_orders(
        self,
        symbol: str | None = None,
        isolated: bool = False,
    ) -> list[OpenOrder]:
        """Get open cross or isolated margin orders."""
        params: dict = {}
        if symbol:
            params["symbol"] = symbol
        if isolated:
            params["isIsolated"] = "TRUE"
        data = await self._request(
            "GET",
            PRIVATE_ENDPOINTS["MARGIN_OPEN_ORDERS"].path,
            params,
            signed=True,
        )
        return [OpenOrder.from_binance(o) for o in data]

    # =========================================================================
    # Wallet Dispatch
    # =========================================================================

    async def get_wallet_account(
        self,
        wallet: WalletType = WalletType.SPOT,
        symbol: Optional[str] = None,
    ) -> AccountState:
        """
        Account state of the wallet a user data stream follows.

        Margin wallets are reported through the same AccountState shape so
        the stream's balance events apply to them unchanged.
        """
        if wallet == WalletType.SPOT:
            return await self.get_account()

        if wallet == WalletType.MARGIN:
            margin = await self.get_cross_margin_account()
            return AccountState(
                can_trade=margin.trade_enabled,
                can_withdraw=margin.transfer_enabled,
                can_deposit=margin.transfer_enabled,
                account_type="MARGIN",
                balances=[
                    Balance(asset=a.asset, free=a.free, locked=a.locked)
                    for a in margin.user_assets
                ],
                permissions=["MARGIN"],
            )

        entry = await self.get_isolated_margin_account(symbol or "")
        balances = []
        for side in ("baseAsset", "quoteAsset"):
            block = entry.get(side) or {}
            if block.get("asset"):
                balances.append(Balance.from_binance(block))
        return AccountState(
            can_trade=bool(entry.get("tradeEnabled", False)),
            account_type="ISOLATED_MARGIN",
            balances=balances,
            permissions=["ISOLATED_MARGIN"],
        )

    async def get_wallet_open_orders(
        self,
        wallet: WalletType = WalletType.SPOT,
        symbol: Optional[str] = None,
    ) -> list[OpenOrder]:
        """Open orders of the wallet a user data stream follows."""
        if wallet == WalletType.SPOT:
            return await self.get_open_orders()
        if wallet == WalletType.MARGIN:
            return await self.get_margin_open_orders()
        return await self.get_margin_open_orders(symbol=symbol, isolated=True)

    # =========================================================================
    # Private API - Wallet
    # =========================================================================

    async def get_all_coin_info(self) -> list[CoinInfo]:
        """
        Get deposit/withdraw configuration of every coin.

        Returns:
            List of CoinInfo
        """
        data = await self._request(
            "GET",
            PRIVATE_ENDPOINTS["ALL_COIN_INFO"].path,
            signed=True,
        )
        return [CoinInfo.from_binance(c) for c in data]


"""
Binance API authentication and signature handling.
"""

import hashlib
import hmac
from urllib.parse import urlencode

from ...core.utils import now_timestamp
from .constants import DEFAULT_RECV_WINDOW


class BinanceAuth:
    """
    Handles Binance API authentication and request signing.

    Signed requests carry ``timestamp`` and ``recvWindow`` and an
    HMAC-SHA256 ``signature`` over the url-encoded parameters, computed
    with the API secret. The API key travels in the ``X-MBX-APIKEY`` header.

    Example:
        >>> auth = BinanceAuth("api_key", "api_secret")
        >>> signed = auth.sign_params({"symbol": "BTCUSDT"})
        >>> headers = auth.get_headers()
    """

    def __init__(self, api_key: str, api_secret: str, recv_window: int = DEFAULT_RECV_WINDOW):
        """
        Initialize BinanceAuth.

        Args:
            api_key: Binance API key
            api_secret: Binance API secret
            recv_window: Milliseconds a signed request stays valid
        """
        self.api_key = api_key
        self.api_secret = api_secret
        self.recv_window = recv_window
        self.time_offset = 0

    def set_time_offset(self, server_time_ms: int) -> None:
        """Align signed timestamps with the exchange clock."""
        self.time_offset = server_time_ms - now_timestamp(unit="ms")

    def sign_params(self, params: dict | None = None, timestamp: int | None = None) -> dict:
        """
        Sign parameters with HMAC-SHA256.

        Steps:
        1. Add timestamp and recvWindow to a copy of params
        2. Url-encode params in insertion order
        3. Calculate HMAC-SHA256 signature over that query string
        4. Add signature as the last parameter

        The signature must be the last parameter and the request must be
        sent with the same order, which aiohttp preserves for dicts.

        Args:
            params: Request parameters to sign
            timestamp: Millisecond timestamp (defaults to now plus time_offset)

        Returns:
            New parameter dict with timestamp, recvWindow and signature

        Example:
            >>> auth = BinanceAuth("key", "secret")
            >>> params = auth.sign_params({"symbol": "BTCUSDT"})
            >>> list(params)[-1]
            'signature'
        """
        params = dict(params) if params else {}

        params["timestamp"] = (
            timestamp if timestamp is not None else now_timestamp(unit="ms") + self.time_offset
        )
        params["recvWindow"] = self.recv_window

        params["signature"] = self.sign_query_string(urlencode(params))

        return params

    def get_headers(self) -> dict:
        """
        Get request headers with API key.

        Returns:
            Headers dict with X-MBX-APIKEY
        """
        return {"X-MBX-APIKEY": self.api_key}

    def sign_query_string(self, query_string: str) -> str:
        """
        Sign an existing query string.

        Args:
            query_string: URL encoded query string

        Returns:
            HMAC-SHA256 signature as hex string
        """
        return hmac.new(
            self.api_secret.encode("utf-8"),
            query_string.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

"""
Binance API constants and endpoint definitions.
"""

from dataclasses import dataclass

from ...core.models import WalletType


# =============================================================================
# Base URLs
# =============================================================================

SPOT_REST_URL = "https://api.binance.com"
SPOT_TESTNET_URL = "https://testnet.binance.vision"

SPOT_WS_URL = "wss://stream.binance.com:9443"
SPOT_WS_TESTNET_URL = "wss://testnet.binance.vision"

DEFAULT_RECV_WINDOW = 5000


# =============================================================================
# Endpoint Definition
# =============================================================================


@dataclass(frozen=True)
class Endpoint:
    """API endpoint definition."""

    path: str
    method: str = "GET"


# =============================================================================
# Private Endpoints (Signature required)
# =============================================================================

PRIVATE_ENDPOINTS = {
    "ACCOUNT": Endpoint("/api/v3/account", "GET"),
    "ORDER_GET": Endpoint("/api/v3/order", "GET"),
    "OPEN_ORDERS": Endpoint("/api/v3/openOrders", "GET"),
    "MARGIN_ACCOUNT": Endpoint("/sapi/v1/margin/account", "GET"),
    "MARGIN_OPEN_ORDERS": Endpoint("/sapi/v1/margin/openOrders", "GET"),
    "ISOLATED_MARGIN_ACCOUNT": Endpoint("/sapi/v1/margin/isolated/account", "GET"),
    "ALL_COIN_INFO": Endpoint("/sapi/v1/capital/config/getall", "GET"),
}

PUBLIC_ENDPOINTS = {
    "SERVER_TIME": Endpoint("/api/v3/time", "GET"),
}


# =============================================================================
# User Data Stream (API key only, no signature)
# =============================================================================

LISTEN_KEY_PATHS = {
    WalletType.SPOT: "/api/v3/userDataStream",
    WalletType.MARGIN: "/sapi/v1/userDataStream",
    WalletType.ISOLATED_MARGIN: "/sapi/v1/userDataStream/isolated",
}


# =============================================================================
# User Data Event Types
# =============================================================================

EVENT_ACCOUNT_INFO = "outboundAccountInfo"
EVENT_ACCOUNT_POSITION = "outboundAccountPosition"
EVENT_BALANCE_UPDATE = "balanceUpdate"
EVENT_EXECUTION_REPORT = "executionReport"


# =============================================================================
# Binance Error Codes
# =============================================================================

BINANCE_ERROR_CODES = {
    -1000: "UNKNOWN",           # Unknown error
    -1002: "UNAUTHORIZED",      # Not authorized
    -1003: "TOO_MANY_REQUESTS", # Rate limit
    -1021: "INVALID_TIMESTAMP", # Timestamp outside of recvWindow
    -1022: "INVALID_SIGNATURE", # Signature verification failed
    -1125: "INVALID_LISTEN_KEY",  # Listen key does not exist
    -2013: "NO_SUCH_ORDER",     # Order does not exist
    -2014: "BAD_API_KEY_FMT",   # API key format invalid
    -2015: "REJECTED_MBX_KEY",  # Invalid API key or IP
}

AUTH_ERROR_CODES = frozenset({-1002, -2014, -2015})
RATE_LIMIT_ERROR_CODES = frozenset({-1003})

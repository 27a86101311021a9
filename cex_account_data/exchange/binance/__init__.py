# Binance exchange module
from .auth import BinanceAuth
from .events import (
    AccountInfoEvent,
    BalanceDeltaEvent,
    BalancePositionEvent,
    OrderExecutionEvent,
    PayloadBalance,
    UserDataEvent,
    parse_event,
)
from .rest_api import BinanceRestAPI
from .user_stream import UserDataStream

__all__ = [
    "BinanceAuth",
    "BinanceRestAPI",
    "UserDataStream",
    # Events
    "AccountInfoEvent",
    "BalanceDeltaEvent",
    "BalancePositionEvent",
    "OrderExecutionEvent",
    "PayloadBalance",
    "UserDataEvent",
    "parse_event",
]

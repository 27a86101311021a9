# Exchange module - Binance REST and user data stream clients
from .binance import BinanceAuth, BinanceRestAPI, UserDataStream, parse_event

__all__ = [
    "BinanceAuth",
    "BinanceRestAPI",
    "UserDataStream",
    "parse_event",
]

# Data module - slow-changing wallet data cached alongside the sync core
from .coin_state import CoinStateWorker
from .margin_account import MarginAccountCache

__all__ = [
    "CoinStateWorker",
    "MarginAccountCache",
]

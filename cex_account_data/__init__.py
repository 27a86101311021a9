"""
Binance account data synchronizer.

Keeps a local mirror of a Binance account (balances and open orders) by
combining a REST snapshot with the user data WebSocket stream.
"""

__version__ = "0.1.0"

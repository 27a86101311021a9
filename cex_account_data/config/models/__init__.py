# Configuration models
from .app import AccountConfig, AppConfig, LoggingConfig
from .base import BaseConfig
from .exchange import ExchangeConfig
from .sync import SyncConfig

__all__ = [
    "BaseConfig",
    "ExchangeConfig",
    "SyncConfig",
    "LoggingConfig",
    "AccountConfig",
    "AppConfig",
]

# Config module - Application configuration system
from .exceptions import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigParseError,
    ConfigValidationError,
)
from .loader import ConfigLoader, config_from_env, load_config
from .models import (
    AccountConfig,
    AppConfig,
    BaseConfig,
    ExchangeConfig,
    LoggingConfig,
    SyncConfig,
)

__all__ = [
    # Exceptions
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigParseError",
    "ConfigValidationError",
    # Loader
    "ConfigLoader",
    "load_config",
    "config_from_env",
    # Models
    "BaseConfig",
    "ExchangeConfig",
    "SyncConfig",
    "LoggingConfig",
    "AccountConfig",
    "AppConfig",
]

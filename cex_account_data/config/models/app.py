"""
Application Configuration Model.

Top level configuration: the accounts to mirror plus shared sync,
logging and coin-state settings.
"""

from typing import Optional

from pydantic import Field, field_validator, model_validator

from .base import BaseConfig
from .exchange import ExchangeConfig
from .sync import SyncConfig


class LoggingConfig(BaseConfig):
    """Logging configuration."""

    level: str = Field(
        default="INFO",
        description="Logging level",
    )
    file: Optional[str] = Field(
        default=None,
        description="Rotating log file (defaults to logs/account_data.log)",
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level name."""
        v = v.upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return v


class AccountConfig(BaseConfig):
    """
    One account to mirror.

    ``sync`` overrides the application wide sync settings for this account
    only, e.g. to follow a margin wallet.
    """

    name: str = Field(
        ...,
        min_length=1,
        description="Account identifier used in logs and lookups",
    )
    exchange: ExchangeConfig = Field(
        default_factory=ExchangeConfig,
        description="Credentials and REST settings",
    )
    sync: Optional[SyncConfig] = Field(
        default=None,
        description="Per-account sync overrides",
    )


class AppConfig(BaseConfig):
    """
    Main application configuration.

    Example:
        >>> config = AppConfig(
        ...     accounts=[AccountConfig(name="main", exchange=ExchangeConfig(
        ...         api_key="${BINANCE_KEY}", api_secret="${BINANCE_SECRET}"))],
        ... )
    """

    accounts: list[AccountConfig] = Field(
        ...,
        min_length=1,
        description="Accounts to mirror",
    )
    sync: SyncConfig = Field(
        default_factory=SyncConfig,
        description="Default sync settings",
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging settings",
    )
    enable_coin_state: bool = Field(
        default=False,
        description="Poll wallet coin configuration with the first account",
    )
    coin_state_interval: float = Field(
        default=60.0,
        gt=0,
        description="Seconds between coin configuration refreshes",
    )

    @model_validator(mode="after")
    def validate_unique_names(self) -> "AppConfig":
        """Account names must be unique."""
        names = [a.name for a in self.accounts]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ValueError(f"Duplicate account names: {sorted(duplicates)}")
        return self

    def sync_for(self, account: AccountConfig) -> SyncConfig:
        """Effective sync settings for an account."""
        return account.sync or self.sync

    def get_account(self, name: str) -> AccountConfig:
        """
        Look up an account by name.

        Raises:
            KeyError: If no account has that name
        """
        for account in self.accounts:
            if account.name == name:
                return account
        raise KeyError(name)

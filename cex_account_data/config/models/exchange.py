"""
Exchange Configuration Model.

Credentials and REST client settings for one Binance account.
"""

from pydantic import Field

from .base import BaseConfig


class ExchangeConfig(BaseConfig):
    """
    Exchange connection configuration.

    Example:
        >>> config = ExchangeConfig(
        ...     api_key="${BINANCE_KEY}",
        ...     api_secret="${BINANCE_SECRET}",
        ...     testnet=True,
        ... )
    """

    testnet: bool = Field(
        default=False,
        description="Use testnet endpoints",
    )
    api_key: str = Field(
        default="",
        description="API key for authentication",
    )
    api_secret: str = Field(
        default="",
        description="API secret for authentication",
    )
    recv_window: int = Field(
        default=5000,
        ge=1000,
        le=60000,
        description="Receive window in milliseconds",
    )
    request_timeout: float = Field(
        default=5.0,
        gt=0,
        description="REST request timeout in seconds",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retries for transient REST failures",
    )
    retry_delay: float = Field(
        default=1.0,
        ge=0,
        description="Initial retry delay in seconds (exponential backoff)",
    )

    @property
    def has_credentials(self) -> bool:
        """Check if API credentials are configured."""
        return bool(self.api_key and self.api_secret)

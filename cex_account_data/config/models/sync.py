"""
Synchronizer Configuration Model.

Timing and sizing knobs of the account data worker.
"""

from typing import Optional

from pydantic import Field, field_validator, model_validator

from ...core.models import WalletType
from .base import BaseConfig


class SyncConfig(BaseConfig):
    """
    Account synchronization configuration.

    Defaults follow the exchange's own limits: a listen key expires after
    60 minutes without a keepalive, so it is refreshed every 30.
    """

    wallet: WalletType = Field(
        default=WalletType.SPOT,
        description="Wallet the user data stream is opened for",
    )
    isolated_symbol: Optional[str] = Field(
        default=None,
        description="Symbol of the isolated margin pair (isolated_margin only)",
    )
    queue_size: int = Field(
        default=256,
        ge=1,
        description="Capacity of the frame queue between stream and dispatcher",
    )
    push_timeout: float = Field(
        default=1.0,
        gt=0,
        description="Seconds to wait for queue space before dropping a frame",
    )
    keepalive_interval: float = Field(
        default=30 * 60,
        gt=0,
        description="Seconds between listen key keepalive calls",
    )
    ping_interval: float = Field(
        default=30.0,
        gt=0,
        description="Seconds between websocket pings",
    )
    reconnect_delay: float = Field(
        default=5.0,
        ge=0,
        description="Pause after a broken stream before bootstrapping again",
    )
    bootstrap_retry_delay: float = Field(
        default=3.0,
        ge=0,
        description="Pause after a failed bootstrap",
    )
    enable_watchdog: bool = Field(
        default=True,
        description="Force a reconnect when a submitted order is never confirmed",
    )
    order_track_threshold: float = Field(
        default=10.0,
        gt=0,
        description="Seconds a submitted order may stay unconfirmed",
    )
    watchdog_interval: float = Field(
        default=1.0,
        gt=0,
        description="Seconds between watchdog checks",
    )
    completed_order_ttl: float = Field(
        default=600.0,
        gt=0,
        description="Seconds a completed order stays in the archive",
    )
    completed_order_max_size: int = Field(
        default=10000,
        ge=1,
        description="Maximum number of archived completed orders",
    )
    reconcile_after_fill: bool = Field(
        default=False,
        description="Refresh the account state via REST after an order fills",
    )

    @field_validator("isolated_symbol")
    @classmethod
    def normalize_symbol(cls, v: Optional[str]) -> Optional[str]:
        """Upper-case the isolated symbol."""
        return v.upper() if v else None

    @model_validator(mode="after")
    def validate_isolated_symbol(self) -> "SyncConfig":
        """An isolated margin stream is bound to exactly one symbol."""
        if self.wallet == WalletType.ISOLATED_MARGIN and not self.isolated_symbol:
            raise ValueError("isolated_symbol is required for the isolated_margin wallet")
        return self

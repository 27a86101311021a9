"""
Data models for the account data synchronizer.

Pydantic v2 models for the local account mirror: balances, open orders,
the account state returned by REST and the combined snapshot kept in the
store. Amounts are kept as the exchange's exact decimal strings.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# Enums
# =============================================================================


class OrderStatus(str, Enum):
    """Order status as reported by the exchange."""

    NEW = "NEW"
    PARTIALLY_FILLED = "PARTIALLY_FILLED"
    FILLED = "FILLED"
    CANCELED = "CANCELED"
    PENDING_CANCEL = "PENDING_CANCEL"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"
    EXPIRED_IN_MATCH = "EXPIRED_IN_MATCH"


# Statuses after which an order leaves the open-order book
TERMINAL_STATUSES = frozenset({
    OrderStatus.FILLED.value,
    OrderStatus.CANCELED.value,
    OrderStatus.REJECTED.value,
    OrderStatus.EXPIRED.value,
    OrderStatus.EXPIRED_IN_MATCH.value,
})


class WalletType(str, Enum):
    """Wallet a user data stream is bound to."""

    SPOT = "spot"
    MARGIN = "margin"
    ISOLATED_MARGIN = "isolated_margin"


# =============================================================================
# Base Model Configuration
# =============================================================================


class AccountBaseModel(BaseModel):
    """Base model with common configuration for all account models."""

    model_config = ConfigDict(
        use_enum_values=True,
        validate_assignment=True,
        from_attributes=True,
    )


def _amount_to_str(value: Any) -> Any:
    """Accept numbers from loosely typed payloads but keep strings as is."""
    if value is None:
        return "0"
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


# =============================================================================
# Balance Model
# =============================================================================


class Balance(AccountBaseModel):
    """Balance of a single asset."""

    asset: str
    free: str = "0"
    locked: str = "0"

    @field_validator("free", "locked", mode="before")
    @classmethod
    def _coerce_amount(cls, v: Any) -> Any:
        return _amount_to_str(v)

    @classmethod
    def from_binance(cls, data: dict) -> "Balance":
        """
        Create Balance from a Binance REST balance entry.

        Args:
            data: ``{"asset": ..., "free": ..., "locked": ...}``

        Returns:
            Balance instance
        """
        return cls(
            asset=data["asset"],
            free=data.get("free", "0"),
            locked=data.get("locked", "0"),
        )


# =============================================================================
# Open Order Model
# =============================================================================


class OpenOrder(AccountBaseModel):
    """An order as tracked in the local mirror."""

    symbol: str
    order_id: int
    order_list_id: int = -1
    client_order_id: str = ""
    price: str = "0"
    orig_qty: str = "0"
    executed_qty: str = "0"
    cummulative_quote_qty: str = "0"
    status: str = OrderStatus.NEW.value
    time_in_force: str = ""
    type: str = ""
    side: str = ""
    stop_price: str = "0"
    iceberg_qty: str = "0"
    time: int = 0
    update_time: int = 0
    is_working: bool = True
    orig_quote_order_qty: str = "0"

    @field_validator(
        "price",
        "orig_qty",
        "executed_qty",
        "cummulative_quote_qty",
        "stop_price",
        "iceberg_qty",
        "orig_quote_order_qty",
        mode="before",
    )
    @classmethod
    def _coerce_amount(cls, v: Any) -> Any:
        return _amount_to_str(v)

    @property
    def key(self) -> str:
        """Store key: symbol and exchange order id."""
        return order_key(self.symbol, self.order_id)

    @property
    def is_terminal(self) -> bool:
        """True once the order can no longer trade."""
        return self.status in TERMINAL_STATUSES

    @classmethod
    def from_binance(cls, data: dict) -> "OpenOrder":
        """
        Create OpenOrder from a Binance REST order object.

        Args:
            data: Order as returned by ``/api/v3/openOrders`` or ``/api/v3/order``

        Returns:
            OpenOrder instance
        """
        return cls(
            symbol=data["symbol"],
            order_id=int(data["orderId"]),
            order_list_id=int(data.get("orderListId", -1)),
            client_order_id=data.get("clientOrderId", ""),
            price=data.get("price", "0"),
            orig_qty=data.get("origQty", "0"),
            executed_qty=data.get("executedQty", "0"),
            cummulative_quote_qty=data.get("cummulativeQuoteQty", "0"),
            status=data.get("status", OrderStatus.NEW.value),
            time_in_force=data.get("timeInForce", ""),
            type=data.get("type", ""),
            side=data.get("side", ""),
            stop_price=data.get("stopPrice", "0"),
            iceberg_qty=data.get("icebergQty", "0"),
            time=int(data.get("time", 0)),
            update_time=int(data.get("updateTime", 0)),
            is_working=bool(data.get("isWorking", True)),
            orig_quote_order_qty=data.get("origQuoteOrderQty", "0"),
        )


def order_key(symbol: str, order_id: int | str) -> str:
    """Build the open-order map key for a symbol and order id."""
    return f"{symbol}-{order_id}"


# =============================================================================
# Account State Model
# =============================================================================


class AccountState(AccountBaseModel):
    """Account information as returned by ``GET /api/v3/account``."""

    maker_commission: int = 0
    taker_commission: int = 0
    buyer_commission: int = 0
    seller_commission: int = 0
    can_trade: bool = False
    can_withdraw: bool = False
    can_deposit: bool = False
    update_time: int = 0
    account_type: str = "SPOT"
    balances: list[Balance] = Field(default_factory=list)
    permissions: list[str] = Field(default_factory=list)

    def get_balance(self, asset: str) -> Optional[Balance]:
        """
        Get balance for a specific asset.

        Args:
            asset: Asset name (e.g., "USDT")

        Returns:
            Balance instance or None if not found
        """
        for balance in self.balances:
            if balance.asset == asset:
                return balance
        return None

    def balance_map(self) -> dict[str, Balance]:
        """Balances keyed by asset."""
        return {b.asset: b for b in self.balances}

    @classmethod
    def from_binance(cls, data: dict) -> "AccountState":
        """
        Create AccountState from a Binance REST account response.

        Zero balances are kept: the stream only reports deltas, so every
        asset the exchange lists must be present for later updates.

        Args:
            data: Binance account response

        Returns:
            AccountState instance
        """
        return cls(
            maker_commission=int(data.get("makerCommission", 0)),
            taker_commission=int(data.get("takerCommission", 0)),
            buyer_commission=int(data.get("buyerCommission", 0)),
            seller_commission=int(data.get("sellerCommission", 0)),
            can_trade=bool(data.get("canTrade", False)),
            can_withdraw=bool(data.get("canWithdraw", False)),
            can_deposit=bool(data.get("canDeposit", False)),
            update_time=int(data.get("updateTime", 0)),
            account_type=data.get("accountType", "SPOT"),
            balances=[Balance.from_binance(b) for b in data.get("balances", [])],
            permissions=list(data.get("permissions", [])),
        )


# =============================================================================
# Snapshot Model
# =============================================================================


class AccountSnapshot(AccountBaseModel):
    """Account state plus open orders keyed by ``symbol-orderId``."""

    state: AccountState = Field(default_factory=AccountState)
    open_orders: dict[str, OpenOrder] = Field(default_factory=dict)

    @classmethod
    def build(cls, state: AccountState, orders: list[OpenOrder]) -> "AccountSnapshot":
        """Merge a REST account state and open-order list into a snapshot."""
        return cls(state=state, open_orders={o.key: o for o in orders})


# =============================================================================
# Margin / Coin Info Models
# =============================================================================


class MarginAsset(AccountBaseModel):
    """One asset of a cross-margin account."""

    asset: str
    free: str = "0"
    locked: str = "0"
    borrowed: str = "0"
    interest: str = "0"
    net_asset: str = "0"

    @field_validator("free", "locked", "borrowed", "interest", "net_asset", mode="before")
    @classmethod
    def _coerce_amount(cls, v: Any) -> Any:
        return _amount_to_str(v)


class CrossMarginAccount(AccountBaseModel):
    """Cross-margin account details from ``GET /sapi/v1/margin/account``."""

    borrow_enabled: bool = False
    margin_level: str = "0"
    total_asset_of_btc: str = "0"
    total_liability_of_btc: str = "0"
    total_net_asset_of_btc: str = "0"
    trade_enabled: bool = False
    transfer_enabled: bool = False
    user_assets: list[MarginAsset] = Field(default_factory=list)

    @classmethod
    def from_binance(cls, data: dict) -> "CrossMarginAccount":
        """Create CrossMarginAccount from the Binance response."""
        return cls(
            borrow_enabled=bool(data.get("borrowEnabled", False)),
            margin_level=str(data.get("marginLevel", "0")),
            total_asset_of_btc=str(data.get("totalAssetOfBtc", "0")),
            total_liability_of_btc=str(data.get("totalLiabilityOfBtc", "0")),
            total_net_asset_of_btc=str(data.get("totalNetAssetOfBtc", "0")),
            trade_enabled=bool(data.get("tradeEnabled", False)),
            transfer_enabled=bool(data.get("transferEnabled", False)),
            user_assets=[
                MarginAsset(
                    asset=a["asset"],
                    free=a.get("free", "0"),
                    locked=a.get("locked", "0"),
                    borrowed=a.get("borrowed", "0"),
                    interest=a.get("interest", "0"),
                    net_asset=a.get("netAsset", "0"),
                )
                for a in data.get("userAssets", [])
            ],
        )


class CoinNetwork(AccountBaseModel):
    """Deposit/withdraw settings of a coin on one network."""

    network: str
    name: str = ""
    is_default: bool = False
    deposit_enable: bool = False
    withdraw_enable: bool = False
    withdraw_fee: str = "0"
    withdraw_min: str = "0"
    min_confirm: int = 0


class CoinInfo(AccountBaseModel):
    """Wallet configuration of one coin from ``/sapi/v1/capital/config/getall``."""

    coin: str
    name: str = ""
    deposit_all_enable: bool = False
    withdraw_all_enable: bool = False
    free: str = "0"
    locked: str = "0"
    freeze: str = "0"
    is_legal_money: bool = False
    networks: list[CoinNetwork] = Field(default_factory=list)

    @property
    def withdrawable(self) -> bool:
        """True if at least one network accepts withdrawals."""
        return any(n.withdraw_enable for n in self.networks)

    @classmethod
    def from_binance(cls, data: dict) -> "CoinInfo":
        """Create CoinInfo from one entry of the Binance response."""
        return cls(
            coin=data["coin"],
            name=data.get("name", ""),
            deposit_all_enable=bool(data.get("depositAllEnable", False)),
            withdraw_all_enable=bool(data.get("withdrawAllEnable", False)),
            free=str(data.get("free", "0")),
            locked=str(data.get("locked", "0")),
            freeze=str(data.get("freeze", "0")),
            is_legal_money=bool(data.get("isLegalMoney", False)),
            networks=[
                CoinNetwork(
                    network=n["network"],
                    name=n.get("name", ""),
                    is_default=bool(n.get("isDefault", False)),
                    deposit_enable=bool(n.get("depositEnable", False)),
                    withdraw_enable=bool(n.get("withdrawEnable", False)),
                    withdraw_fee=str(n.get("withdrawFee", "0")),
                    withdraw_min=str(n.get("withdrawMin", "0")),
                    min_confirm=int(n.get("minConfirm", 0)),
                )
                for n in data.get("networkList", [])
            ],
        )

"""
User data stream event models.

Each frame of the user data stream is a JSON object tagged by its ``"e"``
field. ``parse_event`` decodes a frame into one of the event models below
through a single discriminator lookup; unknown tags decode to ``None``.
"""

import json
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ...core.exceptions import ParseError
from ...core.models import AccountState, Balance, OpenOrder
from .constants import (
    EVENT_ACCOUNT_INFO,
    EVENT_ACCOUNT_POSITION,
    EVENT_BALANCE_UPDATE,
    EVENT_EXECUTION_REPORT,
)


class StreamEvent(BaseModel):
    """Base of all user data events; fields use the one-letter wire keys."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="ignore",
    )

    event_type: str = Field(alias="e")
    event_time: int = Field(default=0, alias="E")


def _to_str(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class PayloadBalance(BaseModel):
    """Balance entry inside a position or account info event."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    asset: str = Field(alias="a")
    free: str = Field(alias="f")
    locked: str = Field(alias="l")

    @field_validator("free", "locked", mode="before")
    @classmethod
    def _coerce(cls, v: Any) -> Any:
        return _to_str(v)

    def to_balance(self) -> Balance:
        return Balance(asset=self.asset, free=self.free, locked=self.locked)


class BalancePositionEvent(StreamEvent):
    """``outboundAccountPosition``: absolute balances of changed assets."""

    last_update_time: int = Field(default=0, alias="u")
    balances: list[PayloadBalance] = Field(alias="B")


class BalanceDeltaEvent(StreamEvent):
    """``balanceUpdate``: signed change of one asset's free balance."""

    asset: str = Field(alias="a")
    delta: str = Field(alias="d")
    clear_time: int = Field(default=0, alias="T")

    @field_validator("delta", mode="before")
    @classmethod
    def _coerce(cls, v: Any) -> Any:
        return _to_str(v)


class AccountInfoEvent(StreamEvent):
    """``outboundAccountInfo``: legacy full restatement of the account."""

    maker_commission: int = Field(alias="m")
    taker_commission: int = Field(alias="t")
    buyer_commission: int = Field(alias="b")
    seller_commission: int = Field(alias="s")
    can_trade: bool = Field(alias="T")
    can_withdraw: bool = Field(alias="W")
    can_deposit: bool = Field(alias="D")
    last_update_time: int = Field(alias="u")
    balances: list[PayloadBalance] = Field(alias="B")

    def to_account_state(self) -> AccountState:
        """
        Convert to an AccountState.

        The event does not carry account type or permissions; it is only
        sent for spot accounts.
        """
        return AccountState(
            maker_commission=self.maker_commission,
            taker_commission=self.taker_commission,
            buyer_commission=self.buyer_commission,
            seller_commission=self.seller_commission,
            can_trade=self.can_trade,
            can_withdraw=self.can_withdraw,
            can_deposit=self.can_deposit,
            update_time=self.last_update_time,
            account_type="SPOT",
            balances=[b.to_balance() for b in self.balances],
            permissions=["SPOT"],
        )


class OrderExecutionEvent(StreamEvent):
    """``executionReport``: any change to an order."""

    symbol: str = Field(alias="s")
    client_order_id: str = Field(default="", alias="c")
    side: str = Field(default="", alias="S")
    order_type: str = Field(default="", alias="o")
    time_in_force: str = Field(default="", alias="f")
    quantity: str = Field(default="0", alias="q")
    price: str = Field(default="0", alias="p")
    stop_price: str = Field(default="0", alias="P")
    iceberg_qty: str = Field(default="0", alias="F")
    order_list_id: int = Field(default=-1, alias="g")
    orig_client_order_id: str = Field(default="", alias="C")
    execution_type: str = Field(default="", alias="x")
    order_status: str = Field(alias="X")
    reject_reason: str = Field(default="NONE", alias="r")
    order_id: int = Field(alias="i")
    last_executed_qty: str = Field(default="0", alias="l")
    cumulative_filled_qty: str = Field(default="0", alias="z")
    last_executed_price: str = Field(default="0", alias="L")
    commission: str = Field(default="0", alias="n")
    transaction_time: int = Field(default=0, alias="T")
    trade_id: int = Field(default=-1, alias="t")
    order_creation_time: int = Field(default=0, alias="O")
    cumulative_quote_qty: str = Field(default="0", alias="Z")
    quote_order_qty: str = Field(default="0", alias="Q")
    is_working: bool = Field(default=True, alias="w")

    @field_validator(
        "quantity",
        "price",
        "stop_price",
        "iceberg_qty",
        "last_executed_qty",
        "cumulative_filled_qty",
        "last_executed_price",
        "commission",
        "cumulative_quote_qty",
        "quote_order_qty",
        mode="before",
    )
    @classmethod
    def _coerce(cls, v: Any) -> Any:
        return _to_str(v)

    @field_validator("symbol")
    @classmethod
    def _require_symbol(cls, v: str) -> str:
        if not v:
            raise ValueError("empty symbol")
        return v

    def to_open_order(self) -> OpenOrder:
        """
        Build the order record this report describes.

        On cancel reports ``c`` holds the id of the cancel request and the
        order's own client id moves to ``C``.
        """
        client_order_id = self.orig_client_order_id or self.client_order_id
        return OpenOrder(
            symbol=self.symbol,
            order_id=self.order_id,
            order_list_id=self.order_list_id,
            client_order_id=client_order_id,
            price=self.price,
            orig_qty=self.quantity,
            executed_qty=self.cumulative_filled_qty,
            cummulative_quote_qty=self.cumulative_quote_qty,
            status=self.order_status,
            time_in_force=self.time_in_force,
            type=self.order_type,
            side=self.side,
            stop_price=self.stop_price,
            iceberg_qty=self.iceberg_qty,
            time=self.order_creation_time,
            update_time=self.transaction_time or self.event_time,
            is_working=self.is_working,
            orig_quote_order_qty=self.quote_order_qty,
        )


UserDataEvent = Union[
    BalancePositionEvent,
    BalanceDeltaEvent,
    AccountInfoEvent,
    OrderExecutionEvent,
]

EVENT_MODELS: dict[str, type[StreamEvent]] = {
    EVENT_ACCOUNT_POSITION: BalancePositionEvent,
    EVENT_BALANCE_UPDATE: BalanceDeltaEvent,
    EVENT_ACCOUNT_INFO: AccountInfoEvent,
    EVENT_EXECUTION_REPORT: OrderExecutionEvent,
}


def parse_event(raw: str | bytes | dict) -> Optional[UserDataEvent]:
    """
    Decode one user data stream frame.

    Args:
        raw: JSON text/bytes of the frame, or an already decoded dict

    Returns:
        The typed event, or None if the event type is not handled

    Raises:
        ParseError: If the frame is not a JSON object, lacks ``"e"`` or
            does not match its event model

    Example:
        >>> event = parse_event('{"e":"balanceUpdate","E":1,"a":"BTC","d":"+1.5","T":2}')
        >>> event.delta
        '+1.5'
    """
    if isinstance(raw, dict):
        data = raw
    else:
        try:
            data = json.loads(raw)
        except (ValueError, TypeError, RecursionError) as e:
            raise ParseError(f"Invalid JSON frame: {e}") from e

    if not isinstance(data, dict):
        raise ParseError(f"Frame is not an object: {type(data).__name__}")

    event_type = data.get("e")
    if not isinstance(event_type, str) or not event_type:
        raise ParseError("Frame has no event type")

    model = EVENT_MODELS.get(event_type)
    if model is None:
        return None

    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ParseError(
            f"Invalid {event_type} payload: {e.error_count()} error(s)",
            event_type=event_type,
            details={"errors": [err["msg"] for err in e.errors()]},
        ) from e

"""
Account State Store.

Single owner of an account's local mirror: balances, account flags and
open orders. Every operation holds one lock for its whole duration, so
readers on any thread or task see each update either completely or not
at all. Readers always receive copies.
"""

import threading
import time
from decimal import Decimal
from typing import Optional

from ..core import get_logger
from ..core.exceptions import NotFoundError, ParseError
from ..core.models import AccountSnapshot, AccountState, Balance, OpenOrder, order_key
from ..core.utils import add_decimal_strings, parse_decimal
from ..exchange.binance.events import (
    BalanceDeltaEvent,
    OrderExecutionEvent,
    PayloadBalance,
)

logger = get_logger(__name__)


class AccountStateStore:
    """
    Thread-safe in-memory mirror of one account.

    Example:
        >>> store = AccountStateStore(account="main")
        >>> store.replace_snapshot(AccountSnapshot.build(state, orders))
        >>> store.get_balance("BNB").free
        '1.60268308'
    """

    def __init__(self, account: str = "default"):
        self._account = account
        self._lock = threading.Lock()
        self._snapshot = AccountSnapshot()
        self._ready = False
        self._last_update: Optional[float] = None
        self._revision = 0

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def account(self) -> str:
        return self._account

    @property
    def is_ready(self) -> bool:
        """True once a bootstrap snapshot has been committed."""
        with self._lock:
            return self._ready

    @property
    def last_update(self) -> Optional[float]:
        """Epoch seconds of the last mutation, None before the first."""
        with self._lock:
            return self._last_update

    @property
    def revision(self) -> int:
        """Mutation counter; grows by one on every change to the mirror."""
        with self._lock:
            return self._revision

    def _touch(self) -> None:
        self._last_update = time.time()
        self._revision += 1

    # =========================================================================
    # Mutations
    # =========================================================================

    def replace_snapshot(self, snapshot: AccountSnapshot) -> None:
        """
        Atomically replace balances, account flags and open orders.

        Args:
            snapshot: Freshly bootstrapped snapshot; copied on entry
        """
        copy = snapshot.model_copy(deep=True)
        with self._lock:
            self._snapshot = copy
            self._ready = True
            self._touch()
        logger.info(
            f"account={self._account} snapshot replaced: "
            f"{len(copy.state.balances)} balances, {len(copy.open_orders)} open orders"
        )

    def set_account_state(
        self,
        state: AccountState,
        expected_revision: Optional[int] = None,
    ) -> bool:
        """
        Replace the account state, keeping open orders.

        Args:
            state: Account state read from REST
            expected_revision: If given, commit only when the store has not
                changed since this revision was read

        Returns:
            True if committed, False if the store moved on
        """
        copy = state.model_copy(deep=True)
        with self._lock:
            if expected_revision is not None and expected_revision != self._revision:
                return False
            self._snapshot.state = copy
            self._touch()
        return True

    def apply_balance_delta(self, event: BalanceDeltaEvent) -> bool:
        """
        Add a signed delta to an asset's free balance.

        Args:
            event: balanceUpdate event

        Returns:
            True if applied, False if the asset is not in the store

        Raises:
            ParseError: If the delta or the stored amount is not a decimal
        """
        parse_decimal(event.delta, "delta")
        with self._lock:
            for balance in self._snapshot.state.balances:
                if balance.asset == event.asset:
                    balance.free = add_decimal_strings(balance.free, event.delta)
                    self._touch()
                    return True

        logger.debug(f"account={self._account} delta for unknown asset {event.asset} ignored")
        return False

    def apply_balance_position(self, balances: list[PayloadBalance]) -> None:
        """
        Upsert absolute balances for each listed asset.

        Existing assets are overwritten in place, new assets are appended.
        """
        with self._lock:
            current = {b.asset: b for b in self._snapshot.state.balances}
            for item in balances:
                existing = current.get(item.asset)
                if existing is None:
                    new_balance = Balance(asset=item.asset, free=item.free, locked=item.locked)
                    self._snapshot.state.balances.append(new_balance)
                    current[item.asset] = new_balance
                else:
                    existing.free = item.free
                    existing.locked = item.locked
            self._touch()

    def upsert_order(self, event: OrderExecutionEvent) -> tuple[OpenOrder, bool]:
        """
        Apply an execution report to the open-order book.

        Args:
            event: executionReport event

        Returns:
            (order record, removed) where removed is True when the order
            reached a terminal status and left the book

        Raises:
            ParseError: If the report has no symbol or order id
        """
        if not event.symbol or event.order_id is None:
            raise ParseError("Execution report without symbol or order id", event_type=event.event_type)

        order = event.to_open_order()
        with self._lock:
            if order.is_terminal:
                self._snapshot.open_orders.pop(order.key, None)
                removed = True
            else:
                self._snapshot.open_orders[order.key] = order
                removed = False
            self._touch()

        return order.model_copy(), removed

    def clear(self) -> None:
        """Drop all state; the store is not ready until the next snapshot."""
        with self._lock:
            self._snapshot = AccountSnapshot()
            self._ready = False
            self._touch()

    # =========================================================================
    # Reads (copies)
    # =========================================================================

    def snapshot(self) -> AccountSnapshot:
        """Deep copy of the whole mirror."""
        with self._lock:
            return self._snapshot.model_copy(deep=True)

    def account_state(self) -> AccountState:
        """Deep copy of the account state."""
        with self._lock:
            return self._snapshot.state.model_copy(deep=True)

    def balances(self) -> list[Balance]:
        """Copies of all balances."""
        with self._lock:
            return [b.model_copy() for b in self._snapshot.state.balances]

    def get_balance(self, asset: str) -> Optional[Balance]:
        """Copy of one asset's balance, None if unknown."""
        with self._lock:
            for balance in self._snapshot.state.balances:
                if balance.asset == asset:
                    return balance.model_copy()
        return None

    def non_zero_balances(self) -> list[Balance]:
        """Copies of balances with a non-zero free or locked amount."""
        result = []
        for balance in self.balances():
            try:
                if parse_decimal(balance.free) != Decimal(0) or parse_decimal(balance.locked) != Decimal(0):
                    result.append(balance)
            except ParseError:
                logger.warning(f"account={self._account} malformed balance for {balance.asset}")
        return result

    def open_orders(self, symbol: Optional[str] = None) -> list[OpenOrder]:
        """
        Copies of open orders, optionally for one symbol.

        Ordered by creation time.
        """
        with self._lock:
            orders = [
                o.model_copy()
                for o in self._snapshot.open_orders.values()
                if symbol is None or o.symbol == symbol
            ]
        return sorted(orders, key=lambda o: (o.time, o.order_id))

    def order_status(self, symbol: str, order_id: int) -> OpenOrder:
        """
        Copy of one open order.

        Raises:
            NotFoundError: If the order is not open in the store
        """
        with self._lock:
            order = self._snapshot.open_orders.get(order_key(symbol, order_id))
            if order is not None:
                return order.model_copy()
        raise NotFoundError(f"Order not open: {symbol} {order_id}")

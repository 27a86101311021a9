"""
Pytest configuration and fixtures for account data synchronizer tests.
"""

import pytest

from cex_account_data.config.models import SyncConfig
from cex_account_data.core.models import AccountSnapshot, AccountState, Balance, OpenOrder
from cex_account_data.sync.completed_orders import CompletedOrderCache
from cex_account_data.sync.store import AccountStateStore
from cex_account_data.sync.watchdog import OrderTracker
from tests.mocks import MockAccountProvider


# =============================================================================
# Store Fixtures
# =============================================================================


@pytest.fixture
def account_state() -> AccountState:
    """Spot account with BTC, USDT and a zero BNB balance."""
    return AccountState(
        maker_commission=15,
        taker_commission=15,
        can_trade=True,
        can_withdraw=True,
        can_deposit=True,
        account_type="SPOT",
        balances=[
            Balance(asset="BTC", free="10.0", locked="0.0"),
            Balance(asset="USDT", free="1000.00000000", locked="50.00000000"),
            Balance(asset="BNB", free="0.00000000", locked="0.00000000"),
        ],
        permissions=["SPOT"],
    )


@pytest.fixture
def open_order() -> OpenOrder:
    return OpenOrder(
        symbol="BTCUSDT",
        order_id=1,
        client_order_id="existing",
        price="30000.00",
        orig_qty="0.01",
        status="NEW",
        type="LIMIT",
        side="BUY",
        time=1000,
    )


@pytest.fixture
def store(account_state, open_order) -> AccountStateStore:
    """Store holding a bootstrapped snapshot."""
    store = AccountStateStore(account="test")
    store.replace_snapshot(AccountSnapshot.build(account_state, [open_order]))
    return store


@pytest.fixture
def completed_orders() -> CompletedOrderCache:
    return CompletedOrderCache(ttl=60, max_size=100)


@pytest.fixture
def tracker() -> OrderTracker:
    return OrderTracker()


# =============================================================================
# Worker Fixtures
# =============================================================================


@pytest.fixture
def provider() -> MockAccountProvider:
    return MockAccountProvider()


@pytest.fixture
def fast_sync_config() -> SyncConfig:
    """Sync settings with short delays for worker tests."""
    return SyncConfig(
        queue_size=16,
        push_timeout=0.05,
        keepalive_interval=60,
        reconnect_delay=0.01,
        bootstrap_retry_delay=0.01,
        enable_watchdog=False,
        order_track_threshold=0.05,
        watchdog_interval=0.01,
    )

"""
Tests for AccountContext and the runner entry point.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from cex_account_data.config import AccountConfig, AppConfig, ExchangeConfig, SyncConfig
from cex_account_data.core.exceptions import NotFoundError
from cex_account_data.core.models import CrossMarginAccount, OpenOrder
from cex_account_data.exchange.binance.events import parse_event
from cex_account_data.main import build_contexts, build_margin_cache, main, parse_args, status_tick
from cex_account_data.sync.context import AccountContext
from tests.mocks.frames import execution_report


@pytest.fixture
def account_config() -> AccountConfig:
    return AccountConfig(
        name="main",
        exchange=ExchangeConfig(api_key="k", api_secret="s", testnet=True),
    )


@pytest.fixture
def context(account_config) -> AccountContext:
    return AccountContext.from_config(account_config, SyncConfig())


# =============================================================================
# Context Tests
# =============================================================================


class TestAccountContext:
    """Test per-account wiring and order lookup."""

    def test_from_config(self, context):
        """Test the context wires one client, store and worker per account."""
        assert context.name == "main"
        assert context.rest_client.base_url == "https://testnet.binance.vision"
        assert context.store.account == "main"
        assert context.worker.account == "main"
        assert context.completed_orders is context.worker.completed_orders
        assert context.tracker is context.worker.tracker

    @pytest.mark.asyncio
    async def test_order_status_from_store(self, context):
        """Test open orders are answered from the store."""
        context.store.upsert_order(parse_event(execution_report(order_id=1)))
        order = await context.order_status("BTCUSDT", 1)
        assert order.status == "NEW"

    @pytest.mark.asyncio
    async def test_order_status_from_archive(self, context):
        """Test completed orders are answered from the archive."""
        context.completed_orders.add(OpenOrder(symbol="BTCUSDT", order_id=2, status="FILLED"))
        order = await context.order_status("BTCUSDT", 2)
        assert order.status == "FILLED"

    @pytest.mark.asyncio
    async def test_order_status_falls_back_to_rest(self, context):
        """Test unknown orders are queried from the exchange."""
        remote = OpenOrder(symbol="BTCUSDT", order_id=3, status="CANCELED")
        with patch.object(context.rest_client, "get_order", new_callable=AsyncMock) as get_order:
            get_order.return_value = remote
            order = await context.order_status("BTCUSDT", 3)

        assert order.status == "CANCELED"
        get_order.assert_awaited_once_with("BTCUSDT", order_id=3)

    @pytest.mark.asyncio
    async def test_order_status_unknown_everywhere(self, context):
        """Test NotFoundError when the exchange does not know the order."""
        with patch.object(context.rest_client, "get_order", new_callable=AsyncMock) as get_order:
            get_order.side_effect = NotFoundError("Order not found")
            with pytest.raises(NotFoundError):
                await context.order_status("BTCUSDT", 4)

    @pytest.mark.asyncio
    async def test_close_clears_state(self, context):
        """Test close stops the worker and drops the mirror."""
        context.completed_orders.add(OpenOrder(symbol="BTCUSDT", order_id=2, status="FILLED"))
        context.worker.stop = AsyncMock()
        context.rest_client.close = AsyncMock()

        await context.close()

        context.worker.stop.assert_awaited_once()
        context.rest_client.close.assert_awaited_once()
        assert context.completed_orders.size == 0
        assert context.store.is_ready is False


# =============================================================================
# Runner Tests
# =============================================================================


class TestRunner:
    """Test CLI parsing and startup checks."""

    def test_build_contexts(self, account_config):
        """Test one context per configured account."""
        config = AppConfig(accounts=[account_config, AccountConfig(name="second")])
        contexts = build_contexts(config)
        assert list(contexts) == ["main", "second"]

    def test_parse_args(self):
        """Test CLI options."""
        args = parse_args(["--config", "c.yaml", "--env", "testnet", "--debug"])
        assert args.config == "c.yaml"
        assert args.env == "testnet"
        assert args.debug is True
        assert args.status_interval == 60.0

    def test_missing_credentials_exit(self, tmp_path):
        """Test the runner refuses to start without credentials."""
        path = tmp_path / "config.yaml"
        path.write_text("accounts:\n  - name: main\n")

        with pytest.raises(SystemExit) as exc_info:
            main(["--config", str(path)])
        assert exc_info.value.code == 2

    def test_missing_config_exit(self, tmp_path):
        """Test a missing configuration file exits with code 2."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", str(tmp_path / "missing.yaml")])
        assert exc_info.value.code == 2

    def test_margin_cache_for_margin_accounts(self, account_config):
        """Test only cross margin accounts get margin details."""
        config = AppConfig(accounts=[
            account_config,
            AccountConfig(name="margin", sync=SyncConfig(wallet="margin")),
        ])
        cache = build_margin_cache(config, build_contexts(config))
        assert cache.accounts == ["margin"]

    def test_no_margin_cache_for_spot(self, account_config):
        """Test spot-only setups skip the margin cache."""
        config = AppConfig(accounts=[account_config])
        assert build_margin_cache(config, build_contexts(config)) is None

    @pytest.mark.asyncio
    async def test_status_tick_prunes_and_reports(self, context):
        """Test the status tick drops expired archive entries and polls margin details."""
        context.completed_orders.add(OpenOrder(symbol="BTCUSDT", order_id=2, status="FILLED"))
        context.completed_orders.ttl = -1
        context.completed_orders.add(OpenOrder(symbol="BTCUSDT", order_id=3, status="FILLED"))
        margin_cache = MagicMock()
        margin_cache.accounts = ["main"]
        margin_cache.get_account_info = AsyncMock(return_value=CrossMarginAccount(margin_level="5"))

        await status_tick({"main": context}, margin_cache)

        assert context.completed_orders.size == 1
        margin_cache.get_account_info.assert_awaited_once_with("main")

    @pytest.mark.asyncio
    async def test_start_syncs_time(self, context):
        """Test starting a context aligns the signing clock before streaming."""
        context.rest_client.connect = AsyncMock()
        context.rest_client.sync_time = AsyncMock()
        context.worker.start = AsyncMock()

        await context.start()

        context.rest_client.sync_time.assert_awaited_once()
        context.worker.start.assert_awaited_once()

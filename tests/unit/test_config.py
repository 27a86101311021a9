"""
Tests for configuration models and loader.
"""

import pytest

from cex_account_data.config import (
    AccountConfig,
    AppConfig,
    ConfigFileNotFoundError,
    ConfigLoader,
    ConfigParseError,
    ConfigValidationError,
    ExchangeConfig,
    LoggingConfig,
    SyncConfig,
    config_from_env,
    load_config,
)
from cex_account_data.core.models import WalletType


BASE_YAML = """
accounts:
  - name: main
    exchange:
      api_key: ${TEST_CAD_KEY}
      api_secret: ${TEST_CAD_SECRET:fallback-secret}
sync:
  queue_size: 128
  reconnect_delay: 5
logging:
  level: info
"""


# =============================================================================
# Model Tests
# =============================================================================


class TestSyncConfig:
    """Test sync settings."""

    def test_defaults(self):
        """Test defaults match the exchange's limits."""
        config = SyncConfig()
        assert config.wallet == WalletType.SPOT
        assert config.queue_size == 256
        assert config.push_timeout == 1.0
        assert config.keepalive_interval == 1800
        assert config.reconnect_delay == 5.0
        assert config.bootstrap_retry_delay == 3.0
        assert config.order_track_threshold == 10.0

    def test_isolated_requires_symbol(self):
        """Test the isolated wallet needs a symbol."""
        with pytest.raises(ValueError):
            SyncConfig(wallet="isolated_margin")

    def test_isolated_symbol_uppercased(self):
        """Test the isolated symbol is normalized."""
        config = SyncConfig(wallet="isolated_margin", isolated_symbol="btcusdt")
        assert config.isolated_symbol == "BTCUSDT"
        assert config.wallet == WalletType.ISOLATED_MARGIN

    def test_invalid_queue_size(self):
        """Test the queue needs room for at least one frame."""
        with pytest.raises(ValueError):
            SyncConfig(queue_size=0)

    def test_frozen(self):
        """Test configuration is immutable."""
        config = SyncConfig()
        with pytest.raises(ValueError):
            config.queue_size = 1


class TestExchangeConfig:
    """Test exchange settings."""

    def test_has_credentials(self):
        """Test credentials detection."""
        assert ExchangeConfig().has_credentials is False
        assert ExchangeConfig(api_key="k", api_secret="s").has_credentials is True

    def test_secrets_masked_in_repr(self):
        """Test credentials are masked when printed."""
        config = ExchangeConfig(api_key="abcdefghijklmnop", api_secret="qrstuvwxyz123456")
        text = repr(config)
        assert "abcdefghijklmnop" not in text
        assert "qrstuvwxyz123456" not in text
        assert "abcd********mnop" in text

    def test_env_substitution(self, monkeypatch):
        """Test ${VAR} and ${VAR:default} are substituted."""
        monkeypatch.setenv("TEST_CAD_KEY", "from-env")
        monkeypatch.delenv("TEST_CAD_SECRET", raising=False)

        config = ExchangeConfig(api_key="${TEST_CAD_KEY}", api_secret="${TEST_CAD_SECRET:dflt}")
        assert config.api_key == "from-env"
        assert config.api_secret == "dflt"


class TestAppConfig:
    """Test the top-level configuration."""

    def test_requires_account(self):
        """Test at least one account is required."""
        with pytest.raises(ValueError):
            AppConfig(accounts=[])

    def test_duplicate_names(self):
        """Test account names must be unique."""
        with pytest.raises(ValueError, match="Duplicate"):
            AppConfig(accounts=[AccountConfig(name="a"), AccountConfig(name="a")])

    def test_sync_override(self):
        """Test a per-account sync section replaces the default."""
        margin = SyncConfig(wallet="margin")
        config = AppConfig(accounts=[
            AccountConfig(name="spot"),
            AccountConfig(name="margin", sync=margin),
        ])

        assert config.sync_for(config.get_account("spot")).wallet == WalletType.SPOT
        assert config.sync_for(config.get_account("margin")).wallet == WalletType.MARGIN

    def test_get_account_unknown(self):
        """Test unknown account names raise KeyError."""
        config = AppConfig(accounts=[AccountConfig(name="a")])
        with pytest.raises(KeyError):
            config.get_account("b")

    def test_log_level_validated(self):
        """Test log levels are normalized and checked."""
        assert LoggingConfig(level="debug").level == "DEBUG"
        with pytest.raises(ValueError):
            LoggingConfig(level="verbose")


# =============================================================================
# Loader Tests
# =============================================================================


class TestConfigLoader:
    """Test YAML loading."""

    def test_load(self, tmp_path, monkeypatch):
        """Test a YAML file is loaded with env substitution."""
        monkeypatch.setenv("TEST_CAD_KEY", "key-from-env")
        monkeypatch.delenv("TEST_CAD_SECRET", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text(BASE_YAML)

        config = load_config(path)

        account = config.get_account("main")
        assert account.exchange.api_key == "key-from-env"
        assert account.exchange.api_secret == "fallback-secret"
        assert config.sync.queue_size == 128
        assert config.logging.level == "INFO"

    def test_env_overlay(self, tmp_path, monkeypatch):
        """Test config.<env>.yaml is merged over the base file."""
        monkeypatch.setenv("TEST_CAD_KEY", "k")
        (tmp_path / "config.yaml").write_text(BASE_YAML)
        (tmp_path / "config.testnet.yaml").write_text("sync:\n  reconnect_delay: 1\n")

        config = ConfigLoader().load(tmp_path / "config.yaml", env="testnet")

        assert config.sync.reconnect_delay == 1
        assert config.sync.queue_size == 128

    def test_missing_overlay_ignored(self, tmp_path, monkeypatch):
        """Test a missing overlay file is not an error."""
        monkeypatch.setenv("TEST_CAD_KEY", "k")
        (tmp_path / "config.yaml").write_text(BASE_YAML)

        config = ConfigLoader().load(tmp_path / "config.yaml", env="staging")
        assert config.sync.reconnect_delay == 5

    def test_file_not_found(self, tmp_path):
        """Test a missing base file raises ConfigFileNotFoundError."""
        with pytest.raises(ConfigFileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        """Test broken YAML raises ConfigParseError."""
        path = tmp_path / "config.yaml"
        path.write_text("accounts: [unclosed\n")
        with pytest.raises(ConfigParseError):
            load_config(path)

    def test_non_mapping_root(self, tmp_path):
        """Test a YAML list at the root is rejected."""
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigParseError):
            load_config(path)

    def test_validation_errors_listed(self, tmp_path):
        """Test pydantic errors are reported with their location."""
        path = tmp_path / "config.yaml"
        path.write_text("accounts:\n  - name: main\nsync:\n  queue_size: 0\n")

        with pytest.raises(ConfigValidationError) as exc_info:
            load_config(path)
        assert any("queue_size" in err for err in exc_info.value.errors)

    def test_merge_configs(self):
        """Test deep merge keeps untouched keys and replaces lists."""
        merged = ConfigLoader().merge_configs(
            {"a": {"b": 1, "c": 2}, "l": [1, 2]},
            {"a": {"b": 10}, "l": [3]},
        )
        assert merged == {"a": {"b": 10, "c": 2}, "l": [3]}


class TestConfigFromEnv:
    """Test single-account configuration from environment variables."""

    def test_from_env(self, monkeypatch, tmp_path):
        """Test BINANCE_KEY and BINANCE_SECRET build one account."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("BINANCE_KEY", "env-key")
        monkeypatch.setenv("BINANCE_SECRET", "env-secret")

        config = config_from_env(testnet=True)

        account = config.accounts[0]
        assert account.name == "default"
        assert account.exchange.api_key == "env-key"
        assert account.exchange.testnet is True

    def test_missing_variables(self, monkeypatch, tmp_path):
        """Test missing variables are reported by name."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("BINANCE_KEY", raising=False)
        monkeypatch.setenv("BINANCE_SECRET", "s")

        with pytest.raises(ConfigValidationError) as exc_info:
            config_from_env()
        assert exc_info.value.errors == ["BINANCE_KEY is not set"]

"""
Account Data Synchronizer Entry Point.

Mirrors every configured account until interrupted.

Usage:
    python -m cex_account_data --config config/config.yaml --env production
    BINANCE_KEY=... BINANCE_SECRET=... python -m cex_account_data
"""

import argparse
import asyncio
import signal
import sys
from typing import Optional

from .config import AppConfig, ConfigError, config_from_env, load_config
from .core import configure_logging, get_logger
from .core.exceptions import ExchangeError
from .core.models import WalletType
from .data.coin_state import CoinStateWorker
from .data.margin_account import MarginAccountCache
from .sync.context import AccountContext

logger = get_logger(__name__)


def build_contexts(config: AppConfig) -> dict[str, AccountContext]:
    """One AccountContext per configured account."""
    return {
        account.name: AccountContext.from_config(account, config.sync_for(account))
        for account in config.accounts
    }


def log_status(contexts: dict[str, AccountContext]) -> None:
    """Log a one-line summary per account."""
    for name, ctx in contexts.items():
        stats = ctx.worker.stats()
        logger.info(
            f"account={name} state={stats['state']} "
            f"balances={len(ctx.store.non_zero_balances())} "
            f"open_orders={len(ctx.store.open_orders())} "
            f"processed={stats['processed']} failed={stats['failed']} "
            f"dropped={stats['dropped_frames']} reconnects={stats['reconnects']}"
        )


def build_margin_cache(
    config: AppConfig,
    contexts: dict[str, AccountContext],
) -> Optional[MarginAccountCache]:
    """Margin cache over the accounts that follow their cross margin wallet."""
    providers = {
        account.name: contexts[account.name].rest_client
        for account in config.accounts
        if config.sync_for(account).wallet == WalletType.MARGIN
    }
    return MarginAccountCache(providers) if providers else None


async def log_margin_levels(cache: MarginAccountCache, names: list[str]) -> None:
    for name in names:
        try:
            details = await cache.get_account_info(name)
        except ExchangeError as e:
            logger.warning(f"account={name} margin details unavailable: {e}")
            continue
        logger.info(
            f"account={name} margin_level={details.margin_level} "
            f"net_asset_btc={details.total_net_asset_of_btc}"
        )


async def status_tick(
    contexts: dict[str, AccountContext],
    margin_cache: Optional[MarginAccountCache] = None,
) -> None:
    """Periodic housekeeping: prune archives, then report status."""
    for ctx in contexts.values():
        ctx.completed_orders.cleanup_expired()
    log_status(contexts)
    if margin_cache is not None:
        await log_margin_levels(margin_cache, margin_cache.accounts)


async def run_accounts(config: AppConfig, status_interval: float = 60.0) -> None:
    """
    Run a worker per account until SIGINT/SIGTERM.

    Args:
        config: Application configuration
        status_interval: Seconds between status log lines (0 disables)
    """
    contexts = build_contexts(config)
    margin_cache = build_margin_cache(config, contexts)
    coin_state: Optional[CoinStateWorker] = None
    shutdown_event = asyncio.Event()

    def signal_handler(sig):
        logger.info(f"Received signal {sig}, initiating shutdown")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            signal.signal(sig, lambda s, f: signal_handler(s))

    try:
        for ctx in contexts.values():
            await ctx.start()
        logger.info(f"Started {len(contexts)} account worker(s)")

        if config.enable_coin_state:
            first = next(iter(contexts.values()))
            coin_state = CoinStateWorker(first.rest_client, interval=config.coin_state_interval)
            await coin_state.start()

        while not shutdown_event.is_set():
            timeout = status_interval if status_interval > 0 else None
            try:
                await asyncio.wait_for(shutdown_event.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                await status_tick(contexts, margin_cache)

    finally:
        logger.info("Shutting down account workers")

        if coin_state:
            await coin_state.stop()

        for name, ctx in contexts.items():
            try:
                await ctx.close()
            except Exception as e:
                logger.error(f"account={name} error during shutdown: {e!r}")

        logger.info("Shutdown complete")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Mirror Binance account balances and open orders"
    )
    parser.add_argument(
        "--config",
        help="YAML configuration file (default: single account from BINANCE_KEY/BINANCE_SECRET)",
    )
    parser.add_argument(
        "--env",
        help="Environment overlay, loads <config>.<env>.yaml on top of the base file",
    )
    parser.add_argument(
        "--testnet",
        action="store_true",
        help="Use testnet endpoints (environment-variable mode only)",
    )
    parser.add_argument(
        "--status-interval",
        type=float,
        default=60.0,
        help="Seconds between status log lines, 0 to disable (default: 60)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> None:
    """CLI entry point."""
    args = parse_args(argv)

    try:
        if args.config:
            config = load_config(args.config, env=args.env)
        else:
            config = config_from_env(testnet=args.testnet)
    except ConfigError as e:
        logger.error(str(e))
        sys.exit(2)

    missing = [a.name for a in config.accounts if not a.exchange.has_credentials]
    if missing:
        logger.error(f"API key and secret required for account(s): {', '.join(missing)}")
        sys.exit(2)

    configure_logging(
        level="DEBUG" if args.debug else config.logging.level,
        log_file=config.logging.file,
    )

    try:
        asyncio.run(run_accounts(config, status_interval=args.status_interval))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.error(f"Account data synchronizer failed: {e!r}")
        sys.exit(1)


if __name__ == "__main__":
    main()

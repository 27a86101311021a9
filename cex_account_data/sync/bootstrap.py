"""
Session Bootstrapper.

Opens a user data session: obtains a listen key, then pulls a fresh REST
snapshot of the account and its open orders and commits it to the store.
Nothing is committed unless every step succeeds.
"""

from typing import Optional, Protocol

from ..core import get_logger
from ..core.models import AccountSnapshot, AccountState, OpenOrder, WalletType
from .store import AccountStateStore

logger = get_logger(__name__)


class AccountDataProvider(Protocol):
    """REST calls the synchronizer depends on."""

    async def create_listen_key(
        self,
        wallet: WalletType = WalletType.SPOT,
        symbol: Optional[str] = None,
    ) -> str:
        ...

    async def keep_alive_listen_key(
        self,
        listen_key: str,
        wallet: WalletType = WalletType.SPOT,
        symbol: Optional[str] = None,
    ) -> bool:
        ...

    async def delete_listen_key(
        self,
        listen_key: str,
        wallet: WalletType = WalletType.SPOT,
        symbol: Optional[str] = None,
    ) -> bool:
        ...

    async def get_wallet_account(
        self,
        wallet: WalletType = WalletType.SPOT,
        symbol: Optional[str] = None,
    ) -> AccountState:
        ...

    async def get_wallet_open_orders(
        self,
        wallet: WalletType = WalletType.SPOT,
        symbol: Optional[str] = None,
    ) -> list[OpenOrder]:
        ...


class SessionBootstrapper:
    """Listen key plus REST snapshot, committed atomically to the store."""

    def __init__(
        self,
        provider: AccountDataProvider,
        store: AccountStateStore,
        wallet: WalletType = WalletType.SPOT,
        symbol: Optional[str] = None,
        account: str = "default",
    ):
        self._provider = provider
        self._store = store
        self._wallet = wallet
        self._symbol = symbol
        self._account = account

    async def bootstrap(self) -> str:
        """
        Start a session.

        Returns:
            The new listen key

        Raises:
            UpstreamError: If the exchange refuses any of the calls
            ConnectionError: If the exchange cannot be reached
        """
        listen_key = await self._provider.create_listen_key(self._wallet, self._symbol)
        logger.info(f"account={self._account} listen key created for {self._wallet.value} wallet")

        state = await self._provider.get_wallet_account(self._wallet, self._symbol)
        orders = await self._provider.get_wallet_open_orders(self._wallet, self._symbol)

        self._store.replace_snapshot(AccountSnapshot.build(state, orders))
        return listen_key

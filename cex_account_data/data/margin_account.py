"""
Cross-margin account cache.

Margin details are expensive to fetch and change slowly relative to how
often they are read, so each account's copy is reused while younger than
the validity window.
"""

import asyncio
import time
from typing import Callable, Optional, Protocol

from ..core import get_logger
from ..core.exceptions import NotFoundError
from ..core.models import CrossMarginAccount

logger = get_logger(__name__)

DEFAULT_VALIDITY = 60.0


class MarginAccountProvider(Protocol):
    async def get_cross_margin_account(self) -> CrossMarginAccount:
        ...


class MarginAccountCache:
    """Per-account cross-margin details with a freshness window."""

    def __init__(
        self,
        providers: dict[str, MarginAccountProvider],
        validity: float = DEFAULT_VALIDITY,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            providers: REST client per account name
            validity: Seconds a fetched copy is served from cache
            clock: Monotonic time source
        """
        self._providers = providers
        self._validity = validity
        self._clock = clock
        self._details: dict[str, CrossMarginAccount] = {}
        self._updated_at: dict[str, float] = {}
        self._lock = asyncio.Lock()

    @property
    def accounts(self) -> list[str]:
        return list(self._providers)

    async def update_account(self, account: str) -> CrossMarginAccount:
        """
        Fetch and cache an account's margin details.

        Raises:
            NotFoundError: If the account is not configured
        """
        provider = self._providers.get(account)
        if provider is None:
            raise NotFoundError(f"Account not exists: {account}")

        details = await provider.get_cross_margin_account()
        async with self._lock:
            self._details[account] = details
            self._updated_at[account] = self._clock()
        logger.debug(f"account={account} margin details refreshed")
        return details.model_copy(deep=True)

    async def get_account_info(self, account: str) -> CrossMarginAccount:
        """
        Margin details, from cache when fresh enough.

        Raises:
            NotFoundError: If the account is not configured
        """
        async with self._lock:
            cached: Optional[CrossMarginAccount] = self._details.get(account)
            updated_at = self._updated_at.get(account)

        if cached is not None and updated_at is not None:
            if self._clock() - updated_at <= self._validity:
                return cached.model_copy(deep=True)

        return await self.update_account(account)

"""Balance refresh: fetch market metrics and apply them to wallet ledgers."""

import asyncio
from collections.abc import Iterable
from time import time
from typing import Protocol

from loguru import logger

from vaultkeeper.exceptions import (
    DuplicateAddressError,
    MarketDataError,
    StoreError,
    WalletNotFoundError,
)
from vaultkeeper.interfaces.repository import WalletRepository
from vaultkeeper.models import (
    GIVEAWAY_AMOUNTS,
    BalanceReport,
    CryptoBalance,
    CryptoSymbol,
    CryptoWallet,
    MarketMetrics,
    PriceSnapshot,
)


class MetricsSource(Protocol):
    """Protocol for a per-symbol market data feed."""

    async def fetch_pair_metrics(self, symbol: CryptoSymbol) -> MarketMetrics:
        """Fetch metrics for one symbol, raising MarketDataError on failure."""
        ...


class BalanceRefresher:
    """Keeps wallet balance ledgers in sync with market data.

    Fetching is best-effort: feed failures become zero metrics and never
    reach the caller. Applying metrics is a pure in-memory transform kept
    apart from persistence.

    Example:
        refresher = BalanceRefresher(repository=db, source=client)
        await refresher.seed_giveaway(address)
        report = await refresher.get_wallet_balances(address)
    """

    def __init__(
        self,
        repository: WalletRepository,
        source: MetricsSource,
        giveaway_amounts: dict[CryptoSymbol, float] | None = None,
    ) -> None:
        """Initialize the refresher.

        Args:
            repository: Store holding the balance ledgers.
            source: Market data feed.
            giveaway_amounts: Fixed symbol to amount table for new wallets.
        """
        self._repository = repository
        self._source = source
        self._giveaway_amounts = giveaway_amounts or GIVEAWAY_AMOUNTS

    @property
    def symbols(self) -> list[CryptoSymbol]:
        """Tracked symbols."""
        return list(self._giveaway_amounts)

    # =========================================================================
    # Fetching
    # =========================================================================

    async def fetch_metrics(self, symbol: CryptoSymbol) -> MarketMetrics:
        """Fetch one symbol's metrics, falling back to zero on any feed error."""
        try:
            return await self._source.fetch_pair_metrics(symbol)
        except MarketDataError as e:
            logger.warning("Using zero metrics for {}: {}", symbol.value, e)
            return MarketMetrics.zero()

    async def fetch_all(
        self, symbols: Iterable[CryptoSymbol] | None = None
    ) -> dict[CryptoSymbol, MarketMetrics]:
        """Fetch metrics for every symbol concurrently.

        Args:
            symbols: Symbols to fetch. Defaults to all tracked symbols.

        Returns:
            Map holding an entry for every requested symbol.
        """
        targets = list(symbols) if symbols is not None else self.symbols
        results = await asyncio.gather(*(self.fetch_metrics(s) for s in targets))
        return dict(zip(targets, results))

    # =========================================================================
    # Applying
    # =========================================================================

    @staticmethod
    def apply_metrics(
        crypto_wallet: CryptoWallet,
        metrics: dict[CryptoSymbol, MarketMetrics],
        now: float | None = None,
    ) -> CryptoWallet:
        """Apply fetched metrics to a ledger in place.

        Balances whose symbol is missing from the map, or whose metrics are
        empty (fetch failure), keep their last known price and snapshot.
        Every balance's value is recomputed. Applying the same map twice
        gives the same balances.

        Args:
            crypto_wallet: Ledger to update.
            metrics: Metrics by symbol.
            now: Timestamp for updated balances. Defaults to the current time.

        Returns:
            The same ledger, for chaining.
        """
        stamp = time() if now is None else now

        for balance in crypto_wallet.balances:
            fresh = metrics.get(balance.symbol)
            if fresh is not None and not fresh.is_empty:
                balance.price_usd = fresh.price
                balance.metrics = fresh
                balance.last_updated = stamp
            balance.value = balance.amount * balance.price_usd

        return crypto_wallet

    # =========================================================================
    # Ledger Operations
    # =========================================================================

    async def seed_giveaway(self, address: str) -> CryptoWallet:
        """Create a wallet's ledger with the fixed giveaway allocation.

        The zero-valued ledger is stored before prices are fetched so that
        a wallet always ends up with balances even if pricing fails.

        Args:
            address: Wallet address.

        Returns:
            The priced ledger, or the existing one if already seeded.

        Raises:
            StoreError: If the ledger cannot be stored.
        """
        address = address.lower()
        existing = await self._repository.find_crypto_wallet(address)
        if existing is not None:
            logger.debug("Balances already seeded for {}", address)
            return existing

        now = time()
        crypto_wallet = CryptoWallet(
            address=address,
            balances=[
                CryptoBalance(symbol=symbol, amount=amount, last_updated=now)
                for symbol, amount in self._giveaway_amounts.items()
            ],
        )

        try:
            await self._repository.insert_crypto_wallet(crypto_wallet)
        except DuplicateAddressError:
            logger.debug("Balances seeded concurrently for {}", address)
            return await self._repository.find_crypto_wallet(address) or crypto_wallet

        metrics = await self.fetch_all()
        self.apply_metrics(crypto_wallet, metrics)
        await self._repository.save_crypto_wallet(crypto_wallet)

        logger.info(
            "Seeded giveaway for {}: total value {:.2f} USD",
            address,
            crypto_wallet.total_value,
        )
        return crypto_wallet

    async def _refresh_one(
        self,
        crypto_wallet: CryptoWallet,
        metrics: dict[CryptoSymbol, MarketMetrics],
    ) -> bool:
        """Apply and persist one ledger. Returns False on store failure."""
        self.apply_metrics(crypto_wallet, metrics)
        try:
            await self._repository.save_crypto_wallet(crypto_wallet)
        except StoreError as e:
            logger.error("Failed to save balances for {}: {}", crypto_wallet.address, e)
            return False
        return True

    async def refresh_all_wallets(self) -> int:
        """Reprice every stored ledger.

        Metrics are fetched once and shared. A failure to save one ledger
        does not affect the others.

        Returns:
            Number of ledgers saved.
        """
        metrics = await self.fetch_all()
        wallets = await self._repository.find_all_crypto_wallets()

        results = await asyncio.gather(
            *(self._refresh_one(w, metrics) for w in wallets)
        )
        saved = sum(1 for ok in results if ok)

        logger.info("Refreshed prices for {}/{} wallets", saved, len(wallets))
        return saved

    async def get_wallet_balances(self, address: str) -> BalanceReport:
        """Refresh and return one wallet's balances.

        A stored wallet whose ledger is missing (seeding failed at creation)
        is seeded here instead.

        Args:
            address: Wallet address in any case.

        Returns:
            BalanceReport with the refreshed balances and their total.

        Raises:
            WalletNotFoundError: If neither a wallet nor a ledger exists.
            StoreError: If the ledger cannot be stored.
        """
        crypto_wallet = await self._repository.find_crypto_wallet(address)
        if crypto_wallet is None:
            if await self._repository.find_wallet_by_address(address) is None:
                raise WalletNotFoundError(address.lower())
            logger.info("Seeding missing balances for {}", address.lower())
            crypto_wallet = await self.seed_giveaway(address)
        else:
            metrics = await self.fetch_all()
            self.apply_metrics(crypto_wallet, metrics)
            await self._repository.save_crypto_wallet(crypto_wallet)

        return BalanceReport(
            address=crypto_wallet.address,
            balances=crypto_wallet.balances,
            total_value=crypto_wallet.total_value,
        )

    async def get_current_prices(self) -> PriceSnapshot:
        """Fetch current metrics for every tracked symbol."""
        return PriceSnapshot(prices=await self.fetch_all())

"""Abstract base class defining the wallet store interface."""

from abc import ABC, abstractmethod

from vaultkeeper.exceptions import (
    DefaultConflictError,
    DuplicateAddressError,
    StaleWriteError,
    StoreError,
)
from vaultkeeper.models import CryptoWallet, Wallet, WalletStatus

# Re-export exceptions for convenience
__all__ = [
    "WalletRepository",
    "DefaultConflictError",
    "DuplicateAddressError",
    "StaleWriteError",
    "StoreError",
]


class WalletRepository(ABC):
    """Abstract document store for wallets and their balance ledgers.

    Implementations must enforce address uniqueness for both collections
    and at most one active default wallet per owner. Addresses are
    canonicalised to lowercase and backend failures wrapped in StoreError.
    """

    # =========================================================================
    # Wallet Records
    # =========================================================================

    @abstractmethod
    async def insert_wallet(self, wallet: Wallet) -> Wallet:
        """Insert a new wallet record.

        Returns:
            The stored wallet with its id assigned.

        Raises:
            DuplicateAddressError: If the address is already stored.
            DefaultConflictError: If the owner already has an active default.
            StoreError: On any other store failure.
        """
        raise NotImplementedError

    @abstractmethod
    async def find_wallet_by_address(self, address: str) -> Wallet | None:
        """Look up a wallet by address (case-insensitive)."""
        raise NotImplementedError

    @abstractmethod
    async def find_wallets(
        self,
        owner_id: str,
        status: WalletStatus | None = None,
        include_logged_out: bool = False,
    ) -> list[Wallet]:
        """List an owner's wallets, default first then newest first."""
        raise NotImplementedError

    @abstractmethod
    async def count_active_wallets(self, owner_id: str) -> int:
        """Count an owner's active, not logged-out wallets."""
        raise NotImplementedError

    @abstractmethod
    async def find_default_wallet(self, owner_id: str) -> Wallet | None:
        """Get the owner's active default wallet, if any."""
        raise NotImplementedError

    @abstractmethod
    async def save_wallet(self, wallet: Wallet) -> Wallet:
        """Persist changes to an existing wallet with an optimistic version check.

        Returns:
            The wallet with its version bumped.

        Raises:
            StaleWriteError: If the stored version differs from wallet.version.
            DefaultConflictError: If the owner already has an active default.
            StoreError: On any other store failure.
        """
        raise NotImplementedError

    # =========================================================================
    # Balance Ledgers
    # =========================================================================

    @abstractmethod
    async def insert_crypto_wallet(self, crypto_wallet: CryptoWallet) -> None:
        """Insert a new balance ledger.

        Raises:
            DuplicateAddressError: If a ledger already exists for the address.
            StoreError: On any other store failure.
        """
        raise NotImplementedError

    @abstractmethod
    async def find_crypto_wallet(self, address: str) -> CryptoWallet | None:
        """Look up a balance ledger by address (case-insensitive)."""
        raise NotImplementedError

    @abstractmethod
    async def find_all_crypto_wallets(self) -> list[CryptoWallet]:
        """Get every stored balance ledger."""
        raise NotImplementedError

    @abstractmethod
    async def save_crypto_wallet(self, crypto_wallet: CryptoWallet) -> None:
        """Insert or overwrite a balance ledger."""
        raise NotImplementedError

"""SQLite database manager for persistent wallet storage."""

import json
from pathlib import Path
from time import time
from typing import Any

import aiosqlite
from loguru import logger

from vaultkeeper.exceptions import (
    DefaultConflictError,
    DuplicateAddressError,
    StaleWriteError,
    StoreError,
)
from vaultkeeper.interfaces.repository import WalletRepository
from vaultkeeper.models import (
    CryptoBalance,
    CryptoWallet,
    EncryptedSeed,
    Wallet,
    WalletSecurity,
    WalletStatus,
)
from vaultkeeper.persistence.schema import SCHEMA_STATEMENTS


class DatabaseManager(WalletRepository):
    """Async SQLite store for wallets and balance ledgers.

    Provides async context manager interface and the WalletRepository
    operations. Address uniqueness and the single active default per owner
    are enforced by UNIQUE indexes; wallet updates use an optimistic
    version check.

    Example:
        async with DatabaseManager(Path("data/vaultkeeper.db")) as db:
            wallet = await db.insert_wallet(wallet)
            found = await db.find_wallet_by_address(wallet.address)
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the database manager.

        Args:
            db_path: Path to the SQLite database file.
        """
        self._db_path = db_path
        self._connection: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Open database connection and create tables if needed."""
        # Ensure parent directory exists
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        self._connection = await aiosqlite.connect(self._db_path)
        self._connection.row_factory = aiosqlite.Row

        # Create schema
        for statement in SCHEMA_STATEMENTS:
            await self._connection.execute(statement)
        await self._connection.commit()

        logger.debug("Connected to database: {}", self._db_path)

    async def disconnect(self) -> None:
        """Close database connection."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            logger.debug("Disconnected from database: {}", self._db_path)

    async def __aenter__(self) -> "DatabaseManager":
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.disconnect()

    def _require_connection(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError("Database not connected")
        return self._connection

    @staticmethod
    def _is_default_conflict(error: aiosqlite.IntegrityError) -> bool:
        """Whether a unique violation came from the one-default-per-owner index."""
        return "wallets.owner_id" in str(error)

    async def _fetchall(self, query: str, params: tuple[Any, ...] | list[Any]) -> list[Any]:
        """Run a read query, wrapping driver failures."""
        connection = self._require_connection()
        try:
            cursor = await connection.execute(query, params)
            return list(await cursor.fetchall())
        except aiosqlite.Error as e:
            raise StoreError(f"Query failed: {e}") from e

    # =========================================================================
    # Wallet Operations
    # =========================================================================

    @staticmethod
    def _row_to_wallet(row: aiosqlite.Row) -> Wallet:
        return Wallet(
            id=row["id"],
            owner_id=row["owner_id"],
            address=row["address"],
            encrypted_seed=EncryptedSeed(
                ciphertext=row["encrypted_seed"],
                iv=row["iv"],
                salt=row["salt"],
            ),
            name=row["name"],
            is_default=bool(row["is_default"]),
            is_verified=bool(row["is_verified"]),
            is_logged_out=bool(row["is_logged_out"]),
            last_logout=row["last_logout"],
            security=WalletSecurity(
                has_pin=bool(row["has_pin"]),
                pin_hash=row["pin_hash"],
                pin_salt=row["pin_salt"],
                has_biometrics=bool(row["has_biometrics"]),
                last_accessed=row["last_accessed"],
            ),
            status=WalletStatus(row["status"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            version=row["version"],
        )

    async def insert_wallet(self, wallet: Wallet) -> Wallet:
        """Insert a new wallet record.

        Args:
            wallet: The wallet to insert. Its address is lowercased.

        Returns:
            A copy of the wallet with its id assigned.

        Raises:
            DuplicateAddressError: If the address is already stored.
            DefaultConflictError: If the owner already has an active default.
            StoreError: On any other database failure.
        """
        connection = self._require_connection()
        address = wallet.address.lower()

        try:
            cursor = await connection.execute(
                """
                INSERT INTO wallets (
                    owner_id, address, encrypted_seed, iv, salt, name,
                    is_default, is_verified, is_logged_out, last_logout,
                    has_pin, pin_hash, pin_salt, has_biometrics, last_accessed,
                    status, created_at, updated_at, version
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    wallet.owner_id,
                    address,
                    wallet.encrypted_seed.ciphertext,
                    wallet.encrypted_seed.iv,
                    wallet.encrypted_seed.salt,
                    wallet.name,
                    int(wallet.is_default),
                    int(wallet.is_verified),
                    int(wallet.is_logged_out),
                    wallet.last_logout,
                    int(wallet.security.has_pin),
                    wallet.security.pin_hash,
                    wallet.security.pin_salt,
                    int(wallet.security.has_biometrics),
                    wallet.security.last_accessed,
                    wallet.status.value,
                    wallet.created_at,
                    wallet.updated_at,
                    wallet.version,
                ),
            )
            await connection.commit()
        except aiosqlite.IntegrityError as e:
            if self._is_default_conflict(e):
                raise DefaultConflictError(wallet.owner_id) from e
            raise DuplicateAddressError(address) from e
        except aiosqlite.Error as e:
            raise StoreError(f"Failed to insert wallet {address}: {e}") from e

        logger.debug("Inserted wallet {} for owner {}", address, wallet.owner_id)
        return wallet.model_copy(update={"id": cursor.lastrowid, "address": address})

    async def find_wallet_by_address(self, address: str) -> Wallet | None:
        """Get a wallet by address.

        Args:
            address: Wallet address in any case.

        Returns:
            The Wallet if found, None otherwise.
        """
        rows = await self._fetchall(
            "SELECT * FROM wallets WHERE address = ?",
            (address.lower(),),
        )
        return self._row_to_wallet(rows[0]) if rows else None

    async def find_wallets(
        self,
        owner_id: str,
        status: WalletStatus | None = None,
        include_logged_out: bool = False,
    ) -> list[Wallet]:
        """Get an owner's wallets.

        Args:
            owner_id: Owner to list for.
            status: Restrict to one status (optional).
            include_logged_out: Whether to include logged-out wallets.

        Returns:
            Wallets ordered default first, then most recently created first.
        """
        query = "SELECT * FROM wallets WHERE owner_id = ?"
        params: list[Any] = [owner_id]

        if status is not None:
            query += " AND status = ?"
            params.append(status.value)

        if not include_logged_out:
            query += " AND is_logged_out = 0"

        query += " ORDER BY is_default DESC, created_at DESC, id DESC"

        rows = await self._fetchall(query, params)
        return [self._row_to_wallet(row) for row in rows]

    async def count_active_wallets(self, owner_id: str) -> int:
        """Count an owner's active, not logged-out wallets."""
        rows = await self._fetchall(
            """
            SELECT COUNT(*) AS total FROM wallets
            WHERE owner_id = ? AND status = ? AND is_logged_out = 0
            """,
            (owner_id, WalletStatus.ACTIVE.value),
        )
        return int(rows[0]["total"])

    async def find_default_wallet(self, owner_id: str) -> Wallet | None:
        """Get the owner's active default wallet, if any."""
        rows = await self._fetchall(
            """
            SELECT * FROM wallets
            WHERE owner_id = ? AND is_default = 1 AND status = ? AND is_logged_out = 0
            ORDER BY created_at DESC LIMIT 1
            """,
            (owner_id, WalletStatus.ACTIVE.value),
        )
        return self._row_to_wallet(rows[0]) if rows else None

    async def save_wallet(self, wallet: Wallet) -> Wallet:
        """Write back a modified wallet if nobody else changed it first.

        Args:
            wallet: Wallet read earlier and modified in memory.

        Returns:
            The same wallet object with version and updated_at bumped.

        Raises:
            StaleWriteError: If the stored version no longer matches.
            DefaultConflictError: If the owner already has an active default.
            StoreError: On any other database failure.
        """
        connection = self._require_connection()
        address = wallet.address.lower()
        now = time()

        try:
            cursor = await connection.execute(
                """
                UPDATE wallets SET
                    owner_id = ?, name = ?, is_default = ?, is_verified = ?,
                    is_logged_out = ?, last_logout = ?, has_pin = ?, pin_hash = ?,
                    pin_salt = ?, has_biometrics = ?, last_accessed = ?, status = ?,
                    updated_at = ?, version = version + 1
                WHERE address = ? AND version = ?
                """,
                (
                    wallet.owner_id,
                    wallet.name,
                    int(wallet.is_default),
                    int(wallet.is_verified),
                    int(wallet.is_logged_out),
                    wallet.last_logout,
                    int(wallet.security.has_pin),
                    wallet.security.pin_hash,
                    wallet.security.pin_salt,
                    int(wallet.security.has_biometrics),
                    wallet.security.last_accessed,
                    wallet.status.value,
                    now,
                    address,
                    wallet.version,
                ),
            )
            await connection.commit()
        except aiosqlite.IntegrityError as e:
            if self._is_default_conflict(e):
                raise DefaultConflictError(wallet.owner_id) from e
            raise StoreError(f"Failed to save wallet {address}: {e}") from e
        except aiosqlite.Error as e:
            raise StoreError(f"Failed to save wallet {address}: {e}") from e

        if cursor.rowcount == 0:
            raise StaleWriteError(address, wallet.version)

        wallet.version += 1
        wallet.updated_at = now
        return wallet

    # =========================================================================
    # Balance Ledger Operations
    # =========================================================================

    @staticmethod
    def _row_to_crypto_wallet(row: aiosqlite.Row) -> CryptoWallet:
        return CryptoWallet(
            address=row["address"],
            balances=[CryptoBalance.model_validate(b) for b in json.loads(row["balances"])],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _dump_balances(crypto_wallet: CryptoWallet) -> str:
        return json.dumps([b.model_dump(mode="json") for b in crypto_wallet.balances])

    async def insert_crypto_wallet(self, crypto_wallet: CryptoWallet) -> None:
        """Insert a new balance ledger.

        Raises:
            DuplicateAddressError: If a ledger already exists for the address.
            StoreError: On any other database failure.
        """
        connection = self._require_connection()
        address = crypto_wallet.address.lower()

        try:
            await connection.execute(
                """
                INSERT INTO crypto_wallets (address, balances, created_at, updated_at)
                VALUES (?, ?, ?, ?)
                """,
                (
                    address,
                    self._dump_balances(crypto_wallet),
                    crypto_wallet.created_at,
                    crypto_wallet.updated_at,
                ),
            )
            await connection.commit()
        except aiosqlite.IntegrityError as e:
            raise DuplicateAddressError(address) from e
        except aiosqlite.Error as e:
            raise StoreError(f"Failed to insert balances for {address}: {e}") from e

    async def find_crypto_wallet(self, address: str) -> CryptoWallet | None:
        """Get a balance ledger by address."""
        rows = await self._fetchall(
            "SELECT * FROM crypto_wallets WHERE address = ?",
            (address.lower(),),
        )
        return self._row_to_crypto_wallet(rows[0]) if rows else None

    async def find_all_crypto_wallets(self) -> list[CryptoWallet]:
        """Get all balance ledgers."""
        rows = await self._fetchall("SELECT * FROM crypto_wallets", ())
        return [self._row_to_crypto_wallet(row) for row in rows]

    async def save_crypto_wallet(self, crypto_wallet: CryptoWallet) -> None:
        """Insert or update a balance ledger.

        Args:
            crypto_wallet: The ledger to upsert. updated_at is stamped.
        """
        connection = self._require_connection()
        address = crypto_wallet.address.lower()
        crypto_wallet.updated_at = time()

        try:
            await connection.execute(
                """
                INSERT INTO crypto_wallets (address, balances, created_at, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(address) DO UPDATE SET
                    balances = excluded.balances,
                    updated_at = excluded.updated_at
                """,
                (
                    address,
                    self._dump_balances(crypto_wallet),
                    crypto_wallet.created_at,
                    crypto_wallet.updated_at,
                ),
            )
            await connection.commit()
        except aiosqlite.Error as e:
            raise StoreError(f"Failed to save balances for {address}: {e}") from e

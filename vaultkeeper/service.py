"""Boundary service exposing custody operations as typed results.

Core components raise typed exceptions; this layer turns them into
OperationResult values so the transport layer only maps codes to statuses.
"""

from collections.abc import Awaitable
from typing import Any, Generic, TypeVar

from loguru import logger
from pydantic import BaseModel

from vaultkeeper.exceptions import CustodyError, StoreError
from vaultkeeper.market.refresher import BalanceRefresher
from vaultkeeper.models import (
    AuthContext,
    BalanceReport,
    GeneratedWallet,
    PriceSnapshot,
    VerificationChallenge,
    Wallet,
    WalletSummary,
    WordSelection,
)
from vaultkeeper.wallet.manager import WalletLifecycleManager

T = TypeVar("T")

# Transport status per failure code; anything unlisted is a server error
STATUS_CODES: dict[str, int] = {
    "invalid_seed_phrase": 400,
    "verification_failed": 400,
    "invalid_request": 400,
    "authentication_failed": 403,
    "not_found": 404,
    "address_in_use": 409,
    "wallet_in_use": 409,
    "store_error": 500,
}


def status_code_for(error_code: str | None) -> int:
    """Map an OperationResult error code to a transport status code."""
    if error_code is None:
        return 200
    return STATUS_CODES.get(error_code, 500)


class OperationResult(BaseModel, Generic[T]):
    """Outcome of a boundary operation: either data or a typed failure."""

    model_config = {"frozen": True}

    ok: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None

    @property
    def status_code(self) -> int:
        """Transport status for this result."""
        return status_code_for(self.error_code)

    @classmethod
    def success(cls, data: Any) -> "OperationResult[Any]":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error_code: str, error: str) -> "OperationResult[Any]":
        return cls(ok=False, error=error, error_code=error_code)


class WalletService:
    """Operations offered to the routing layer.

    Constructed once at process start with explicitly injected
    components and handed to request handlers.

    Usage:
        service = WalletService(manager=manager, refresher=refresher)
        result = await service.create_wallet(AuthContext(id="user-1"), phrase)
        if not result.ok:
            return result.status_code, result.error
    """

    def __init__(self, manager: WalletLifecycleManager, refresher: BalanceRefresher) -> None:
        self._manager = manager
        self._refresher = refresher

    @staticmethod
    async def _run(operation: Awaitable[Any]) -> OperationResult[Any]:
        """Await an operation and capture typed failures."""
        try:
            return OperationResult.success(await operation)
        except CustodyError as e:
            logger.info("Operation rejected ({}): {}", e.code, e)
            return OperationResult.failure(e.code, str(e))
        except StoreError as e:
            logger.error("Store failure: {}", e)
            return OperationResult.failure(e.code, "Storage failure, please retry")

    async def generate_wallet(self) -> OperationResult[GeneratedWallet]:
        """Generate a phrase and address without persisting."""
        return OperationResult.success(self._manager.generate_new_wallet())

    async def create_challenge(
        self, seed_phrase: str, sample_size: int = 3
    ) -> OperationResult[VerificationChallenge]:
        """Build a recall quiz for a freshly generated phrase."""
        try:
            return OperationResult.success(
                self._manager.create_challenge(seed_phrase, sample_size)
            )
        except CustodyError as e:
            return OperationResult.failure(e.code, str(e))

    async def create_wallet(
        self, auth: AuthContext, seed_phrase: str, pin: str | None = None
    ) -> OperationResult[Wallet]:
        """Create a wallet for the authenticated owner."""
        return await self._run(self._manager.create_wallet(auth.id, seed_phrase, pin))

    async def import_wallet(
        self, auth: AuthContext, seed_phrase: str
    ) -> OperationResult[Wallet]:
        """Import a wallet for the authenticated owner."""
        return await self._run(self._manager.import_wallet(auth.id, seed_phrase))

    async def confirm_verification(
        self,
        address: str,
        seed_phrase: str,
        selections: list[WordSelection],
    ) -> OperationResult[Wallet]:
        """Mark a wallet verified after a passed recall quiz."""
        return await self._run(
            self._manager.confirm_verification(address, seed_phrase, selections)
        )

    async def list_wallets(self, auth: AuthContext) -> OperationResult[list[WalletSummary]]:
        """List the authenticated owner's active wallets."""
        return await self._run(self._manager.list_wallets(auth.id))

    async def logout_wallet(self, address: str) -> OperationResult[None]:
        """Log a wallet out."""
        return await self._run(self._manager.logout_wallet(address))

    async def get_wallet_balances(self, address: str) -> OperationResult[BalanceReport]:
        """Refresh and return a wallet's balances."""
        return await self._run(self._refresher.get_wallet_balances(address))

    async def get_current_prices(self) -> OperationResult[PriceSnapshot]:
        """Fetch current metrics for every tracked symbol."""
        return await self._run(self._refresher.get_current_prices())

    async def refresh_all_prices(self) -> OperationResult[int]:
        """Reprice every stored ledger; data is the number saved."""
        return await self._run(self._refresher.refresh_all_wallets())

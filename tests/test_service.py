"""Tests for the boundary service and its result mapping."""

import json
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from tests.helpers import ADDRESS_ABANDON, PHRASE_ABANDON, PHRASE_LEGAL
from vaultkeeper.exceptions import StoreError
from vaultkeeper.market import BalanceRefresher
from vaultkeeper.models import AuthContext, CryptoSymbol, WordSelection
from vaultkeeper.persistence import DatabaseManager
from vaultkeeper.service import OperationResult, WalletService, status_code_for
from vaultkeeper.wallet import WalletLifecycleManager

USER_1 = AuthContext(id="user-1")
USER_2 = AuthContext(id="user-2")


@pytest.fixture
def service(manager: WalletLifecycleManager, refresher: BalanceRefresher) -> WalletService:
    """Service over the test manager and refresher."""
    return WalletService(manager=manager, refresher=refresher)


class TestStatusCodes:
    """Tests for failure code to status mapping."""

    @pytest.mark.parametrize(
        ("code", "status"),
        [
            (None, 200),
            ("invalid_seed_phrase", 400),
            ("verification_failed", 400),
            ("invalid_request", 400),
            ("authentication_failed", 403),
            ("not_found", 404),
            ("address_in_use", 409),
            ("wallet_in_use", 409),
            ("store_error", 500),
            ("something_unexpected", 500),
        ],
    )
    def test_status_code_for(self, code: str | None, status: int) -> None:
        """Each failure code maps to its transport status."""
        assert status_code_for(code) == status

    def test_result_is_frozen(self) -> None:
        """Results cannot be modified after creation."""
        result = OperationResult.success(1)
        with pytest.raises(ValidationError):
            result.ok = False  # type: ignore[misc]


class TestAuthContext:
    """Tests for the authenticated session payload."""

    def test_defaults(self) -> None:
        """Role defaults to user and no wallet is bound."""
        auth = AuthContext(id="user-1")
        assert auth.role == "user"
        assert auth.wallet_address is None

    def test_id_required(self) -> None:
        """An empty owner id is rejected."""
        with pytest.raises(ValidationError):
            AuthContext(id="")


class TestWalletService:
    """Tests for WalletService operations."""

    @pytest.mark.asyncio
    async def test_generate_wallet(self, service: WalletService) -> None:
        """Generation always succeeds."""
        result = await service.generate_wallet()
        assert result.ok
        assert result.status_code == 200
        assert result.data is not None
        assert len(result.data.seed_phrase.split()) == 12

    @pytest.mark.asyncio
    async def test_create_wallet_success(self, service: WalletService) -> None:
        """Creation returns the wallet without secrets in its serialised form."""
        result = await service.create_wallet(USER_1, PHRASE_ABANDON, pin="1234")

        assert result.ok
        assert result.data is not None
        assert result.data.address == ADDRESS_ABANDON

        dumped = json.loads(result.model_dump_json())
        assert "encrypted_seed" not in dumped["data"]
        assert "pin_hash" not in dumped["data"]["security"]
        assert "pin_salt" not in dumped["data"]["security"]

    @pytest.mark.asyncio
    async def test_create_wallet_invalid_phrase(self, service: WalletService) -> None:
        """Invalid phrases map to 400."""
        result = await service.create_wallet(USER_1, "twelve words that are not a phrase")

        assert not result.ok
        assert result.error_code == "invalid_seed_phrase"
        assert result.status_code == 400

    @pytest.mark.asyncio
    async def test_create_wallet_conflict(self, service: WalletService) -> None:
        """Creating an active address maps to 409."""
        await service.create_wallet(USER_1, PHRASE_ABANDON)

        result = await service.create_wallet(USER_2, PHRASE_ABANDON)

        assert result.error_code == "address_in_use"
        assert result.status_code == 409

    @pytest.mark.asyncio
    async def test_import_wallet_conflict(self, service: WalletService) -> None:
        """Importing an active address maps to 409."""
        await service.create_wallet(USER_1, PHRASE_ABANDON)

        result = await service.import_wallet(USER_2, PHRASE_ABANDON)

        assert result.error_code == "wallet_in_use"
        assert result.status_code == 409

    @pytest.mark.asyncio
    async def test_logout_then_list(self, service: WalletService) -> None:
        """Listings are scoped to the caller and exclude logged-out wallets."""
        await service.create_wallet(USER_1, PHRASE_ABANDON)
        await service.create_wallet(USER_1, PHRASE_LEGAL)
        assert (await service.logout_wallet(ADDRESS_ABANDON)).ok

        listing = await service.list_wallets(USER_1)
        other = await service.list_wallets(USER_2)

        assert listing.data is not None and len(listing.data) == 1
        assert other.data == []

    @pytest.mark.asyncio
    async def test_logout_unknown(self, service: WalletService) -> None:
        """Unknown addresses map to 404."""
        result = await service.logout_wallet(ADDRESS_ABANDON)
        assert result.status_code == 404

    @pytest.mark.asyncio
    async def test_confirm_verification_failure(self, service: WalletService) -> None:
        """Wrong recall answers map to 400."""
        await service.create_wallet(USER_1, PHRASE_ABANDON)

        result = await service.confirm_verification(
            ADDRESS_ABANDON, PHRASE_ABANDON, [WordSelection(index=0, word="about")]
        )

        assert result.error_code == "verification_failed"
        assert result.status_code == 400

    @pytest.mark.asyncio
    async def test_confirm_verification_wrong_phrase(self, service: WalletService) -> None:
        """A phrase that does not open the record maps to 403."""
        await service.create_wallet(USER_1, PHRASE_ABANDON)

        result = await service.confirm_verification(
            ADDRESS_ABANDON, PHRASE_LEGAL, [WordSelection(index=0, word="legal")]
        )

        assert result.status_code == 403

    @pytest.mark.asyncio
    async def test_create_challenge(self, service: WalletService) -> None:
        """Challenges for malformed phrases are refused."""
        assert (await service.create_challenge(PHRASE_LEGAL)).ok
        bad = await service.create_challenge("nope")
        assert bad.status_code == 400

    @pytest.mark.asyncio
    async def test_create_challenge_bad_sample_size(self, service: WalletService) -> None:
        """An out-of-range sample size is a bad request, not an unhandled error."""
        result = await service.create_challenge(PHRASE_ABANDON, sample_size=0)

        assert not result.ok
        assert result.error_code == "invalid_request"
        assert result.status_code == 400

    @pytest.mark.asyncio
    async def test_balances_and_prices(self, service: WalletService) -> None:
        """Balances of a created wallet are reported with current prices."""
        await service.create_wallet(USER_1, PHRASE_ABANDON)

        balances = await service.get_wallet_balances(ADDRESS_ABANDON)
        prices = await service.get_current_prices()

        assert balances.data is not None
        assert balances.data.total_value == 645_000.0
        assert prices.data is not None
        assert set(prices.data.prices) == {CryptoSymbol.BTC, CryptoSymbol.ETH}

    @pytest.mark.asyncio
    async def test_balances_unknown(self, service: WalletService) -> None:
        """Balances of an unknown wallet map to 404."""
        result = await service.get_wallet_balances(ADDRESS_ABANDON)
        assert result.status_code == 404

    @pytest.mark.asyncio
    async def test_store_failure_maps_to_500(
        self, service: WalletService, db: DatabaseManager
    ) -> None:
        """Store failures surface as a retryable 500 without internals."""
        with patch.object(db, "find_wallets", side_effect=StoreError("database is locked")):
            result = await service.list_wallets(USER_1)

        assert result.status_code == 500
        assert result.error == "Storage failure, please retry"

    @pytest.mark.asyncio
    async def test_refresh_all_prices(self, service: WalletService) -> None:
        """Bulk refresh reports how many ledgers were saved."""
        await service.create_wallet(USER_1, PHRASE_ABANDON)
        await service.create_wallet(USER_1, PHRASE_LEGAL)

        result = await service.refresh_all_prices()

        assert result.ok
        assert result.data == 2

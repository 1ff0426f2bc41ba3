"""Wallet lifecycle: creation, import, logout and reuse of custodied wallets."""

import asyncio
from collections.abc import Callable, Iterable
from time import time

from loguru import logger

from vaultkeeper.exceptions import (
    AddressInUseError,
    AuthenticationFailedError,
    DefaultConflictError,
    DuplicateAddressError,
    InvalidRequestError,
    InvalidSeedPhraseError,
    StaleWriteError,
    StoreError,
    VerificationFailedError,
    WalletInUseError,
    WalletNotFoundError,
)
from vaultkeeper.interfaces.repository import WalletRepository
from vaultkeeper.market.refresher import BalanceRefresher
from vaultkeeper.models import (
    GeneratedWallet,
    VerificationChallenge,
    Wallet,
    WalletSecurity,
    WalletStatus,
    WalletSummary,
    WordSelection,
)
from vaultkeeper.persistence.audit_logger import AuditEvent, WalletAuditLogger
from vaultkeeper.wallet.challenge import DEFAULT_SAMPLE_SIZE, ChallengeGenerator
from vaultkeeper.wallet.cipher import SeedCipher
from vaultkeeper.wallet.deriver import MnemonicDeriver

BACKUP_MESSAGE = (
    "IMPORTANT: Write down these 12 words in order and keep them safe. "
    "They are the only way to recover your wallet."
)

# Re-read attempts for optimistic updates that do not change ownership
MAX_UPDATE_ATTEMPTS = 3


class WalletLifecycleManager:
    """Orchestrates the wallet ownership state machine.

    States per address: absent, active-owned, logged-out, disabled.
    A logged-out wallet stays in the store and can be claimed by the next
    owner who presents its seed phrase. Address uniqueness is enforced by
    the store; ownership transfers use an optimistic version check, so of
    two concurrent claims on one address exactly one wins. The store also
    rejects a second active default per owner, in which case the wallet
    is written as non-default.

    Usage:
        manager = WalletLifecycleManager(repository=db, refresher=refresher)

        generated = manager.generate_new_wallet()
        wallet = await manager.create_wallet("user-1", generated.seed_phrase)

        for summary in await manager.list_wallets("user-1"):
            print(summary.address, summary.is_default)

        await manager.logout_wallet(wallet.address)
    """

    def __init__(
        self,
        repository: WalletRepository,
        refresher: BalanceRefresher,
        cipher: SeedCipher | None = None,
        deriver: MnemonicDeriver | None = None,
        challenges: ChallengeGenerator | None = None,
        audit: WalletAuditLogger | None = None,
    ) -> None:
        """Initialize the lifecycle manager.

        Args:
            repository: Wallet store.
            refresher: Balance refresher used to seed new wallets.
            cipher: Seed cipher. Defaults to the standard iteration count.
            deriver: Mnemonic deriver.
            challenges: Verification challenge generator.
            audit: Optional lifecycle audit trail.
        """
        self._repository = repository
        self._refresher = refresher
        self._cipher = cipher or SeedCipher()
        self._deriver = deriver or MnemonicDeriver()
        self._challenges = challenges or ChallengeGenerator()
        self._audit = audit

    def _checked_phrase(self, phrase: str) -> tuple[str, str]:
        """Validate a phrase and derive its address.

        Returns:
            Tuple of (normalized phrase, lowercase address).

        Raises:
            InvalidSeedPhraseError: If the phrase is malformed.
        """
        if not self._deriver.validate(phrase):
            raise InvalidSeedPhraseError()
        normalized = self._deriver.normalize(phrase)
        return normalized, self._deriver.address_of(normalized)

    async def _record(self, event: AuditEvent, wallet: Wallet) -> None:
        if self._audit is not None:
            await self._audit.record(event, wallet)

    async def _reassign(self, wallet: Wallet, owner_id: str, is_default: bool) -> Wallet:
        """Hand a logged-out wallet to a new owner.

        If the owner gained a default wallet concurrently, the wallet is
        reassigned as a non-default one instead.

        Raises:
            StaleWriteError: If another writer changed the wallet first.
        """
        previous_owner = wallet.owner_id
        wallet.owner_id = owner_id
        wallet.is_logged_out = False
        wallet.last_logout = None
        wallet.is_default = is_default
        try:
            saved = await self._repository.save_wallet(wallet)
        except DefaultConflictError:
            logger.debug(
                "Owner {} already has a default, reassigning {} as non-default",
                owner_id,
                wallet.address,
            )
            wallet.is_default = False
            saved = await self._repository.save_wallet(wallet)

        logger.info(
            "Reassigned wallet {} from {} to {}", wallet.address, previous_owner, owner_id
        )
        return saved

    async def _update_wallet(
        self, address: str, mutate: Callable[[Wallet], None]
    ) -> Wallet:
        """Read-modify-write a wallet, re-reading on concurrent modification.

        Raises:
            WalletNotFoundError: If no wallet exists at the address.
            StaleWriteError: If every attempt lost the race.
        """
        attempt = 1
        while True:
            wallet = await self._repository.find_wallet_by_address(address)
            if wallet is None:
                raise WalletNotFoundError(address.lower())

            mutate(wallet)
            try:
                return await self._repository.save_wallet(wallet)
            except StaleWriteError:
                if attempt >= MAX_UPDATE_ATTEMPTS:
                    raise
                attempt += 1
                logger.debug("Retrying update of {} after concurrent write", address)

    # =========================================================================
    # Generation & Verification
    # =========================================================================

    def generate_new_wallet(self) -> GeneratedWallet:
        """Generate a fresh phrase and address without persisting anything."""
        phrase, address = self._deriver.generate()
        return GeneratedWallet(seed_phrase=phrase, address=address, message=BACKUP_MESSAGE)

    def create_challenge(
        self, phrase: str, sample_size: int = DEFAULT_SAMPLE_SIZE
    ) -> VerificationChallenge:
        """Build a recall quiz for a phrase.

        Raises:
            InvalidSeedPhraseError: If the phrase is malformed.
            InvalidRequestError: If sample_size is outside 1..12.
        """
        normalized, _ = self._checked_phrase(phrase)
        try:
            return self._challenges.build(normalized, sample_size)
        except ValueError as e:
            raise InvalidRequestError(str(e)) from e

    def verify_selections(self, phrase: str, selections: Iterable[WordSelection]) -> bool:
        """Check recall answers against a phrase, all-or-nothing."""
        return self._challenges.verify(self._deriver.normalize(phrase), selections)

    async def confirm_verification(
        self,
        address: str,
        phrase: str,
        selections: Iterable[WordSelection],
    ) -> Wallet:
        """Mark a stored wallet verified once its owner passes the recall quiz.

        The stored seed is decrypted with the presented phrase, which proves
        the caller holds the phrase for this exact record.

        Args:
            address: Wallet address.
            phrase: Seed phrase presented by the caller.
            selections: Answers to the challenge.

        Returns:
            The verified wallet.

        Raises:
            WalletNotFoundError: If no wallet exists at the address.
            AuthenticationFailedError: If the phrase does not open the record.
            VerificationFailedError: If any answer is wrong.
        """
        wallet = await self._repository.find_wallet_by_address(address)
        if wallet is None:
            raise WalletNotFoundError(address.lower())

        normalized = self._deriver.normalize(phrase)
        decrypted = await asyncio.to_thread(
            self._cipher.decrypt_seed, wallet.encrypted_seed, normalized
        )
        if decrypted != normalized:
            raise AuthenticationFailedError("Seed phrase does not match stored wallet")

        if not self._challenges.verify(normalized, selections):
            raise VerificationFailedError()

        def mark_verified(w: Wallet) -> None:
            w.is_verified = True

        verified = await self._update_wallet(wallet.address, mark_verified)
        logger.info("Wallet verified: {}", verified.address)
        await self._record(AuditEvent.VERIFIED, verified)
        return verified

    # =========================================================================
    # Lifecycle Transitions
    # =========================================================================

    async def create_wallet(
        self,
        owner_id: str,
        phrase: str,
        pin: str | None = None,
        name: str | None = None,
    ) -> Wallet:
        """Create a wallet for an owner, or reclaim a logged-out one.

        A reclaimed wallet keeps its stored name and security settings;
        ``pin`` and ``name`` only apply to newly inserted records.

        Args:
            owner_id: Authenticated owner.
            phrase: 12-word seed phrase.
            pin: Optional PIN to hash and store.
            name: Display name. Defaults to "Wallet N".

        Returns:
            The persisted wallet.

        Raises:
            InvalidSeedPhraseError: If the phrase is malformed.
            AddressInUseError: If an active wallet already holds the address.
            StoreError: If the wallet cannot be stored.
        """
        normalized, address = self._checked_phrase(phrase)

        existing = await self._repository.find_wallet_by_address(address)
        if existing is not None:
            if not existing.is_logged_out:
                raise AddressInUseError(address)

            if pin or name:
                logger.debug("Ignoring pin/name for reclaimed wallet {}", address)

            active_count = await self._repository.count_active_wallets(owner_id)
            try:
                wallet = await self._reassign(existing, owner_id, is_default=active_count == 0)
            except StaleWriteError as e:
                raise AddressInUseError(address) from e

            await self._record(AuditEvent.REUSED, wallet)
            return wallet

        encrypted = await asyncio.to_thread(self._cipher.encrypt_seed, normalized)

        security = WalletSecurity()
        if pin:
            pin_hash, pin_salt = await asyncio.to_thread(self._cipher.hash_pin, pin)
            security = WalletSecurity(has_pin=True, pin_hash=pin_hash, pin_salt=pin_salt)

        active_count = await self._repository.count_active_wallets(owner_id)
        now = time()
        record = Wallet(
            owner_id=owner_id,
            address=address,
            encrypted_seed=encrypted,
            name=name or f"Wallet {active_count + 1}",
            is_default=active_count == 0,
            is_verified=False,
            is_logged_out=False,
            security=security,
            status=WalletStatus.ACTIVE,
            created_at=now,
            updated_at=now,
        )

        try:
            try:
                wallet = await self._repository.insert_wallet(record)
            except DefaultConflictError:
                # Another wallet of this owner became default since the count
                logger.debug("Owner {} gained a default concurrently", owner_id)
                wallet = await self._repository.insert_wallet(
                    record.model_copy(update={"is_default": False})
                )
        except DuplicateAddressError as e:
            raise AddressInUseError(address) from e

        logger.info(
            "Created wallet {} for {} (default={})", address, owner_id, wallet.is_default
        )
        await self._record(AuditEvent.CREATED, wallet)

        try:
            await self._refresher.seed_giveaway(address)
        except StoreError as e:
            logger.error("Wallet {} created without seeded balances: {}", address, e)

        return wallet

    async def import_wallet(self, owner_id: str, phrase: str) -> Wallet:
        """Import a wallet by phrase, reclaiming it if logged out.

        A reclaimed wallet is never the owner's default.

        Args:
            owner_id: Authenticated owner.
            phrase: 12-word seed phrase.

        Returns:
            The imported wallet.

        Raises:
            InvalidSeedPhraseError: If the phrase is malformed.
            WalletInUseError: If an active wallet already holds the address.
            StoreError: If the wallet cannot be stored.
        """
        normalized, address = self._checked_phrase(phrase)

        existing = await self._repository.find_wallet_by_address(address)
        if existing is not None:
            if not existing.is_logged_out:
                raise WalletInUseError(address)

            try:
                wallet = await self._reassign(existing, owner_id, is_default=False)
            except StaleWriteError as e:
                raise WalletInUseError(address) from e

            await self._record(AuditEvent.IMPORTED, wallet)
            return wallet

        try:
            return await self.create_wallet(owner_id, normalized)
        except AddressInUseError as e:
            raise WalletInUseError(address) from e

    async def logout_wallet(self, address: str) -> None:
        """Log a wallet out, making it claimable by its phrase.

        Raises:
            WalletNotFoundError: If no wallet exists at the address.
        """

        def mark_logged_out(w: Wallet) -> None:
            w.is_logged_out = True
            w.last_logout = time()

        wallet = await self._update_wallet(address, mark_logged_out)
        logger.info("Logged out wallet {}", wallet.address)
        await self._record(AuditEvent.LOGGED_OUT, wallet)

    # =========================================================================
    # Queries
    # =========================================================================

    async def list_wallets(self, owner_id: str) -> list[WalletSummary]:
        """List an owner's active wallets, default first then newest first."""
        wallets = await self._repository.find_wallets(owner_id, status=WalletStatus.ACTIVE)
        return [w.to_summary() for w in wallets]

    async def get_default_wallet(self, owner_id: str) -> Wallet | None:
        """Get the owner's default wallet, if any."""
        return await self._repository.find_default_wallet(owner_id)

    async def verify_pin(self, address: str, pin: str) -> bool:
        """Check a wallet PIN and stamp last access on success.

        Disabled wallets never pass.

        Raises:
            WalletNotFoundError: If no wallet exists at the address.
        """
        wallet = await self._repository.find_wallet_by_address(address)
        if wallet is None:
            raise WalletNotFoundError(address.lower())
        if not wallet.is_active() or not wallet.has_valid_pin():
            return False

        matches = await asyncio.to_thread(
            self._cipher.verify_pin,
            pin,
            wallet.security.pin_hash or "",
            wallet.security.pin_salt or "",
        )
        if not matches:
            logger.warning("PIN check failed for {}", wallet.address)
            return False

        def touch(w: Wallet) -> None:
            w.security.last_accessed = time()

        await self._update_wallet(wallet.address, touch)
        return True

"""Custom exceptions for the vaultkeeper custody service."""


# =============================================================================
# Custody Layer Exceptions
# =============================================================================


class CustodyError(Exception):
    """Base exception for wallet custody errors.

    Attributes:
        code: Stable failure code used by the service boundary.
    """

    code: str = "custody_error"


class InvalidSeedPhraseError(CustodyError):
    """Raised when a seed phrase fails word-list or checksum validation."""

    code = "invalid_seed_phrase"

    def __init__(self, message: str = "Invalid seed phrase") -> None:
        super().__init__(message)


class AddressInUseError(CustodyError):
    """Raised when creating a wallet whose address belongs to an active wallet."""

    code = "address_in_use"

    def __init__(self, address: str) -> None:
        super().__init__(f"This wallet address is already in use: {address}")
        self.address = address


class WalletInUseError(CustodyError):
    """Raised when importing a wallet that is active under another account."""

    code = "wallet_in_use"

    def __init__(self, address: str) -> None:
        super().__init__(f"Wallet is currently in use by another account: {address}")
        self.address = address


class WalletNotFoundError(CustodyError):
    """Raised when an operation targets a wallet that does not exist."""

    code = "not_found"

    def __init__(self, address: str) -> None:
        super().__init__(f"Wallet not found: {address}")
        self.address = address


class AuthenticationFailedError(CustodyError):
    """Raised when an encrypted seed fails its integrity check on decrypt."""

    code = "authentication_failed"

    def __init__(self, message: str = "Decryption failed: integrity check mismatch") -> None:
        super().__init__(message)


class VerificationFailedError(CustodyError):
    """Raised when submitted recall words do not match the seed phrase."""

    code = "verification_failed"

    def __init__(self, message: str = "Selected words do not match the seed phrase") -> None:
        super().__init__(message)


class InvalidRequestError(CustodyError):
    """Raised when an operation argument is out of its accepted range."""

    code = "invalid_request"


# =============================================================================
# Persistence Layer Exceptions
# =============================================================================


class StoreError(Exception):
    """Base exception for document store failures."""

    code: str = "store_error"


class DuplicateAddressError(StoreError):
    """Raised when an insert violates the unique address constraint."""

    def __init__(self, address: str) -> None:
        super().__init__(f"Address already stored: {address}")
        self.address = address


class DefaultConflictError(StoreError):
    """Raised when a write would give an owner a second active default wallet."""

    def __init__(self, owner_id: str) -> None:
        super().__init__(f"Owner {owner_id} already has an active default wallet")
        self.owner_id = owner_id


class StaleWriteError(StoreError):
    """Raised when an optimistic save finds the record changed underneath it.

    Attributes:
        expected_version: Version the writer read before modifying.
    """

    def __init__(self, address: str, expected_version: int) -> None:
        super().__init__(
            f"Wallet {address} changed since version {expected_version} was read"
        )
        self.address = address
        self.expected_version = expected_version


# =============================================================================
# Market Data Layer Exceptions
# =============================================================================


class MarketDataError(Exception):
    """Base exception for market data feed errors."""

    pass


class ExternalFetchExhaustedError(MarketDataError):
    """Raised when every fetch attempt for a symbol has failed.

    Attributes:
        symbol: Symbol that could not be fetched.
        attempts: Number of attempts made.
    """

    def __init__(self, symbol: str, attempts: int) -> None:
        super().__init__(f"Failed to fetch {symbol} after {attempts} attempts")
        self.symbol = symbol
        self.attempts = attempts


class InvalidFeedResponseError(MarketDataError):
    """Raised when a feed payload fails the structural shape check."""

    pass

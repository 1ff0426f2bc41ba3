"""Domain models for the vaultkeeper custody service."""

from enum import Enum
from time import time

from pydantic import BaseModel, Field


# =============================================================================
# Market Models
# =============================================================================


class CryptoSymbol(str, Enum):
    """Tracked asset symbols."""

    BTC = "BTC"
    ETH = "ETH"


# Fixed allocation credited to every newly created wallet
GIVEAWAY_AMOUNTS: dict[CryptoSymbol, float] = {
    CryptoSymbol.BTC: 5.0,
    CryptoSymbol.ETH: 100.0,
}

# DexScreener pair paths (chain/pair address) used as each symbol's price source
PAIR_ADDRESSES: dict[CryptoSymbol, str] = {
    CryptoSymbol.BTC: "bsc/0x61EB789d75A95CAa3fF50ed7E47b96c132fEc082",  # BTCB/BUSD
    CryptoSymbol.ETH: "bsc/0x74E4716E431f45807DCF19f284c7aA99F18a4fbc",  # ETH/BUSD
}


class MarketMetrics(BaseModel):
    """Point-in-time market data for one symbol.

    Immutable. An all-zero instance stands for "no data available".
    """

    model_config = {"frozen": True}

    price: float = Field(default=0.0, description="Price in USD")
    market_cap: float = Field(default=0.0, description="Market capitalisation in USD")
    volume_24h: float = Field(default=0.0, description="Trading volume over 24h")
    price_change_24h: float = Field(default=0.0, description="Price change over 24h (%)")
    liquidity: float = Field(default=0.0, description="Pool liquidity in USD")

    @classmethod
    def zero(cls) -> "MarketMetrics":
        """Return the all-zero fallback metrics."""
        return cls()

    @property
    def is_empty(self) -> bool:
        """Whether every field is zero (fetch failure or no data)."""
        return self == MarketMetrics.zero()


class CryptoBalance(BaseModel):
    """Holding of a single symbol inside a wallet's balance ledger."""

    symbol: CryptoSymbol
    amount: float = Field(..., ge=0, description="Fixed allocation, not user-adjustable")
    price_usd: float = Field(default=0.0, ge=0)
    value: float = Field(default=0.0, ge=0, description="amount * price_usd")
    metrics: MarketMetrics = Field(default_factory=MarketMetrics.zero)
    last_updated: float = Field(default_factory=time)


class CryptoWallet(BaseModel):
    """Balance ledger document, keyed by lowercase wallet address."""

    address: str = Field(..., min_length=1)
    balances: list[CryptoBalance] = Field(default_factory=list)
    created_at: float = Field(default_factory=time)
    updated_at: float = Field(default_factory=time)

    @property
    def total_value(self) -> float:
        """Sum of every balance's USD value."""
        return sum(b.value for b in self.balances)


class BalanceReport(BaseModel):
    """Balances of one wallet together with their combined value."""

    model_config = {"frozen": True}

    address: str
    balances: list[CryptoBalance]
    total_value: float


class PriceSnapshot(BaseModel):
    """Current metrics for every tracked symbol."""

    model_config = {"frozen": True}

    prices: dict[CryptoSymbol, MarketMetrics]
    timestamp: float = Field(default_factory=time)


# =============================================================================
# Wallet Models
# =============================================================================


class WalletStatus(str, Enum):
    """Administrative wallet status."""

    ACTIVE = "active"
    DISABLED = "disabled"


class EncryptedSeed(BaseModel):
    """At-rest form of a seed phrase.

    All fields are hex strings. ``ciphertext`` carries the GCM
    authentication tag appended to the encrypted bytes.
    """

    model_config = {"frozen": True}

    ciphertext: str = Field(..., min_length=1)
    iv: str = Field(..., min_length=1)
    salt: str = Field(..., min_length=1)


class WalletSecurity(BaseModel):
    """Per-wallet access settings. PIN material never serialises."""

    has_pin: bool = False
    pin_hash: str | None = Field(default=None, exclude=True)
    pin_salt: str | None = Field(default=None, exclude=True)
    has_biometrics: bool = False
    last_accessed: float = Field(default_factory=time)


class WalletSecuritySummary(BaseModel):
    """Public view of wallet security settings."""

    model_config = {"frozen": True}

    has_pin: bool
    has_biometrics: bool
    last_accessed: float


class WalletSummary(BaseModel):
    """Public listing projection of a wallet."""

    model_config = {"frozen": True}

    address: str
    name: str
    is_default: bool
    is_verified: bool
    security: WalletSecuritySummary
    status: WalletStatus
    created_at: float
    updated_at: float


class Wallet(BaseModel):
    """Custodied wallet record.

    Invariants:
        - address is lowercase and unique across the store
        - encrypted_seed is the only durable form of the seed phrase
          and is excluded from every serialised representation
        - version increments on every successful save
    """

    id: int | None = None
    owner_id: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    encrypted_seed: EncryptedSeed = Field(..., exclude=True)
    name: str = "Wallet 1"
    is_default: bool = False
    is_verified: bool = False
    is_logged_out: bool = False
    last_logout: float | None = None
    security: WalletSecurity = Field(default_factory=WalletSecurity)
    status: WalletStatus = WalletStatus.ACTIVE
    created_at: float = Field(default_factory=time)
    updated_at: float = Field(default_factory=time)
    version: int = 0

    def is_active(self) -> bool:
        """Whether the wallet is administratively active."""
        return self.status == WalletStatus.ACTIVE

    def has_valid_pin(self) -> bool:
        """Whether a PIN is enabled and its hash is present."""
        return self.security.has_pin and bool(self.security.pin_hash)

    def to_summary(self) -> WalletSummary:
        """Project the wallet onto its public listing form."""
        return WalletSummary(
            address=self.address,
            name=self.name,
            is_default=self.is_default,
            is_verified=self.is_verified,
            security=WalletSecuritySummary(
                has_pin=self.security.has_pin,
                has_biometrics=self.security.has_biometrics,
                last_accessed=self.security.last_accessed,
            ),
            status=self.status,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class GeneratedWallet(BaseModel):
    """Freshly generated, not yet persisted, wallet credentials."""

    model_config = {"frozen": True}

    seed_phrase: str
    address: str
    message: str


class VerificationChallenge(BaseModel):
    """Multiple-choice recall quiz over a subset of seed words.

    ``options`` holds one shuffled group per index, flattened in the
    same order as ``indices``.
    """

    model_config = {"frozen": True}

    indices: list[int]
    options: list[str]


class WordSelection(BaseModel):
    """A single answer submitted for a verification challenge."""

    model_config = {"frozen": True}

    index: int = Field(..., ge=0)
    word: str


class AuthContext(BaseModel):
    """Authenticated token payload handed over by the session layer."""

    model_config = {"frozen": True}

    id: str = Field(..., min_length=1)
    wallet_address: str | None = None
    role: str = "user"

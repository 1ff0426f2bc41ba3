"""Test doubles and reference data shared across test modules."""

from vaultkeeper.exceptions import ExternalFetchExhaustedError, MarketDataError
from vaultkeeper.models import CryptoSymbol, EncryptedSeed, MarketMetrics, Wallet

# BIP-39 reference vectors (valid 12-word English phrases)
PHRASE_ABANDON = (
    "abandon abandon abandon abandon abandon abandon "
    "abandon abandon abandon abandon abandon about"
)
PHRASE_LEGAL = "legal winner thank year wave sausage worth useful legal winner thank yellow"
PHRASE_LETTER = "letter advice cage absurd amount doctor acoustic avoid letter advice cage above"
PHRASE_ZOO = "zoo zoo zoo zoo zoo zoo zoo zoo zoo zoo zoo wrong"

# Address of PHRASE_ABANDON at m/44'/60'/0'/0/0
ADDRESS_ABANDON = "0x9858effd232b4033e47d90003d41ec34ecaeda94"

BTC_METRICS = MarketMetrics(
    price=65000.0,
    market_cap=1_200_000_000.0,
    volume_24h=350_000.0,
    price_change_24h=-1.5,
    liquidity=2_000_000.0,
)
ETH_METRICS = MarketMetrics(
    price=3200.0,
    market_cap=380_000_000.0,
    volume_24h=120_000.0,
    price_change_24h=2.25,
    liquidity=900_000.0,
)


class StubMetricsSource:
    """In-memory market feed returning canned metrics or raising per symbol."""

    def __init__(
        self, responses: dict[CryptoSymbol, MarketMetrics | MarketDataError] | None = None
    ) -> None:
        self.responses: dict[CryptoSymbol, MarketMetrics | MarketDataError] = (
            responses
            if responses is not None
            else {CryptoSymbol.BTC: BTC_METRICS, CryptoSymbol.ETH: ETH_METRICS}
        )
        self.calls: list[CryptoSymbol] = []

    async def fetch_pair_metrics(self, symbol: CryptoSymbol) -> MarketMetrics:
        self.calls.append(symbol)
        response = self.responses.get(
            symbol, ExternalFetchExhaustedError(symbol.value, 3)
        )
        if isinstance(response, MarketDataError):
            raise response
        return response


def make_wallet(owner_id: str, address: str, **overrides: object) -> Wallet:
    """Build a wallet record with placeholder encrypted seed material."""
    fields: dict[str, object] = {
        "owner_id": owner_id,
        "address": address,
        "encrypted_seed": EncryptedSeed(ciphertext="ab" * 40, iv="cd" * 16, salt="ef" * 16),
    }
    fields.update(overrides)
    return Wallet(**fields)  # type: ignore[arg-type]

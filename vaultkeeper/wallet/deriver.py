"""BIP-39 mnemonic generation and deterministic address derivation."""

from eth_account import Account
from eth_account.signers.local import LocalAccount
from mnemonic import Mnemonic

from vaultkeeper.exceptions import InvalidSeedPhraseError

Account.enable_unaudited_hdwallet_features()

# Single fixed BIP-44 path: first external account on the Ethereum coin type
DERIVATION_PATH = "m/44'/60'/0'/0/0"

SEED_WORD_COUNT = 12
ENTROPY_BITS = 128


class MnemonicDeriver:
    """Generates seed phrases and derives wallet addresses from them.

    Pure: no I/O and no state beyond the word list.

    Usage:
        deriver = MnemonicDeriver()
        phrase, address = deriver.generate()
        assert deriver.validate(phrase)
        assert deriver.address_of(phrase) == address
    """

    def __init__(self, language: str = "english") -> None:
        self._mnemonic = Mnemonic(language)

    @staticmethod
    def normalize(phrase: str) -> str:
        """Collapse stray whitespace between and around words."""
        return " ".join(phrase.split())

    def generate(self) -> tuple[str, str]:
        """Generate a random 12-word phrase and its address.

        Returns:
            Tuple of (seed phrase, lowercase wallet address).
        """
        phrase = self._mnemonic.generate(strength=ENTROPY_BITS)
        return phrase, self.address_of(phrase)

    def validate(self, phrase: object) -> bool:
        """Check word count, word-list membership and checksum.

        Args:
            phrase: Candidate seed phrase.

        Returns:
            True only for a well-formed 12-word phrase.
        """
        if not isinstance(phrase, str):
            return False
        normalized = self.normalize(phrase)
        if len(normalized.split(" ")) != SEED_WORD_COUNT:
            return False
        return self._mnemonic.check(normalized)

    def address_of(self, phrase: str) -> str:
        """Derive the lowercase wallet address for a phrase.

        Args:
            phrase: A valid seed phrase.

        Returns:
            Lowercase 0x-prefixed address.

        Raises:
            InvalidSeedPhraseError: If the phrase fails validation.
        """
        if not self.validate(phrase):
            raise InvalidSeedPhraseError()
        account: LocalAccount = Account.from_mnemonic(
            self.normalize(phrase), account_path=DERIVATION_PATH
        )
        return account.address.lower()

"""Wallet custody module.

Provides seed phrase generation, at-rest encryption, recall verification
and the wallet lifecycle state machine.
"""

from vaultkeeper.wallet.challenge import ChallengeGenerator
from vaultkeeper.wallet.cipher import SeedCipher
from vaultkeeper.wallet.deriver import MnemonicDeriver
from vaultkeeper.wallet.manager import WalletLifecycleManager

__all__ = [
    "ChallengeGenerator",
    "MnemonicDeriver",
    "SeedCipher",
    "WalletLifecycleManager",
]

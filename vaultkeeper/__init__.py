"""Vaultkeeper: custody of mnemonic-derived wallets and their balance ledgers."""

__version__ = "0.1.0"

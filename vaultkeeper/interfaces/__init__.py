"""Interfaces for pluggable vaultkeeper components."""

from vaultkeeper.interfaces.repository import WalletRepository

__all__ = ["WalletRepository"]

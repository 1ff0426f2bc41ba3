"""Persistence layer for the vaultkeeper custody service.

Provides:
- DatabaseManager: SQLite store for wallets and balance ledgers
- WalletAuditLogger: Append-only JSONL audit trail of lifecycle events
"""

from vaultkeeper.persistence.audit_logger import AuditEvent, WalletAuditLogger
from vaultkeeper.persistence.database import DatabaseManager

__all__ = ["AuditEvent", "DatabaseManager", "WalletAuditLogger"]
